"""Schema Object rules: identifier keywords, discriminators and XML hints.

:func:`check_schema` walks one schema and every subschema reachable through
composition (``allOf``/``anyOf``/``oneOf``/``not``/``if``/``then``/``else``)
and structure (``items``, ``prefixItems``, ``properties``,
``patternProperties``, ``additionalProperties``, ``dependentSchemas``,
``contentSchema``).  Reference Objects are checked for shape but not
followed; their targets are validated where they are defined.
"""

from __future__ import annotations

from typing import Any, Optional

from specgraph.exceptions import SpecValidationError
from specgraph.parser.uris import pointer_join
from specgraph.tree import has_reference_key
from specgraph.validation.formats import is_absolute_uri, is_uri_reference

XML_NODE_TYPES = frozenset({"element", "attribute", "text", "cdata", "none"})

_PRIMITIVE_TYPES = frozenset({"string", "number", "integer", "boolean", "null"})


def schema_type_kind(schema: Any) -> str:
    """Classify a schema as ``"primitive"``, ``"array"``, ``"object"`` or ``"unknown"``.

    A ``type`` list is only classified when a single non-null type remains.
    """
    if not isinstance(schema, dict) or has_reference_key(schema):
        return "unknown"

    declared = schema.get("type")
    if isinstance(declared, list):
        remaining = [t for t in declared if t != "null"]
        declared = remaining[0] if len(remaining) == 1 else None
    if declared == "array":
        return "array"
    if declared == "object":
        return "object"
    if declared in _PRIMITIVE_TYPES:
        return "primitive"
    return "unknown"


def check_external_docs(external_docs: Any, location: str) -> None:
    if external_docs is None:
        return
    if not isinstance(external_docs, dict):
        raise SpecValidationError(f"ExternalDocs at '{location}' must be an object.", location)
    url = external_docs.get("url")
    if not is_uri_reference(url):
        raise SpecValidationError(
            f"ExternalDocs.url must be a valid URI at '{location}'. Value: \"{url}\"",
            pointer_join(location, "url"),
        )


def is_property_required(schema: Any, property_name: str, seen: Optional[set[int]] = None) -> bool:
    """Return ``True`` if *property_name* is required by *schema* or one of its inline ``allOf`` parts."""
    if not isinstance(schema, dict):
        return False
    seen = seen if seen is not None else set()
    if id(schema) in seen:
        return False
    seen.add(id(schema))

    required = schema.get("required")
    if isinstance(required, list) and property_name in required:
        return True

    parts = schema.get("allOf")
    if isinstance(parts, list):
        return any(
            isinstance(part, dict) and not has_reference_key(part) and is_property_required(part, property_name, seen)
            for part in parts
        )
    return False


def check_discriminator(schema: dict[str, Any], location: str) -> None:
    """Validate ``schema["discriminator"]``; *location* points at the discriminator itself."""
    discriminator = schema.get("discriminator")
    if discriminator is None:
        return

    if isinstance(discriminator, str):
        # Swagger 2.0 declares the discriminator as a bare property name.
        if location.startswith("/definitions/"):
            return
        raise SpecValidationError(f"Discriminator at '{location}' must be an object.", location)
    if not isinstance(discriminator, dict):
        raise SpecValidationError(f"Discriminator at '{location}' must be an object.", location)

    property_name = discriminator.get("propertyName")
    if not isinstance(property_name, str) or not property_name.strip():
        raise SpecValidationError(
            f"Discriminator at '{location}' must define a non-empty string 'propertyName'.", location
        )

    if not any(isinstance(schema.get(key), list) for key in ("oneOf", "anyOf", "allOf")):
        raise SpecValidationError(f"Discriminator at '{location}' is only valid alongside oneOf/anyOf/allOf.", location)

    mapping = discriminator.get("mapping")
    if mapping is not None:
        if not isinstance(mapping, dict):
            raise SpecValidationError(f"Discriminator mapping at '{location}' must be an object.", location)
        for key, value in mapping.items():
            if not isinstance(value, str):
                raise SpecValidationError(
                    f"Discriminator mapping value for '{key}' at '{location}' must be a string.",
                    pointer_join(location, "mapping", key),
                )

    has_default = "defaultMapping" in discriminator
    if has_default and not isinstance(discriminator["defaultMapping"], str):
        raise SpecValidationError(f"Discriminator defaultMapping at '{location}' must be a string.", location)

    if not has_default and not is_property_required(schema, property_name):
        raise SpecValidationError(
            f"Discriminator property '{property_name}' is optional at '{location}'. A 'defaultMapping' is required.",
            location,
        )


def check_xml(schema: dict[str, Any], location: str) -> None:
    """Validate ``schema["xml"]``; *location* points at the XML Object itself."""
    xml = schema.get("xml")
    if xml is None:
        return
    if not isinstance(xml, dict):
        raise SpecValidationError(f"XML Object at '{location}' must be an object.", location)

    if "nodeType" in xml:
        if xml["nodeType"] not in XML_NODE_TYPES:
            raise SpecValidationError(f"XML Object at '{location}' has invalid 'nodeType'.", location)
        if "attribute" in xml:
            raise SpecValidationError(
                f"XML Object at '{location}' MUST NOT define 'attribute' when 'nodeType' is present.", location
            )
        if "wrapped" in xml:
            raise SpecValidationError(
                f"XML Object at '{location}' MUST NOT define 'wrapped' when 'nodeType' is present.", location
            )

    for field in ("name", "prefix"):
        if field in xml and not isinstance(xml[field], str):
            raise SpecValidationError(f"XML Object at '{location}' has non-string '{field}'.", location)
    if "namespace" in xml and not is_absolute_uri(xml["namespace"]):
        raise SpecValidationError(
            f"XML Object at '{location}' must define a non-relative IRI for 'namespace'.", location
        )
    for field in ("attribute", "wrapped"):
        if field in xml and not isinstance(xml[field], bool):
            raise SpecValidationError(f"XML Object at '{location}' has non-boolean '{field}'.", location)

    if xml.get("wrapped") is True and schema_type_kind(schema) not in ("array", "unknown"):
        raise SpecValidationError(
            f"XML Object at '{location}' defines 'wrapped' but the schema is not an array.", location
        )


def _check_uri_keyword(schema: dict[str, Any], keyword: str, location: str) -> None:
    if keyword in schema and not is_uri_reference(schema[keyword]):
        raise SpecValidationError(
            f"Schema Object at '{location}' has invalid '{keyword}'. It must be a valid URI reference.",
            pointer_join(location, keyword),
        )


def _check_anchor_keyword(schema: dict[str, Any], keyword: str, location: str) -> None:
    if keyword in schema:
        value = schema[keyword]
        if not isinstance(value, str) or not value.strip():
            raise SpecValidationError(
                f"Schema Object at '{location}' has invalid '{keyword}'.", pointer_join(location, keyword)
            )


def _subschemas(schema: dict[str, Any], location: str):
    for keyword in ("allOf", "anyOf", "oneOf", "prefixItems"):
        members = schema.get(keyword)
        if isinstance(members, list):
            for position, member in enumerate(members):
                yield member, pointer_join(location, keyword, position)

    for keyword in ("not", "if", "then", "else", "contentSchema"):
        if schema.get(keyword):
            yield schema[keyword], pointer_join(location, keyword)

    items = schema.get("items")
    if isinstance(items, list):
        for position, member in enumerate(items):
            yield member, pointer_join(location, "items", position)
    elif items:
        yield items, pointer_join(location, "items")

    for keyword in ("properties", "patternProperties", "dependentSchemas"):
        members = schema.get(keyword)
        if isinstance(members, dict):
            for name, member in members.items():
                yield member, pointer_join(location, keyword, name)

    additional = schema.get("additionalProperties")
    if isinstance(additional, dict):
        yield additional, pointer_join(location, "additionalProperties")


def check_schema(schema: Any, location: str, seen: Optional[set[int]] = None) -> None:
    """Validate one schema and its subschemas; boolean and scalar schemas pass."""
    if not isinstance(schema, dict):
        return
    seen = seen if seen is not None else set()
    if id(schema) in seen:
        return
    seen.add(id(schema))

    _check_uri_keyword(schema, "$schema", location)
    _check_uri_keyword(schema, "$id", location)
    _check_anchor_keyword(schema, "$anchor", location)
    _check_anchor_keyword(schema, "$dynamicAnchor", location)
    _check_uri_keyword(schema, "$ref", location)
    _check_uri_keyword(schema, "$dynamicRef", location)

    if "externalDocs" in schema:
        check_external_docs(schema["externalDocs"], pointer_join(location, "externalDocs"))
    if "discriminator" in schema:
        check_discriminator(schema, pointer_join(location, "discriminator"))
    if "xml" in schema:
        check_xml(schema, pointer_join(location, "xml"))

    if has_reference_key(schema):
        return
    for subschema, sublocation in _subschemas(schema, location):
        check_schema(subschema, sublocation, seen)
