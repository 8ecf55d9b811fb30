"""Structural validation of one OpenAPI 3.x or Swagger 2.0 document.

:func:`validate_spec` runs a fixed sequence of rule groups and raises
:class:`~specgraph.exceptions.SpecValidationError` at the first violation,
so the same input always produces the same message.  A passing document
returns ``None``.

Rule groups, in order:

1. Envelope: version field, ``info``, license, top-level sections.
2. URI-shaped fields: ``$self``, Info URIs, ``externalDocs``,
   ``jsonSchemaDialect``, every Server Object.
3. Path keys: leading ``/``, braces, repeated variables,
   ``additionalOperations`` methods, ambiguous hierarchies.
4. Operations and parameters, request bodies and responses.
5. Webhooks, callbacks and reusable path items.
6. Reusable components (parameters, headers, links, examples, media
   types, request bodies, callbacks, responses).
7. ``operationId`` uniqueness.
8. Component key grammar and schemas (discriminator, XML, identifiers).
9. Tags, then security schemes.

Example::

    from specgraph.validation import validate_spec

    validate_spec(yaml.safe_load(text))
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from specgraph.exceptions import ResolutionFailure, SpecValidationError
from specgraph.parser.resolver import Context, ReferenceResolver
from specgraph.parser.uris import decode_pointer, is_array_index, pointer_join
from specgraph.tree import has_reference_key, reference_target
from specgraph.validation.formats import is_absolute_uri, is_email_address, is_uri_reference
from specgraph.validation.objects import (
    check_example,
    check_headers_map,
    check_links_map,
    check_media_type,
    check_request_body,
    check_response,
    check_servers,
)
from specgraph.validation.operation_ids import check_operation_ids
from specgraph.validation.parameters import check_component_parameters
from specgraph.validation.paths import (
    ParameterLookup,
    callback_path_items,
    check_callback,
    check_operations_content,
    check_path_item_servers,
    check_path_operations,
    check_path_templates,
    check_server_locations,
    iter_operation_callbacks,
)
from specgraph.validation.schemas import check_external_docs, check_schema
from specgraph.validation.security import check_security_schemes
from specgraph.validation.tags import check_tags

logger = logging.getLogger(__name__)

COMPONENT_TYPES = (
    "schemas",
    "responses",
    "parameters",
    "examples",
    "requestBodies",
    "headers",
    "securitySchemes",
    "links",
    "callbacks",
    "pathItems",
    "mediaTypes",
    "webhooks",
)
COMPONENT_KEY_RE = re.compile(r"^[a-zA-Z0-9.\-_]+$")


def validate_spec(
    tree: Any,
    resolver: Optional[ReferenceResolver] = None,
    current: Context = None,
) -> None:
    """Validate one parsed document.

    Args:
        tree: The decoded document.
        resolver: Optional resolver over the loaded graph.  Parameter
            Reference Objects are followed through it (including into other
            documents); without one only local ``#/...`` references are
            followed.
        current: Document context *tree* belongs to, for the resolver.

    Raises:
        SpecValidationError: At the first rule violation.
        ResolutionFailure: If a parameter reference is dangling.
    """
    if tree is None:
        raise SpecValidationError("Specification cannot be null or undefined.")
    if not isinstance(tree, dict):
        raise SpecValidationError("Specification root must be an object.")

    openapi3 = _check_envelope(tree)
    logger.debug("Validating %s document", "OpenAPI 3.x" if openapi3 else "Swagger 2.0")

    paths = tree.get("paths")
    webhooks = tree.get("webhooks")
    components = tree.get("components") if isinstance(tree.get("components"), dict) else {}
    callbacks = {**callback_path_items(paths, "/paths"), **callback_path_items(webhooks, "/webhooks")}

    _check_uri_fields(tree, openapi3)
    if openapi3:
        check_servers(tree.get("servers"), "/servers")
        check_server_locations(paths, "/paths")
        check_server_locations(webhooks, "/webhooks")
        for location, path_item in callbacks.items():
            check_path_item_servers(path_item, location)

    check_path_templates(paths, openapi3)
    check_path_operations(paths, openapi3, _parameter_lookup(tree, resolver, current))

    if openapi3:
        check_operations_content(webhooks, "/webhooks", openapi3)
        for callback, location in iter_operation_callbacks(paths, "/paths"):
            check_callback(callback, location, openapi3)
        for callback, location in iter_operation_callbacks(webhooks, "/webhooks"):
            check_callback(callback, location, openapi3)
        check_operations_content(components.get("pathItems"), "/components/pathItems", openapi3)
        check_operations_content(components.get("webhooks"), "/components/webhooks", openapi3)
        _check_components(components, openapi3)

    check_operation_ids(tree)

    if openapi3:
        _check_component_keys(components)
        _check_schema_table(components.get("schemas"), "/components/schemas")
    _check_schema_table(tree.get("definitions"), "/definitions")

    if openapi3:
        check_tags(tree.get("tags"))
        check_security_schemes(components.get("securitySchemes"))


# --- Envelope ---


def _check_envelope(tree: dict[str, Any]) -> bool:
    """Return ``True`` for OpenAPI 3.x, ``False`` for Swagger 2.0."""
    swagger, openapi = tree.get("swagger"), tree.get("openapi")
    is_swagger2 = isinstance(swagger, str) and swagger.startswith("2.")
    is_openapi3 = isinstance(openapi, str) and openapi.startswith("3.")

    if not is_swagger2 and not is_openapi3:
        raise SpecValidationError(
            "Unsupported or missing OpenAPI/Swagger version. "
            "Specification must contain 'swagger: \"2.x\"' or 'openapi: \"3.x\"'."
        )
    if "swagger" in tree and "openapi" in tree:
        raise SpecValidationError("Specification must declare exactly one of 'swagger' or 'openapi', not both.")

    info = tree.get("info")
    if not isinstance(info, dict):
        raise SpecValidationError("Specification must contain an 'info' object.", "/info")
    for field in ("title", "version"):
        if not info.get(field) or not isinstance(info[field], str):
            raise SpecValidationError(
                f"Specification info object must contain a required string field: '{field}'.",
                pointer_join("/info", field),
            )

    license_ = info.get("license")
    if license_ is not None:
        if not isinstance(license_, dict) or not isinstance(license_.get("name"), str) or not license_["name"]:
            raise SpecValidationError("License object must contain a required string field: 'name'.", "/info/license")
        if license_.get("url") is not None and license_.get("identifier") is not None:
            raise SpecValidationError(
                "License object cannot contain both 'url' and 'identifier' fields. They are mutually exclusive.",
                "/info/license",
            )

    if is_openapi3:
        if all(tree.get(section) is None for section in ("paths", "components", "webhooks")):
            raise SpecValidationError(
                "OpenAPI 3.x specification must contain at least one of: 'paths', 'components', or 'webhooks'."
            )
    elif tree.get("paths") is None:
        raise SpecValidationError("Swagger 2.0 specification must contain a 'paths' object.", "/paths")
    return is_openapi3


def _check_uri_fields(tree: dict[str, Any], openapi3: bool) -> None:
    if openapi3 and "$self" in tree and not is_uri_reference(tree["$self"]):
        raise SpecValidationError(
            f"OpenAPI Object $self must be a valid URI reference. Value: \"{tree['$self']}\"", "/$self"
        )

    info = tree["info"]
    if "termsOfService" in info and not is_uri_reference(info["termsOfService"]):
        raise SpecValidationError(
            f"Info.termsOfService must be a valid URI. Value: \"{info['termsOfService']}\"", "/info/termsOfService"
        )

    contact = info.get("contact")
    if isinstance(contact, dict):
        if "url" in contact and not is_uri_reference(contact["url"]):
            raise SpecValidationError(
                f"Info.contact.url must be a valid URI. Value: \"{contact['url']}\"", "/info/contact/url"
            )
        if "email" in contact and not is_email_address(contact["email"]):
            raise SpecValidationError(
                f"Info.contact.email must be a valid email address. Value: \"{contact['email']}\"",
                "/info/contact/email",
            )

    license_ = info.get("license")
    if isinstance(license_, dict) and isinstance(license_.get("url"), str) and not is_uri_reference(license_["url"]):
        raise SpecValidationError(
            f"Info.license.url must be a valid URI. Value: \"{license_['url']}\"", "/info/license/url"
        )

    if tree.get("externalDocs"):
        check_external_docs(tree["externalDocs"], "/externalDocs")

    if openapi3 and tree.get("jsonSchemaDialect"):
        dialect = tree["jsonSchemaDialect"]
        if not isinstance(dialect, str):
            raise SpecValidationError("Field 'jsonSchemaDialect' must be a string.", "/jsonSchemaDialect")
        if not is_absolute_uri(dialect):
            raise SpecValidationError(
                f"Field 'jsonSchemaDialect' must be a valid URI. Value: \"{dialect}\"", "/jsonSchemaDialect"
            )


# --- Parameter references ---


def _parameter_lookup(tree: dict[str, Any], resolver: Optional[ReferenceResolver], current: Context) -> ParameterLookup:
    def lookup(param: Any) -> Optional[dict]:
        if not isinstance(param, dict):
            return None
        if not has_reference_key(param):
            return param
        if resolver is not None:
            value = resolver.resolve(param, current)
        else:
            value = _local_target(tree, param)
        return value if isinstance(value, dict) and not has_reference_key(value) else None

    return lookup


def _local_target(tree: dict[str, Any], reference: dict[str, Any]) -> Any:
    """Follow same-document ``#/...`` references; anything else is unknown without a resolver."""
    seen: set[str] = set()
    value: Any = reference
    while has_reference_key(value):
        ref = reference_target(value)
        if not ref.startswith("#/") or ref in seen:
            return None
        seen.add(ref)
        value = tree
        for segment in decode_pointer(ref[1:]):
            if isinstance(value, dict) and segment in value:
                value = value[segment]
            elif isinstance(value, list) and is_array_index(segment) and int(segment) < len(value):
                value = value[int(segment)]
            else:
                raise ResolutionFailure(
                    f"Cannot resolve reference '{ref}': segment '{segment}' not found in the current document",
                    reference=ref,
                    segment=segment,
                )
    return value


# --- Components ---


def _check_components(components: dict[str, Any], openapi3: bool) -> None:
    check_component_parameters(components.get("parameters"), "/components/parameters")
    check_headers_map(components.get("headers"), "/components/headers", openapi3)
    check_links_map(components.get("links"), "/components/links")

    for name, example in _entries(components, "examples"):
        check_example(example, pointer_join("/components/examples", name))
    for name, media in _entries(components, "mediaTypes"):
        check_media_type(media, pointer_join("/components/mediaTypes", name))
    for name, body in _entries(components, "requestBodies"):
        check_request_body(body, pointer_join("/components/requestBodies", name))
    for name, callback in _entries(components, "callbacks"):
        check_callback(callback, pointer_join("/components/callbacks", name), openapi3)
    for name, response in _entries(components, "responses"):
        check_response(response, pointer_join("/components/responses", name), openapi3)


def _entries(components: dict[str, Any], kind: str) -> list[tuple[str, Any]]:
    table = components.get(kind)
    return list(table.items()) if isinstance(table, dict) else []


def _check_component_keys(components: dict[str, Any]) -> None:
    for kind in COMPONENT_TYPES:
        for key, _ in _entries(components, kind):
            if not COMPONENT_KEY_RE.match(key):
                raise SpecValidationError(
                    f"Invalid component key \"{key}\" in \"components.{kind}\". "
                    "Keys must match regex: ^[a-zA-Z0-9\\.\\-_]+$",
                    pointer_join("/components", kind, key),
                )


def _check_schema_table(schemas: Any, location: str) -> None:
    if isinstance(schemas, dict):
        for name, schema in schemas.items():
            check_schema(schema, pointer_join(location, name))
