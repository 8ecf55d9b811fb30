"""Tests for specgraph.validation.schemas."""

from __future__ import annotations

import pytest

from specgraph.exceptions import SpecValidationError
from specgraph.validation.schemas import check_schema, is_property_required, schema_type_kind

UNION = [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}]


# ---------------------------------------------------------------------------
# Discriminator
# ---------------------------------------------------------------------------


class TestDiscriminator:
    """Test discriminator rules."""

    def test_optional_property_needs_default_mapping(self) -> None:
        schema = {"oneOf": UNION, "discriminator": {"propertyName": "petType"}}
        with pytest.raises(SpecValidationError) as exc_info:
            check_schema(schema, "/components/schemas/Pet")
        assert exc_info.value.message == (
            "Discriminator property 'petType' is optional at '/components/schemas/Pet/discriminator'. "
            "A 'defaultMapping' is required."
        )

    def test_required_property(self) -> None:
        schema = {"oneOf": UNION, "required": ["petType"], "discriminator": {"propertyName": "petType"}}
        check_schema(schema, "/components/schemas/Pet")

    def test_required_through_inline_all_of(self) -> None:
        schema = {
            "allOf": [{"$ref": "#/components/schemas/Base"}, {"required": ["petType"]}],
            "discriminator": {"propertyName": "petType"},
        }
        check_schema(schema, "/components/schemas/Pet")

    def test_default_mapping_allows_optional_property(self) -> None:
        schema = {
            "anyOf": UNION,
            "discriminator": {"propertyName": "petType", "defaultMapping": "#/components/schemas/Cat"},
        }
        check_schema(schema, "/components/schemas/Pet")

    def test_default_mapping_must_be_string(self) -> None:
        schema = {"oneOf": UNION, "discriminator": {"propertyName": "petType", "defaultMapping": 1}}
        with pytest.raises(SpecValidationError, match="defaultMapping .* must be a string"):
            check_schema(schema, "/components/schemas/Pet")

    def test_requires_composition(self) -> None:
        schema = {"type": "object", "required": ["kind"], "discriminator": {"propertyName": "kind"}}
        with pytest.raises(SpecValidationError, match="only valid alongside oneOf/anyOf/allOf"):
            check_schema(schema, "/components/schemas/Pet")

    def test_property_name_required(self) -> None:
        with pytest.raises(SpecValidationError, match="non-empty string 'propertyName'"):
            check_schema({"oneOf": UNION, "discriminator": {"propertyName": " "}}, "/s")

    def test_mapping_values_must_be_strings(self) -> None:
        schema = {
            "oneOf": UNION,
            "required": ["petType"],
            "discriminator": {"propertyName": "petType", "mapping": {"cat": 1}},
        }
        with pytest.raises(SpecValidationError, match="mapping value for 'cat'") as exc_info:
            check_schema(schema, "/s")
        assert exc_info.value.location == "/s/discriminator/mapping/cat"

    def test_string_discriminator_under_definitions(self) -> None:
        check_schema({"type": "object", "discriminator": "petType"}, "/definitions/Pet")

    def test_string_discriminator_elsewhere(self) -> None:
        with pytest.raises(SpecValidationError, match="must be an object"):
            check_schema({"type": "object", "discriminator": "petType"}, "/components/schemas/Pet")


class TestIsPropertyRequired:
    def test_direct(self) -> None:
        assert is_property_required({"required": ["a"]}, "a")

    def test_referenced_all_of_parts_are_not_followed(self) -> None:
        assert not is_property_required({"allOf": [{"$ref": "#/Base", "required": ["a"]}]}, "a")

    def test_cyclic_all_of_terminates(self) -> None:
        schema: dict = {"allOf": []}
        schema["allOf"].append(schema)
        assert not is_property_required(schema, "a")


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


class TestXml:
    """Test XML object rules."""

    def test_node_type_excludes_attribute(self) -> None:
        with pytest.raises(SpecValidationError, match="'attribute' when 'nodeType' is present"):
            check_schema({"xml": {"nodeType": "element", "attribute": True}}, "/s")

    def test_invalid_node_type(self) -> None:
        with pytest.raises(SpecValidationError, match="invalid 'nodeType'"):
            check_schema({"xml": {"nodeType": "comment"}}, "/s")

    def test_namespace_must_be_absolute(self) -> None:
        with pytest.raises(SpecValidationError, match="non-relative IRI"):
            check_schema({"xml": {"namespace": "pets"}}, "/s")

    def test_wrapped_requires_array(self) -> None:
        with pytest.raises(SpecValidationError, match="not an array"):
            check_schema({"type": "object", "xml": {"wrapped": True}}, "/s")

    def test_valid_xml(self) -> None:
        schema = {"type": "array", "xml": {"name": "pets", "namespace": "https://example.com/ns", "wrapped": True}}
        check_schema(schema, "/s")


# ---------------------------------------------------------------------------
# Identifiers and traversal
# ---------------------------------------------------------------------------


class TestSchemaTraversal:
    """Test nested schema checks."""

    @pytest.mark.parametrize("keyword", ["$id", "$schema", "$ref", "$dynamicRef"])
    def test_uri_keywords(self, keyword: str) -> None:
        with pytest.raises(SpecValidationError, match=f"invalid '\\{keyword}'"):
            check_schema({keyword: "not a uri"}, "/s")

    def test_empty_anchor(self) -> None:
        with pytest.raises(SpecValidationError, match="invalid '\\$anchor'"):
            check_schema({"$anchor": ""}, "/s")

    def test_nested_location(self) -> None:
        schema = {"properties": {"tags": {"type": "array", "items": {"oneOf": [{"$id": "bad id"}]}}}}
        with pytest.raises(SpecValidationError) as exc_info:
            check_schema(schema, "/components/schemas/Pet")
        assert exc_info.value.location == "/components/schemas/Pet/properties/tags/items/oneOf/0/$id"

    def test_reference_targets_are_not_descended(self) -> None:
        check_schema({"$ref": "#/components/schemas/Pet", "properties": {"x": {"$id": "bad id"}}}, "/s")

    def test_cyclic_schema_terminates(self) -> None:
        schema: dict = {"type": "object", "properties": {}}
        schema["properties"]["self"] = schema
        check_schema(schema, "/s")

    def test_boolean_schemas_pass(self) -> None:
        check_schema({"additionalProperties": False, "items": True}, "/s")


class TestSchemaTypeKind:
    @pytest.mark.parametrize(
        "schema, kind",
        [
            ({"type": "string"}, "primitive"),
            ({"type": "array"}, "array"),
            ({"type": ["object", "null"]}, "object"),
            ({"type": ["string", "integer"]}, "unknown"),
            ({"$ref": "#/x"}, "unknown"),
            (None, "unknown"),
        ],
    )
    def test_kinds(self, schema, kind: str) -> None:
        assert schema_type_kind(schema) == kind
