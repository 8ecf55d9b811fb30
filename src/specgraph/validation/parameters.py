"""Parameter Object rules.

The same field rules apply to a parameter declared inline on a path item
or operation and to one declared under ``components.parameters``; only the
wording of the error subject differs (``Parameter 'id' in 'GET /items'``
versus ``Component parameter 'ItemId'``).
"""

from __future__ import annotations

from typing import Any

from specgraph.exceptions import SpecValidationError
from specgraph.parser.uris import pointer_join
from specgraph.tree import has_reference_key
from specgraph.validation.formats import template_variables
from specgraph.validation.objects import check_content, check_examples_map, check_reference_object
from specgraph.validation.schemas import check_schema, schema_type_kind

PARAM_STYLE_BY_IN: dict[str, frozenset[str]] = {
    "path": frozenset({"matrix", "label", "simple"}),
    "query": frozenset({"form", "spaceDelimited", "pipeDelimited", "deepObject"}),
    "header": frozenset({"simple"}),
    "cookie": frozenset({"form", "cookie"}),
    "querystring": frozenset(),
}

RESERVED_HEADER_NAMES = frozenset({"accept", "content-type", "authorization"})


def is_reserved_header(param: dict[str, Any]) -> bool:
    """Header parameters named Accept, Content-Type or Authorization are ignored."""
    name = param.get("name")
    return param.get("in") == "header" and isinstance(name, str) and name.lower() in RESERVED_HEADER_NAMES


def check_unique_parameters(params: Any, label: str, location: str) -> None:
    """Reject two parameters sharing ``name`` and ``in``; header names compare case-insensitively."""
    if not isinstance(params, list):
        return
    seen: set[tuple[str, str]] = set()
    for param in params:
        if not isinstance(param, dict):
            continue
        name, where = param.get("name"), param.get("in")
        if not isinstance(name, str) or not isinstance(where, str):
            continue
        key = (name.lower() if where.lower() == "header" else name, where)
        if key in seen:
            raise SpecValidationError(
                f"Duplicate parameter '{name}' in '{label}'. Parameter names must be unique per location.", location
            )
        seen.add(key)


def check_parameter_style(param: dict[str, Any], subject: str, location: str) -> None:
    """OpenAPI 3.x ``in``/``style``/``explode`` compatibility."""
    where = param.get("in")
    if where not in PARAM_STYLE_BY_IN:
        raise SpecValidationError(f"{subject} has invalid location '{where}' for OpenAPI 3.x.", location)

    if "style" not in param:
        return
    style = param["style"]
    if not isinstance(style, str):
        raise SpecValidationError(f"{subject} has non-string 'style'.", location)
    if style not in PARAM_STYLE_BY_IN[where]:
        raise SpecValidationError(f"{subject} has invalid style '{style}' for location '{where}'.", location)

    kind = schema_type_kind(param.get("schema"))
    if style == "deepObject" and kind not in ("object", "unknown"):
        raise SpecValidationError(f"{subject} uses 'deepObject' style but schema is not an object.", location)
    if style in ("spaceDelimited", "pipeDelimited"):
        if kind == "primitive":
            raise SpecValidationError(
                f"{subject} uses '{style}' style but schema is not an array or object.", location
            )
        if param.get("explode") is True:
            raise SpecValidationError(
                f"{subject} uses '{style}' style with explode=true, which is not permitted.", location
            )


def check_parameter_fields(param: dict[str, Any], subject: str, location: str, openapi3: bool) -> None:
    """Field-level rules for a parameter that already has a ``name`` and ``in``."""
    if "example" in param and "examples" in param:
        raise SpecValidationError(
            f"{subject} contains both 'example' and 'examples'. These fields are mutually exclusive.", location
        )
    check_examples_map(param.get("examples"), pointer_join(location, "examples"))

    if "schema" in param:
        check_schema(param["schema"], pointer_join(location, "schema"))

    has_schema = "schema" in param
    has_content = "content" in param
    if openapi3:
        if not has_schema and not has_content:
            raise SpecValidationError(f"{subject} must define either 'schema' or 'content'.", location)
        if has_schema and has_content:
            raise SpecValidationError(
                f"{subject} contains both 'schema' and 'content'. These fields are mutually exclusive.", location
            )
        if has_content and (not isinstance(param["content"], dict) or len(param["content"]) != 1):
            raise SpecValidationError(
                f"{subject} has an invalid 'content' map. It MUST contain exactly one entry.", location
            )
        if param.get("allowEmptyValue"):
            if param.get("in") != "query":
                raise SpecValidationError(
                    f"{subject} defines 'allowEmptyValue' but location is not 'query'.", location
                )
            if param.get("style"):
                raise SpecValidationError(
                    f"{subject} defines 'allowEmptyValue' alongside 'style'. This is forbidden.", location
                )

    if param.get("in") == "querystring":
        if any(field in param for field in ("style", "explode", "allowReserved")):
            raise SpecValidationError(
                f"{subject} has location 'querystring' but defines style/explode/allowReserved, which are forbidden.",
                location,
            )
        if has_schema:
            raise SpecValidationError(
                f"{subject} has location 'querystring' but defines 'schema'. "
                "Querystring parameters MUST use 'content' instead.",
                location,
            )
        if not has_content:
            raise SpecValidationError(
                f"{subject} has location 'querystring' but is missing 'content'. "
                "Querystring parameters MUST use 'content'.",
                location,
            )

    if openapi3:
        check_parameter_style(param, subject, location)
        if has_content:
            check_content(param["content"], pointer_join(location, "content"))


def check_path_parameter(param: dict[str, Any], label: str, path: str, location: str) -> None:
    """An ``in: path`` parameter must name a variable of *path* and be required."""
    name = param.get("name")
    if name not in template_variables(path):
        raise SpecValidationError(
            f"Path parameter '{name}' in '{label}' does not match any template variable in path '{path}'.", location
        )
    if param.get("required") is not True:
        raise SpecValidationError(
            f"Path parameter '{name}' in '{label}' must be marked as required: true.", location
        )


def check_component_parameters(parameters: Any, location: str) -> None:
    """Validate every entry of ``components.parameters`` (OpenAPI 3.x)."""
    if not isinstance(parameters, dict):
        return
    for key, param in parameters.items():
        here = pointer_join(location, key)
        subject = f"Component parameter '{key}'"
        if not isinstance(param, dict):
            raise SpecValidationError(f"{subject} must be an object or Reference Object.", here)
        if has_reference_key(param):
            check_reference_object(param, here)
            continue
        _require_identity(param, subject, here)
        if is_reserved_header(param):
            continue
        check_parameter_fields(param, subject, here, openapi3=True)


def _require_identity(param: dict[str, Any], subject: str, location: str) -> None:
    name = param.get("name")
    if not isinstance(name, str) or not name.strip():
        raise SpecValidationError(f"{subject} must define a non-empty string 'name'.", location)
    where = param.get("in")
    if not isinstance(where, str) or not where.strip():
        raise SpecValidationError(f"{subject} must define a non-empty string 'in'.", location)
