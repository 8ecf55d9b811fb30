"""Rules for the reusable building blocks of an OpenAPI 3.x document.

Reference, Example, Encoding, Media Type, Header, Link, Request Body,
Response and Server Objects.  Every ``check_*`` function takes the node and
the JSON Pointer it lives at, and raises
:class:`~specgraph.exceptions.SpecValidationError` on the first problem.
A Reference Object found where one of these objects is expected is checked
for shape only.
"""

from __future__ import annotations

from typing import Any

from specgraph.exceptions import SpecValidationError
from specgraph.parser.uris import pointer_join
from specgraph.tree import has_reference_key
from specgraph.validation.formats import (
    check_runtime_expression_template,
    check_template_braces,
    fill_template_variables,
    is_form_urlencoded,
    is_multipart,
    is_response_code,
    is_sequential_media_type,
    is_uri_reference,
    template_variables,
)
from specgraph.validation.schemas import check_schema

QUERY_STYLES = frozenset({"form", "spaceDelimited", "pipeDelimited", "deepObject"})


def check_reference_object(node: Any, location: str) -> None:
    """``$ref`` and ``$dynamicRef`` are exclusive URI references; overrides must be strings."""
    if not isinstance(node, dict):
        return
    has_ref = isinstance(node.get("$ref"), str)
    has_dynamic = isinstance(node.get("$dynamicRef"), str)
    if not has_ref and not has_dynamic:
        return

    if has_ref and has_dynamic:
        raise SpecValidationError(
            f"Reference Object at '{location}' must not define both '$ref' and '$dynamicRef'.", location
        )
    key = "$ref" if has_ref else "$dynamicRef"
    if not is_uri_reference(node[key]):
        raise SpecValidationError(
            f"Reference Object at '{location}' has invalid '{key}' URI. Value: \"{node[key]}\"", location
        )
    for field in ("summary", "description"):
        if field in node and not isinstance(node[field], str):
            raise SpecValidationError(
                f"Reference Object at '{location}' has non-string '{field}'. Value: \"{node[field]}\"", location
            )


def check_example(node: Any, location: str) -> None:
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return

    exclusive = (
        ("value", "dataValue"),
        ("value", "serializedValue"),
        ("value", "externalValue"),
        ("serializedValue", "externalValue"),
    )
    for first, second in exclusive:
        if first in node and second in node:
            raise SpecValidationError(
                f"Example Object at '{location}' cannot define both '{first}' and '{second}'. "
                "These fields are mutually exclusive.",
                location,
            )
    for field in ("serializedValue", "externalValue"):
        if field in node and not isinstance(node[field], str):
            raise SpecValidationError(
                f"Example Object at '{location}' has a non-string '{field}'. It MUST be a string.", location
            )


def check_examples_map(examples: Any, location: str) -> None:
    if isinstance(examples, dict):
        for name, example in examples.items():
            check_example(example, pointer_join(location, name))


def check_encoding(node: Any, location: str) -> None:
    if not isinstance(node, dict):
        raise SpecValidationError(f"Encoding Object at '{location}' must be an object.", location)

    if "contentType" in node and not isinstance(node["contentType"], str):
        raise SpecValidationError(f"Encoding Object at '{location}' has non-string 'contentType'.", location)
    if "style" in node:
        style = node["style"]
        if not isinstance(style, str):
            raise SpecValidationError(f"Encoding Object at '{location}' has non-string 'style'.", location)
        if style not in QUERY_STYLES:
            raise SpecValidationError(f"Encoding Object at '{location}' has invalid 'style' value '{style}'.", location)
    for field in ("explode", "allowReserved"):
        if field in node and not isinstance(node[field], bool):
            raise SpecValidationError(f"Encoding Object at '{location}' has non-boolean '{field}'.", location)

    if "headers" in node:
        headers = node["headers"]
        if not isinstance(headers, dict):
            raise SpecValidationError(f"Encoding Object at '{location}' has invalid 'headers' map.", location)
        for name, header in headers.items():
            if name.lower() == "content-type":
                raise SpecValidationError(
                    f"Encoding Object at '{location}' MUST NOT define 'Content-Type' in headers. "
                    "Use 'contentType' instead.",
                    location,
                )
            check_header(header, pointer_join(location, "headers", name), openapi3=True)

    _check_nested_encodings(node, location, "Encoding Object")


def _check_nested_encodings(node: dict[str, Any], location: str, label: str) -> None:
    if "encoding" in node and ("prefixEncoding" in node or "itemEncoding" in node):
        raise SpecValidationError(
            f"{label} at '{location}' defines 'encoding' alongside 'prefixEncoding' or 'itemEncoding'. "
            "These fields are mutually exclusive.",
            location,
        )

    if "encoding" in node:
        encoding = node["encoding"]
        if not isinstance(encoding, dict):
            raise SpecValidationError(f"{label} at '{location}' has invalid 'encoding' map.", location)
        for key, value in encoding.items():
            check_encoding(value, pointer_join(location, "encoding", key))

    if "prefixEncoding" in node:
        prefix = node["prefixEncoding"]
        if not isinstance(prefix, list):
            raise SpecValidationError(
                f"{label} at '{location}' has invalid 'prefixEncoding'. It must be an array.", location
            )
        for position, value in enumerate(prefix):
            check_encoding(value, pointer_join(location, "prefixEncoding", position))

    if "itemEncoding" in node:
        check_encoding(node["itemEncoding"], pointer_join(location, "itemEncoding"))


def check_media_type(node: Any, location: str, media_type: str | None = None) -> None:
    """Validate one Media Type Object; *media_type* is its key in the content map, if known."""
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return

    if "example" in node and "examples" in node:
        raise SpecValidationError(
            f"Media Type Object at '{location}' contains both 'example' and 'examples'. "
            "These fields are mutually exclusive.",
            location,
        )

    has_encoding = "encoding" in node
    has_positional = "prefixEncoding" in node or "itemEncoding" in node
    if has_encoding and has_positional:
        raise SpecValidationError(
            f"Media Type Object at '{location}' defines 'encoding' alongside 'prefixEncoding' or 'itemEncoding'. "
            "These fields are mutually exclusive.",
            location,
        )
    if has_encoding and not (is_multipart(media_type) or is_form_urlencoded(media_type)):
        raise SpecValidationError(
            f"Media Type Object at '{location}' uses 'encoding' but media type \"{media_type}\" does not support it.",
            location,
        )
    if has_positional and not is_multipart(media_type):
        raise SpecValidationError(
            f"Media Type Object at '{location}' uses positional encoding but media type \"{media_type}\" "
            "is not multipart.",
            location,
        )

    check_examples_map(node.get("examples"), pointer_join(location, "examples"))
    _check_nested_encodings(node, location, "Media Type Object")

    if "schema" in node:
        check_schema(node["schema"], pointer_join(location, "schema"))
    if "itemSchema" in node:
        if media_type and not is_sequential_media_type(media_type):
            raise SpecValidationError(
                f"Media Type Object at '{location}' defines 'itemSchema' but media type \"{media_type}\" "
                "is not sequential.",
                location,
            )
        check_schema(node["itemSchema"], pointer_join(location, "itemSchema"))


def check_content(content: Any, location: str) -> None:
    if isinstance(content, dict):
        for media_type, media in content.items():
            check_media_type(media, pointer_join(location, media_type), media_type)


def check_header(node: Any, location: str, openapi3: bool) -> None:
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return

    if "name" in node:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define a 'name' field.", location)
    if "in" in node:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define an 'in' field.", location)
    if "allowEmptyValue" in node:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define 'allowEmptyValue'.", location)
    if "style" in node and node["style"] != "simple":
        raise SpecValidationError(
            f"Header Object at '{location}' has invalid 'style'. The only allowed value is 'simple'.", location
        )
    if "example" in node and "examples" in node:
        raise SpecValidationError(
            f"Header Object at '{location}' contains both 'example' and 'examples'. "
            "These fields are mutually exclusive.",
            location,
        )
    check_examples_map(node.get("examples"), pointer_join(location, "examples"))

    has_schema = "schema" in node
    has_content = "content" in node
    if openapi3 and not has_schema and not has_content:
        raise SpecValidationError(f"Header Object at '{location}' must define either 'schema' or 'content'.", location)
    if has_schema and has_content:
        raise SpecValidationError(
            f"Header Object at '{location}' contains both 'schema' and 'content'. These fields are mutually exclusive.",
            location,
        )
    if has_schema:
        check_schema(node["schema"], pointer_join(location, "schema"))
    if has_content:
        content = node["content"]
        if not isinstance(content, dict) or len(content) != 1:
            raise SpecValidationError(
                f"Header Object at '{location}' has an invalid 'content' map. It MUST contain exactly one entry.",
                location,
            )
        check_content(content, pointer_join(location, "content"))


def check_headers_map(headers: Any, location: str, openapi3: bool) -> None:
    if not isinstance(headers, dict):
        return
    for name, header in headers.items():
        # Response headers named Content-Type are ignored.
        if name.lower() == "content-type":
            continue
        check_header(header, pointer_join(location, name), openapi3)


def check_link(node: Any, location: str) -> None:
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return

    operation_id = node.get("operationId")
    operation_ref = node.get("operationRef")
    has_id = isinstance(operation_id, str) and bool(operation_id)
    has_ref = isinstance(operation_ref, str) and bool(operation_ref)

    if has_id and has_ref:
        raise SpecValidationError(
            f"Link Object at '{location}' defines both 'operationId' and 'operationRef'. "
            "These fields are mutually exclusive.",
            location,
        )
    if not has_id and not has_ref:
        raise SpecValidationError(
            f"Link Object at '{location}' must define either 'operationId' or 'operationRef'.", location
        )
    if has_ref and not is_uri_reference(operation_ref):
        raise SpecValidationError(
            f"Link Object at '{location}' has invalid 'operationRef'. It must be a valid URI reference.", location
        )

    if "parameters" in node:
        parameters = node["parameters"]
        if not isinstance(parameters, dict):
            raise SpecValidationError(
                f"Link Object at '{location}' has invalid 'parameters'. It must be an object map.", location
            )
        for name, value in parameters.items():
            if isinstance(value, str):
                check_runtime_expression_template(value, pointer_join(location, "parameters", name), required=False)

    if isinstance(node.get("requestBody"), str):
        check_runtime_expression_template(node["requestBody"], pointer_join(location, "requestBody"), required=False)

    if "server" in node:
        check_servers([node["server"]], pointer_join(location, "server"))


def check_links_map(links: Any, location: str) -> None:
    if isinstance(links, dict):
        for name, link in links.items():
            check_link(link, pointer_join(location, name))


def check_request_body(node: Any, location: str) -> None:
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return
    if "content" not in node:
        raise SpecValidationError(f"RequestBody Object at '{location}' must define 'content'.", location)
    if not isinstance(node["content"], dict):
        raise SpecValidationError(
            f"RequestBody Object at '{location}' has invalid 'content'. It must be an object.", location
        )
    check_content(node["content"], pointer_join(location, "content"))


def check_response(node: Any, location: str, openapi3: bool) -> None:
    if not isinstance(node, dict):
        return
    if has_reference_key(node):
        check_reference_object(node, location)
        return
    if "description" not in node:
        raise SpecValidationError(f"Response Object at '{location}' must define a 'description' field.", location)
    if not isinstance(node["description"], str):
        raise SpecValidationError(f"Response Object at '{location}' has non-string 'description'.", location)

    check_headers_map(node.get("headers"), pointer_join(location, "headers"), openapi3)
    check_content(node.get("content"), pointer_join(location, "content"))
    check_links_map(node.get("links"), pointer_join(location, "links"))


def check_responses(responses: Any, location: str, openapi3: bool) -> None:
    if not isinstance(responses, dict):
        return
    if not responses:
        raise SpecValidationError(
            f"Responses Object at '{location}' must define at least one response code.", location
        )
    for status, response in responses.items():
        if not is_response_code(status):
            raise SpecValidationError(
                f"Responses Object at '{location}' has invalid status code '{status}'.", pointer_join(location, status)
            )
        check_response(response, pointer_join(location, status), openapi3)


def check_servers(servers: Any, location: str) -> None:
    """Validate a list of Server Objects (URL template, variables, unique names)."""
    if not isinstance(servers, list) or not servers:
        return

    seen_names: set[str] = set()
    for position, server in enumerate(servers):
        here = pointer_join(location, position)
        if not isinstance(server, dict):
            raise SpecValidationError(f"Server Object at '{here}' must be an object.", here)
        url = server.get("url")
        if not isinstance(url, str) or not url:
            raise SpecValidationError(f"Server url must be a non-empty string at '{here}'.", here)
        check_template_braces(url, pointer_join(here, "url"), "Server url")
        if not is_uri_reference(fill_template_variables(url)):
            raise SpecValidationError(
                f"Server url must be a valid URI reference at '{here}'. Value: \"{url}\"", pointer_join(here, "url")
            )
        if "?" in url or "#" in url:
            raise SpecValidationError(
                f"Server url MUST NOT include query or fragment at '{here}'. Value: \"{url}\"", here
            )

        name = server.get("name")
        if name:
            if name in seen_names:
                raise SpecValidationError(
                    f"Server name \"{name}\" must be unique at '{location}'. Duplicate found.", here
                )
            seen_names.add(name)

        used = template_variables(url)
        variables = server.get("variables")
        if used and not isinstance(variables, dict):
            raise SpecValidationError(
                f"Server url defines template variables but 'variables' is missing at '{here}'.", here
            )
        for variable in used:
            if not variables.get(variable):
                raise SpecValidationError(
                    f"Server url variable \"{variable}\" is not defined in variables at '{here}'.", here
                )

        if isinstance(variables, dict):
            for variable_name, variable in variables.items():
                _check_server_variable(variable_name, variable, url, here)


def _check_server_variable(name: str, variable: Any, url: str, location: str) -> None:
    variable = variable if isinstance(variable, dict) else {}
    default = variable.get("default")
    if not isinstance(default, str):
        raise SpecValidationError(
            f"Server variable \"{name}\" must define a string default at '{location}'.", location
        )
    if "enum" in variable:
        enum = variable["enum"]
        if not isinstance(enum, list) or not enum:
            raise SpecValidationError(f"Server variable \"{name}\" enum MUST NOT be empty at '{location}'.", location)
        if not all(isinstance(value, str) for value in enum):
            raise SpecValidationError(
                f"Server variable \"{name}\" enum MUST contain only strings at '{location}'.", location
            )
        if default not in enum:
            raise SpecValidationError(
                f"Server variable \"{name}\" default MUST be present in enum at '{location}'.", location
            )
    if url.count(f"{{{name}}}") > 1:
        raise SpecValidationError(
            f"Server variable \"{name}\" appears more than once in url at '{location}'.", location
        )
