"""String-grammar checks shared by the validation rules.

These are pure predicates and small raising helpers: URI references,
e-mail addresses, absolute IRIs, ``{...}`` template braces, runtime
expressions (``$request.header.X-Id``, ``$response.body#/id``), response
status codes and media-type classification.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

from specgraph.exceptions import SpecValidationError

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_SCHEME_PREFIX_RE = re.compile(r"^([^:/?#]+):")
_SCHEME_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*$")
_URI_CHARS_RE = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_WHITESPACE_RE = re.compile(r"\s")
_TEMPLATE_VAR_RE = re.compile(r"\{([^}]+)\}")
_JSON_POINTER_RE = re.compile(r"^/([^~/]|~[01])*(/([^~/]|~[01])*)*$")
_STATUS_CODE_RE = re.compile(r"^[1-5](\d\d|XX)$")

TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
"""RFC 9110 ``token``: HTTP method names and header field names."""

SEQUENTIAL_MEDIA_TYPES = frozenset(
    {
        "application/json-seq",
        "application/geo+json-seq",
        "application/jsonl",
        "application/jsonlines",
        "application/x-ndjson",
        "application/ndjson",
        "application/x-jsonlines",
        "text/event-stream",
        "multipart/mixed",
    }
)
_SEQUENTIAL_SUFFIXES = ("+json-seq", "+jsonl", "+ndjson", "/json-seq", "/jsonl", "/ndjson", "/x-ndjson")


# --- URIs ---


def _is_absolute_url(value: str) -> bool:
    if not _SCHEME_RE.match(value):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def is_uri_reference(value: Any) -> bool:
    """Return ``True`` for an RFC 3986 URI reference (absolute or relative), without whitespace."""
    if not isinstance(value, str) or not value:
        return False
    if _WHITESPACE_RE.search(value):
        return False
    if _is_absolute_url(value):
        return True
    prefix = _SCHEME_PREFIX_RE.match(value)
    if prefix and not _SCHEME_NAME_RE.match(prefix.group(1)):
        return False
    return bool(_URI_CHARS_RE.match(value))


def is_absolute_uri(value: Any) -> bool:
    """Return ``True`` when *value* starts with a URI scheme (``https:``, ``urn:``...)."""
    return isinstance(value, str) and bool(_SCHEME_RE.match(value))


def is_email_address(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def check_https_url(value: Any, location: str, field_name: str) -> None:
    """Require *value* to be an absolute ``https`` URL (OAuth endpoints, OpenID Connect discovery)."""
    if not isinstance(value, str) or not value.strip():
        raise SpecValidationError(f"{field_name} must be a non-empty string at '{location}'.", location)
    parsed = urlparse(value)
    if not _is_absolute_url(value) or not parsed.netloc:
        raise SpecValidationError(f"{field_name} must be a valid URL at '{location}'. Value: \"{value}\"", location)
    if parsed.scheme.lower() != "https":
        raise SpecValidationError(
            f"{field_name} must use https (TLS required) at '{location}'. Value: \"{value}\"",
            location,
        )


# --- Templates ---


def template_variables(template: str) -> list[str]:
    """Return the ``{name}`` variables of *template* in order, duplicates included."""
    return _TEMPLATE_VAR_RE.findall(template)


def fill_template_variables(template: str, placeholder: str = "x") -> str:
    """Replace every ``{name}`` with *placeholder* so the result can be checked as a plain URI."""
    return _TEMPLATE_VAR_RE.sub(placeholder, template)


def path_signature(path: str) -> str:
    """Collapse every ``{var}`` segment so ``/users/{id}`` and ``/users/{name}`` compare equal."""
    return "/".join(
        "{}" if segment.startswith("{") and segment.endswith("}") else segment for segment in path.split("/")
    )


def check_template_braces(value: str, location: str, label: str) -> None:
    """Reject unbalanced, empty or nested ``{...}`` expressions in a URL template."""
    if not value or ("{" not in value and "}" not in value):
        return
    index = 0
    while index < len(value):
        char = value[index]
        if char == "{":
            close = value.find("}", index + 1)
            if close == -1:
                raise SpecValidationError(
                    f"{label} at '{location}' contains an opening \"{{\" without a matching \"}}\".", location
                )
            if close == index + 1:
                raise SpecValidationError(
                    f"{label} at '{location}' contains an empty template expression \"{{}}\".", location
                )
            if "{" in value[index + 1 : close]:
                raise SpecValidationError(
                    f"{label} at '{location}' contains nested \"{{\" characters, which is not allowed.", location
                )
            index = close + 1
            continue
        if char == "}":
            raise SpecValidationError(
                f"{label} at '{location}' contains a closing \"}}\" without a matching \"{{\".", location
            )
        index += 1


# --- Runtime expressions ---


def is_json_pointer(pointer: str) -> bool:
    return pointer == "" or bool(_JSON_POINTER_RE.match(pointer))


def is_runtime_expression(expression: Any) -> bool:
    """Return ``True`` for an OpenAPI runtime expression.

    Grammar::

        $url | $method | $statusCode
        $request.header.<token> | $request.query.<name> | $request.path.<name>
        $request.body[#<json-pointer>]
        $response.header.<token> | $response.body[#<json-pointer>]
    """
    if not isinstance(expression, str) or not expression:
        return False
    if expression in ("$url", "$method", "$statusCode"):
        return True

    if expression.startswith("$request."):
        source, request = expression[len("$request.") :], True
    elif expression.startswith("$response."):
        source, request = expression[len("$response.") :], False
    else:
        return False

    if source.startswith("header."):
        return bool(TOKEN_RE.match(source[len("header.") :]))
    if request and source.startswith("query."):
        return len(source) > len("query.")
    if request and source.startswith("path."):
        return len(source) > len("path.")
    if source == "body":
        return True
    if source.startswith("body#"):
        return is_json_pointer(source[len("body#") :])
    return False


def check_runtime_expression_template(
    expression: Any,
    location: str,
    required: bool,
    label: str = "Runtime expression",
) -> None:
    """Validate a value that is, or embeds in ``{...}``, runtime expressions.

    With ``required=False`` a plain constant (no braces, no leading ``$``)
    is accepted, as Link Object parameters allow literal values.
    """
    if not isinstance(expression, str) or not expression:
        raise SpecValidationError(f"{label} at '{location}' must be a non-empty string.", location)

    if "{" in expression or "}" in expression:
        embedded = _TEMPLATE_VAR_RE.findall(expression)
        if not embedded:
            raise SpecValidationError(
                f"{label} at '{location}' contains unmatched braces and cannot be evaluated.", location
            )
        for inner in embedded:
            inner = inner.strip()
            if not is_runtime_expression(inner):
                raise SpecValidationError(
                    f"{label} at '{location}' contains invalid runtime expression '{{{inner}}}'.", location
                )
        stripped = re.sub(r"\{[^}]*\}", "", expression)
        if "{" in stripped or "}" in stripped:
            raise SpecValidationError(
                f"{label} at '{location}' contains unmatched braces and cannot be evaluated.", location
            )
        return

    if (required or expression.startswith("$")) and not is_runtime_expression(expression):
        raise SpecValidationError(f"{label} at '{location}' must be a valid runtime expression.", location)


# --- Responses and media types ---


def is_response_code(status: str) -> bool:
    """``default``, an explicit ``1xx``-``5xx`` code, or a ``1XX``-``5XX`` range (case-insensitive)."""
    normalized = str(status).upper()
    return normalized == "DEFAULT" or bool(_STATUS_CODE_RE.match(normalized))


def normalize_media_type(value: str | None) -> str:
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()


def is_multipart(media_type: str | None) -> bool:
    return normalize_media_type(media_type).startswith("multipart/")


def is_form_urlencoded(media_type: str | None) -> bool:
    return normalize_media_type(media_type) == "application/x-www-form-urlencoded"


def is_sequential_media_type(media_type: str | None) -> bool:
    normalized = normalize_media_type(media_type)
    if not normalized:
        return False
    if normalized.startswith("multipart/") or normalized in SEQUENTIAL_MEDIA_TYPES:
        return True
    if normalized.endswith(_SEQUENTIAL_SUFFIXES):
        return True
    # Custom JSON-based types may carry an itemSchema as well.
    if normalized in ("application/json", "*/*"):
        return False
    return "json" in normalized
