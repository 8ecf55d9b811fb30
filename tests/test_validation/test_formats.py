"""Tests for the string grammars in specgraph.validation.formats."""

from __future__ import annotations

import pytest

from specgraph.exceptions import SpecValidationError
from specgraph.validation.formats import (
    check_https_url,
    check_runtime_expression_template,
    check_template_braces,
    fill_template_variables,
    is_absolute_uri,
    is_email_address,
    is_response_code,
    is_runtime_expression,
    is_sequential_media_type,
    is_uri_reference,
    path_signature,
    template_variables,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("https://example.com/a?b=c#d", True),
        ("urn:isbn:0451450523", True),
        ("../schemas/pet.yaml#/Pet", True),
        ("#/components/schemas/Pet", True),
        ("", False),
        ("has space", False),
        ("1http://bad", False),
        (None, False),
    ],
)
def test_is_uri_reference(value, expected: bool) -> None:
    assert is_uri_reference(value) is expected


def test_is_absolute_uri() -> None:
    assert is_absolute_uri("https://spec.openapis.org/oas/3.1/dialect/base")
    assert is_absolute_uri("urn:example:ns")
    assert not is_absolute_uri("/relative/path")


def test_is_email_address() -> None:
    assert is_email_address("api@example.com")
    assert not is_email_address("api@localhost")
    assert not is_email_address("two words@example.com")


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("$url", True),
        ("$method", True),
        ("$statusCode", True),
        ("$request.header.X-Request-ID", True),
        ("$request.query.limit", True),
        ("$request.path.id", True),
        ("$request.body", True),
        ("$request.body#/user/id", True),
        ("$response.header.Location", True),
        ("$response.body#/id", True),
        ("$response.query.limit", False),
        ("$request.header.bad header", False),
        ("$request.body#user", False),
        ("$request.query.", False),
        ("request.body", False),
    ],
)
def test_is_runtime_expression(expression: str, expected: bool) -> None:
    assert is_runtime_expression(expression) is expected


class TestRuntimeExpressionTemplate:
    """Test embedded runtime expressions."""

    def test_embedded_expressions(self) -> None:
        check_runtime_expression_template(
            "https://{$request.header.Host}/callback?id={$response.body#/id}", "/c", required=True
        )

    def test_invalid_embedded_expression(self) -> None:
        with pytest.raises(SpecValidationError, match="invalid runtime expression '{\\$request.nope}'"):
            check_runtime_expression_template("{$request.nope}", "/c", required=True)

    def test_unmatched_braces(self) -> None:
        with pytest.raises(SpecValidationError, match="unmatched braces"):
            check_runtime_expression_template("{$url}}", "/c", required=True)

    def test_constant_allowed_when_optional(self) -> None:
        check_runtime_expression_template("fixed-value", "/c", required=False)

    def test_constant_rejected_when_required(self) -> None:
        with pytest.raises(SpecValidationError, match="must be a valid runtime expression"):
            check_runtime_expression_template("fixed-value", "/c", required=True)

    def test_empty(self) -> None:
        with pytest.raises(SpecValidationError, match="non-empty string"):
            check_runtime_expression_template("", "/c", required=False)


class TestTemplates:
    """Test template variable helpers."""

    def test_template_variables_keep_duplicates(self) -> None:
        assert template_variables("/a/{x}/b/{y}/{x}") == ["x", "y", "x"]

    def test_fill_template_variables(self) -> None:
        assert fill_template_variables("https://{region}.example.com/{v}") == "https://x.example.com/x"

    def test_path_signature(self) -> None:
        assert path_signature("/users/{id}/posts/{postId}") == "/users/{}/posts/{}"
        assert path_signature("/users/{id}.json") == "/users/{id}.json"

    def test_balanced_braces_pass(self) -> None:
        check_template_braces("https://{region}.example.com/{version}", "/servers/0/url", "Server url")

    def test_unbalanced_braces(self) -> None:
        with pytest.raises(SpecValidationError) as exc_info:
            check_template_braces("https://{region.example.com", "/servers/0/url", "Server url")
        assert exc_info.value.location == "/servers/0/url"


@pytest.mark.parametrize(
    "status, expected",
    [("200", True), ("404", True), ("5XX", True), ("1xx", True), ("default", True), ("099", False), ("6XX", False)],
)
def test_is_response_code(status: str, expected: bool) -> None:
    assert is_response_code(status) is expected


@pytest.mark.parametrize(
    "media_type, expected",
    [
        ("application/jsonl", True),
        ("application/x-ndjson; charset=utf-8", True),
        ("multipart/mixed", True),
        ("text/event-stream", True),
        ("application/vnd.acme.events+json", True),
        ("application/json", False),
        ("*/*", False),
        ("text/plain", False),
        (None, False),
    ],
)
def test_is_sequential_media_type(media_type, expected: bool) -> None:
    assert is_sequential_media_type(media_type) is expected


class TestHttpsUrl:
    def test_https_accepted(self) -> None:
        check_https_url("https://auth.example.com/token", "/f", "tokenUrl")

    def test_http_rejected(self) -> None:
        with pytest.raises(SpecValidationError, match="must use https"):
            check_https_url("http://auth.example.com/token", "/f", "tokenUrl")

    def test_relative_rejected(self) -> None:
        with pytest.raises(SpecValidationError, match="must be a valid URL"):
            check_https_url("/token", "/f", "tokenUrl")

    def test_missing_rejected(self) -> None:
        with pytest.raises(SpecValidationError, match="non-empty string"):
            check_https_url(None, "/f", "tokenUrl")
