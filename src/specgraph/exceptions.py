"""Exception hierarchy for specgraph.

All exceptions inherit from :class:`SpecgraphError` so callers can catch a
single type at the boundary where a document graph is loaded.  Each subclass
carries the context needed to find the offending fragment without a debugger:
a locator, a reference string, or a JSON-Pointer-style location.

Subclass hierarchy::

    SpecgraphError
    +-- LoadError            (resource missing or unreachable)
    +-- ParseError           (content is not valid JSON/YAML)
    +-- ResolutionFailure    (dangling or malformed reference)
    +-- SpecValidationError  (first failing structural rule)
    +-- ConfigError          (invalid settings file or environment value)
"""

from __future__ import annotations

from typing import Optional


class SpecgraphError(Exception):
    """Base exception for all specgraph errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LoadError(SpecgraphError):
    """Raised when a document cannot be fetched (missing file, HTTP error, network failure)."""

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message)
        self.locator = locator


class ParseError(SpecgraphError):
    """Raised when fetched content cannot be decoded as JSON or YAML.

    ``parser_message`` holds the underlying parser's own error text.
    """

    def __init__(self, message: str, locator: Optional[str] = None, parser_message: Optional[str] = None):
        super().__init__(message)
        self.locator = locator
        self.parser_message = parser_message


class ResolutionFailure(SpecgraphError):
    """Raised when a reference expression cannot be resolved.

    Attributes:
        reference: The full original reference expression.
        segment: The JSON Pointer segment that failed, when the failure
            happened during pointer traversal.
        document: The absolute identity of the document that was searched.
    """

    def __init__(
        self,
        message: str,
        reference: Optional[str] = None,
        segment: Optional[str] = None,
        document: Optional[str] = None,
    ):
        super().__init__(message)
        self.reference = reference
        self.segment = segment
        self.document = document


class SpecValidationError(SpecgraphError):
    """Raised by the structural validator for the first rule violation it finds.

    ``location`` is a slash-delimited path (``/paths/~1items~1{id}/get``)
    addressing the offending node inside the validated document.
    """

    def __init__(self, message: str, location: str = ""):
        super().__init__(message)
        self.location = location


class ConfigError(SpecgraphError):
    """Raised for configuration problems (invalid project config, bad environment values)."""
