"""URI and JSON Pointer helpers shared by the loader, walker, resolver and validator.

A reference expression always decomposes into a *document part* and an
optional *pointer part* separated by the first ``#``::

    split_reference("b.yaml#/components/schemas/Widget")
    # -> ("b.yaml", "/components/schemas/Widget")

An empty document part means "the current document".  Document parts are
made absolute with :func:`join_uri` against the current document's logical
base (its ``$self`` when declared, otherwise its retrieval URI).
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote, urldefrag, urljoin, urlparse

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_ARRAY_INDEX_RE = re.compile(r"^(0|[1-9][0-9]*)$")


def is_url(value: str) -> bool:
    """Return ``True`` if *value* is an absolute URL with a scheme and a location.

    ``file:`` URLs count; Windows drive letters such as ``C:\\specs`` do not.
    """
    if not isinstance(value, str) or not value:
        return False
    parsed = urlparse(value)
    if len(parsed.scheme) < 2:
        return False
    if parsed.scheme == "file":
        return True
    return bool(parsed.netloc) or parsed.scheme in ("urn", "mailto", "tag")


def has_scheme(value: str) -> bool:
    return bool(_SCHEME_RE.match(value))


def join_uri(base: str, reference: str) -> str:
    """Resolve *reference* against *base* (RFC 3986 section 5).

    Raises:
        ValueError: If *reference* has no usable base to resolve against.
    """
    if not reference:
        return base
    if has_scheme(reference):
        return reference
    if not has_scheme(base):
        raise ValueError(f"Cannot resolve '{reference}' against non-absolute base '{base}'")
    joined = urljoin(base, reference)
    if not has_scheme(joined):
        raise ValueError(f"Cannot resolve '{reference}' against base '{base}'")
    return joined


def strip_fragment(uri: str) -> str:
    return urldefrag(uri)[0]


def split_reference(ref: str) -> tuple[str, Optional[str]]:
    """Split *ref* into ``(document_part, fragment)``.

    The fragment is percent-decoded; it is ``None`` when *ref* has no ``#``.
    Undecodable fragments are returned unchanged.
    """
    document_part, sep, fragment = ref.partition("#")
    if not sep:
        return document_part, None
    try:
        return document_part, unquote(fragment, errors="strict")
    except UnicodeDecodeError:
        return document_part, fragment


def unescape_pointer_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def escape_pointer_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def is_array_index(segment: str) -> bool:
    """Return ``True`` when *segment* is an RFC 6901 array index (ASCII digits, no leading zero)."""
    return bool(_ARRAY_INDEX_RE.fullmatch(segment))


def decode_pointer(pointer: str) -> list[str]:
    """Decode a JSON Pointer (without ``#``) into unescaped segments.

    Empty segments are skipped, so ``""`` and ``"/"`` both address the
    document root.

    Raises:
        ValueError: If *pointer* is non-empty and does not start with ``/``.
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise ValueError(f"JSON Pointer must start with '/': '{pointer}'")
    return [unescape_pointer_segment(part) for part in pointer.split("/")[1:] if part != ""]


def pointer_join(base: str, *segments: object) -> str:
    """Append escaped *segments* to JSON Pointer *base*.

    Example::

        pointer_join("/paths", "/items/{id}", "get")
        # -> "/paths/~1items~1{id}/get"
    """
    parts = [base.rstrip("/")] if base not in ("", "/") else [""]
    parts.extend(escape_pointer_segment(str(segment)) for segment in segments)
    return "/".join(parts) or "/"
