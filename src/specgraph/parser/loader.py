"""Load OpenAPI documents from a local file or a URL.

This module handles all I/O for fetching raw documents and converting them
into generic trees.  It supports both JSON and YAML with automatic format
detection: the file extension is consulted first, then a leading
``openapi:`` token, and finally JSON is attempted before YAML.

The public functions are:

* :func:`to_identity` -- Turn a path or URL into the absolute URI used as a
  document's cache key.
* :func:`fetch_text` / :func:`fetch_text_async` -- The default transport
  (``file:`` URIs via the filesystem, ``http(s)`` via :mod:`httpx`).
* :func:`parse_content` -- Decode text into a tree.
* :func:`load_document` -- Fetch and parse one document into a
  :class:`~specgraph.models.Document`.

Loading is a pure function of (locator, content): nothing is cached here.
Caching and recursive discovery live in :mod:`specgraph.parser.walker`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx
import yaml

from specgraph.exceptions import LoadError, ParseError
from specgraph.models import Document, LoaderSettings
from specgraph.parser.uris import is_url, join_uri, strip_fragment

logger = logging.getLogger(__name__)

FetchText = Callable[[str], str]
"""Transport contract: ``fetch(identity) -> text``, raising :class:`LoadError`."""


def to_identity(locator: str, cwd: Optional[Path] = None) -> str:
    """Return the absolute URI for *locator*.

    URLs are returned without their fragment.  Filesystem paths are resolved
    against *cwd* (default: the process working directory) and converted to
    ``file://`` URIs.

    Args:
        locator: A filesystem path or an absolute URL.
        cwd: Directory relative paths are resolved against.

    Returns:
        The absolute document identity.
    """
    if is_url(locator):
        return strip_fragment(locator)
    path = Path(locator).expanduser()
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    return path.resolve().as_uri()


def _file_path(identity: str) -> Path:
    parsed = urlparse(identity)
    return Path(url2pathname(parsed.path))


def _format_hint(identity: str, content_type: str = "") -> str:
    """Return ``"json"``, ``"yaml"`` or ``""`` from the URI extension or a content type."""
    suffix = PurePosixPath(urlparse(identity).path).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def fetch_text(identity: str, settings: Optional[LoaderSettings] = None) -> str:
    """Fetch the raw text of a document.

    Args:
        identity: An absolute ``file:``, ``http:`` or ``https:`` URI.
        settings: Transport settings; defaults are used when ``None``.

    Returns:
        The decoded UTF-8 text.

    Raises:
        LoadError: If the resource does not exist or cannot be reached.
    """
    settings = settings or LoaderSettings()
    scheme = urlparse(identity).scheme

    if scheme == "file":
        return _read_file(identity)

    if scheme in ("http", "https"):
        try:
            response = httpx.get(
                identity,
                timeout=settings.timeout,
                follow_redirects=settings.follow_redirects,
                verify=settings.verify_ssl,
                headers=settings.headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LoadError(
                f"HTTP {exc.response.status_code} fetching document from {identity}",
                locator=identity,
            ) from exc
        except httpx.RequestError as exc:
            raise LoadError(f"Failed to fetch document from {identity}: {exc}", locator=identity) from exc
        return response.text

    raise LoadError(f"Unsupported URI scheme '{scheme}' for document {identity}", locator=identity)


def _read_file(identity: str) -> str:
    path = _file_path(identity)
    if not path.is_file():
        raise LoadError(f"Document not found: {path}", locator=identity)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(f"Failed to read document {path}: {exc}", locator=identity) from exc


async def fetch_text_async(identity: str, client: httpx.AsyncClient) -> str:
    """Asynchronous counterpart of :func:`fetch_text` used by async discovery.

    ``file:`` URIs are read in a worker thread; ``http(s)`` URIs go through
    the shared *client*, whose timeout and TLS settings apply.
    """
    scheme = urlparse(identity).scheme

    if scheme == "file":
        return await asyncio.to_thread(_read_file, identity)

    if scheme in ("http", "https"):
        try:
            response = await client.get(identity)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LoadError(
                f"HTTP {exc.response.status_code} fetching document from {identity}",
                locator=identity,
            ) from exc
        except httpx.RequestError as exc:
            raise LoadError(f"Failed to fetch document from {identity}: {exc}", locator=identity) from exc
        return response.text

    raise LoadError(f"Unsupported URI scheme '{scheme}' for document {identity}", locator=identity)


def _normalize_keys(value: Any) -> Any:
    """Stringify mapping keys produced by YAML (``200:`` decodes as ``int``)."""
    if isinstance(value, dict):
        normalized: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(key, bool):
                key = "true" if key else "false"
            elif key is None:
                key = "null"
            elif not isinstance(key, str):
                key = str(key)
            normalized[key] = _normalize_keys(item)
        return normalized
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value


def _check_root(result: Any, locator: str) -> Any:
    if not isinstance(result, (dict, list)):
        kind = type(result).__name__ if result is not None else "empty document"
        raise ParseError(
            f"Document {locator} must be a JSON/YAML object (got {kind})",
            locator=locator,
        )
    return result


def parse_content(content: str, locator: str, hint: str = "") -> tuple[Any, str]:
    """Decode *content* as JSON or YAML.

    Detection order: an explicit *hint*, then the extension of *locator*,
    then a leading ``openapi:`` token (YAML), then JSON with a YAML fallback.

    Args:
        content: The raw text.
        locator: The document identity, used for extension sniffing and
            error messages.
        hint: Optional ``"json"`` or ``"yaml"`` override.

    Returns:
        A ``(tree, format)`` tuple where ``format`` is ``"json"`` or ``"yaml"``.

    Raises:
        ParseError: If the content is empty or cannot be decoded.
    """
    if not content.strip():
        raise ParseError(f"Document is empty: {locator}", locator=locator)

    hint = hint or _format_hint(locator)
    if not hint and content.lstrip().startswith("openapi:"):
        hint = "yaml"

    if hint != "yaml":
        try:
            return _check_root(json.loads(content), locator), "json"
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ParseError(
                    f"Failed to parse {locator} as JSON: {exc}",
                    locator=locator,
                    parser_message=str(exc),
                ) from exc

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ParseError(
            f"Failed to parse {locator} as YAML: {exc}",
            locator=locator,
            parser_message=str(exc),
        ) from exc
    return _check_root(_normalize_keys(result), locator), "yaml"


def _logical_base(tree: Any, identity: str) -> Optional[str]:
    """Return the absolute ``$self`` of *tree*, or ``None`` when absent or equal to *identity*."""
    if not isinstance(tree, dict):
        return None
    declared = tree.get("$self")
    if not isinstance(declared, str) or not declared:
        return None
    try:
        base = strip_fragment(join_uri(identity, declared))
    except ValueError:
        logger.warning("Ignoring unresolvable $self '%s' in %s", declared, identity)
        return None
    return base if base != identity else None


def build_document(identity: str, content: str, hint: str = "") -> Document:
    """Parse *content* fetched from *identity* into a :class:`~specgraph.models.Document`."""
    tree, fmt = parse_content(content, identity, hint=hint)
    document = Document(
        identity=identity,
        tree=tree,
        logical_base=_logical_base(tree, identity),
        format=fmt,
    )
    logger.debug("Loaded %s document %s", fmt, identity)
    return document


def load_document(
    locator: str,
    fetch: Optional[FetchText] = None,
    settings: Optional[LoaderSettings] = None,
) -> Document:
    """Load and parse one document.

    Args:
        locator: A filesystem path or URL.
        fetch: Optional transport replacing :func:`fetch_text`; receives the
            absolute identity and returns text or raises :class:`LoadError`.
        settings: Transport settings for the default transport.

    Returns:
        The loaded :class:`~specgraph.models.Document`.

    Raises:
        LoadError: If the resource cannot be fetched.
        ParseError: If the content cannot be decoded.
    """
    identity = to_identity(locator)
    if fetch is not None:
        content = fetch(identity)
    else:
        content = fetch_text(identity, settings)
    return build_document(identity, content)
