"""Discover and cache every document reachable from a root document.

Discovery is a depth-first traversal.  For each loaded document the walker
collects the document-parts of every ``$ref``, ``$dynamicRef`` and Link
``operationRef`` in its tree, resolves them against the document's logical
base (``$self`` when declared, otherwise the retrieval URI), and loads any
identity it has not seen yet.  A visited set keyed by absolute identity
guarantees that each document is fetched and scanned exactly once, even
when documents reference each other in cycles.

Two entry points are provided:

* :func:`discover` -- sequential, using a synchronous ``fetch(identity)``
  transport (by default :func:`~specgraph.parser.loader.fetch_text`).
* :func:`discover_async` -- fetches sibling documents concurrently through
  one :class:`httpx.AsyncClient`.

Both return a frozen :class:`~specgraph.cache.DocumentCache` whose
insertion order is the depth-first pre-order of the reference graph.
Loader and parse errors abort discovery; a reference whose document-part
cannot be turned into an absolute URI is skipped with a diagnostic.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Optional

import httpx

from specgraph.cache import DocumentCache
from specgraph.diagnostics import Diagnostics
from specgraph.models import Document, LoaderSettings
from specgraph.parser.loader import FetchText, build_document, fetch_text, fetch_text_async, to_identity
from specgraph.parser.uris import join_uri, pointer_join, split_reference, strip_fragment
from specgraph.tree import REFERENCE_KEYS

logger = logging.getLogger(__name__)


def find_refs(tree: Any) -> list[str]:
    """Return every distinct ``$ref`` / ``$dynamicRef`` string in *tree*, in document order."""
    found: dict[str, None] = {}
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            for key in REFERENCE_KEYS:
                value = node.get(key)
                if isinstance(value, str):
                    found.setdefault(value)
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))
    return list(found)


def find_operation_refs(tree: Any) -> list[str]:
    """Return every distinct Link Object ``operationRef`` string in *tree*."""
    found: dict[str, None] = {}
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            value = node.get("operationRef")
            if isinstance(value, str):
                found.setdefault(value)
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))
    return list(found)


def external_targets(document: Document, diagnostics: Diagnostics) -> list[str]:
    """Absolute identities of the other documents *document* points at."""
    targets: dict[str, None] = {}
    for ref in [*find_refs(document.tree), *find_operation_refs(document.tree)]:
        document_part, _ = split_reference(ref)
        if not document_part:
            continue
        try:
            target = strip_fragment(join_uri(document.base, document_part))
        except ValueError as exc:
            diagnostics.warn(
                f"Failed to resolve referenced URI '{document_part}' in {document.identity}: {exc}. Skipping.",
                reference=ref,
                location=document.identity,
                logger=logger,
            )
            continue
        targets.setdefault(target)
    return list(targets)


def index_schema_ids(cache: DocumentCache, index: int) -> None:
    """Register ``$id``, ``$anchor`` and ``$dynamicAnchor`` declarations of one document.

    ``$id`` values are resolved against the enclosing base and open a new
    scope for everything beneath them.  Anchors are registered as
    ``<scope base>#<anchor>``.  Invalid ``$id`` values are ignored.
    """
    document = cache.document_at(index)
    stack: list[tuple[Any, str, str]] = [(document.tree, document.base, "")]
    seen: set[int] = set()
    while stack:
        node, base, pointer = stack.pop()
        if isinstance(node, list):
            stack.extend(
                (item, base, pointer_join(pointer, position))
                for position, item in reversed(list(enumerate(node)))
            )
            continue
        if not isinstance(node, dict) or id(node) in seen:
            continue
        seen.add(id(node))

        scope = base
        declared_id = node.get("$id")
        if isinstance(declared_id, str) and declared_id:
            try:
                scope = strip_fragment(join_uri(base, declared_id))
            except ValueError:
                logger.debug("Ignoring invalid $id '%s' in %s", declared_id, document.identity)
            else:
                cache.register_fragment(scope, index, node, pointer)
        if scope != document.base:
            cache.register_base(node, scope)

        for key in ("$anchor", "$dynamicAnchor"):
            anchor = node.get(key)
            if isinstance(anchor, str) and anchor:
                cache.register_fragment(f"{scope}#{anchor}", index, node, pointer)

        stack.extend(
            (value, scope, pointer_join(pointer, key)) for key, value in reversed(list(node.items()))
        )


def _register(cache: DocumentCache, document: Document) -> None:
    index = cache.add(document)
    index_schema_ids(cache, index)


def discover(
    root_locator: str,
    fetch: Optional[FetchText] = None,
    settings: Optional[LoaderSettings] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> DocumentCache:
    """Load *root_locator* and every document it transitively references.

    Args:
        root_locator: Filesystem path or URL of the entry document.
        fetch: Optional transport ``fetch(identity) -> text``.  Defaults to
            :func:`~specgraph.parser.loader.fetch_text` with *settings*.
        settings: Transport settings for the default transport.
        diagnostics: Collector for skipped references.

    Returns:
        The frozen cache.  The entry document is at index ``0``.

    Raises:
        LoadError: If any reachable document cannot be fetched.
        ParseError: If any reachable document cannot be decoded.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    transport: FetchText = fetch if fetch is not None else partial(fetch_text, settings=settings)

    cache = DocumentCache()
    visited: set[str] = set()
    pending = [to_identity(root_locator)]

    while pending:
        identity = pending.pop()
        if identity in visited or identity in cache:
            continue
        visited.add(identity)

        document = build_document(identity, transport(identity))
        _register(cache, document)
        pending.extend(reversed(external_targets(document, diagnostics)))

    cache.freeze()
    logger.debug("Discovered %d document(s) from %s", len(cache), root_locator)
    return cache


async def discover_async(
    root_locator: str,
    settings: Optional[LoaderSettings] = None,
    diagnostics: Optional[Diagnostics] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> DocumentCache:
    """Concurrent variant of :func:`discover`.

    Documents referenced by the same parent are fetched in parallel, at
    most ``settings.max_concurrency`` at a time.  An :class:`asyncio.Lock`
    guards the visited set, so an identity is scheduled exactly once no
    matter how many documents reference it.  The resulting cache has the
    same insertion order as :func:`discover` would produce.

    Args:
        root_locator: Filesystem path or URL of the entry document.
        settings: Transport settings; also used to build the client when
            *client* is not given.
        diagnostics: Collector for skipped references.
        client: Optional pre-configured client (e.g. with a mock transport).

    Raises:
        LoadError: If any reachable document cannot be fetched.
        ParseError: If any reachable document cannot be decoded.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    settings = settings or LoaderSettings()
    root = to_identity(root_locator)

    semaphore = asyncio.Semaphore(settings.max_concurrency)
    lock = asyncio.Lock()
    visited: set[str] = set()
    loaded: dict[str, Document] = {}
    edges: dict[str, list[str]] = {}

    async def visit(identity: str, http: httpx.AsyncClient) -> None:
        async with lock:
            if identity in visited:
                return
            visited.add(identity)

        async with semaphore:
            text = await fetch_text_async(identity, http)
        document = build_document(identity, text)
        loaded[identity] = document
        if document.logical_base:
            async with lock:
                visited.add(document.logical_base)

        children = external_targets(document, diagnostics)
        edges[identity] = children
        tasks = [asyncio.ensure_future(visit(child, http)) for child in children]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            # Siblings must not outlive the client that serves them.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    if client is not None:
        await visit(root, client)
    else:
        async with httpx.AsyncClient(
            timeout=settings.timeout,
            verify=settings.verify_ssl,
            follow_redirects=settings.follow_redirects,
            headers=settings.headers,
        ) as http:
            await visit(root, http)

    cache = DocumentCache()
    pending = [root]
    while pending:
        identity = pending.pop()
        if identity in cache or identity not in loaded:
            continue
        _register(cache, loaded[identity])
        pending.extend(reversed(edges.get(identity, [])))

    cache.freeze()
    logger.debug("Discovered %d document(s) from %s", len(cache), root_locator)
    return cache
