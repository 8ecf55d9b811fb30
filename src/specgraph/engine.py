"""One resolution session: discover, validate, and build the Resolved View.

:func:`load_spec_graph` is the top-level entry point most callers need::

    from specgraph import load_spec_graph

    graph = load_spec_graph("specs/openapi.yaml")
    for op in graph.view.operations:
        print(op.method, op.path)
    pet = graph.resolve_reference("#/components/schemas/Pet")
    for warning in graph.diagnostics.messages():
        print(warning)

The session runs in a fixed order:

1. Discovery -- every reachable document is loaded once into a frozen
   :class:`~specgraph.cache.DocumentCache`.
2. Validation -- the entry document, then every other OpenAPI/Swagger
   document in the cache, then ``operationId`` uniqueness across them.
3. Dialect check -- a custom ``jsonSchemaDialect`` is reported as a
   warning diagnostic.
4. View -- the entry document is flattened into a
   :class:`~specgraph.models.ResolvedView`.

Any loader, parse, validation or required-resolution error aborts the
session; best-effort findings are collected on :attr:`SpecGraph.diagnostics`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from specgraph.cache import DocumentCache
from specgraph.config import resolve_settings
from specgraph.diagnostics import Diagnostics
from specgraph.models import Document, LoaderSettings, PolymorphicOption, ResolvedView
from specgraph.parser.extractor import build_view
from specgraph.parser.loader import FetchText
from specgraph.parser.polymorphism import polymorphic_options
from specgraph.parser.resolver import Context, ReferenceResolver
from specgraph.parser.walker import discover, discover_async
from specgraph.validation import validate_operation_ids_across_documents, validate_spec

logger = logging.getLogger(__name__)

OAS_3_1_DIALECT = "https://spec.openapis.org/oas/3.1/dialect/base"
JSON_SCHEMA_2020_12_DIALECT = "https://json-schema.org/draft/2020-12/schema"
KNOWN_DIALECTS = (OAS_3_1_DIALECT, JSON_SCHEMA_2020_12_DIALECT)


class SpecGraph:
    """A loaded, validated document graph and its Resolved View.

    Attributes:
        cache: The frozen document cache.
        resolver: Resolver over :attr:`cache`, defaulting to the entry document.
        view: The Resolved View of the entry document.
        diagnostics: Best-effort findings recorded during the session.
    """

    def __init__(
        self,
        cache: DocumentCache,
        resolver: ReferenceResolver,
        view: ResolvedView,
        diagnostics: Diagnostics,
    ):
        self.cache = cache
        self.resolver = resolver
        self.view = view
        self.diagnostics = diagnostics

    @property
    def entry_identity(self) -> str:
        return self.view.entry_document

    @property
    def entry_document(self) -> Document:
        return self.cache.document_at(self.resolver.entry_index)

    def resolve(self, obj: Any, current: Context = None) -> Any:
        """Resolve *obj* if it is a Reference Object; see :meth:`ReferenceResolver.resolve`."""
        return self.resolver.resolve(obj, current)

    def resolve_reference(self, ref: str, current: Context = None) -> Any:
        return self.resolver.resolve_reference(ref, current)

    def polymorphic_options(self, schema: Any, current: Context = None) -> list[PolymorphicOption]:
        """Discriminator options of *schema*; dropped entries are added to :attr:`diagnostics`."""
        return polymorphic_options(schema, self.resolver, current, self.diagnostics)


def load_spec_graph(
    locator: str,
    fetch: Optional[FetchText] = None,
    settings: Optional[LoaderSettings] = None,
) -> SpecGraph:
    """Load, validate and view the document graph rooted at *locator*.

    Args:
        locator: File path or URL of the entry document.
        fetch: Optional transport ``fetch(identity) -> text``.  Defaults to
            the filesystem/HTTP loader configured by *settings*.
        settings: Transport settings.  Resolved from the environment and
            ``./specgraph.json`` when omitted.

    Returns:
        The loaded :class:`SpecGraph`.

    Raises:
        LoadError: If a document cannot be fetched.
        ParseError: If a document is not valid JSON/YAML.
        SpecValidationError: At the first structural rule violation.
        ResolutionFailure: If a reference required by validation or by the
            view cannot be resolved.
    """
    if settings is None:
        settings = resolve_settings()
    diagnostics = Diagnostics()
    cache = discover(locator, fetch=fetch, settings=settings, diagnostics=diagnostics)
    return _assemble(cache, diagnostics)


async def load_spec_graph_async(
    locator: str,
    settings: Optional[LoaderSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> SpecGraph:
    """Async variant of :func:`load_spec_graph`; sibling documents are fetched concurrently."""
    if settings is None:
        settings = resolve_settings()
    diagnostics = Diagnostics()
    cache = await discover_async(locator, settings=settings, diagnostics=diagnostics, client=client)
    return _assemble(cache, diagnostics)


def _assemble(cache: DocumentCache, diagnostics: Diagnostics) -> SpecGraph:
    resolver = ReferenceResolver(cache)
    entry = cache.document_at(resolver.entry_index)

    validate_spec(entry.tree, resolver, resolver.entry_index)
    for index, document in enumerate(cache.documents()):
        if index != resolver.entry_index and document.is_api_description:
            logger.debug("Validating referenced document %s", document.identity)
            validate_spec(document.tree, resolver, index)
    validate_operation_ids_across_documents(cache)

    _check_dialect(entry, diagnostics)

    view = build_view(cache, entry.identity, resolver, diagnostics)
    logger.debug("Loaded %d document(s) from %s", len(cache), entry.identity)
    return SpecGraph(cache, resolver, view, diagnostics)


def _check_dialect(document: Document, diagnostics: Diagnostics) -> None:
    dialect = document.tree.get("jsonSchemaDialect") if isinstance(document.tree, dict) else None
    if dialect and dialect not in KNOWN_DIALECTS:
        diagnostics.warn(
            f"The specification defines a custom jsonSchemaDialect: \"{dialect}\". "
            f"Schemas are interpreted with the default OpenAPI 3.1 dialect ({OAS_3_1_DIALECT}).",
            location=f"{document.identity}#/jsonSchemaDialect",
            logger=logger,
        )
