"""Document parser -- load, discover, resolve ``$ref`` pointers, and extract the view.

This sub-package turns a root locator into a populated
:class:`~specgraph.cache.DocumentCache` and reads it back out.

Typical usage::

    from specgraph.parser import discover, ReferenceResolver, build_view

    cache = discover("specs/openapi.yaml")
    resolver = ReferenceResolver(cache)
    widget = resolver.resolve_reference("#/components/schemas/Widget")
    view = build_view(cache, resolver=resolver)

Sub-modules:

* :mod:`~specgraph.parser.uris` -- URI joining and JSON Pointer helpers.
* :mod:`~specgraph.parser.loader` -- I/O layer (file, URL) plus format
  detection.
* :mod:`~specgraph.parser.walker` -- Depth-first discovery of every
  referenced document, sync and async.
* :mod:`~specgraph.parser.resolver` -- Cross-document ``$ref`` /
  ``$dynamicRef`` resolution with chain-cycle detection.
* :mod:`~specgraph.parser.polymorphism` -- Discriminated ``oneOf`` options.
* :mod:`~specgraph.parser.extractor` -- Builds the
  :class:`~specgraph.models.ResolvedView`.
"""

from specgraph.parser.extractor import build_view
from specgraph.parser.loader import load_document, parse_content, to_identity
from specgraph.parser.polymorphism import polymorphic_options
from specgraph.parser.resolver import ReferenceResolver, Resolution
from specgraph.parser.walker import discover, discover_async

__all__ = [
    "load_document",
    "parse_content",
    "to_identity",
    "discover",
    "discover_async",
    "ReferenceResolver",
    "Resolution",
    "polymorphic_options",
    "build_view",
]
