"""specgraph -- Load, resolve and validate OpenAPI/Swagger document graphs.

This package turns one or more interlinked OpenAPI 3.x or Swagger 2.0
documents (JSON or YAML, local files or URLs) into a validated, navigable
in-memory graph.  Every ``$ref`` is resolved across documents, discriminated
unions are reconstructed, and the entry document is flattened into a
version-independent *Resolved View* for downstream consumers.

Typical usage::

    from specgraph import load_spec_graph

    graph = load_spec_graph("specs/openapi.yaml")
    for op in graph.view.operations:
        print(op.method, op.path, op.operation_id)

Modules:
    engine: One resolution session (discover, validate, build the view).
    models: Pydantic models shared across the entire package.
    config: Loader settings with environment and project-file precedence.
    exceptions: Exception hierarchy rooted at :class:`SpecgraphError`.
    diagnostics: Collector for non-fatal findings.
    tree: Node tagging for the generic document tree.
    cache: The in-memory document cache.
    parser: Loader, walker, resolver, polymorphism and view builder.
    validation: Structural rules for OpenAPI/Swagger documents.
"""

__version__ = "0.1.0"

from specgraph.engine import SpecGraph, load_spec_graph, load_spec_graph_async
from specgraph.exceptions import (
    ConfigError,
    LoadError,
    ParseError,
    ResolutionFailure,
    SpecgraphError,
    SpecValidationError,
)

__all__ = [
    "__version__",
    "SpecGraph",
    "load_spec_graph",
    "load_spec_graph_async",
    "SpecgraphError",
    "LoadError",
    "ParseError",
    "ResolutionFailure",
    "SpecValidationError",
    "ConfigError",
]
