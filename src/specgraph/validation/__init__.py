"""Structural validation of OpenAPI 3.x and Swagger 2.0 documents.

Typical usage::

    from specgraph.validation import validate_spec, validate_operation_ids_across_documents

    validate_spec(document.tree)
    validate_operation_ids_across_documents(cache)

Sub-modules:

* :mod:`~specgraph.validation.validator` -- :func:`validate_spec`, the fixed
  rule order for one document.
* :mod:`~specgraph.validation.paths` -- path keys, operations, callbacks.
* :mod:`~specgraph.validation.parameters` -- Parameter Object rules.
* :mod:`~specgraph.validation.objects` -- media types, headers, links,
  request bodies, responses, servers.
* :mod:`~specgraph.validation.schemas` -- Schema Object, discriminator, XML.
* :mod:`~specgraph.validation.security` -- security schemes and OAuth flows.
* :mod:`~specgraph.validation.tags` -- tag hierarchy.
* :mod:`~specgraph.validation.operation_ids` -- ``operationId`` uniqueness.
* :mod:`~specgraph.validation.formats` -- shared string grammars.
"""

from specgraph.validation.operation_ids import collect_operation_ids, validate_operation_ids_across_documents
from specgraph.validation.validator import validate_spec

__all__ = ["validate_spec", "validate_operation_ids_across_documents", "collect_operation_ids"]
