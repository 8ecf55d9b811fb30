"""``operationId`` uniqueness, within one document and across a loaded graph.

Operations are collected from ``paths``, ``webhooks``, callbacks declared by
those operations, and the reusable ``components.pathItems``,
``components.webhooks`` and ``components.callbacks`` tables.  Each
occurrence is labelled ``<where><path key> <METHOD>``, for example
``/pets GET`` or ``webhooks:newPet POST``.
"""

from __future__ import annotations

from typing import Any

from specgraph.cache import DocumentCache
from specgraph.exceptions import SpecValidationError
from specgraph.tree import has_reference_key
from specgraph.validation.paths import callback_path_items, iter_operations


def _collect_from_path_items(path_items: Any, prefix: str, found: dict[str, list[str]]) -> None:
    if not isinstance(path_items, dict):
        return
    for key, path_item in path_items.items():
        for method, operation, _ in iter_operations(path_item, ""):
            operation_id = operation.get("operationId")
            if operation_id:
                found.setdefault(str(operation_id), []).append(f"{prefix}{key} {method}")


def collect_operation_ids(tree: Any) -> dict[str, list[str]]:
    """Map every ``operationId`` in *tree* to the labels of the operations declaring it."""
    found: dict[str, list[str]] = {}
    if not isinstance(tree, dict):
        return found

    paths, webhooks = tree.get("paths"), tree.get("webhooks")
    _collect_from_path_items(paths, "", found)
    _collect_from_path_items(webhooks, "webhooks:", found)

    callbacks = {**callback_path_items(paths, "/paths"), **callback_path_items(webhooks, "/webhooks")}
    _collect_from_path_items(callbacks, "callbacks:", found)

    components = tree.get("components")
    if isinstance(components, dict):
        _collect_from_path_items(components.get("pathItems"), "components.pathItems:", found)
        _collect_from_path_items(components.get("webhooks"), "components.webhooks:", found)
        reusable = components.get("callbacks")
        if isinstance(reusable, dict):
            for name, callback in reusable.items():
                if isinstance(callback, dict) and not has_reference_key(callback):
                    _collect_from_path_items(callback, f"components.callbacks.{name}:", found)
    return found


def check_operation_ids(tree: Any, location: str = "") -> None:
    """Raise when one document declares the same ``operationId`` twice."""
    for operation_id, labels in collect_operation_ids(tree).items():
        if len(labels) > 1:
            raise SpecValidationError(
                f"Duplicate operationId \"{operation_id}\" found in multiple operations: {', '.join(labels)}",
                location,
            )


def validate_operation_ids_across_documents(cache: DocumentCache) -> None:
    """Raise when an ``operationId`` is declared by more than one operation in the loaded graph.

    Only OpenAPI/Swagger documents take part; standalone schema documents
    are skipped.  Each document is counted once even if it is reachable
    under several identities.
    """
    found: dict[str, list[str]] = {}
    for document in cache.documents():
        if not document.is_api_description:
            continue
        for operation_id, labels in collect_operation_ids(document.tree).items():
            found.setdefault(operation_id, []).extend(f"{document.identity}::{label}" for label in labels)

    for operation_id, labels in found.items():
        if len(labels) > 1:
            raise SpecValidationError(
                f"Duplicate operationId \"{operation_id}\" found across OpenAPI documents: {', '.join(labels)}"
            )
