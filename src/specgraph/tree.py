"""Tagging for the generic document tree.

Loaded documents are plain Python values as produced by :mod:`json` and
:mod:`yaml`: ``None``, ``bool``, ``int``/``float``, ``str``, ``list`` and
``dict`` (insertion-ordered).  Traversal code classifies each node once with
:func:`node_kind` and branches on the resulting :class:`NodeKind` rather than
sprinkling ``isinstance`` checks through every walker.
"""

from __future__ import annotations

import enum
from typing import Any

REFERENCE_KEYS = ("$ref", "$dynamicRef")


class NodeKind(str, enum.Enum):
    """The discriminant of a generic tree node."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def node_kind(value: Any) -> NodeKind:
    """Return the :class:`NodeKind` of *value*.

    ``bool`` is checked before numbers because it is a subclass of ``int``.

    Raises:
        TypeError: If *value* is not a JSON/YAML-compatible node.
    """
    if value is None:
        return NodeKind.NULL
    if isinstance(value, bool):
        return NodeKind.BOOLEAN
    if isinstance(value, (int, float)):
        return NodeKind.NUMBER
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    if isinstance(value, dict):
        return NodeKind.MAPPING
    # YAML timestamps and dates decode to datetime objects; treat as scalars.
    if hasattr(value, "isoformat"):
        return NodeKind.STRING
    raise TypeError(f"Unsupported document node type: {type(value).__name__}")


def reference_target(value: Any) -> str | None:
    """Return the ``$ref`` (preferred) or ``$dynamicRef`` string of a Reference Object."""
    if node_kind(value) is not NodeKind.MAPPING:
        return None
    for key in REFERENCE_KEYS:
        target = value.get(key)
        if isinstance(target, str):
            return target
    return None


def has_reference_key(value: Any) -> bool:
    """Return ``True`` when *value* carries a ``$ref``/``$dynamicRef`` key of any type."""
    return node_kind(value) is NodeKind.MAPPING and any(key in value for key in REFERENCE_KEYS)
