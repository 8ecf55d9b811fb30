"""Reconstruct discriminated unions (``oneOf`` + ``discriminator``).

:func:`polymorphic_options` returns the closed set of
``(discriminator value, concrete schema)`` pairs a polymorphic schema
allows.  Two strategies are tried in order:

1. An explicit ``discriminator.mapping`` table.  Each value is a reference
   (``#/components/schemas/Cat``, ``pets.yaml#/Cat``) or a bare schema name
   (``Cat``).  Entries that do not resolve are dropped.
2. Otherwise each ``oneOf`` member is resolved and the first value of its
   ``properties.<propertyName>.enum`` becomes the implicit discriminator
   value.  Members without such an enum are dropped.

Both drops are best-effort: a warning diagnostic is recorded and the
remaining options are returned.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from specgraph.diagnostics import Diagnostics
from specgraph.exceptions import ResolutionFailure
from specgraph.models import PolymorphicOption
from specgraph.parser.resolver import Context, ReferenceResolver
from specgraph.tree import reference_target

logger = logging.getLogger(__name__)

_SCHEMA_NAME_RE = re.compile(r"^[a-zA-Z0-9.\-_]+$")


def is_polymorphic(schema: Any) -> bool:
    return (
        isinstance(schema, dict)
        and isinstance(schema.get("oneOf"), list)
        and isinstance(schema.get("discriminator"), dict)
    )


def _mapping_reference(target: str, resolver: ReferenceResolver, index: int) -> str:
    """Turn a bare schema name into a reference into the version's schema table."""
    if "#" in target or "/" in target or not _SCHEMA_NAME_RE.match(target):
        return target
    if target.endswith((".json", ".yaml", ".yml")):
        return target
    tree = resolver.cache.document_at(index).tree
    if isinstance(tree, dict) and "swagger" in tree:
        return f"#/definitions/{target}"
    return f"#/components/schemas/{target}"


def polymorphic_options(
    schema: Any,
    resolver: ReferenceResolver,
    current: Context = None,
    diagnostics: Optional[Diagnostics] = None,
) -> list[PolymorphicOption]:
    """Return the discriminator options of *schema*.

    Args:
        schema: A schema node, possibly itself a Reference Object.
        resolver: Resolver over the session's document cache.
        current: Document context the schema was read from (defaults to the
            entry document).  Mapping references resolve relative to it.
        diagnostics: Collector for dropped entries.

    Returns:
        One :class:`~specgraph.models.PolymorphicOption` per resolvable
        member, in mapping or ``oneOf`` order.  An empty list when the
        schema is not a discriminated ``oneOf``.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()

    try:
        schema, index, _ = resolver.resolve_with_context(schema, current)
    except ResolutionFailure as exc:
        diagnostics.warn(exc.message, reference=exc.reference, logger=logger)
        return []
    if not is_polymorphic(schema):
        return []

    discriminator = schema["discriminator"]
    mapping = discriminator.get("mapping")
    if isinstance(mapping, dict) and mapping:
        return _from_mapping(mapping, resolver, index, diagnostics)
    return _from_members(schema["oneOf"], discriminator.get("propertyName"), resolver, index, diagnostics)


def _from_mapping(
    mapping: dict[str, Any],
    resolver: ReferenceResolver,
    index: int,
    diagnostics: Diagnostics,
) -> list[PolymorphicOption]:
    options: list[PolymorphicOption] = []
    for name, target in mapping.items():
        if not isinstance(target, str):
            diagnostics.warn(
                f"Discriminator mapping '{name}' is not a string; dropping it",
                logger=logger,
            )
            continue
        ref = _mapping_reference(target, resolver, index)
        try:
            resolved = resolver.resolve_reference(ref, index)
        except ResolutionFailure as exc:
            diagnostics.warn(
                f"Dropping discriminator mapping '{name}': {exc.message}",
                reference=ref,
                logger=logger,
            )
            continue
        options.append(PolymorphicOption(name=name, schema=resolved))
    return options


def _from_members(
    members: list[Any],
    property_name: Any,
    resolver: ReferenceResolver,
    index: int,
    diagnostics: Diagnostics,
) -> list[PolymorphicOption]:
    options: list[PolymorphicOption] = []
    for position, member in enumerate(members):
        label = reference_target(member) or f"oneOf[{position}]"
        try:
            resolved, member_index, _ = resolver.resolve_with_context(member, index)
        except ResolutionFailure as exc:
            diagnostics.warn(
                f"Dropping oneOf member '{label}': {exc.message}",
                reference=reference_target(member),
                logger=logger,
            )
            continue

        value = _implicit_value(resolved, property_name, resolver, member_index)
        if value is None:
            diagnostics.warn(
                f"Dropping oneOf member '{label}': no enum declared for discriminator property '{property_name}'",
                reference=reference_target(member),
                logger=logger,
            )
            continue
        options.append(PolymorphicOption(name=value, schema=resolved))
    return options


def _implicit_value(schema: Any, property_name: Any, resolver: ReferenceResolver, index: int) -> Optional[str]:
    if not isinstance(property_name, str) or not isinstance(schema, dict):
        return None
    properties = schema.get("properties")
    if not isinstance(properties, dict) or property_name not in properties:
        return None
    try:
        prop = resolver.resolve(properties[property_name], index)
    except ResolutionFailure:
        return None
    enum = prop.get("enum") if isinstance(prop, dict) else None
    if not isinstance(enum, list) or not enum:
        return None
    first = enum[0]
    return first if isinstance(first, str) else str(first)
