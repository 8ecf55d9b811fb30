"""Resolve ``$ref`` / ``$dynamicRef`` reference expressions against a document cache.

A reference expression such as ``b.yaml#/components/schemas/Widget`` is
split at the first ``#`` into a *document part* and a *pointer part*.  The
document part is resolved against the current document's logical base (its
``$self`` when declared, its retrieval URI otherwise, or the nearest
enclosing ``$id`` for references inside an identified schema) and looked up
in the :class:`~specgraph.cache.DocumentCache`.  The pointer part is decoded
per RFC 6901 (``~1`` -> ``/``, ``~0`` -> ``~``) and walked key by key.

When the value found is itself a reference, resolution continues with the
*target* document as the new context, so chains spanning several documents
resolve transitively.  A chain that revisits one of its own targets raises
:class:`~specgraph.exceptions.ResolutionFailure` instead of recursing forever.

Resolution never mutates the cache.  When a Reference Object carries
``summary`` or ``description`` siblings and the target is an object, a
shallow copy with those fields overridden is returned.

Example::

    resolver = ReferenceResolver(cache)
    widget = resolver.resolve_reference("b.yaml#/components/schemas/Widget")
    schema = resolver.resolve({"$ref": "#/components/schemas/Pet", "description": "A pet"})
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional, Sequence, Union

from specgraph.cache import DocumentCache
from specgraph.diagnostics import Diagnostics
from specgraph.exceptions import ResolutionFailure
from specgraph.parser.uris import (
    decode_pointer,
    is_array_index,
    join_uri,
    pointer_join,
    split_reference,
    strip_fragment,
)
from specgraph.tree import NodeKind, node_kind, reference_target

logger = logging.getLogger(__name__)

Context = Union[int, str, None]
"""A document context: a cache index, an absolute identity, or ``None`` for the entry document."""

OVERRIDE_KEYS = ("summary", "description")


class Resolution(NamedTuple):
    """The outcome of following a reference chain to its end.

    ``index`` is the cache index of the document holding ``value`` and
    ``pointer`` the JSON Pointer of ``value`` inside it.  Nested references
    in ``value`` resolve with ``index`` as their context.
    """

    value: Any
    index: int
    pointer: str


class ReferenceResolver:
    """Resolves reference expressions inside one frozen document cache.

    Args:
        cache: The populated cache produced by discovery.
        entry_identity: Identity used when no context is given; defaults to
            the first document in the cache.
    """

    def __init__(self, cache: DocumentCache, entry_identity: Optional[str] = None):
        self._cache = cache
        if entry_identity is None:
            self._entry = 0
        else:
            index = cache.index_of(entry_identity)
            if index is None:
                raise ResolutionFailure(
                    f"Entry document {entry_identity} is not in the cache",
                    document=entry_identity,
                )
            self._entry = index

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    @property
    def entry_index(self) -> int:
        return self._entry

    def context_index(self, current: Context) -> int:
        """Normalize a :data:`Context` into a cache index."""
        if current is None:
            return self._entry
        if isinstance(current, int):
            if current < 0 or current >= len(self._cache):
                raise ResolutionFailure(f"No cached document at index {current}")
            return current
        index = self._cache.index_of(current)
        if index is None:
            raise ResolutionFailure(f"Document {current} is not in the cache", document=current)
        return index

    # -- public API ------------------------------------------------------

    def resolve(self, obj: Any, current: Context = None) -> Any:
        """Resolve *obj* if it is a Reference Object, otherwise return it unchanged.

        Raises:
            ResolutionFailure: If the reference is dangling or malformed.
        """
        return self.resolve_with_context(obj, current).value

    def resolve_with_context(self, obj: Any, current: Context = None) -> Resolution:
        """Like :meth:`resolve` but also report where the resolved value lives.

        For a non-reference *obj* the context is returned unchanged with an
        empty pointer.
        """
        index = self.context_index(current)
        ref = reference_target(obj)
        if ref is None:
            return Resolution(obj, index, "")

        dynamic = not isinstance(obj.get("$ref"), str)
        result = self._follow(ref, index, self._cache.base_of(obj), dynamic, [], [])
        return result._replace(value=_apply_overrides(result.value, obj))

    def resolve_reference(self, ref: str, current: Context = None) -> Any:
        """Resolve a bare reference string from the *current* document.

        Raises:
            ResolutionFailure: If the document is not cached, a pointer
                segment is missing, or the chain loops.
        """
        return self.locate(ref, current).value

    def locate(self, ref: str, current: Context = None, dynamic: bool = False) -> Resolution:
        """Resolve *ref* and return the value with its document index and pointer."""
        if not isinstance(ref, str):
            raise ResolutionFailure(f"Reference must be a string, got {type(ref).__name__}")
        return self._follow(ref, self.context_index(current), None, dynamic, [], [])

    def try_resolve_reference(
        self,
        ref: str,
        current: Context = None,
        diagnostics: Optional[Diagnostics] = None,
        location: Optional[str] = None,
    ) -> Optional[Any]:
        """Best-effort variant of :meth:`resolve_reference`.

        Returns ``None`` instead of raising, recording the failure on
        *diagnostics* when one is given.
        """
        try:
            return self.resolve_reference(ref, current)
        except ResolutionFailure as exc:
            if diagnostics is not None:
                diagnostics.warn(exc.message, reference=ref, location=location, logger=logger)
            else:
                logger.warning("%s", exc.message)
            return None

    # -- internals -------------------------------------------------------

    def _follow(
        self,
        ref: str,
        index: int,
        scope: Optional[str],
        dynamic: bool,
        stack: Sequence[str],
        chain: list[str],
    ) -> Resolution:
        document = self._cache.document_at(index)
        document_part, fragment = split_reference(ref)
        base = scope or document.base

        try:
            target_uri = strip_fragment(join_uri(base, document_part)) if document_part else base
        except ValueError as exc:
            raise ResolutionFailure(
                f"Malformed reference '{ref}' in {document.identity}: {exc}",
                reference=ref,
                document=document.identity,
            ) from exc

        key = f"{target_uri}#{fragment}" if fragment else target_uri
        if key in chain:
            raise ResolutionFailure(
                f"Circular reference chain: {' -> '.join([*chain, key])}",
                reference=ref,
                document=document.identity,
            )
        chain = [*chain, key]

        found = None
        if dynamic and fragment and not fragment.startswith("/"):
            for scope_uri in stack:
                found = self._cache.lookup_fragment(f"{strip_fragment(scope_uri)}#{fragment}")
                if found is not None:
                    break
        if found is None:
            found = self._cache.lookup_fragment(key)

        if found is not None:
            result = Resolution(found.node, found.index, found.pointer)
        else:
            result = self._walk_pointer(ref, target_uri, fragment, bool(document_part))

        value = result.value
        nested = reference_target(value)
        if nested is None:
            return result
        return self._follow(
            nested,
            result.index,
            self._cache.base_of(value),
            not isinstance(value.get("$ref"), str),
            [*stack, key],
            chain,
        )

    def _walk_pointer(self, ref: str, target_uri: str, fragment: Optional[str], external: bool) -> Resolution:
        index = self._cache.index_of(target_uri)
        if index is None:
            what = "external document" if external else "document"
            raise ResolutionFailure(
                f"Unresolved {what} '{target_uri}' referenced by '{ref}'; it was not loaded during discovery",
                reference=ref,
                document=target_uri,
            )

        value = self._cache.document_at(index).tree
        if not fragment:
            return Resolution(value, index, "")

        if not fragment.startswith("/"):
            raise ResolutionFailure(
                f"Cannot resolve anchor '{fragment}' in reference '{ref}' within {target_uri}",
                reference=ref,
                segment=fragment,
                document=target_uri,
            )

        pointer = ""
        for segment in decode_pointer(fragment):
            value = _step(value, segment, ref, target_uri)
            pointer = pointer_join(pointer, segment)
        return Resolution(value, index, pointer)


def _step(value: Any, segment: str, ref: str, document: str) -> Any:
    kind = node_kind(value)
    if kind is NodeKind.MAPPING:
        if segment in value:
            return value[segment]
    elif kind is NodeKind.SEQUENCE:
        if is_array_index(segment) and int(segment) < len(value):
            return value[int(segment)]
    raise ResolutionFailure(
        f"Cannot resolve reference '{ref}': segment '{segment}' not found in {document}",
        reference=ref,
        segment=segment,
        document=document,
    )


def _apply_overrides(resolved: Any, reference: dict[str, Any]) -> Any:
    """Return *resolved* with the reference's ``summary``/``description`` applied to a shallow copy."""
    overrides = {key: reference[key] for key in OVERRIDE_KEYS if key in reference}
    if not overrides or node_kind(resolved) is not NodeKind.MAPPING:
        return resolved
    copied = dict(resolved)
    copied.update(overrides)
    return copied
