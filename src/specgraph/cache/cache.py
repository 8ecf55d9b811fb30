"""Arena of loaded documents keyed by absolute identity.

Documents are stored in insertion order in a list; every other structure
refers to them by integer index.  The "current document" during
resolution is therefore an ``int``, and chains or cycles of references
across documents never create object cycles.

Three kinds of keys map to an index:

* the physical identity each document was fetched from,
* aliases, such as the absolute form of a document's ``$self``,
* fragment keys registered for schema identifiers (``$id``, ``$anchor``,
  ``$dynamicAnchor``), which map to a node inside a document.

The cache is write-once-per-key.  After :meth:`DocumentCache.freeze` any
attempt to add documents, aliases or fragments raises ``RuntimeError``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, NamedTuple, Optional

from specgraph.models import Document

logger = logging.getLogger(__name__)


class FragmentTarget(NamedTuple):
    """A node registered under a schema identifier, with the pointer it lives at."""

    index: int
    node: Any
    pointer: str


class DocumentCache:
    """Process-scoped table from absolute document identity to :class:`~specgraph.models.Document`.

    Example::

        cache = DocumentCache()
        index = cache.add(document)
        assert cache.document_at(index) is document
        cache.freeze()
    """

    def __init__(self) -> None:
        self._documents: list[Document] = []
        self._index: dict[str, int] = {}
        self._fragments: dict[str, FragmentTarget] = {}
        self._bases: dict[int, str] = {}
        self._frozen = False

    # -- population ------------------------------------------------------

    def _check_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("DocumentCache is frozen; documents cannot be added after discovery")

    def add(self, document: Document) -> int:
        """Insert *document* under its identity and return its index.

        When the document declares a logical base, the base is registered
        as an alias unless another document already owns that URI.

        Raises:
            ValueError: If a document with the same identity is already cached.
        """
        self._check_writable()
        if document.identity in self._index:
            raise ValueError(f"Document already cached: {document.identity}")
        index = len(self._documents)
        self._documents.append(document)
        self._index[document.identity] = index
        if document.logical_base:
            self.alias(document.logical_base, index)
        return index

    def alias(self, uri: str, index: int) -> None:
        """Make *uri* answer for the document at *index*.

        An existing key is never overwritten: physical identities and
        earlier aliases win.
        """
        self._check_writable()
        existing = self._index.get(uri)
        if existing is None:
            self._index[uri] = index
            logger.debug("Registered alias %s -> %s", uri, self._documents[index].identity)
        elif existing != index:
            logger.warning(
                "Alias %s for %s ignored; already bound to %s",
                uri,
                self._documents[index].identity,
                self._documents[existing].identity,
            )

    def register_fragment(self, uri: str, index: int, node: Any, pointer: str = "") -> None:
        """Bind an absolute schema identifier (``$id`` or ``base#anchor``) to *node*.

        The first registration of a URI wins.
        """
        self._check_writable()
        if uri not in self._fragments:
            self._fragments[uri] = FragmentTarget(index, node, pointer)

    def register_base(self, node: Any, base: str) -> None:
        """Record that relative references inside *node* resolve against *base* (its nearest ``$id``)."""
        self._check_writable()
        self._bases[id(node)] = base

    def freeze(self) -> None:
        self._frozen = True

    # -- lookup ----------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    def index_of(self, identity: str) -> Optional[int]:
        return self._index.get(identity)

    def get(self, identity: str) -> Optional[Document]:
        index = self._index.get(identity)
        return None if index is None else self._documents[index]

    def document_at(self, index: int) -> Document:
        return self._documents[index]

    def lookup_fragment(self, uri: str) -> Optional[FragmentTarget]:
        """Return the node registered for a schema identifier, if any."""
        return self._fragments.get(uri)

    def base_of(self, node: Any) -> Optional[str]:
        """Return the ``$id`` scope registered for *node*, if any."""
        return self._bases.get(id(node))

    def documents(self) -> list[Document]:
        """Every cached document once, in discovery order."""
        return list(self._documents)

    def identities(self) -> list[str]:
        return [document.identity for document in self._documents]

    def __contains__(self, identity: object) -> bool:
        return identity in self._index

    def __iter__(self) -> Iterator[Document]:
        return iter(list(self._documents))

    def __len__(self) -> int:
        return len(self._documents)
