"""In-memory document cache for one resolution session.

This package provides :class:`DocumentCache`, the arena of loaded
documents keyed by absolute identity.  It is populated once by the
walker (:func:`~specgraph.parser.walker.discover`), frozen, and then read
by the resolver, the polymorphism resolver, the validator and the view
builder.
"""

from specgraph.cache.cache import DocumentCache, FragmentTarget

__all__ = ["DocumentCache", "FragmentTarget"]
