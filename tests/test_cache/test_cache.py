"""Tests for the DocumentCache arena."""

from __future__ import annotations

import logging

import pytest

from specgraph.cache import DocumentCache
from specgraph.models import Document


@pytest.fixture()
def cache() -> DocumentCache:
    return DocumentCache()


def _doc(identity: str, tree=None, logical_base=None) -> Document:
    return Document(identity=identity, tree=tree if tree is not None else {}, logical_base=logical_base)


# ------------------------------------------------------------------ #
# Population
# ------------------------------------------------------------------ #


class TestAdd:
    def test_add_returns_sequential_indexes(self, cache: DocumentCache) -> None:
        assert cache.add(_doc("file:///a.yaml")) == 0
        assert cache.add(_doc("file:///b.yaml")) == 1
        assert len(cache) == 2

    def test_lookup_by_identity_and_index(self, cache: DocumentCache) -> None:
        document = _doc("file:///a.yaml", {"openapi": "3.1.0"})
        index = cache.add(document)
        assert cache.get("file:///a.yaml") is document
        assert cache.index_of("file:///a.yaml") == index
        assert cache.document_at(index) is document
        assert "file:///a.yaml" in cache

    def test_unknown_identity(self, cache: DocumentCache) -> None:
        assert cache.get("file:///missing.yaml") is None
        assert cache.index_of("file:///missing.yaml") is None
        assert "file:///missing.yaml" not in cache

    def test_duplicate_identity_rejected(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.yaml"))
        with pytest.raises(ValueError, match="already cached"):
            cache.add(_doc("file:///a.yaml"))

    def test_documents_in_insertion_order(self, cache: DocumentCache) -> None:
        for name in ("c", "a", "b"):
            cache.add(_doc(f"file:///{name}.yaml"))
        assert cache.identities() == ["file:///c.yaml", "file:///a.yaml", "file:///b.yaml"]
        assert [doc.identity for doc in cache] == cache.identities()
        assert [doc.identity for doc in cache.documents()] == cache.identities()


# ------------------------------------------------------------------ #
# Aliases
# ------------------------------------------------------------------ #


class TestAliases:
    def test_logical_base_is_registered(self, cache: DocumentCache) -> None:
        document = _doc("file:///physical/b.yaml", logical_base="https://example.com/b.yaml")
        cache.add(document)
        assert cache.get("https://example.com/b.yaml") is document
        assert len(cache) == 1

    def test_alias_never_overrides_identity(self, cache: DocumentCache, caplog) -> None:
        cache.add(_doc("https://example.com/a.yaml"))
        second = cache.add(_doc("file:///b.yaml"))
        with caplog.at_level(logging.WARNING, logger="specgraph.cache.cache"):
            cache.alias("https://example.com/a.yaml", second)
        assert cache.index_of("https://example.com/a.yaml") == 0
        assert "ignored" in caplog.text

    def test_first_alias_wins(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.yaml"))
        cache.add(_doc("file:///b.yaml"))
        cache.alias("https://example.com/shared.yaml", 0)
        cache.alias("https://example.com/shared.yaml", 1)
        assert cache.index_of("https://example.com/shared.yaml") == 0

    def test_documents_lists_aliased_document_once(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.yaml", logical_base="https://example.com/a.yaml"))
        assert len(cache.documents()) == 1


# ------------------------------------------------------------------ #
# Fragments and scopes
# ------------------------------------------------------------------ #


class TestFragments:
    def test_register_and_lookup(self, cache: DocumentCache) -> None:
        node = {"$anchor": "pet"}
        cache.add(_doc("file:///a.json", {"x": node}))
        cache.register_fragment("file:///a.json#pet", 0, node, "/x")
        target = cache.lookup_fragment("file:///a.json#pet")
        assert target is not None
        assert target.node is node
        assert target.index == 0
        assert target.pointer == "/x"

    def test_first_registration_wins(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.json"))
        cache.register_fragment("https://example.com/pet", 0, {"first": True})
        cache.register_fragment("https://example.com/pet", 0, {"second": True})
        assert cache.lookup_fragment("https://example.com/pet").node == {"first": True}

    def test_base_of_node(self, cache: DocumentCache) -> None:
        node = {"$id": "https://example.com/pet"}
        cache.add(_doc("file:///a.json", {"x": node}))
        cache.register_base(node, "https://example.com/pet")
        assert cache.base_of(node) == "https://example.com/pet"
        assert cache.base_of({"$id": "https://example.com/pet"}) is None


# ------------------------------------------------------------------ #
# Freezing
# ------------------------------------------------------------------ #


class TestFreeze:
    def test_frozen_cache_rejects_writes(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.yaml"))
        cache.freeze()
        assert cache.frozen
        with pytest.raises(RuntimeError, match="frozen"):
            cache.add(_doc("file:///b.yaml"))
        with pytest.raises(RuntimeError):
            cache.alias("https://example.com/a.yaml", 0)
        with pytest.raises(RuntimeError):
            cache.register_fragment("file:///a.yaml#x", 0, {})

    def test_frozen_cache_still_reads(self, cache: DocumentCache) -> None:
        cache.add(_doc("file:///a.yaml"))
        cache.freeze()
        assert cache.get("file:///a.yaml") is not None
