"""Tests for specgraph.parser.walker."""

from __future__ import annotations

import asyncio
from collections import Counter

import httpx
import pytest
import yaml

from specgraph.diagnostics import Diagnostics
from specgraph.exceptions import LoadError, ParseError
from specgraph.models import LoaderSettings
from specgraph.parser.walker import discover, discover_async, find_operation_refs, find_refs

BASE = "https://example.com/specs"


def serve(documents: dict, requests: list[str]) -> httpx.MockTransport:
    """Mock HTTP transport serving *documents* as YAML and recording each requested URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requests.append(url)
        if url not in documents:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=yaml.safe_dump(documents[url], sort_keys=False))

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Reference scanning
# ---------------------------------------------------------------------------


class TestFindRefs:
    """Test reference collection within one tree."""

    def test_collects_refs_in_document_order(self) -> None:
        tree = {
            "paths": {"/a": {"$ref": "paths.yaml#/a"}},
            "components": {
                "schemas": {
                    "Pet": {"$ref": "#/components/schemas/Animal"},
                    "Tree": {"$dynamicRef": "#node"},
                    "List": {"items": [{"$ref": "paths.yaml#/a"}, {"$ref": "other.json"}]},
                }
            },
        }
        assert find_refs(tree) == ["paths.yaml#/a", "#/components/schemas/Animal", "#node", "other.json"]

    def test_ignores_non_string_refs(self) -> None:
        assert find_refs({"properties": {"$ref": {"type": "string"}}}) == []

    def test_finds_operation_refs(self) -> None:
        tree = {"links": {"next": {"operationRef": "other.yaml#/paths/~1pets/get"}}}
        assert find_operation_refs(tree) == ["other.yaml#/paths/~1pets/get"]


# ---------------------------------------------------------------------------
# discover (sync)
# ---------------------------------------------------------------------------


class TestDiscover:
    """Test synchronous document discovery."""

    def test_single_document(self, write_spec, petstore_raw) -> None:
        path = write_spec("openapi.yaml", petstore_raw)
        cache = discover(str(path))
        assert len(cache) == 1
        assert cache.document_at(0).identity == path.resolve().as_uri()
        assert cache.frozen

    def test_loads_referenced_files(self, write_spec) -> None:
        root = write_spec(
            "openapi.yaml",
            {"openapi": "3.1.0", "components": {"schemas": {"Widget": {"$ref": "schemas/widget.yaml#/Widget"}}}},
        )
        widget = write_spec("schemas/widget.yaml", {"Widget": {"type": "object"}})
        cache = discover(str(root))
        assert cache.identities() == [root.resolve().as_uri(), widget.resolve().as_uri()]

    def test_mutual_cycle_terminates(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.yaml": {"x": {"$ref": "b.yaml#/y"}},
                f"{BASE}/b.yaml": {"y": {"$ref": "a.yaml#/x"}},
            }
        )
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert cache.identities() == [f"{BASE}/a.yaml", f"{BASE}/b.yaml"]
        assert Counter(fetch.calls) == {f"{BASE}/a.yaml": 1, f"{BASE}/b.yaml": 1}

    def test_self_reference_appears_once(self, memory_fetch) -> None:
        fetch = memory_fetch({f"{BASE}/a.yaml": {"x": {"$ref": "a.yaml#/x"}, "y": {"$ref": "#/x"}}})
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert len(cache) == 1
        assert fetch.calls == [f"{BASE}/a.yaml"]

    def test_shared_dependency_fetched_once(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.yaml": {"b": {"$ref": "b.yaml"}, "c": {"$ref": "c.yaml"}},
                f"{BASE}/b.yaml": {"d": {"$ref": "d.yaml#/D"}},
                f"{BASE}/c.yaml": {"d": {"$ref": "./d.yaml#/D"}},
                f"{BASE}/d.yaml": {"D": {"type": "string"}},
            }
        )
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert len(cache) == 4
        assert fetch.calls.count(f"{BASE}/d.yaml") == 1

    def test_order_is_depth_first_preorder(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.yaml": {"b": {"$ref": "b.yaml"}, "c": {"$ref": "c.yaml"}},
                f"{BASE}/b.yaml": {"d": {"$ref": "d.yaml"}},
                f"{BASE}/c.yaml": {},
                f"{BASE}/d.yaml": {},
            }
        )
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert cache.identities() == [f"{BASE}/a.yaml", f"{BASE}/b.yaml", f"{BASE}/d.yaml", f"{BASE}/c.yaml"]

    def test_relative_refs_use_logical_base(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.yaml": {"w": {"$ref": "b.yaml#/Widget"}},
                f"{BASE}/b.yaml": {
                    "$self": "https://example.com/logical/b.yaml",
                    "Widget": {"$ref": "common.yaml#/Part"},
                },
                "https://example.com/logical/common.yaml": {"Part": {"type": "string"}},
            }
        )
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert cache.identities() == [
            f"{BASE}/a.yaml",
            f"{BASE}/b.yaml",
            "https://example.com/logical/common.yaml",
        ]
        assert cache.get("https://example.com/logical/b.yaml") is cache.get(f"{BASE}/b.yaml")

    def test_link_operation_ref_is_followed(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.yaml": {"links": {"next": {"operationRef": "other.yaml#/paths/~1pets/get"}}},
                f"{BASE}/other.yaml": {"paths": {}},
            }
        )
        cache = discover(f"{BASE}/a.yaml", fetch=fetch)
        assert f"{BASE}/other.yaml" in cache

    def test_registers_schema_ids(self, memory_fetch) -> None:
        fetch = memory_fetch(
            {
                f"{BASE}/a.json": {
                    "components": {
                        "schemas": {
                            "Pet": {
                                "$id": "https://example.com/schemas/pet",
                                "$defs": {"Name": {"$anchor": "name", "type": "string"}},
                            }
                        }
                    }
                }
            }
        )
        cache = discover(f"{BASE}/a.json", fetch=fetch)
        pet = cache.lookup_fragment("https://example.com/schemas/pet")
        name = cache.lookup_fragment("https://example.com/schemas/pet#name")
        assert pet is not None and pet.pointer == "/components/schemas/Pet"
        assert name is not None and name.node == {"$anchor": "name", "type": "string"}

    def test_missing_document_aborts(self, memory_fetch) -> None:
        fetch = memory_fetch({f"{BASE}/a.yaml": {"x": {"$ref": "missing.yaml#/x"}}})
        with pytest.raises(LoadError, match="missing.yaml"):
            discover(f"{BASE}/a.yaml", fetch=fetch)

    def test_malformed_document_aborts(self, memory_fetch) -> None:
        fetch = memory_fetch({f"{BASE}/a.yaml": {"x": {"$ref": "b.json"}}, f"{BASE}/b.json": "{broken"})
        with pytest.raises(ParseError):
            discover(f"{BASE}/a.yaml", fetch=fetch)

    def test_cache_is_frozen_after_discovery(self, memory_fetch) -> None:
        cache = discover(f"{BASE}/a.yaml", fetch=memory_fetch({f"{BASE}/a.yaml": {}}))
        with pytest.raises(RuntimeError, match="frozen"):
            cache.alias("https://example.com/other.yaml", 0)


# ---------------------------------------------------------------------------
# discover_async
# ---------------------------------------------------------------------------


class TestDiscoverAsync:
    """Test concurrent document discovery."""

    def test_fetches_each_identity_once(self) -> None:
        documents = {
            f"{BASE}/a.yaml": {"b": {"$ref": "b.yaml"}, "c": {"$ref": "c.yaml"}},
            f"{BASE}/b.yaml": {"d": {"$ref": "d.yaml#/D"}, "a": {"$ref": "a.yaml"}},
            f"{BASE}/c.yaml": {"d": {"$ref": "d.yaml#/D"}},
            f"{BASE}/d.yaml": {"D": {"type": "string"}},
        }
        requests: list[str] = []

        async def run():
            async with httpx.AsyncClient(transport=serve(documents, requests)) as client:
                return await discover_async(f"{BASE}/a.yaml", client=client)

        cache = asyncio.run(run())
        assert Counter(requests) == {url: 1 for url in documents}
        assert len(cache) == 4

    def test_order_matches_sync_discovery(self, memory_fetch) -> None:
        documents = {
            f"{BASE}/a.yaml": {"b": {"$ref": "b.yaml"}, "c": {"$ref": "c.yaml"}},
            f"{BASE}/b.yaml": {"d": {"$ref": "d.yaml"}},
            f"{BASE}/c.yaml": {"b": {"$ref": "b.yaml"}},
            f"{BASE}/d.yaml": {},
        }

        async def run():
            async with httpx.AsyncClient(transport=serve(documents, [])) as client:
                return await discover_async(f"{BASE}/a.yaml", settings=LoaderSettings(max_concurrency=1), client=client)

        async_cache = asyncio.run(run())
        sync_cache = discover(f"{BASE}/a.yaml", fetch=memory_fetch(documents))
        assert async_cache.identities() == sync_cache.identities()

    def test_http_error_aborts(self) -> None:
        async def run():
            async with httpx.AsyncClient(transport=serve({f"{BASE}/a.yaml": {"x": {"$ref": "gone.yaml"}}}, [])) as client:
                await discover_async(f"{BASE}/a.yaml", client=client)

        with pytest.raises(LoadError, match="HTTP 404"):
            asyncio.run(run())

    def test_failure_cancels_pending_siblings(self) -> None:
        entry = f"{BASE}/a.yaml"
        cancelled: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if url == entry:
                return httpx.Response(200, json={"slow": {"$ref": "slow.yaml"}, "gone": {"$ref": "gone.yaml"}})
            if url.endswith("gone.yaml"):
                return httpx.Response(404)
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(url)
                raise
            return httpx.Response(200, json={})

        async def run() -> list[str]:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                with pytest.raises(LoadError, match="HTTP 404"):
                    await discover_async(entry, client=client)
                return list(cancelled)

        assert asyncio.run(run()) == [f"{BASE}/slow.yaml"]

    def test_reads_local_files(self, write_spec) -> None:
        root = write_spec("openapi.yaml", {"openapi": "3.1.0", "components": {"schemas": {"A": {"$ref": "a.yaml"}}}})
        write_spec("a.yaml", {"type": "string"})
        diagnostics = Diagnostics()
        cache = asyncio.run(discover_async(str(root), diagnostics=diagnostics))
        assert len(cache) == 2
        assert diagnostics.count() == 0
