"""End-to-end tests for specgraph.engine: discover, validate, view."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
import yaml

from specgraph import (
    LoadError,
    ResolutionFailure,
    SpecGraph,
    SpecValidationError,
    load_spec_graph,
    load_spec_graph_async,
)
from specgraph.models import LoaderSettings

BASE = "https://example.com/specs"
ENTRY = f"{BASE}/openapi.yaml"
OK = {"200": {"description": "OK"}}


def _api(paths: dict[str, Any], **sections: Any) -> dict[str, Any]:
    return {"openapi": "3.1.0", "info": {"title": "T", "version": "1"}, "paths": paths, **sections}


def _load(memory_fetch, documents: dict[str, Any]) -> SpecGraph:
    return load_spec_graph(ENTRY, fetch=memory_fetch(documents), settings=LoaderSettings())


# ---------------------------------------------------------------------------
# Successful sessions
# ---------------------------------------------------------------------------


class TestLoadSpecGraph:
    """Test complete sessions."""

    def test_files_on_disk(self, isolated_config, write_spec, petstore_raw) -> None:
        pet = petstore_raw["components"]["schemas"]["Pet"]
        petstore_raw["components"]["schemas"]["Pet"] = {"$ref": "schemas/pet.yaml"}
        root = write_spec("openapi.yaml", petstore_raw)
        write_spec("schemas/pet.yaml", pet)

        graph = load_spec_graph(str(root))

        assert graph.entry_identity == root.resolve().as_uri()
        assert graph.entry_document.tree["info"]["title"] == "Petstore API"
        assert len(graph.cache) == 2
        assert graph.resolve_reference("#/components/schemas/Pet")["required"] == ["id", "name"]
        assert [op.operation_id for op in graph.view.operations] == [
            "listPets",
            "createPet",
            "showPetById",
            "deletePet",
        ]
        assert graph.diagnostics.count() == 0

    def test_resolve_reference_object(self, memory_fetch, petstore_raw) -> None:
        graph = _load(memory_fetch, {ENTRY: petstore_raw})
        body = graph.resolve({"$ref": "#/components/requestBodies/PetBody", "description": "Override"})
        assert body["required"] is True
        assert body["description"] == "Override"

    def test_swagger2_entry(self, memory_fetch) -> None:
        tree = {
            "swagger": "2.0",
            "info": {"title": "Legacy", "version": "1"},
            "host": "legacy.example.com",
            "paths": {"/ping": {"get": {"operationId": "ping", "responses": OK}}},
        }
        graph = _load(memory_fetch, {ENTRY: tree})
        assert graph.view.spec_type == "swagger"
        assert [s.url for s in graph.view.servers] == ["https://legacy.example.com/"]

    def test_polymorphic_options_record_diagnostics(self, memory_fetch) -> None:
        schemas = {
            "Pet": {
                "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Fish"}],
                "required": ["petType"],
                "discriminator": {"propertyName": "petType"},
            },
            "Cat": {"type": "object", "properties": {"petType": {"type": "string", "enum": ["cat"]}}},
            "Fish": {"type": "object", "properties": {"petType": {"type": "string"}}},
        }
        graph = _load(memory_fetch, {ENTRY: _api({}, components={"schemas": schemas})})
        options = graph.polymorphic_options({"$ref": "#/components/schemas/Pet"})
        assert [option.name for option in options] == ["cat"]
        assert graph.diagnostics.count() == 1


class TestDialect:
    """Test jsonSchemaDialect diagnostics."""

    def test_custom_dialect_is_a_warning(self, memory_fetch, petstore_raw) -> None:
        petstore_raw["jsonSchemaDialect"] = "https://example.com/dialects/custom"
        graph = _load(memory_fetch, {ENTRY: petstore_raw})
        assert graph.diagnostics.count() == 1
        entry = graph.diagnostics.warnings[0]
        assert "custom jsonSchemaDialect" in entry.message
        assert entry.location == f"{ENTRY}#/jsonSchemaDialect"
        assert graph.view.json_schema_dialect == "https://example.com/dialects/custom"

    @pytest.mark.parametrize(
        "dialect",
        ["https://spec.openapis.org/oas/3.1/dialect/base", "https://json-schema.org/draft/2020-12/schema"],
    )
    def test_known_dialects_are_silent(self, memory_fetch, petstore_raw, dialect: str) -> None:
        petstore_raw["jsonSchemaDialect"] = dialect
        assert _load(memory_fetch, {ENTRY: petstore_raw}).diagnostics.count() == 0


# ---------------------------------------------------------------------------
# Aborted sessions
# ---------------------------------------------------------------------------


class TestAbort:
    """Test errors that abort a session."""

    def test_validation_error_in_entry(self, memory_fetch) -> None:
        with pytest.raises(SpecValidationError, match="missing a corresponding 'in: path'"):
            _load(memory_fetch, {ENTRY: _api({"/items/{id}": {"get": {"responses": OK}}})})

    def test_validation_error_in_referenced_api_document(self, memory_fetch) -> None:
        documents = {
            ENTRY: _api({"/more": {"$ref": "other.yaml#/paths/~1more"}}),
            f"{BASE}/other.yaml": _api({"/more": {"get": {"operationId": "more"}}}),
        }
        with pytest.raises(SpecValidationError, match="must define 'responses'"):
            _load(memory_fetch, documents)

    def test_duplicate_operation_id_across_documents(self, memory_fetch) -> None:
        documents = {
            ENTRY: _api(
                {
                    "/pets": {"get": {"operationId": "listPets", "responses": OK}},
                    "/more": {"$ref": "other.yaml#/paths/~1more"},
                }
            ),
            f"{BASE}/other.yaml": _api({"/more": {"get": {"operationId": "listPets", "responses": OK}}}),
        }
        with pytest.raises(SpecValidationError) as exc_info:
            _load(memory_fetch, documents)
        assert exc_info.value.message == (
            'Duplicate operationId "listPets" found across OpenAPI documents: '
            f"{ENTRY}::/pets GET, {BASE}/other.yaml::/more GET"
        )

    def test_missing_referenced_document(self, memory_fetch, petstore_raw) -> None:
        petstore_raw["components"]["schemas"]["Pet"] = {"$ref": "schemas/pet.yaml"}
        with pytest.raises(LoadError, match="schemas/pet.yaml"):
            _load(memory_fetch, {ENTRY: petstore_raw})

    def test_dangling_response_reference(self, memory_fetch) -> None:
        paths = {"/pets": {"get": {"responses": {"200": {"$ref": "#/components/responses/Missing"}}}}}
        with pytest.raises(ResolutionFailure, match="Missing"):
            _load(memory_fetch, {ENTRY: _api(paths, components={})})


# ---------------------------------------------------------------------------
# Async sessions
# ---------------------------------------------------------------------------


class TestLoadSpecGraphAsync:
    """Test the async session entry point."""

    def test_loads_over_http(self, petstore_raw) -> None:
        pet = petstore_raw["components"]["schemas"]["Pet"]
        petstore_raw["components"]["schemas"]["Pet"] = {"$ref": "schemas/pet.yaml"}
        documents = {ENTRY: petstore_raw, f"{BASE}/schemas/pet.yaml": pet}
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requests.append(url)
            if url not in documents:
                return httpx.Response(404)
            return httpx.Response(200, text=yaml.safe_dump(documents[url], sort_keys=False))

        async def run() -> SpecGraph:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await load_spec_graph_async(ENTRY, settings=LoaderSettings(), client=client)

        graph = asyncio.run(run())
        assert sorted(requests) == sorted(documents)
        assert graph.entry_identity == ENTRY
        assert len(graph.view.operations) == 4
        assert graph.view.servers[0].url == "https://petstore.example.com/v1"
