"""Shared test fixtures for specgraph.

Provides a reusable petstore document, helpers for writing multi-document
graphs to disk, an in-memory transport for discovery, a cache builder that
skips I/O entirely, and an isolated configuration environment.  These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import copy
import json
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from specgraph.cache import DocumentCache
from specgraph.exceptions import LoadError
from specgraph.models import Document
from specgraph.parser.loader import _logical_base
from specgraph.parser.walker import index_schema_ids


PETSTORE: dict[str, Any] = {
    "openapi": "3.1.0",
    "info": {
        "title": "Petstore API",
        "version": "1.0.0",
        "license": {"name": "MIT", "identifier": "MIT"},
    },
    "servers": [{"url": "https://petstore.example.com/v1"}],
    "paths": {
        "/pets": {
            "get": {
                "operationId": "listPets",
                "tags": ["pets"],
                "parameters": [{"name": "limit", "in": "query", "schema": {"type": "integer"}}],
                "responses": {
                    "200": {
                        "description": "A list of pets",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}}
                            }
                        },
                    }
                },
            },
            "post": {
                "operationId": "createPet",
                "tags": ["pets"],
                "requestBody": {"$ref": "#/components/requestBodies/PetBody"},
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/pets/{petId}": {
            "parameters": [{"$ref": "#/components/parameters/PetId"}],
            "get": {
                "operationId": "showPetById",
                "responses": {
                    "200": {"$ref": "#/components/responses/PetResponse"},
                    "default": {"description": "Unexpected error"},
                },
            },
            "delete": {
                "operationId": "deletePet",
                "security": [],
                "responses": {"204": {"description": "Deleted"}},
            },
        },
    },
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "description": "A pet in the store",
                "required": ["id", "name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "tag": {"type": "string"},
                },
            }
        },
        "parameters": {
            "PetId": {"name": "petId", "in": "path", "required": True, "schema": {"type": "integer"}},
        },
        "requestBodies": {
            "PetBody": {
                "required": True,
                "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
            }
        },
        "responses": {
            "PetResponse": {
                "description": "A pet",
                "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
            }
        },
        "securitySchemes": {"api_key": {"type": "apiKey", "name": "X-API-Key", "in": "header"}},
    },
    "security": [{"api_key": []}],
    "tags": [{"name": "pets"}],
}


def serialize(name: str, content: Any) -> str:
    """Render *content* as text; YAML for ``.yaml``/``.yml`` names, JSON otherwise."""
    if isinstance(content, str):
        return textwrap.dedent(content)
    if name.endswith((".yaml", ".yml")):
        return yaml.safe_dump(content, sort_keys=False)
    return json.dumps(content, indent=2)


class MemoryFetch:
    """A ``fetch(identity) -> text`` transport backed by a dict, recording every call."""

    def __init__(self, documents: dict[str, Any]):
        self.documents = documents
        self.calls: list[str] = []

    def __call__(self, identity: str) -> str:
        self.calls.append(identity)
        if identity not in self.documents:
            raise LoadError(f"Document not found: {identity}", locator=identity)
        return serialize(identity, self.documents[identity])


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """A fresh, valid OpenAPI 3.1 petstore document."""
    return copy.deepcopy(PETSTORE)


# ---------------------------------------------------------------------------
# Document graph helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a document under tmp_path and return its path.

    Strings are dedented and written verbatim; dicts are serialized as
    YAML or JSON depending on the file extension.
    """

    def write(name: str, content: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(serialize(name, content), encoding="utf-8")
        return path

    return write


@pytest.fixture
def memory_fetch() -> type[MemoryFetch]:
    """Factory for in-memory transports: ``memory_fetch({identity: content})``."""
    return MemoryFetch


@pytest.fixture
def build_cache() -> Callable[..., DocumentCache]:
    """Build a frozen cache from ``(identity, tree)`` pairs without any I/O.

    Documents are added in the given order, so the first pair is the entry
    document.  ``$self``, ``$id`` and anchors are registered the same way
    discovery registers them.
    """

    def build(*documents: tuple[str, Any]) -> DocumentCache:
        cache = DocumentCache()
        for identity, tree in documents:
            index = cache.add(Document(identity=identity, tree=tree, logical_base=_logical_base(tree, identity)))
            index_schema_ids(cache, index)
        cache.freeze()
        return cache

    return build


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Clears all SPECGRAPH_* environment variables and changes the working
    directory to tmp_path so that ``./specgraph.json`` lookups never see a
    real project file.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in ["SPECGRAPH_TIMEOUT", "SPECGRAPH_VERIFY_SSL", "SPECGRAPH_MAX_CONCURRENCY"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
