"""Shared test fixtures for componentarchive."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from componentarchive.core.archive_store import ArchiveStore, ComponentArchive
from componentarchive.core.editor import ArchiveEditor
from componentarchive.core.storage import MemoryStorage
from componentarchive.models.descriptor import Resource

COMPONENT_NAME = "github.com/acme/frontend"
COMPONENT_VERSION = "1.0.0"
REGISTRY_URL = "registry.example.com/components"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test archives and templates."""
    return tmp_path


@pytest.fixture
def store() -> ArchiveStore:
    """Provide an ArchiveStore on the local filesystem."""
    return ArchiveStore()


@pytest.fixture
def editor(store: ArchiveStore) -> ArchiveEditor:
    """Provide an ArchiveEditor wired to the local-filesystem store."""
    return ArchiveEditor(store)


@pytest.fixture
def archive(store: ArchiveStore, tmp_dir: Path) -> ComponentArchive:
    """Provide a freshly initialized archive under the temp directory."""
    return store.init(tmp_dir / "archive", COMPONENT_NAME, COMPONENT_VERSION, [REGISTRY_URL])


@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Provide an empty in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def memory_store(memory_storage: MemoryStorage) -> ArchiveStore:
    """Provide an ArchiveStore backed by memory."""
    return ArchiveStore(memory_storage)


@pytest.fixture
def memory_editor(memory_store: ArchiveStore) -> ArchiveEditor:
    """Provide an ArchiveEditor backed by memory."""
    return ArchiveEditor(memory_store)


@pytest.fixture
def memory_archive(memory_store: ArchiveStore) -> ComponentArchive:
    """Provide an initialized in-memory archive at ``/archive``."""
    return memory_store.init("/archive", COMPONENT_NAME, COMPONENT_VERSION, [REGISTRY_URL])


# ---------------------------------------------------------------------------
# Template factories shared across test modules
# ---------------------------------------------------------------------------


def dump_documents(*documents: Any) -> str:
    """Render documents as one multi-document YAML stream."""
    return yaml.safe_dump_all(list(documents), sort_keys=False)


@pytest.fixture
def write_template(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write documents as a multi-document YAML file."""

    def _factory(*documents: Any, name: str = "template.yaml") -> Path:
        path = tmp_dir / name
        path.write_text(dump_documents(*documents), encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def make_resource_template() -> Callable[..., dict[str, Any]]:
    """Factory fixture: an external OCI image resource template."""

    def _factory(name: str = "myimage", version: str = "0.2.0", **overrides: Any) -> dict[str, Any]:
        template: dict[str, Any] = {
            "name": name,
            "type": "ociImage",
            "relation": "external",
            "version": version,
            "access": {
                "type": "ociRegistry",
                "imageReference": f"example.registry/img:{version}",
            },
        }
        template.update(overrides)
        return template

    return _factory


@pytest.fixture
def make_resource(make_resource_template: Callable[..., dict[str, Any]]) -> Callable[..., Resource]:
    """Factory fixture: a validated Resource model."""

    def _factory(**overrides: Any) -> Resource:
        return Resource.model_validate(make_resource_template(**overrides))

    return _factory
