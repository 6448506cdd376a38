"""Adversarial tests: malformed, conflicting and hostile template input.

These tests verify that the add pipeline:
1. Stops at the first malformed document and names it
2. Rejects resources that define both access and input
3. Never persists an invalid descriptor
4. Leaves the previous descriptor intact when a write fails
"""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from componentarchive.core.archive_store import ArchiveStore, ComponentArchive
from componentarchive.core.editor import ArchiveEditor
from componentarchive.core.storage import MemoryStorage
from componentarchive.errors import (
    ComponentArchiveError,
    ConflictingResourceSource,
    InputUnreadable,
    MalformedDescriptor,
    MalformedTemplate,
    PersistenceFailed,
    SchemaValidationFailed,
)


class TestMalformedTemplates:
    @pytest.mark.parametrize(
        "body",
        [
            "name: [unterminated\n",
            "just a string\n",
            "- a\n- list\n",
            "name: x\naccess: 5\n",
            "name: x\ninput: {type: socket, path: /dev/null}\n",
            "name: x\n!!python/object:os.system {}\n",
        ],
    )
    def test_rejected_without_changes(
        self, editor: ArchiveEditor, store: ArchiveStore, archive: ComponentArchive, body: str
    ):
        before = store.descriptor_path(archive.path).read_bytes()
        with pytest.raises(MalformedTemplate) as exc_info:
            editor.add_resources(archive.path, None, io.BytesIO(body.encode()))
        assert exc_info.value.document == 1
        assert store.descriptor_path(archive.path).read_bytes() == before

    def test_later_documents_not_processed(
        self,
        editor: ArchiveEditor,
        store: ArchiveStore,
        archive: ComponentArchive,
        make_resource_template: Callable[..., dict[str, Any]],
    ):
        good = yaml.safe_dump(make_resource_template(name="good"))
        after = yaml.safe_dump(make_resource_template(name="after"))
        stream = f"{good}---\n[broken\n---\n{after}"
        with pytest.raises(MalformedTemplate) as exc_info:
            editor.add_resources(archive.path, None, io.BytesIO(stream.encode()))
        assert exc_info.value.document == 2
        assert [r.name for r in store.load(archive.path).descriptor.component.resources] == ["good"]

    def test_error_message_locates_document(self, editor: ArchiveEditor, archive: ComponentArchive):
        with pytest.raises(ComponentArchiveError) as exc_info:
            editor.add_sources(archive.path, None, io.BytesIO(b"name: a\nversion: 1.0.0\ntype: git\n---\n42\n"))
        assert str(exc_info.value).startswith("document 2 of '<stdin>'")


class TestConflictingSources:
    def test_access_and_input(
        self,
        editor: ArchiveEditor,
        store: ArchiveStore,
        archive: ComponentArchive,
        make_resource_template: Callable[..., dict[str, Any]],
    ):
        template = make_resource_template(input={"type": "file", "path": "/etc/hostname"})
        with pytest.raises(ConflictingResourceSource):
            editor.add_resources(archive.path, None, io.BytesIO(yaml.safe_dump(template).encode()))
        assert store.list_blobs(store.load(archive.path)) == []

    def test_neither_access_nor_input(self, editor: ArchiveEditor, archive: ComponentArchive):
        template = {"name": "img", "version": "1.0.0", "type": "ociImage", "relation": "external"}
        with pytest.raises(SchemaValidationFailed) as exc_info:
            editor.add_resources(archive.path, None, io.BytesIO(yaml.safe_dump(template).encode()))
        assert [e.field for e in exc_info.value.errors] == ["access"]


class TestHostileInputs:
    def test_reserved_extra_identity_key(self, editor: ArchiveEditor, archive: ComponentArchive):
        template = {"name": "repo", "version": "1.0.0", "type": "git", "extraIdentity": {"version": "2.0.0"}}
        with pytest.raises(SchemaValidationFailed):
            editor.add_sources(archive.path, None, io.BytesIO(yaml.safe_dump(template).encode()))

    def test_directory_symlink_loop(self, editor: ArchiveEditor, archive: ComponentArchive, tmp_dir: Path):
        loop = tmp_dir / "loop"
        loop.symlink_to(loop)
        template = {
            "name": "data", "type": "blob", "relation": "local",
            "input": {"type": "file", "path": str(loop)},
        }
        with pytest.raises(InputUnreadable):
            editor.add_resources(archive.path, None, io.BytesIO(yaml.safe_dump(template).encode()))

    def test_corrupted_descriptor(self, editor: ArchiveEditor, store: ArchiveStore, archive: ComponentArchive):
        store.descriptor_path(archive.path).write_text("component: {name: [\n")
        with pytest.raises(MalformedDescriptor):
            editor.add_sources(archive.path, None, io.BytesIO(b""))


class TestPersistenceFailure:
    def test_previous_descriptor_survives(self, make_resource_template: Callable[..., dict[str, Any]]):
        class _FlakyStorage(MemoryStorage):
            writes_left = 2

            def write_atomic(self, path, data):
                if self.writes_left == 0:
                    raise OSError("no space left on device")
                self.writes_left -= 1
                super().write_atomic(path, data)

        storage = _FlakyStorage()
        editor = ArchiveEditor(ArchiveStore(storage))
        editor.store.init("/a", "github.com/acme/app", "1.0.0")
        stream = yaml.safe_dump_all([make_resource_template(name=n) for n in ("one", "two", "three")])

        with pytest.raises(PersistenceFailed) as exc_info:
            editor.add_resources("/a", None, io.BytesIO(stream.encode()))

        assert exc_info.value.document == 2
        names = [r.name for r in editor.store.load("/a").descriptor.component.resources]
        assert names == ["one"]
