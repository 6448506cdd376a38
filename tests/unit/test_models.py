"""Tests for the descriptor, identity and blob models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from componentarchive.models import (
    Access,
    BlobInfo,
    BlobInput,
    BlobInputType,
    ComponentDescriptor,
    ComponentReference,
    ComponentSpec,
    Identity,
    Label,
    RepositoryContext,
    Resource,
    ResourceRelation,
    ResourceTemplate,
    Source,
)

HEX = "ab" * 32


class TestIdentity:
    def test_equal_identities_hash_equal(self):
        a = Identity(name="x", version="1.0.0", type="git", extra_identity={"a": "1", "b": "2"})
        b = Identity(name="x", version="1.0.0", type="git", extra_identity={"b": "2", "a": "1"})
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_extra_identity_distinguishes(self):
        a = Identity(name="x", version="1.0.0", type="git", extra_identity={"arch": "amd64"})
        b = Identity(name="x", version="1.0.0", type="git", extra_identity={"arch": "arm64"})
        assert a != b

    def test_str(self):
        ident = Identity(name="x", version="1.0.0", type="git", extra_identity={"arch": "amd64"})
        assert str(ident) == "x:1.0.0 (git) [arch=amd64]"

    def test_identity_ignores_relation_and_access(self):
        a = Resource(
            name="img", version="1.0.0", type="ociImage",
            relation=ResourceRelation.EXTERNAL, access=Access(type="ociRegistry"),
        )
        b = Resource(
            name="img", version="1.0.0", type="ociImage",
            relation=ResourceRelation.LOCAL, access=Access(type="localFilesystemBlob"),
        )
        assert a.identity == b.identity


class TestDescriptorEntry:
    @pytest.mark.parametrize("version", [1.1, 8, 2])
    def test_numeric_version_rejected(self, version):
        with pytest.raises(ValidationError, match="quote it"):
            Source.model_validate({"name": "repo", "version": version, "type": "git"})

    def test_quoted_version_kept_verbatim(self):
        source = Source.model_validate({"name": "repo", "version": "1.10", "type": "git"})
        assert source.version == "1.10"

    def test_numeric_extra_identity_value_rejected(self):
        with pytest.raises(ValidationError, match="quote it"):
            Source.model_validate(
                {"name": "repo", "version": "1.0.0", "type": "git", "extraIdentity": {"build": 1.1}}
            )

    def test_numeric_component_version_rejected(self):
        with pytest.raises(ValidationError):
            ComponentSpec.model_validate({"name": "github.com/acme/app", "version": 1.0})

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Source.model_validate({"name": "repo", "version": "1.0.0", "type": "git", "colour": "red"})

    def test_empty_labels_and_extra_identity_omitted(self):
        source = Source(name="repo", version="1.0.0", type="git")
        assert source.model_dump(by_alias=True) == {"name": "repo", "version": "1.0.0", "type": "git"}

    def test_labels_kept_when_set(self):
        source = Source(name="repo", version="1.0.0", type="git", labels=[Label(name="team", value="a")])
        assert source.model_dump(by_alias=True)["labels"] == [{"name": "team", "value": "a"}]

    def test_reference_omits_empty_type(self):
        ref = ComponentReference(name="db", version="2.0.0", component_name="github.com/acme/db")
        dumped = ref.model_dump(by_alias=True)
        assert "type" not in dumped
        assert dumped["componentName"] == "github.com/acme/db"


class TestAccess:
    def test_extra_keys_preserved(self):
        access = Access.model_validate({"type": "ociRegistry", "imageReference": "r/img:1"})
        assert access.model_dump() == {"type": "ociRegistry", "imageReference": "r/img:1"}

    def test_local_blob(self):
        info = BlobInfo(digest=f"sha256:{HEX}", size=3, media_type="text/plain")
        access = Access.local_blob(info)
        assert access.type == "localFilesystemBlob"
        assert access.model_dump() == {
            "type": "localFilesystemBlob",
            "filename": f"sha256.{HEX}",
            "mediaType": "text/plain",
        }


class TestResourceTemplate:
    def test_input_parsed(self):
        template = ResourceTemplate.model_validate({
            "name": "chart",
            "type": "helmChart",
            "relation": "local",
            "input": {"type": "dir", "path": "chart/", "compress": True, "exclude": "*.bak"},
        })
        assert template.input == BlobInput(
            type=BlobInputType.DIR, path="chart/", compress=True, exclude="*.bak"
        )

    def test_unknown_input_type_rejected(self):
        with pytest.raises(ValidationError):
            ResourceTemplate.model_validate({"name": "x", "input": {"type": "socket", "path": "p"}})

    def test_to_resource_drops_input(self):
        template = ResourceTemplate.model_validate({
            "name": "chart",
            "version": "1.0.0",
            "type": "helmChart",
            "relation": "local",
            "input": {"type": "file", "path": "chart.tgz"},
        })
        access = Access(type="localFilesystemBlob")
        resource = template.to_resource(access=access)
        assert type(resource) is Resource
        assert resource.access == access
        assert resource.identity == template.identity
        assert "input" not in resource.model_dump()

    def test_to_resource_keeps_access(self):
        template = ResourceTemplate.model_validate(
            {"name": "img", "version": "1.0.0", "type": "ociImage", "access": {"type": "ociRegistry"}}
        )
        assert template.to_resource().access == Access(type="ociRegistry")


class TestRepositoryContext:
    @pytest.mark.parametrize("key", ["baseUrl", "baseURL", "base_url"])
    def test_base_url_aliases(self, key: str):
        context = RepositoryContext.model_validate({"type": "ociRegistry", key: "r.example.com"})
        assert context.base_url == "r.example.com"

    def test_serialized_as_base_url(self):
        context = RepositoryContext(base_url="r.example.com")
        assert context.model_dump(by_alias=True) == {"type": "ociRegistry", "baseUrl": "r.example.com"}


class TestComponentDescriptor:
    def test_wire_layout(self):
        descriptor = ComponentDescriptor(
            component=ComponentSpec(
                name="github.com/acme/app",
                version="1.0.0",
                repository_contexts=[RepositoryContext(base_url="r.example.com")],
            )
        )
        assert descriptor.to_dict() == {
            "meta": {"schemaVersion": "v2"},
            "component": {
                "name": "github.com/acme/app",
                "version": "1.0.0",
                "provider": "internal",
                "repositoryContexts": [{"type": "ociRegistry", "baseUrl": "r.example.com"}],
                "sources": [],
                "componentReferences": [],
                "resources": [],
            },
        }

    def test_null_collections_become_empty(self):
        descriptor = ComponentDescriptor.model_validate({
            "meta": {"schemaVersion": "v2"},
            "component": {"name": "a", "version": "1.0.0", "resources": None, "sources": None},
        })
        assert descriptor.component.resources == []
        assert descriptor.component.sources == []

    def test_replace_component_returns_copy(self):
        descriptor = ComponentDescriptor(component=ComponentSpec(name="a", version="1.0.0"))
        source = Source(name="repo", version="1.0.0", type="git")
        updated = descriptor.replace_component(sources=[source])
        assert updated.component.sources == [source]
        assert descriptor.component.sources == []

    def test_frozen(self):
        descriptor = ComponentDescriptor(component=ComponentSpec(name="a", version="1.0.0"))
        with pytest.raises(ValidationError):
            descriptor.component.name = "b"  # type: ignore[misc]


class TestBlobInfo:
    def test_filename_and_hex(self):
        info = BlobInfo(digest=f"sha256:{HEX}", size=1)
        assert info.filename == f"sha256.{HEX}"
        assert info.hex_digest == HEX
        assert info.media_type == "application/octet-stream"
