"""Component descriptor models (schema ``v2``).

The descriptor is serialized in the cdv2 layout::

    meta:
      schemaVersion: v2
    component:
      name: ...
      version: ...
      provider: internal
      repositoryContexts: [...]
      sources: [...]
      componentReferences: [...]
      resources: [...]

Python attributes are snake_case; the wire format uses the camelCase
aliases.  All models are frozen; updates go through ``model_copy``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
)

from componentarchive.models.blobs import LOCAL_BLOB_ACCESS_TYPE, BlobInfo, BlobInput
from componentarchive.models.identity import Identity

SCHEMA_VERSION = "v2"
OCI_REGISTRY_TYPE = "ociRegistry"


def reject_number(value: Any) -> Any:
    """Refuse YAML numbers where a string is expected.

    An unquoted ``1.10`` decodes to the float ``1.1`` and ``010`` to the
    integer ``8``; the written text cannot be recovered, so such values must
    be quoted.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        raise ValueError(f"expected a string, got the number {value!r} (quote it)")
    return value


class ResourceRelation(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class ProviderType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class Label(BaseModel):
    """Arbitrary name/value annotation attached to an entry."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: Any = None


class Access(BaseModel):
    """Pointer to externally hosted content.

    Only ``type`` is fixed; every other key (``imageReference``,
    ``filename``, ``mediaType`` ...) is kept as given.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str

    @classmethod
    def local_blob(cls, info: BlobInfo) -> Access:
        """Access pointing at a blob stored inside the archive."""
        return cls(type=LOCAL_BLOB_ACCESS_TYPE, filename=info.filename, mediaType=info.media_type)


class RepositoryContext(BaseModel):
    """A registry location the component is (or will be) stored in."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = OCI_REGISTRY_TYPE
    base_url: str = Field(
        alias="baseUrl",
        validation_alias=AliasChoices("baseUrl", "baseURL", "base_url"),
    )


class DescriptorEntry(BaseModel):
    """Identity fields and labels shared by resources, sources and references."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    # fields dropped from the serialized form when empty
    omit_when_empty: ClassVar[tuple[str, ...]] = ("extra_identity", "labels")

    name: str = ""
    version: str = ""
    type: str = ""
    extra_identity: dict[str, str] = Field(default_factory=dict, alias="extraIdentity")
    labels: list[Label] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> Any:
        return reject_number(value)

    @field_validator("extra_identity", mode="before")
    @classmethod
    def _check_extra_identity(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            for key, item in value.items():
                reject_number(key)
                reject_number(item)
        return value

    @model_serializer(mode="wrap")
    def _drop_empty(self, handler: Any) -> dict[str, Any]:
        data = handler(self)
        for field_name in self.omit_when_empty:
            alias = type(self).model_fields[field_name].alias or field_name
            for key in (field_name, alias):
                if key in data and data[key] in (None, "", [], {}):
                    del data[key]
        return data

    @property
    def identity(self) -> Identity:
        return Identity(
            name=self.name,
            version=self.version,
            type=self.type,
            extra_identity=dict(self.extra_identity),
        )


class Resource(DescriptorEntry):
    """An artifact owned or referenced by the component."""

    relation: ResourceRelation | None = None
    access: Access | None = None


class ResourceTemplate(Resource):
    """A resource as written by the user: may carry a local ``input``.

    ``access`` and ``input`` are alternatives; a template never reaches the
    descriptor with ``input`` set: the blob is stored first and turned into
    a ``localFilesystemBlob`` access via :meth:`to_resource`.
    """

    input: BlobInput | None = None

    def to_resource(self, access: Access | None = None) -> Resource:
        data = self.model_dump(exclude={"input", "access"})
        data["access"] = access if access is not None else self.access
        return Resource.model_validate(data)


class Source(DescriptorEntry):
    """Origin repository of the component's code (e.g. ``type: git``)."""


class ComponentReference(DescriptorEntry):
    """Dependency edge to another component's descriptor."""

    omit_when_empty: ClassVar[tuple[str, ...]] = ("type", "extra_identity", "labels")

    component_name: str = Field(default="", alias="componentName")


class DescriptorMeta(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: str = Field(default=SCHEMA_VERSION, alias="schemaVersion")


class ComponentSpec(BaseModel):
    """The ``component`` block of a descriptor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    version: str
    provider: ProviderType = ProviderType.INTERNAL
    repository_contexts: list[RepositoryContext] = Field(
        default_factory=list, alias="repositoryContexts"
    )
    sources: list[Source] = Field(default_factory=list)
    component_references: list[ComponentReference] = Field(
        default_factory=list, alias="componentReferences"
    )
    resources: list[Resource] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> Any:
        return reject_number(value)

    @field_validator(
        "repository_contexts", "sources", "component_references", "resources", mode="before"
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ComponentDescriptor(BaseModel):
    """A versioned component with its resources, sources and references."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    meta: DescriptorMeta = Field(default_factory=DescriptorMeta)
    component: ComponentSpec

    @property
    def name(self) -> str:
        return self.component.name

    @property
    def version(self) -> str:
        return self.component.version

    def replace_component(self, **changes: Any) -> ComponentDescriptor:
        """Return a copy with the given ``component`` fields replaced."""
        return self.model_copy(update={"component": self.component.model_copy(update=changes)})

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (aliases, enums as values, ``None`` omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
