"""Component archive data models: all Pydantic v2, all frozen (immutable)."""

from componentarchive.models.blobs import (
    LOCAL_BLOB_ACCESS_TYPE,
    BlobInfo,
    BlobInput,
    BlobInputType,
)
from componentarchive.models.descriptor import (
    OCI_REGISTRY_TYPE,
    SCHEMA_VERSION,
    Access,
    ComponentDescriptor,
    ComponentReference,
    ComponentSpec,
    DescriptorEntry,
    DescriptorMeta,
    Label,
    ProviderType,
    RepositoryContext,
    Resource,
    ResourceRelation,
    ResourceTemplate,
    Source,
)
from componentarchive.models.identity import IDENTITY_FIELDS, Identity

__all__ = [
    # identity
    "IDENTITY_FIELDS",
    "Identity",
    # blobs
    "LOCAL_BLOB_ACCESS_TYPE",
    "BlobInfo",
    "BlobInput",
    "BlobInputType",
    # descriptor
    "OCI_REGISTRY_TYPE",
    "SCHEMA_VERSION",
    "Access",
    "ComponentDescriptor",
    "ComponentReference",
    "ComponentSpec",
    "DescriptorEntry",
    "DescriptorMeta",
    "Label",
    "ProviderType",
    "RepositoryContext",
    "Resource",
    "ResourceRelation",
    "ResourceTemplate",
    "Source",
]
