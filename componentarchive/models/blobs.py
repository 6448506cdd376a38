"""Blob models: local input specifications and stored blob metadata."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

LOCAL_BLOB_ACCESS_TYPE = "localFilesystemBlob"


class BlobInputType(str, Enum):
    """Kind of local content referenced by a resource template."""

    FILE = "file"
    DIR = "dir"


class BlobInput(BaseModel):
    """Local blob specification of a resource template (the ``input`` block).

    ``path`` is resolved relative to the directory of the template file
    unless it is absolute.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    type: BlobInputType
    path: str
    compress: bool = False
    exclude: str | None = None
    media_type: str | None = Field(default=None, alias="mediaType")


class BlobInfo(BaseModel):
    """Metadata of a content-addressed blob.

    The digest has the form ``sha256:<hex>`` and is both the identity and
    the storage key of the blob.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    digest: str
    size: int
    media_type: str = Field(default="application/octet-stream", alias="mediaType")

    @property
    def hex_digest(self) -> str:
        return self.digest.removeprefix("sha256:")

    @property
    def filename(self) -> str:
        """Blob file name inside the archive, e.g. ``sha256.<hex>``."""
        return self.digest.replace(":", ".", 1)
