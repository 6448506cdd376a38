"""Component archive: local builder for cdv2 component descriptors.

A component archive is a directory holding ``component-descriptor.yaml``
and a content-addressed ``blobs/`` store.  Resources, sources and
component references are upserted by identity from streamed YAML/JSON
templates; local resource inputs (files or whole directories) are digested
and stored as ``localFilesystemBlob`` blobs.
"""

__version__ = "0.1.0"
__description__ = "Build and edit component archives (component descriptor v2 + local blobs)"

from componentarchive.core.archive_store import ArchiveStore, ComponentArchive
from componentarchive.core.editor import AddReport, ArchiveEditor
from componentarchive.cli.app import app as cli

__all__ = [
    "AddReport",
    "ArchiveEditor",
    "ArchiveStore",
    "ComponentArchive",
    "cli",
    "__version__",
]
