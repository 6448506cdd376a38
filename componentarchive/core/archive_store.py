"""Directory-backed component archive store.

Archive layout::

    {archive}/component-descriptor.yaml
    {archive}/blobs/{sha256[0:2]}/{sha256[2:4]}/sha256.{sha256}

The store is the only component that touches persistent storage.  The
descriptor is always replaced atomically, and blobs are content-addressed:
writing a digest that is already present is a no-op.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

import yaml
from pydantic import ValidationError

from componentarchive.core.hasher import format_digest, parse_digest
from componentarchive.core.repository_context import add_repository_context
from componentarchive.core.storage import LocalStorage, Storage
from componentarchive.core.validation import validate_descriptor
from componentarchive.errors import (
    ArchiveExists,
    ArchiveNotFound,
    MalformedDescriptor,
    PersistenceFailed,
    SchemaValidationFailed,
)
from componentarchive.models.blobs import BlobInfo
from componentarchive.models.descriptor import (
    OCI_REGISTRY_TYPE,
    SCHEMA_VERSION,
    ComponentDescriptor,
    ComponentSpec,
    ProviderType,
)

logger = logging.getLogger(__name__)

COMPONENT_DESCRIPTOR_FILE = "component-descriptor.yaml"
BLOBS_DIR = "blobs"


def serialize_descriptor(descriptor: ComponentDescriptor) -> bytes:
    """Deterministic YAML rendering of a descriptor (model field order)."""
    return yaml.safe_dump(
        descriptor.to_dict(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    ).encode("utf-8")


def parse_descriptor(data: bytes | str, origin: str = "<descriptor>") -> ComponentDescriptor:
    """Decode descriptor YAML (or JSON) into a ``ComponentDescriptor``.

    Raises ``MalformedDescriptor`` for undecodable content and for schema
    versions other than ``v2``.
    """
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise MalformedDescriptor(f"invalid YAML: {exc}", origin=origin) from exc
    if not isinstance(raw, dict):
        raise MalformedDescriptor("component descriptor must be a mapping", origin=origin)

    try:
        descriptor = ComponentDescriptor.model_validate(raw)
    except ValidationError as exc:
        raise MalformedDescriptor(f"unable to decode component descriptor: {exc}", origin=origin) from exc

    if descriptor.meta.schema_version != SCHEMA_VERSION:
        raise MalformedDescriptor(
            f"unsupported schema version {descriptor.meta.schema_version!r}", origin=origin
        )
    return descriptor


class ComponentArchive:
    """A component descriptor bound to the directory holding its blobs.

    ``descriptor`` is replaced (never mutated in place) as entries are
    merged; ``ArchiveStore.persist`` writes the current value back.
    """

    def __init__(self, path: Path, descriptor: ComponentDescriptor) -> None:
        self.path = Path(path)
        self.descriptor = descriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def version(self) -> str:
        return self.descriptor.version

    def __repr__(self) -> str:
        return f"ComponentArchive(path={str(self.path)!r}, component={self.name}:{self.version})"


class ArchiveStore:
    """Loads, initializes and persists component archives.

    Parameters
    ----------
    storage:
        Backend used for every read and write.  Defaults to the local
        filesystem; tests pass a ``MemoryStorage``.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage or LocalStorage()

    @property
    def storage(self) -> Storage:
        return self._storage

    @staticmethod
    def descriptor_path(archive_path: Path | str) -> Path:
        return Path(archive_path) / COMPONENT_DESCRIPTOR_FILE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(
        self,
        path: Path | str,
        name: str,
        version: str,
        registry_urls: list[str] | tuple[str, ...] = (),
        *,
        provider: ProviderType | str = ProviderType.INTERNAL,
        registry_type: str = OCI_REGISTRY_TYPE,
    ) -> ComponentArchive:
        """Create an archive with an empty descriptor at ``path``.

        The directory is created when absent.  Fails when ``path`` is a
        file or already holds a component descriptor.
        """
        path = Path(path)
        try:
            info = self._storage.stat(path)
        except FileNotFoundError:
            try:
                self._storage.makedirs(path)
            except OSError as exc:
                raise PersistenceFailed(f"unable to create archive directory: {exc}", origin=str(path)) from exc
        except OSError as exc:
            raise PersistenceFailed(f"unable to read archive directory: {exc}", origin=str(path)) from exc
        else:
            if not info.is_dir:
                raise PersistenceFailed(f"{str(path)!r} is not a directory", origin=str(path))

        if self._storage.exists(self.descriptor_path(path)):
            raise ArchiveExists("a component descriptor already exists", origin=str(path))

        contexts = []
        for url in registry_urls:
            contexts = add_repository_context(contexts, registry_type, url)

        descriptor = ComponentDescriptor(
            component=ComponentSpec(
                name=name,
                version=version,
                provider=ProviderType(provider),
                repository_contexts=contexts,
            )
        )
        archive = ComponentArchive(path, descriptor)
        self.persist(archive)
        logger.info("Initialized component archive %s:%s at %s", name, version, path)
        return archive

    def load(self, path: Path | str) -> ComponentArchive:
        """Read the descriptor of the archive at ``path``."""
        path = Path(path)
        descriptor_file = self.descriptor_path(path)
        try:
            data = self._storage.read_bytes(descriptor_file)
        except (FileNotFoundError, NotADirectoryError):
            raise ArchiveNotFound(
                f"no {COMPONENT_DESCRIPTOR_FILE} found", origin=str(path)
            ) from None
        except OSError as exc:
            raise MalformedDescriptor(f"unable to read component descriptor: {exc}", origin=str(path)) from exc

        descriptor = parse_descriptor(data, origin=str(descriptor_file))
        logger.debug("Loaded component archive %s:%s from %s", descriptor.name, descriptor.version, path)
        return ComponentArchive(path, descriptor)

    def persist(self, archive: ComponentArchive) -> None:
        """Validate and atomically rewrite the archive's descriptor file."""
        errors = validate_descriptor(archive.descriptor)
        if errors:
            raise SchemaValidationFailed(errors)

        data = serialize_descriptor(archive.descriptor)
        try:
            self._storage.write_atomic(self.descriptor_path(archive.path), data)
        except OSError as exc:
            raise PersistenceFailed(
                f"unable to write component descriptor of {str(archive.path)!r}: {exc}"
            ) from exc
        logger.debug("Persisted component descriptor of %r", archive)

    def get_version(self, archive: ComponentArchive) -> str:
        return archive.descriptor.version

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    def blob_path(self, archive: ComponentArchive, digest: str) -> Path:
        """Compute the storage path for a digest.

        Layout: {archive}/blobs/{sha256[0:2]}/{sha256[2:4]}/sha256.{sha256}
        """
        hex_digest = parse_digest(digest)
        return archive.path / BLOBS_DIR / hex_digest[:2] / hex_digest[2:4] / f"sha256.{hex_digest}"

    def has_blob(self, archive: ComponentArchive, digest: str) -> bool:
        return self._storage.exists(self.blob_path(archive, digest))

    def put_blob(self, archive: ComponentArchive, info: BlobInfo, reader: BinaryIO) -> BlobInfo:
        """Store blob content under its digest.

        If the digest is already present the write is skipped: the stored
        bytes are trusted to match since they are addressed by their hash.
        """
        path = self.blob_path(archive, info.digest)
        if self._storage.exists(path):
            logger.debug("Blob %s already present in %r", info.digest, archive)
            return info
        try:
            self._storage.makedirs(path.parent)
            self._storage.write_atomic(path, reader)
        except OSError as exc:
            raise PersistenceFailed(
                f"unable to store blob {info.digest} in {str(archive.path)!r}: {exc}"
            ) from exc
        logger.debug("Stored blob %s (%d bytes) in %r", info.digest, info.size, archive)
        return info

    def open_blob(self, archive: ComponentArchive, digest: str) -> BinaryIO:
        path = self.blob_path(archive, digest)
        try:
            return self._storage.open_read(path)
        except FileNotFoundError:
            raise ArchiveNotFound(f"blob {digest} not found", origin=str(archive.path)) from None

    def list_blobs(self, archive: ComponentArchive) -> list[str]:
        """Digests of every blob stored in the archive, sorted."""
        root = archive.path / BLOBS_DIR
        if not self._storage.exists(root):
            return []
        digests: list[str] = []
        for _dirpath, _dirnames, filenames in self._storage.walk(root):
            for filename in filenames:
                try:
                    digests.append(format_digest(parse_digest(filename)))
                except ValueError:
                    logger.warning("Ignoring unexpected file %s in blob store of %r", filename, archive)
        return sorted(digests)
