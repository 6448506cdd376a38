"""Single-file transport form of a component archive.

``export_archive`` packs the descriptor and every stored blob into one tar
(optionally gzip-compressed) file.  Members are sorted and carry no
timestamps or ownership, so exporting the same archive twice yields the
same bytes.  ``import_archive`` unpacks such a file into a directory
archive, refusing members that would land outside the destination, and
verifies the result by loading it.
"""

from __future__ import annotations

import gzip
import io
import logging
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, NamedTuple

from componentarchive.core.archive_store import (
    BLOBS_DIR,
    COMPONENT_DESCRIPTOR_FILE,
    ArchiveStore,
    ComponentArchive,
    serialize_descriptor,
)
from componentarchive.core.hasher import HashingWriter, format_digest, hash_stream, parse_digest
from componentarchive.core.storage import LocalStorage, Storage
from componentarchive.errors import (
    ArchiveExists,
    InputNotFound,
    InputUnreadable,
    PersistenceFailed,
)

logger = logging.getLogger(__name__)

_FILE_MODE = 0o644


class ExportResult(NamedTuple):
    path: Path
    digest: str
    size: int
    members: tuple[str, ...]


def export_archive(
    archive_path: Path | str,
    output: Path | str,
    *,
    compress: bool = False,
    storage: Storage | None = None,
) -> ExportResult:
    """Write the archive at ``archive_path`` as a tar file to ``output``.

    The archive is loaded (and thereby checked) before anything is written;
    ``output`` is replaced atomically.

    Parameters
    ----------
    archive_path:
        Directory holding ``component-descriptor.yaml`` and ``blobs/``.
    output:
        Target file.
    compress:
        Gzip the tar stream.
    storage:
        Backend for reading the archive and writing ``output``.
    """
    store = ArchiveStore(storage)
    archive = store.load(archive_path)
    output = Path(output)

    # (member name, inline bytes, blob digest); blobs carry no inline bytes
    members: list[tuple[str, bytes | None, str]] = [
        (COMPONENT_DESCRIPTOR_FILE, serialize_descriptor(archive.descriptor), "")
    ]
    for digest in store.list_blobs(archive):
        hex_digest = parse_digest(digest)
        name = f"{BLOBS_DIR}/{hex_digest[:2]}/{hex_digest[2:4]}/sha256.{hex_digest}"
        members.append((name, None, digest))
    members.sort(key=lambda member: member[0])

    with tempfile.TemporaryFile() as spool:
        writer = HashingWriter(spool)
        if compress:
            with gzip.GzipFile(filename="", mode="wb", fileobj=writer, mtime=0) as compressed:  # type: ignore[arg-type]
                _write_members(compressed, store, archive, members)
        else:
            _write_members(writer, store, archive, members)

        spool.seek(0)
        try:
            store.storage.write_atomic(output, spool)
        except OSError as exc:
            raise PersistenceFailed(f"unable to write export {str(output)!r}: {exc}") from exc

    result = ExportResult(
        path=output,
        digest=writer.digest,
        size=writer.size,
        members=tuple(name for name, _data, _digest in members),
    )
    logger.info("Exported %r to %s (%d members, %s)", archive, output, len(result.members), result.digest)
    return result


def _write_members(
    target: BinaryIO,
    store: ArchiveStore,
    archive: ComponentArchive,
    members: list[tuple[str, bytes | None, str]],
) -> None:
    with tarfile.open(fileobj=target, mode="w|", format=tarfile.PAX_FORMAT) as tar:
        for name, data, digest in members:
            info = _tar_info(name)
            if data is not None:
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
                continue
            with store.open_blob(archive, digest) as reader:
                info.size = store.storage.stat(store.blob_path(archive, digest)).size
                tar.addfile(info, reader)


def _tar_info(name: str) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name)
    info.mode = _FILE_MODE
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def member_path(name: str) -> PurePosixPath:
    """Validate a tar member name and return it as a relative path.

    Raises ``InputUnreadable`` for absolute names and names containing
    ``..`` or empty segments.
    """
    relative = PurePosixPath(name.replace("\\", "/"))
    if relative.is_absolute():
        raise InputUnreadable(f"unsafe absolute path in export: {name!r}")
    parts = [part for part in relative.parts if part != "."]
    if not parts or any(part in ("", "..") for part in parts):
        raise InputUnreadable(f"unsafe path in export: {name!r}")
    return PurePosixPath(*parts)


def import_archive(
    tar_path: Path | str,
    dest: Path | str,
    *,
    storage: Storage | None = None,
) -> ComponentArchive:
    """Unpack an exported archive into the directory ``dest``.

    Links, devices and paths escaping ``dest`` are refused before anything
    is written, and each blob must hash to the digest in its file name.
    The unpacked archive is loaded and returned.
    """
    storage = storage or LocalStorage()
    store = ArchiveStore(storage)
    tar_path = Path(tar_path)
    dest = Path(dest)

    if storage.exists(ArchiveStore.descriptor_path(dest)):
        raise ArchiveExists("a component descriptor already exists", origin=str(dest))

    try:
        handle = storage.open_read(tar_path)
    except FileNotFoundError:
        raise InputNotFound(f"export file {str(tar_path)!r} does not exist") from None
    except OSError as exc:
        raise InputUnreadable(f"unable to read export file {str(tar_path)!r}: {exc}") from exc

    with handle:
        try:
            with tarfile.open(fileobj=handle, mode="r:*") as tar:
                members = _checked_members(tar)
                if PurePosixPath(COMPONENT_DESCRIPTOR_FILE) not in {path for _m, path in members}:
                    raise InputUnreadable(
                        f"export {str(tar_path)!r} holds no {COMPONENT_DESCRIPTOR_FILE}"
                    )
                for member, relative in members:
                    _extract_member(tar, member, relative, dest, storage)
        except tarfile.TarError as exc:
            raise InputUnreadable(f"unable to unpack {str(tar_path)!r}: {exc}") from exc

    archive = store.load(dest)
    logger.info("Imported %s into %r", tar_path, archive)
    return archive


def _checked_members(tar: tarfile.TarFile) -> list[tuple[tarfile.TarInfo, PurePosixPath]]:
    checked: list[tuple[tarfile.TarInfo, PurePosixPath]] = []
    for member in tar.getmembers():
        relative = member_path(member.name)
        if member.isdir():
            checked.append((member, relative))
            continue
        if member.issym() or member.islnk():
            raise InputUnreadable(f"link member {member.name!r} is not allowed in an export")
        if not member.isfile():
            raise InputUnreadable(f"unsupported member type for {member.name!r}")
        checked.append((member, relative))
    return checked


def _extract_member(
    tar: tarfile.TarFile,
    member: tarfile.TarInfo,
    relative: PurePosixPath,
    dest: Path,
    storage: Storage,
) -> None:
    target = dest.joinpath(*relative.parts)
    try:
        if member.isdir():
            storage.makedirs(target)
            return

        if relative.parts[0] == BLOBS_DIR:
            _verify_blob(tar, member, relative)

        source = tar.extractfile(member)
        if source is None:
            raise InputUnreadable(f"unable to extract {member.name!r}")
        storage.makedirs(target.parent)
        with source:
            storage.write_atomic(target, source)
    except OSError as exc:
        raise PersistenceFailed(f"unable to write {str(target)!r}: {exc}") from exc
    logger.debug("Extracted %s", target)


def _verify_blob(tar: tarfile.TarFile, member: tarfile.TarInfo, relative: PurePosixPath) -> None:
    try:
        expected = format_digest(parse_digest(relative.name))
    except ValueError:
        raise InputUnreadable(f"unexpected blob file {member.name!r}") from None
    source = tar.extractfile(member)
    if source is None:
        raise InputUnreadable(f"unable to extract {member.name!r}")
    with source:
        actual, _size = hash_stream(source)
    if actual != expected:
        raise InputUnreadable(f"blob {member.name!r} has digest {actual}, expected {expected}")
