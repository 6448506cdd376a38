"""Blob resolver: turns a resource ``input`` block into a digested blob.

``file`` inputs are copied as-is (or gzip-compressed); ``dir`` inputs are
packaged into a deterministic tar stream (optionally gzip-compressed).  The
bytes are spooled to a temporary file while they are hashed, so the digest
describes exactly the bytes that ``ResolvedBlob.open()`` later yields, and
nothing is written to the archive here.
"""

from __future__ import annotations

import errno
import gzip
import logging
import os
import posixpath
import tarfile
import tempfile
from collections.abc import Callable, Iterator
from fnmatch import fnmatch
from pathlib import Path
from typing import BinaryIO

from componentarchive.core.hasher import CHUNK_SIZE, HashingWriter
from componentarchive.core.storage import LocalStorage, Storage
from componentarchive.errors import InputNotFound, InputUnreadable
from componentarchive.models.blobs import BlobInfo, BlobInput, BlobInputType

logger = logging.getLogger(__name__)

DEFAULT_SPOOL_MAX_BYTES = 16 * 1024 * 1024

MEDIA_TYPE_OCTET_STREAM = "application/octet-stream"
MEDIA_TYPE_TAR = "application/x-tar"
MEDIA_TYPE_GZIP = "application/gzip"


class ResolvedBlob:
    """A digested blob whose bytes can be (re-)opened on demand.

    Parameters
    ----------
    info:
        Digest, size and media type of the blob.
    opener:
        Zero-argument callable returning a fresh binary reader positioned
        at the start of the blob.
    """

    def __init__(self, info: BlobInfo, opener: Callable[[], BinaryIO]) -> None:
        self.info = info
        self._opener = opener

    @property
    def digest(self) -> str:
        return self.info.digest

    @property
    def size(self) -> int:
        return self.info.size

    @property
    def media_type(self) -> str:
        return self.info.media_type

    def open(self) -> BinaryIO:
        return self._opener()


def resolve_input_path(blob_input: BlobInput, base_dir: Path | str | None) -> Path:
    """Resolve ``blob_input.path`` against the template directory."""
    path = Path(os.path.expanduser(blob_input.path))
    if path.is_absolute() or base_dir is None:
        return path
    return Path(base_dir) / path


def resolve_blob(
    blob_input: BlobInput,
    base_dir: Path | str | None = None,
    storage: Storage | None = None,
    *,
    media_type: str | None = None,
    spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
) -> ResolvedBlob:
    """Digest the content described by ``blob_input``.

    Parameters
    ----------
    blob_input:
        The ``input`` block of a resource template.
    base_dir:
        Directory relative paths are resolved against (the directory of
        the template file).
    storage:
        Backend to read the input from.  Defaults to the local filesystem.
    media_type:
        Fallback media type when the input does not name one.
    spool_max_bytes:
        Packaged/compressed content above this size spills from memory to
        a temporary file.

    Raises
    ------
    InputNotFound
        If the input path does not exist.
    InputUnreadable
        If the path has the wrong kind or cannot be read or walked.
    """
    storage = storage or LocalStorage()
    path = resolve_input_path(blob_input, base_dir)

    try:
        stat = storage.stat(path)
    except FileNotFoundError:
        raise InputNotFound(f"input path {str(path)!r} does not exist") from None
    except OSError as exc:
        raise InputUnreadable(f"unable to stat input {str(path)!r}: {exc}") from exc

    if blob_input.type == BlobInputType.FILE:
        if stat.is_dir:
            raise InputUnreadable(f"input {str(path)!r} is a directory but type 'file' was given")
        return _resolve_file(blob_input, path, storage, media_type, spool_max_bytes)

    if not stat.is_dir:
        raise InputUnreadable(f"input {str(path)!r} is not a directory but type 'dir' was given")
    return _resolve_dir(blob_input, path, storage, spool_max_bytes)


# ---------------------------------------------------------------------------
# file
# ---------------------------------------------------------------------------


def _resolve_file(
    blob_input: BlobInput,
    path: Path,
    storage: Storage,
    media_type: str | None,
    spool_max_bytes: int,
) -> ResolvedBlob:
    base_media_type = blob_input.media_type or media_type or MEDIA_TYPE_OCTET_STREAM

    spool = tempfile.SpooledTemporaryFile(max_size=spool_max_bytes)
    writer = HashingWriter(spool)
    try:
        with _open_input(storage, path) as reader:
            if blob_input.compress:
                with _gzip_writer(writer) as compressed:
                    _copy(reader, compressed, path)
            else:
                _copy(reader, writer, path)
    except BaseException:
        spool.close()
        raise

    if blob_input.compress:
        base_media_type = f"{base_media_type}+gzip"
    info = BlobInfo(digest=writer.digest, size=writer.size, media_type=base_media_type)
    logger.debug("Hashed input file %s to %s (%d bytes)", path, info.digest, info.size)
    return ResolvedBlob(info, _spool_opener(spool))


# ---------------------------------------------------------------------------
# dir
# ---------------------------------------------------------------------------


def iter_directory(
    root: Path, storage: Storage, exclude: str | None = None
) -> Iterator[tuple[str, Path, bool]]:
    """Yield ``(relative_posix_path, absolute_path, is_dir)`` in sorted order.

    Directories precede their contents and siblings are visited
    lexicographically, so the sequence is independent of the order the
    filesystem lists entries in.  Entries whose relative path or base name
    match ``exclude`` are skipped; an excluded directory prunes its subtree.
    """

    def _excluded(rel: str) -> bool:
        return exclude is not None and (
            fnmatch(rel, exclude) or fnmatch(posixpath.basename(rel), exclude)
        )

    try:
        for dirpath, dirnames, filenames in storage.walk(root):
            rel_dir = dirpath.relative_to(root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir

            kept_dirs = [d for d in dirnames if not _excluded(posixpath.join(rel_dir, d))]
            dirnames[:] = kept_dirs

            for name in filenames:
                rel = posixpath.join(rel_dir, name)
                if not _excluded(rel):
                    yield rel, dirpath / name, False
            for name in kept_dirs:
                yield posixpath.join(rel_dir, name), dirpath / name, True
    except OSError as exc:
        raise InputUnreadable(f"unable to walk input directory {str(root)!r}: {exc}") from exc


def _resolve_dir(
    blob_input: BlobInput, root: Path, storage: Storage, spool_max_bytes: int
) -> ResolvedBlob:
    entries = sorted(iter_directory(root, storage, blob_input.exclude))

    spool = tempfile.SpooledTemporaryFile(max_size=spool_max_bytes)
    writer = HashingWriter(spool)
    try:
        if blob_input.compress:
            with _gzip_writer(writer) as compressed:
                _write_tar(compressed, entries, storage)
        else:
            _write_tar(writer, entries, storage)
    except BaseException:
        spool.close()
        raise

    media_type = blob_input.media_type or (
        MEDIA_TYPE_GZIP if blob_input.compress else MEDIA_TYPE_TAR
    )
    info = BlobInfo(digest=writer.digest, size=writer.size, media_type=media_type)
    logger.debug(
        "Packaged %d entries from %s into %s (%d bytes)",
        len(entries),
        root,
        info.digest,
        info.size,
    )
    return ResolvedBlob(info, _spool_opener(spool))


def _write_tar(target: BinaryIO, entries: list[tuple[str, Path, bool]], storage: Storage) -> None:
    with tarfile.open(fileobj=target, mode="w|", format=tarfile.PAX_FORMAT) as tar:
        for rel, path, is_dir in entries:
            try:
                stat = storage.stat(path)
            except OSError as exc:
                raise InputUnreadable(f"unable to stat {str(path)!r}: {exc}") from exc
            info = tarfile.TarInfo(rel)
            info.mode = stat.mode
            info.mtime = 0
            info.uid = info.gid = 0
            info.uname = info.gname = ""
            if is_dir:
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
                continue
            info.size = stat.size
            with _open_input(storage, path) as reader:
                try:
                    tar.addfile(info, reader)
                except OSError as exc:
                    raise InputUnreadable(f"unable to read {str(path)!r}: {exc}") from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_input(storage: Storage, path: Path) -> BinaryIO:
    try:
        return storage.open_read(path)
    except FileNotFoundError:
        raise InputNotFound(f"input path {str(path)!r} does not exist") from None
    except OSError as exc:
        if exc.errno == errno.ELOOP:
            raise InputUnreadable(f"symlink loop at {str(path)!r}") from exc
        raise InputUnreadable(f"unable to open input {str(path)!r}: {exc}") from exc


def _gzip_writer(target: HashingWriter) -> gzip.GzipFile:
    # fixed mtime and no embedded file name keep the digest reproducible
    return gzip.GzipFile(filename="", mode="wb", fileobj=target, mtime=0)  # type: ignore[arg-type]


def _copy(reader: BinaryIO, writer: BinaryIO, path: Path) -> None:
    try:
        while chunk := reader.read(CHUNK_SIZE):
            writer.write(chunk)
    except OSError as exc:
        raise InputUnreadable(f"unable to read input {str(path)!r}: {exc}") from exc


def _spool_opener(spool: tempfile.SpooledTemporaryFile) -> Callable[[], BinaryIO]:
    def _open() -> BinaryIO:
        spool.seek(0)
        return _Unclosable(spool)

    return _open


class _Unclosable:
    """Reader view of a spool that survives ``close()`` so it can be reopened."""

    def __init__(self, spool: tempfile.SpooledTemporaryFile) -> None:
        self._spool = spool

    def read(self, size: int = -1) -> bytes:
        return self._spool.read(size)

    def close(self) -> None:
        pass

    def __enter__(self) -> _Unclosable:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
