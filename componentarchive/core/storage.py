"""Storage backends for component archives.

The archive store and the blob resolver only talk to a ``Storage``: a small
capability set (stat, read, atomic write, walk).  ``LocalStorage`` maps it
onto the operating system; ``MemoryStorage`` keeps everything in a dict so
merge and digest logic can be exercised without touching disk.
"""

from __future__ import annotations

import contextlib
import errno
import io
import logging
import os
import posixpath
import shutil
import stat as stat_module
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, NamedTuple, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
WriteSource = Union[bytes, BinaryIO]


class FileStat(NamedTuple):
    is_dir: bool
    size: int
    mode: int


@runtime_checkable
class Storage(Protocol):
    """Protocol every archive storage backend implements.

    Missing paths raise ``FileNotFoundError``; all other failures surface as
    ``OSError`` subclasses.
    """

    def stat(self, path: PathLike) -> FileStat:
        """Return type, size and permission bits of ``path``."""
        ...

    def exists(self, path: PathLike) -> bool:
        ...

    def makedirs(self, path: PathLike) -> None:
        """Create ``path`` and its parents; a no-op for existing directories."""
        ...

    def open_read(self, path: PathLike) -> BinaryIO:
        ...

    def read_bytes(self, path: PathLike) -> bytes:
        ...

    def write_atomic(self, path: PathLike, data: WriteSource) -> None:
        """Replace ``path`` with ``data`` so readers see either old or new content."""
        ...

    def walk(self, top: PathLike) -> Iterator[tuple[Path, list[str], list[str]]]:
        """Top-down walk yielding ``(dirpath, dirnames, filenames)``.

        Names are sorted; callers may prune ``dirnames`` in place.  Directory
        symlinks are descended into.
        """
        ...


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalStorage:
    """``Storage`` backed by the local filesystem."""

    def stat(self, path: PathLike) -> FileStat:
        st = os.stat(path)
        return FileStat(
            is_dir=stat_module.S_ISDIR(st.st_mode),
            size=st.st_size,
            mode=stat_module.S_IMODE(st.st_mode),
        )

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: PathLike) -> None:
        os.makedirs(path, exist_ok=True)

    def open_read(self, path: PathLike) -> BinaryIO:
        return open(path, "rb")

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def write_atomic(self, path: PathLike, data: WriteSource) -> None:
        """Write via a temp file in the target directory, fsync, then ``os.replace``."""
        target = Path(path)
        target_parent = target.parent.resolve(strict=True)
        if not target_parent.is_dir():
            raise NotADirectoryError(f"{target_parent!s} is not a directory")

        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=".tmp",
            dir=str(target_parent),
        )
        temp_path = Path(temp_name)

        try:
            with os.fdopen(fd, "wb") as file_handle:
                if isinstance(data, (bytes, bytearray)):
                    file_handle.write(data)
                else:
                    shutil.copyfileobj(data, file_handle)
                file_handle.flush()
                os.fsync(file_handle.fileno())
            os.chmod(temp_path, 0o644)
            os.replace(temp_path, target)
        except BaseException:
            with contextlib.suppress(OSError):
                temp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s atomically", target)

    def walk(self, top: PathLike) -> Iterator[tuple[Path, list[str], list[str]]]:
        """Walk ``top`` following directory symlinks.

        A symlink leading back to one of its own ancestors raises
        ``OSError(ELOOP)``.
        """

        def _raise(exc: OSError) -> None:
            raise exc

        # directory -> (st_dev, st_ino) of itself and every ancestor
        chains: dict[Path, frozenset[tuple[int, int]]] = {Path(top): frozenset({_dir_key(top)})}
        for dirpath, dirnames, filenames in os.walk(top, onerror=_raise, followlinks=True):
            dirnames.sort()
            filenames.sort()
            current = Path(dirpath)
            yield current, dirnames, filenames

            # checked after the caller pruned dirnames
            chain = chains.pop(current)
            for name in dirnames:
                child = current / name
                key = _dir_key(child)
                if key in chain:
                    raise OSError(errno.ELOOP, "directory symlink loop", str(child))
                chains[child] = chain | {key}


def _dir_key(path: PathLike) -> tuple[int, int]:
    st = os.stat(path)
    return st.st_dev, st.st_ino


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


def _key(path: PathLike) -> str:
    return posixpath.normpath(os.fspath(path).replace("\\", "/"))


def _parent(key: str) -> str:
    return posixpath.dirname(key) or "."


class MemoryStorage:
    """``Storage`` kept entirely in memory.

    Relative and absolute paths live side by side; ``.`` and ``/`` always
    exist as directories.
    """

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._modes: dict[str, int] = {}
        self._dirs: set[str] = {".", "/"}

    def stat(self, path: PathLike) -> FileStat:
        key = _key(path)
        if key in self._dirs:
            return FileStat(is_dir=True, size=0, mode=0o755)
        if key in self._files:
            return FileStat(is_dir=False, size=len(self._files[key]), mode=self._modes[key])
        raise FileNotFoundError(f"No such file or directory: {os.fspath(path)!r}")

    def exists(self, path: PathLike) -> bool:
        key = _key(path)
        return key in self._dirs or key in self._files

    def makedirs(self, path: PathLike) -> None:
        key = _key(path)
        while key not in self._dirs:
            if key in self._files:
                raise FileExistsError(f"File exists: {key!r}")
            self._dirs.add(key)
            key = _parent(key)

    def open_read(self, path: PathLike) -> BinaryIO:
        return io.BytesIO(self.read_bytes(path))

    def read_bytes(self, path: PathLike) -> bytes:
        key = _key(path)
        if key in self._dirs:
            raise IsADirectoryError(f"Is a directory: {key!r}")
        try:
            return self._files[key]
        except KeyError:
            raise FileNotFoundError(f"No such file or directory: {key!r}") from None

    def write_atomic(self, path: PathLike, data: WriteSource) -> None:
        self.write_file(path, data if isinstance(data, (bytes, bytearray)) else data.read())

    def write_file(self, path: PathLike, data: bytes, *, mode: int = 0o644) -> None:
        """Create or replace a file; the parent directory must exist."""
        key = _key(path)
        if key in self._dirs:
            raise IsADirectoryError(f"Is a directory: {key!r}")
        if _parent(key) not in self._dirs:
            raise FileNotFoundError(f"No such directory: {_parent(key)!r}")
        self._files[key] = bytes(data)
        self._modes[key] = mode

    def walk(self, top: PathLike) -> Iterator[tuple[Path, list[str], list[str]]]:
        root = _key(top)
        if root not in self._dirs:
            raise FileNotFoundError(f"No such directory: {root!r}")
        pending = [root]
        while pending:
            current = pending.pop()
            dirnames = sorted(
                posixpath.basename(d) for d in self._dirs if d != current and _parent(d) == current
            )
            filenames = sorted(
                posixpath.basename(f) for f in self._files if _parent(f) == current
            )
            yield Path(current), dirnames, filenames
            # reversed so that the lexicographically first child is walked first
            pending.extend(_key(posixpath.join(current, d)) for d in reversed(dirnames))
