"""Streaming SHA-256 helpers for content addressing.

Digests are rendered as ``sha256:<hex>``, the form used in blob
metadata and as the key of the archive's blob store.
"""

from __future__ import annotations

import hashlib
from typing import BinaryIO

DIGEST_ALGORITHM = "sha256"
CHUNK_SIZE = 64 * 1024


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def format_digest(hex_digest: str) -> str:
    """Render a hex digest as ``sha256:<hex>``."""
    return f"{DIGEST_ALGORITHM}:{hex_digest}"


def parse_digest(digest: str) -> str:
    """Strip the ``sha256:`` (or ``sha256.``) prefix from a digest.

    Raises ``ValueError`` for other algorithms or non-hex values.
    """
    for prefix in (f"{DIGEST_ALGORITHM}:", f"{DIGEST_ALGORITHM}."):
        if digest.startswith(prefix):
            digest = digest[len(prefix):]
            break
    if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
        raise ValueError(f"not a sha256 digest: {digest!r}")
    return digest


def hash_stream(reader: BinaryIO) -> tuple[str, int]:
    """Hash a byte stream chunk by chunk.

    Returns ``(digest, size)`` with the digest in ``sha256:<hex>`` form.
    """
    hasher = hashlib.sha256()
    size = 0
    while chunk := reader.read(CHUNK_SIZE):
        hasher.update(chunk)
        size += len(chunk)
    return format_digest(hasher.hexdigest()), size


class HashingWriter:
    """Write-through file wrapper that digests everything written to it.

    Used when content is produced on the fly (tar packaging, gzip) so that
    the digest reflects exactly the bytes landing in ``target``.
    """

    def __init__(self, target: BinaryIO) -> None:
        self._target = target
        self._hasher = hashlib.sha256()
        self._size = 0

    def write(self, data: bytes) -> int:
        self._hasher.update(data)
        self._size += len(data)
        return self._target.write(data)

    def flush(self) -> None:
        self._target.flush()

    @property
    def digest(self) -> str:
        return format_digest(self._hasher.hexdigest())

    @property
    def size(self) -> int:
        return self._size
