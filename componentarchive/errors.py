"""Error taxonomy for component archive operations.

Every failure raised by the library derives from ``ComponentArchiveError``.
Errors carry optional location context (``origin`` of the template stream,
1-based ``document`` ordinal and the entry ``identity``) so that the caller
can point at the offending input.  Only the CLI catches these errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from componentarchive.core.validation import SchemaError
    from componentarchive.models.identity import Identity


class ComponentArchiveError(RuntimeError):
    """Base class for all component archive failures."""

    def __init__(
        self,
        message: str,
        *,
        origin: str | None = None,
        document: int | None = None,
        identity: Identity | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.origin = origin
        self.document = document
        self.identity = identity

    def with_context(
        self,
        *,
        origin: str | None = None,
        document: int | None = None,
        identity: Identity | None = None,
    ) -> ComponentArchiveError:
        """Fill in location context that is not yet set and return ``self``."""
        if self.origin is None:
            self.origin = origin
        if self.document is None:
            self.document = document
        if self.identity is None:
            self.identity = identity
        return self

    def __str__(self) -> str:
        location: list[str] = []
        if self.document is not None:
            location.append(f"document {self.document}")
        if self.origin:
            location.append(f"of {self.origin!r}" if location else f"in {self.origin!r}")
        if self.identity is not None:
            location.append(f"({self.identity})")
        if not location:
            return self.message
        return f"{' '.join(location)}: {self.message}"


class InputNotFound(ComponentArchiveError):
    """Raised when a blob input path does not exist."""


class InputUnreadable(ComponentArchiveError):
    """Raised when a blob input exists but cannot be read or walked."""


class ConflictingResourceSource(ComponentArchiveError):
    """Raised when a resource template defines both ``access`` and ``input``."""


class MalformedTemplate(ComponentArchiveError):
    """Raised when a template document cannot be decoded."""


class MalformedDescriptor(ComponentArchiveError):
    """Raised when the archive's descriptor file cannot be decoded."""


class ArchiveNotFound(ComponentArchiveError):
    """Raised when no descriptor file exists at the archive path."""


class ArchiveExists(ComponentArchiveError):
    """Raised by ``init`` when the path already holds a component descriptor."""


class SchemaValidationFailed(ComponentArchiveError):
    """Raised when a descriptor or entry violates the schema rules."""

    def __init__(self, errors: list[SchemaError], **context: object) -> None:
        self.errors = list(errors)
        details = "; ".join(str(err) for err in self.errors) or "unknown schema error"
        super().__init__(f"invalid component descriptor: {details}", **context)  # type: ignore[arg-type]


class PersistenceFailed(ComponentArchiveError):
    """Raised when writing to the archive storage fails."""
