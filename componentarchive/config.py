"""Runtime configuration: env-driven settings for the CLI and the editor.

Reads from a .env file and COMPONENT_ARCHIVE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from componentarchive.core.blob_resolver import DEFAULT_SPOOL_MAX_BYTES
from componentarchive.models.descriptor import OCI_REGISTRY_TYPE


class ArchiveSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Point every command at one archive::

        export COMPONENT_ARCHIVE_PATH=./my-component
        export COMPONENT_ARCHIVE_LOG_LEVEL=INFO

    Or via .env file::

        COMPONENT_ARCHIVE_SPOOL_MAX_BYTES=67108864
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COMPONENT_ARCHIVE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Archive used when a command is given no path
    path: Path | None = None

    log_level: str = "WARNING"

    # Packaged directory / compressed blobs above this size spill to disk
    spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES

    default_registry_type: str = OCI_REGISTRY_TYPE

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("spool_max_bytes")
    @classmethod
    def _positive_spool(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("spool_max_bytes must be positive")
        return value


# Module-level singleton, import as `from componentarchive.config import settings`
settings = ArchiveSettings()
