"""Helpers shared by the CLI commands: console, logging, archive path, errors."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from componentarchive.config import settings
from componentarchive.core.archive_store import ArchiveStore
from componentarchive.core.editor import AddReport, ArchiveEditor
from componentarchive.errors import ComponentArchiveError

console = Console()
err_console = Console(stderr=True)

_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")


def configure_logging(verbosity: int = 0) -> None:
    """Route library logging through rich on stderr.

    ``verbosity`` raises the configured level by one step per ``-v``.
    """
    level = settings.log_level
    if verbosity:
        level = _VERBOSITY_LEVELS[min(verbosity, len(_VERBOSITY_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    logging.getLogger("componentarchive").setLevel(level)


def archive_path(path: Optional[Path]) -> Path:
    """Explicit archive path, else ``COMPONENT_ARCHIVE_PATH``."""
    if path is not None:
        return path
    if settings.path is not None:
        return settings.path
    fail("no component archive given: pass a path or set COMPONENT_ARCHIVE_PATH")


def stdin_stream() -> Optional[IO[Any]]:
    """Binary view of standard input (``None`` when there is none)."""
    if sys.stdin is None:
        return None
    return getattr(sys.stdin, "buffer", sys.stdin)


def make_editor() -> ArchiveEditor:
    return ArchiveEditor(ArchiveStore(), spool_max_bytes=settings.spool_max_bytes)


def fail(message: str | ComponentArchiveError) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[bold red]Error:[/bold red] {escape(str(message))}", soft_wrap=True)
    raise typer.Exit(code=1)


def print_report(report: AddReport, archive: Path, label: str) -> None:
    console.print(
        f"[bold green]Added {report.count} {label}[/bold green] to {escape(str(archive))}",
        soft_wrap=True,
    )
    for identity in report.committed:
        console.print(f"  [cyan]{escape(str(identity))}[/cyan]", soft_wrap=True)
