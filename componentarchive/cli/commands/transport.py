"""``component-archive export`` / ``import``: single-file form of an archive."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from componentarchive.cli.common import archive_path, console, fail
from componentarchive.core.exporter import export_archive, import_archive
from componentarchive.errors import ComponentArchiveError


def export_cmd(
    archive: Optional[Path] = typer.Argument(
        None,
        help="Component archive directory (default: $COMPONENT_ARCHIVE_PATH).",
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Tar file to write.",
    ),
    compress: bool = typer.Option(
        False,
        "--compress/--no-compress",
        help="Gzip the tar file.",
    ),
) -> None:
    """Pack a component archive into a single tar file."""
    source = archive_path(archive)
    try:
        result = export_archive(source, output, compress=compress)
    except ComponentArchiveError as exc:
        fail(exc)
    console.print(
        f"[bold green]Exported[/bold green] {escape(str(source))} to {escape(str(result.path))} "
        f"({len(result.members)} files, {result.size} bytes)",
        soft_wrap=True,
    )
    console.print(f"[dim]{result.digest}[/dim]")


def import_cmd(
    tar_file: Path = typer.Argument(
        ...,
        help="Tar file produced by 'export'.",
    ),
    dest: Path = typer.Argument(
        ...,
        help="Directory to unpack the archive into.",
    ),
) -> None:
    """Unpack an exported tar file into a component archive directory."""
    try:
        archive = import_archive(tar_file, dest)
    except ComponentArchiveError as exc:
        fail(exc)
    console.print(
        f"[bold green]Imported[/bold green] {escape(archive.name)}:{escape(archive.version)} "
        f"into {escape(str(dest))}",
        soft_wrap=True,
    )
