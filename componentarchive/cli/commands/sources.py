"""``component-archive sources add``: upsert sources from templates."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from componentarchive.cli.common import archive_path, fail, make_editor, print_report, stdin_stream
from componentarchive.errors import ComponentArchiveError

sources_app = typer.Typer(
    help="Manage the sources of a component archive.",
    no_args_is_help=True,
)


@sources_app.command(name="add")
def add_sources_cmd(
    archive: Optional[Path] = typer.Argument(
        None,
        help="Component archive directory (default: $COMPONENT_ARCHIVE_PATH).",
    ),
    template: Optional[Path] = typer.Option(
        None,
        "--source",
        "-s",
        help="YAML/JSON file with one or more source templates.",
    ),
) -> None:
    """Add sources to, or update sources of, a component archive."""
    target = archive_path(archive)
    try:
        report = make_editor().add_sources(target, template, stdin_stream())
    except ComponentArchiveError as exc:
        fail(exc)
    print_report(report, target, "source(s)")
