"""``component-archive component-references add``: upsert component references."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from componentarchive.cli.common import archive_path, fail, make_editor, print_report, stdin_stream
from componentarchive.errors import ComponentArchiveError

references_app = typer.Typer(
    help="Manage the component references of a component archive.",
    no_args_is_help=True,
)


@references_app.command(name="add")
def add_references_cmd(
    archive: Optional[Path] = typer.Argument(
        None,
        help="Component archive directory (default: $COMPONENT_ARCHIVE_PATH).",
    ),
    template: Optional[Path] = typer.Option(
        None,
        "--component-reference",
        "-c",
        help="YAML/JSON file with one or more component reference templates.",
    ),
) -> None:
    """Add component references to, or update those of, a component archive."""
    target = archive_path(archive)
    try:
        report = make_editor().add_component_references(target, template, stdin_stream())
    except ComponentArchiveError as exc:
        fail(exc)
    print_report(report, target, "component reference(s)")
