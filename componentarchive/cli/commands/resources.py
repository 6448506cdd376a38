"""``component-archive resources add``: upsert resources from templates.

Templates come from ``-r FILE`` and/or standard input; the file is read
first.  Resources with an ``input`` block have their file or directory
stored as a blob inside the archive.

Example template::

    name: myimage
    type: ociImage
    relation: external
    version: 0.2.0
    access:
      type: ociRegistry
      imageReference: registry.example.com/myimage:0.2.0
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from componentarchive.cli.common import archive_path, fail, make_editor, print_report, stdin_stream
from componentarchive.errors import ComponentArchiveError

resources_app = typer.Typer(
    help="Manage the resources of a component archive.",
    no_args_is_help=True,
)


@resources_app.command(name="add")
def add_resources_cmd(
    archive: Optional[Path] = typer.Argument(
        None,
        help="Component archive directory (default: $COMPONENT_ARCHIVE_PATH).",
    ),
    template: Optional[Path] = typer.Option(
        None,
        "--resource",
        "-r",
        help="YAML/JSON file with one or more resource templates.",
    ),
) -> None:
    """Add resources to, or update resources of, a component archive."""
    target = archive_path(archive)
    try:
        report = make_editor().add_resources(target, template, stdin_stream())
    except ComponentArchiveError as exc:
        fail(exc)
    print_report(report, target, "resource(s)")
