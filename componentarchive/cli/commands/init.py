"""``component-archive init PATH``: create an empty component archive.

Writes a ``component-descriptor.yaml`` with the given name and version, an
``internal`` provider and one ``ociRegistry`` repository context per
``--oci-registry``.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.panel import Panel

from componentarchive.cli.common import archive_path, console, fail
from componentarchive.config import settings
from componentarchive.core.archive_store import ArchiveStore
from componentarchive.core.validation import is_semver
from componentarchive.errors import ComponentArchiveError


def init_cmd(
    path: Optional[Path] = typer.Argument(
        None,
        help="Directory of the new archive (default: $COMPONENT_ARCHIVE_PATH).",
    ),
    name: str = typer.Option(
        ...,
        "--name",
        "-n",
        help="Component name, e.g. github.com/acme/frontend.",
    ),
    version: str = typer.Option(
        ...,
        "--version",
        help="Component version (semantic version).",
    ),
    oci_registries: Optional[List[str]] = typer.Option(
        None,
        "--oci-registry",
        help="Base URL of an OCI registry context. Repeatable.",
    ),
) -> None:
    """Create a component archive with an empty descriptor."""
    target = archive_path(path)
    if not name:
        fail("a component name must be given")
    if not is_semver(version):
        fail(f"{version!r} is not a valid semantic version")
    if not oci_registries:
        fail("at least one --oci-registry must be given")

    try:
        archive = ArchiveStore().init(
            target,
            name,
            version,
            oci_registries,
            registry_type=settings.default_registry_type,
        )
    except ComponentArchiveError as exc:
        fail(exc)

    contexts = archive.descriptor.component.repository_contexts
    console.print(
        Panel(
            "\n".join([
                "[bold green]Component archive created![/bold green]",
                "",
                f"[bold]Path:[/bold]       {escape(str(target))}",
                f"[bold]Component:[/bold]  {escape(archive.name)}:{escape(archive.version)}",
                f"[bold]Registries:[/bold] {escape(', '.join(c.base_url for c in contexts))}",
            ]),
            title="[bold]component-archive[/bold]",
            border_style="green",
        )
    )
