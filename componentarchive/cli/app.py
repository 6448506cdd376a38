"""Main Typer application: imports and registers all CLI commands.

Entry point: ``component-archive`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from componentarchive import __version__
from componentarchive.cli.commands.init import init_cmd
from componentarchive.cli.commands.references import references_app
from componentarchive.cli.commands.resources import resources_app
from componentarchive.cli.commands.sources import sources_app
from componentarchive.cli.commands.transport import export_cmd, import_cmd
from componentarchive.cli.common import configure_logging, console

app = typer.Typer(
    name="component-archive",
    help="Build component archives: a component descriptor plus its local blobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"component-archive {__version__}")
        raise typer.Exit(0)


@app.callback()
def main_callback(
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log output (-v for INFO, -vv for DEBUG).",
    ),
    show_version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Build component archives: a component descriptor plus its local blobs."""
    configure_logging(verbosity)


# Register subcommands
app.command(name="init", help="Create a new component archive.")(init_cmd)
app.add_typer(resources_app, name="resources", help="Manage resources.")
app.add_typer(sources_app, name="sources", help="Manage sources.")
app.add_typer(references_app, name="component-references", help="Manage component references.")
app.command(name="export", help="Pack an archive into a tar file.")(export_cmd)
app.command(name="import", help="Unpack a tar file into an archive.")(import_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
