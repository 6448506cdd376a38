"""Component archive CLI: Typer-based command-line interface.

Provides the ``component-archive`` command with subcommands for creating
an archive, adding resources, sources and component references from
templates, and exporting/importing archives as single tar files.

All output uses Rich for formatted terminal display.
"""
