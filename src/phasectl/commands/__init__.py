"""Subcommand modules for phasectl.

Provides register_commands() which uses deferred imports to keep
``phasectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command group and standalone commands on the root CLI group."""
    from phasectl.commands.catalog import catalog
    from phasectl.commands.provision import provision
    from phasectl.commands.status import status

    cli.add_command(catalog)
    cli.add_command(provision)
    cli.add_command(status)
