"""Command: create or tear down the phased deployment topology."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from phasectl.commands._base import PhaseCommand

if TYPE_CHECKING:
    from phasectl.commands._context import AppContext


@click.command(
    cls=PhaseCommand,
    examples="""\
  phasectl provision
  phasectl --catalog topology.toml provision
  phasectl provision --uninstall
  phasectl --no-interact provision --uninstall --yes
  phasectl --json provision""",
)
@click.option(
    "--uninstall", is_flag=True, help="Remove the topology (reverse order) instead of creating it."
)
@click.option("-y", "--yes", is_flag=True, help="Skip the uninstall confirmation prompt.")
@click.pass_obj
def provision(app: AppContext, uninstall: bool, yes: bool) -> None:
    """Ensure every catalog object exists, or tear them all down."""
    provisioner = app.provisioner()
    if not uninstall:
        app.emit(provisioner.install())
        return

    if app.interactive and not yes:
        click.confirm(
            f"Remove {len(provisioner.catalog)} catalog object(s) from {app.connection.endpoint}?",
            abort=True,
        )
    app.emit(provisioner.uninstall())
