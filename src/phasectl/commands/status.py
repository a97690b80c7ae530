"""Command: show which catalog objects exist on the site."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from phasectl.commands._base import PhaseCommand

if TYPE_CHECKING:
    from phasectl.commands._context import AppContext


@click.command(
    cls=PhaseCommand,
    examples="""\
  phasectl status
  phasectl --json status""",
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Report presence of every catalog object without changing anything."""
    app.emit(app.provisioner().status())
