"""Command group: inspect the catalog without contacting the site."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from phasectl.commands._base import PhaseGroup

if TYPE_CHECKING:
    from phasectl.commands._context import AppContext

_CATALOG_EXAMPLES = """\
  phasectl catalog show
  phasectl catalog show --teardown
  phasectl --catalog topology.toml catalog show"""


@click.group(cls=PhaseGroup, examples=_CATALOG_EXAMPLES)
@click.pass_obj
def catalog(app: AppContext) -> None:
    """Inspect the provisioning catalog."""


@catalog.command(
    examples="""\
  phasectl catalog show
  phasectl -v catalog show --teardown
  phasectl --json catalog show"""
)
@click.option("--teardown", is_flag=True, help="List objects in uninstall order.")
@click.pass_obj
def show(app: AppContext, teardown: bool) -> None:
    """List catalog objects in the order a run processes them."""
    from phasectl.config.catalog_loader import SHARE_PLACEHOLDER
    from phasectl.services.catalog import describe_catalog

    share_path = app.settings.site.share_path or SHARE_PLACEHOLDER
    app.emit(describe_catalog(app.load_catalog(share_path), teardown=teardown))
