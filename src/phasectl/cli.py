"""Root CLI group for phasectl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from phasectl import __version__
from phasectl.commands import register_commands
from phasectl.commands._context import AppContext
from phasectl.config.settings import PhaseSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="phasectl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--no-interact", is_flag=True, help="Non-interactive mode (no prompts).")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--catalog",
    "catalog_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Catalog TOML file (default: built-in topology).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
    catalog_file: Path | None,
) -> None:
    """phasectl — phased software-update deployment provisioning."""
    ctx.ensure_object(dict)
    settings = PhaseSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        no_interact=no_interact,
        catalog_file=catalog_file.resolve() if catalog_file else None,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
