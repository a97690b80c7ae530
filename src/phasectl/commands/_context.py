"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy connection resolution, site client
construction, catalog loading and centralized result emission
(stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from phasectl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from phasectl.config.models import SiteConnection
    from phasectl.config.settings import PhaseSettings
    from phasectl.domain.catalog import Catalog
    from phasectl.infrastructure.site import SiteClient
    from phasectl.services.provisioner import Provisioner
    from phasectl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  Connection details are
    resolved (and prompted for) on first use so ``--help``, ``--version``
    and ``catalog show`` never need a reachable site.
    """

    def __init__(self, settings: PhaseSettings) -> None:
        self.settings = settings
        self._connection: SiteConnection | None = None
        self._site: SiteClient | None = None

        # Configure structured logging
        from phasectl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        # Enable telemetry context var when verbose
        if settings.verbose:
            from phasectl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def interactive(self) -> bool:
        return not self.settings.no_interact

    @property
    def connection(self) -> SiteConnection:
        """Validated connection coordinates (prompted for when interactive)."""
        if self._connection is None:
            from phasectl.commands._prompts import resolve_connection

            self._connection = resolve_connection(
                self.settings.site, interactive=self.interactive
            )
        return self._connection

    @property
    def site(self) -> SiteClient:
        """The site client (created lazily on first access)."""
        if self._site is None:
            from phasectl.infrastructure.adminservice import AdminServiceSite

            self._site = AdminServiceSite.from_connection(self.connection)
        return self._site

    def close(self) -> None:
        """Release the site client, if one was created."""
        close = getattr(self._site, "close", None)
        if close is not None:
            close()
        self._site = None

    def load_catalog(self, share_path: str) -> Catalog:
        """Load the configured catalog (built-in when none is configured)."""
        from phasectl.config.catalog_loader import CatalogError, load_catalog

        try:
            return load_catalog(self.settings.catalog_source(), share_path=share_path)
        except CatalogError as exc:
            raise click.ClickException(str(exc)) from exc

    def provisioner(self) -> Provisioner:
        """A Provisioner wired to the site and the configured catalog."""
        from phasectl.services.provisioner import Provisioner

        connection = self.connection
        return Provisioner(self.site, self.load_catalog(connection.share_path))

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
