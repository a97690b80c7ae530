"""Interactive connection prompts — the only place phasectl re-prompts.

The core validates a :class:`SiteConfig` once and fails fast.  This
adapter catches that failure, asks for the offending fields, and tries
again until the configuration validates (or raises when prompting is
disabled).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from phasectl.config.models import ConfigError

if TYPE_CHECKING:
    from phasectl.config.models import SiteConfig, SiteConnection

# field -> (prompt text, hide input)
_PROMPTS: dict[str, tuple[str, bool]] = {
    "endpoint": ("Management endpoint (https://provider.example.com)", False),
    "share_path": (r"Update source share (\\server\share)", False),
    "username": ("Username", False),
    "password": ("Password", True),
    "timeout": ("Request timeout in seconds", False),
}

_NON_INTERACTIVE_HINT = (
    "Set the value in the [site] section of phasectl.toml "
    "or via PHASECTL_SITE__<FIELD> environment variables."
)


def resolve_connection(site: SiteConfig, *, interactive: bool) -> SiteConnection:
    """Validate *site*, prompting for missing or invalid fields if *interactive*.

    Raises:
        click.ClickException: Invalid configuration and prompting disabled.
    """
    overrides: dict[str, Any] = {}
    if interactive and site.username and site.password is None:
        overrides["password"] = click.prompt("Password", hide_input=True)

    while True:
        try:
            return site.resolve(**overrides)
        except ConfigError as exc:
            if not interactive or any(f not in _PROMPTS for f in exc.fields):
                msg = f"{exc}. {_NON_INTERACTIVE_HINT}"
                raise click.ClickException(msg) from exc
            click.echo(str(exc), err=True)
            for field in exc.fields:
                text, hide = _PROMPTS[field]
                overrides[field] = click.prompt(text, hide_input=hide)
