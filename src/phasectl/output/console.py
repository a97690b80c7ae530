"""Rich Console factory and theme for phasectl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

PHASE_THEME = Theme(
    {
        "phase.ok": "bold green",
        "phase.error": "bold red",
        "phase.warning": "bold yellow",
        "phase.op": "bold cyan",
        "phase.key": "dim",
        "phase.id": "bold blue",
        "phase.name": "bold",
        "phase.outcome.created": "green",
        "phase.outcome.removed": "green",
        "phase.outcome.already_present": "dim",
        "phase.outcome.not_found": "dim",
        "phase.outcome.blocked": "yellow",
        "phase.outcome.failed": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=PHASE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_outcome(outcome: str) -> str:
    """Return the Rich style name for an outcome value."""
    return f"phase.outcome.{outcome}" if outcome else ""
