"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.  Provisioning
runs that end in partial failure still carry their per-object report,
which is rendered under the error line.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from phasectl.output.console import create_console, get_output, style_for_outcome

if TYPE_CHECKING:
    from rich.console import Console

    from phasectl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
        body = _PARTIAL_BODIES.get(result.op)
        if body is not None and result.data:
            body(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="phase.ok")
    op = Text(f"  {result.op}", style="phase.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="phase.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="phase.id")
    elif key == "name":
        v = Text(str(value), style="phase.name")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {escape(str(name))}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        extras = ", ".join(f"{k}={v}" for k, v in annotations.items())
        line += f"  ({extras})"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 2)


def _outcome_text(outcome: str) -> Text:
    return Text(outcome.replace("_", " "), style=style_for_outcome(outcome))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="phase.error")
    op = Text(f"  {result.op}", style="phase.op")
    sep = Text(": ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Provisioning renderers ────────────────────────────────────────────


def _provision_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Per-object outcome table with phase lines and the run tally."""
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("KIND", style="dim")
    table.add_column("NAME")
    table.add_column("OUTCOME")
    table.add_column("DETAIL")

    for obj in result.data.get("objects", []):
        table.add_row(
            obj.get("kind", ""),
            Text(obj.get("name", "")),
            _outcome_text(obj.get("outcome", "")),
            Text(obj.get("reason") or ""),
        )
        for phase in obj.get("phases", []):
            if phase.get("ok"):
                state = Text("attached", style="green")
            else:
                state = Text("failed", style="red")
            grouping = Text(f"  phase → {phase.get('grouping', '')}")
            table.add_row("", grouping, state, Text(phase.get("reason") or ""))
    console.print(table)

    tally = result.data.get("tally", {})
    if tally:
        summary = ", ".join(f"{k}={v}" for k, v in tally.items() if k != "by_kind")
        console.print()
        console.print(Text(f"  tally: {summary}", style="phase.key"))
        if verbose:
            for kind, counts in tally.get("by_kind", {}).items():
                parts = ", ".join(f"{o}={n}" for o, n in counts.items())
                console.print(f"    {kind}: {parts}")


def _render_provision(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render install/uninstall results."""
    _status_line(console, result)
    _provision_table(result, console, verbose=verbose)
    if verbose:
        _render_meta(console, result)


def _status_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("KIND", style="dim")
    table.add_column("NAME")
    table.add_column("PRESENT")
    table.add_column("ID", style="phase.id")
    table.add_column("ASSOCIATIONS", justify="right")

    for obj in result.data.get("objects", []):
        present = obj.get("present")
        if present is None:
            mark = Text(f"error: {obj.get('reason', '')}", style="phase.error")
        elif present:
            mark = Text("yes", style="phase.ok")
        else:
            mark = Text("no", style="dim")
        assoc = obj.get("associations")
        table.add_row(
            obj.get("kind", ""),
            Text(obj.get("name", "")),
            mark,
            obj.get("id", ""),
            "" if assoc is None else str(assoc),
        )
    console.print(table)


def _render_status(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "present", result.data.get("present", 0))
    _field(console, "absent", result.data.get("absent", 0))
    console.print()
    _status_table(result, console, verbose=verbose)
    if verbose:
        _render_meta(console, result)


def _render_catalog(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "order", result.data.get("order", ""))
    _field(console, "count", result.data.get("count", 0))
    console.print()

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("KIND", style="dim")
    table.add_column("NAME")
    table.add_column("DEPENDS ON")
    table.add_column("PHASES")
    for obj in result.data.get("objects", []):
        depends = obj.get("depends_on", "")
        if depends and obj.get("external"):
            depends += " (external)"
        phases = obj.get("phases", [])
        if verbose:
            phase_text = "\n".join(f"{p['grouping']} [{p['deadline']}]" for p in phases)
        else:
            phase_text = str(len(phases)) if phases else ""
        table.add_row(
            str(obj.get("position", "")),
            obj.get("kind", ""),
            Text(obj.get("name", "")),
            Text(depends),
            Text(phase_text),
        )
    console.print(table)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch tables ───────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "install": _render_provision,
    "uninstall": _render_provision,
    "status": _render_status,
    "catalog": _render_catalog,
}

# Body rendered below the error line when a failed result still has data.
_PARTIAL_BODIES: dict[str, Any] = {
    "install": _provision_table,
    "uninstall": _provision_table,
    "status": _status_table,
}
