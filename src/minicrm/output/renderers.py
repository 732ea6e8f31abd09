"""Operation-specific Rich renderers for ServiceResult.

Renderers are chosen by the verb that starts ``result.op``
(``create_customer`` -> ``create``). Unknown verbs fall through to a
generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from minicrm.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from minicrm.services.result import ServiceResult

PARTY_FIELDS = ("contact_person", "phone", "email", "address", "level", "created_at", "updated_at")


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        verb = result.op.split("_", 1)[0]
        renderer = _OP_RENDERERS.get(verb, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="crm.ok"), Text(f"  {result.op}", style="crm.op"))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="crm.key")
    if key == "id":
        v = Text(str(value), style="crm.id")
    elif key == "name":
        v = Text(str(value), style="crm.name")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, ensure_ascii=False, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v)


def _party_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="crm.id", no_wrap=True, justify="right")
    table.add_column("Name", style="crm.name")
    table.add_column("Contact")
    table.add_column("Phone", no_wrap=True)
    table.add_column("Email")
    table.add_column("Level", style="crm.level")
    if verbose:
        table.add_column("Updated", style="dim")

    for item in items:
        row = [
            str(item.get("id", "")),
            str(item.get("name", "")),
            str(item.get("contact_person") or ""),
            str(item.get("phone") or ""),
            str(item.get("email") or ""),
            str(item.get("level") or ""),
        ]
        if verbose:
            row.append(str(item.get("updated_at", "")))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="crm.error")
    op = Text(f"  {result.op}", style="crm.op")
    console.print(label, op, " — ", msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Entity renderers ──────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """create / update / level: the key fields of the stored record."""
    _status_line(console, result)
    for key in ("id", "name", "level"):
        if key in result.data:
            _field(console, key, result.data[key])
    if "fields_changed" in result.data:
        _field(console, "fields_changed", ", ".join(result.data["fields_changed"]))
    if verbose:
        for key in PARTY_FIELDS:
            if key != "level" and result.data.get(key) is not None:
                _field(console, key, result.data[key])


def _render_single(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    lines = [f"{key}: {d[key]}" for key in PARTY_FIELDS if d.get(key) is not None]
    title = f"#{d.get('id', '?')} {d.get('name', '')}"
    console.print(Panel("\n".join(lines), title=title, border_style="dim", expand=False))


def _render_search(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    if items:
        console.print(_party_table(items, verbose=verbose))
    total_pages = max(d.get("total_pages", 1), 1)
    console.print(
        f"\n{d.get('total_count', len(items))} matches"
        f" (page {d.get('page', 0) + 1} of {total_pages})"
    )


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "total", d.get("total", 0))
    _field(console, "new_this_month", d.get("new_this_month", 0))
    by_level = d.get("by_level", {})
    if by_level:
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Level", style="crm.level")
        table.add_column("Count", justify="right")
        for level, count in by_level.items():
            table.add_row(level, str(count))
        console.print(table)


# ── Database renderers ────────────────────────────────────────────────


def _render_health(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "healthy", d.get("healthy"))
    _field(console, "response_time_ms", d.get("response_time_ms"))
    pool = d.get("pool") or {}
    if pool:
        _field(
            console,
            "pool",
            f"{pool.get('checked_out', 0)}/{pool.get('max_connections', 0)} in use",
        )
    for check in d.get("checks", []):
        style = "crm.ok" if check.get("passed") else "crm.error"
        mark = "ok" if check.get("passed") else "FAILED"
        console.print(f"  [{style}]{mark}[/{style}] {check.get('name')}")
        if verbose and check.get("error"):
            console.print(f"      {check['error']}")


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "create": _render_mutation,
    "update": _render_mutation,
    "level": _render_mutation,
    "delete": _render_generic,
    "show": _render_single,
    "search": _render_search,
    "stats": _render_stats,
    "check": _render_health,
}
