"""Rich Console factory and theme for minicrm output.

Consoles render into a StringIO buffer so ``format_result() -> str``
stays a pure function. Outside a terminal (tests, pipes) Rich drops
colour codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CRM_THEME = Theme(
    {
        "crm.ok": "bold green",
        "crm.error": "bold red",
        "crm.warning": "bold yellow",
        "crm.op": "bold cyan",
        "crm.key": "dim",
        "crm.id": "bold blue",
        "crm.name": "bold",
        "crm.level.top": "bold magenta",
        "crm.level": "cyan",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=CRM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
