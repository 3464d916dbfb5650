"""Rich Console factory and theme for loandesk output.

Consoles render into a StringIO buffer so ``format_result() -> str``
stays a pure function. In non-TTY environments (tests, pipes) Rich
disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LOANDESK_THEME = Theme(
    {
        "ld.ok": "bold green",
        "ld.error": "bold red",
        "ld.warning": "bold yellow",
        "ld.op": "bold cyan",
        "ld.key": "dim",
        "ld.id": "bold blue",
        "ld.title": "bold",
        "ld.status.active": "green",
        "ld.status.overdue": "bold red",
        "ld.status.returned": "dim",
        "ld.status.lost": "magenta",
        "ld.status.available": "green",
        "ld.status.fully_loaned": "yellow",
        "ld.status.withdrawn": "dim",
        "ld.money": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=LOANDESK_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a loan or book status."""
    return f"ld.status.{status}" if status else ""
