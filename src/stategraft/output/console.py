"""Rich Console factory and theme for stategraft output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

GRAFT_THEME = Theme(
    {
        "graft.ok": "bold green",
        "graft.error": "bold red",
        "graft.warning": "bold yellow",
        "graft.op": "bold cyan",
        "graft.key": "dim",
        "graft.address": "bold blue",
        "graft.path": "dim",
        "graft.moved": "cyan",
        "graft.deleted": "red",
        "graft.superseded": "magenta",
        "graft.added": "green",
    }
)

_FATE_STYLES: dict[str, str] = {
    "moved": "graft.moved",
    "deleted": "graft.deleted",
    "superseded": "graft.superseded",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (``[output] width`` by default).
    """
    return Console(
        file=StringIO(),
        theme=GRAFT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_fate(fate: str) -> str:
    """Return the Rich style name for a transform outcome."""
    return _FATE_STYLES.get(fate, "")
