"""Rich Console factory and theme for viamail CLI output.

Consoles render into a StringIO buffer so every renderer returns a
string. In non-TTY environments (tests, pipes) Rich drops color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

VIA_THEME = Theme(
    {
        "via.ok": "bold green",
        "via.error": "bold red",
        "via.warning": "bold yellow",
        "via.command": "bold cyan",
        "via.key": "dim",
        "via.param": "bold blue",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "EXITOSO": "via.ok",
    "ERROR": "via.error",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=VIA_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    return _STATUS_STYLES.get(status, "")
