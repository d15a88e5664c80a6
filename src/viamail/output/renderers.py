"""Rich renderers for CLI output.

Each public function returns a string: Rich markup rendered through a
StringIO-backed console, or JSON when the caller asks for it.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from viamail.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from viamail.domain.errors import CommandFailure
    from viamail.domain.protocol import CommandRequest, CommandResponse


def render_response(response: CommandResponse, *, json_output: bool = False) -> str:
    """Render a command response as a titled panel, or JSON."""
    if json_output:
        return response.model_dump_json(indent=2)
    console = create_console()
    status = str(response.status)
    title = Text.assemble(
        (response.command_name, "via.command"), "  ", (status, style_for_status(status))
    )
    body = Text()
    body.append(f"{response.message}\n\n", style="via.key")
    body.append((response.payload if response.ok else response.error_detail) or "")
    console.print(Panel(body, title=title, title_align="left", expand=False))
    return get_output(console).rstrip("\n")


def render_request(request: CommandRequest, *, json_output: bool = False) -> str:
    """Render a parsed subject: the command and its numbered parameters."""
    if json_output:
        return request.model_dump_json(indent=2)
    console = create_console()
    command = Text(request.command_name, style="via.command")
    console.print(Text("COMANDO ", style="via.key"), command)
    if not request.parameters:
        console.print(Text("  (sin parámetros)", style="via.key"))
    for index, param in enumerate(request.parameters, start=1):
        console.print(Text(f"  {index}. ", style="via.key"), Text(param, style="via.param"))
    return get_output(console).rstrip("\n")


def render_failure(error: CommandFailure, *, json_output: bool = False) -> str:
    if json_output:
        return _json.dumps({"kind": str(error.kind), "detail": error.full_detail}, indent=2)
    console = create_console()
    console.print(Text(f"{error.kind}: ", style="via.error"), Text(error.full_detail))
    return get_output(console).rstrip("\n")


def render_log(rows: list[dict[str, Any]], *, json_output: bool = False) -> str:
    """Render audit rows as a table (or a JSON list)."""
    if json_output:
        return _json.dumps(rows, indent=2, default=str, ensure_ascii=False)
    console = create_console()
    if not rows:
        console.print(Text("No hay registros.", style="via.key"))
        return get_output(console).rstrip("\n")
    table = Table(show_header=True, header_style="bold")
    for column in ("Fecha", "Remitente", "Comando", "Estado", "ms", "Error"):
        table.add_column(column)
    for row in rows:
        status = str(row["status"])
        table.add_row(
            row["created_at"].strftime("%Y-%m-%d %H:%M:%S"),
            row["sender"],
            row["command"],
            Text(status, style=style_for_status(status)),
            str(row["elapsed_ms"]),
            row.get("error") or "",
        )
    console.print(table)
    return get_output(console).rstrip("\n")
