"""log — show the most recent processed messages from the audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand
from viamail.output.renderers import render_log

if TYPE_CHECKING:
    from viamail.commands._context import AppContext


@click.command(
    cls=ViaCommand,
    examples="""\
  viamail log
  viamail log --limit 100
  viamail --json log --limit 5""",
)
@click.option(
    "--limit", "-n", type=click.IntRange(min=1), default=20, show_default=True, help="Rows."
)
@click.pass_obj
def log(app: AppContext, limit: int) -> None:
    """Print the newest audit rows (sender, command, status, timing)."""
    try:
        rows = app.audit.recent(limit)
    finally:
        app.close()
    click.echo(render_log(rows, json_output=app.settings.json_output))
