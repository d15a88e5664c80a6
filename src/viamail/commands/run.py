"""run — execute one subject line locally, as if it arrived by email."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand

if TYPE_CHECKING:
    from viamail.commands._context import AppContext


@click.command(
    cls=ViaCommand,
    examples="""\
  viamail run HELP --sender admin@example.com
  viamail run 'INSRUT["Santa Cruz","Comarapa"]' --sender admin@example.com
  viamail run 'GETUSU["1234567"]' --sender cliente@example.com
  viamail --json run LISVIA --sender secretaria@example.com""",
)
@click.argument("subject")
@click.option("--sender", "-s", required=True, help="Address the command is attributed to.")
@click.pass_obj
def run(app: AppContext, subject: str, sender: str) -> None:
    """Run SUBJECT through parse, authorization and dispatch; print the reply."""
    try:
        exchange = app.engine.handle(subject, sender)
    finally:
        app.close()
    app.emit(exchange.response)
