"""parse — show how a subject line is tokenized, without running it."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand
from viamail.domain.errors import ParseError
from viamail.domain.subject import parse_subject
from viamail.output.renderers import render_failure, render_request

if TYPE_CHECKING:
    from viamail.commands._context import AppContext


@click.command(
    cls=ViaCommand,
    examples="""\
  viamail parse 'INSBOL[12,3,7,Efectivo]'
  viamail parse 'INSVIA[1,2,"2026-03-01 08:30",45.50,40]'
  viamail --json parse 'UPDUSU[4,null,null,"70012345"]'""",
)
@click.argument("subject")
@click.pass_obj
def parse(app: AppContext, subject: str) -> None:
    """Parse SUBJECT and print the command token and its parameters."""
    json_output = app.settings.json_output
    try:
        request = parse_subject(subject)
    except ParseError as exc:
        click.echo(render_failure(exc, json_output=json_output), err=True)
        raise SystemExit(1) from None
    click.echo(render_request(request, json_output=json_output))
