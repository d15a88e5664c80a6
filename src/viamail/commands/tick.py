"""tick — run exactly one poll of the mailbox."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand

if TYPE_CHECKING:
    from viamail.commands._context import AppContext


@click.command(
    cls=ViaCommand,
    examples="""\
  # Process whatever is in the mailbox right now, then exit
  viamail tick

  # From cron, with debug logging
  */5 * * * * viamail -v tick""",
)
@click.pass_obj
def tick(app: AppContext) -> None:
    """Process the mailbox once: reply to every eligible message and commit."""
    app.require_transport()
    poller = app.build_poller()
    # a manual tick ignores [polling] enabled
    poller.enabled = True
    try:
        poller.tick()
    finally:
        app.close()
