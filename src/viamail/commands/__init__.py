"""Subcommand modules for viamail.

Provides register_commands(), which imports each command module only
when the root group is assembled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    # --- Mailbox loop ---
    from viamail.commands.serve import serve
    from viamail.commands.tick import tick

    cli.add_command(serve)
    cli.add_command(tick)

    # --- Local command protocol ---
    from viamail.commands.parse import parse
    from viamail.commands.run import run

    cli.add_command(run)
    cli.add_command(parse)

    # --- Database ---
    from viamail.commands.init_cmd import init_cmd
    from viamail.commands.log import log

    cli.add_command(init_cmd)
    cli.add_command(log)
