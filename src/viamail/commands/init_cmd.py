"""Command: database initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand
from viamail.domain.errors import CommandFailure
from viamail.domain.types import Role

if TYPE_CHECKING:
    from viamail.commands._context import AppContext

_INIT_EXAMPLES = """\
  viamail init
  viamail -c /etc/viamail/viamail.toml init
  viamail init --admin-email admin@example.com --admin-ci 1234567 \\
      --admin-name Ana --admin-lastname Rojas"""


@click.command("init", cls=ViaCommand, examples=_INIT_EXAMPLES)
@click.option("--admin-email", default=None, help="Create a first Admin user with this address.")
@click.option("--admin-ci", default=None, help="CI of the first Admin user.")
@click.option("--admin-name", default="Admin", show_default=True, help="First name.")
@click.option("--admin-lastname", default="Sistema", show_default=True, help="Last name.")
@click.pass_obj
def init_cmd(
    app: AppContext,
    admin_email: str | None,
    admin_ci: str | None,
    admin_name: str,
    admin_lastname: str,
) -> None:
    """Create the database tables and, optionally, the first Admin user."""
    if admin_email and not admin_ci:
        raise click.UsageError("--admin-ci is required with --admin-email")
    try:
        url = app.store.engine.url.render_as_string(hide_password=True)
        click.echo(f"Database ready: {url}")
        if admin_email:
            try:
                row = app.backoffice.users.create(
                    admin_ci or "",
                    admin_name,
                    admin_lastname,
                    Role.ADMIN.value,
                    correo=admin_email,
                )
            except CommandFailure as exc:
                raise click.ClickException(exc.full_detail) from exc
            click.echo(f"Admin user created: {row['correo']} (ID: {row['id']})")
    finally:
        app.close()
