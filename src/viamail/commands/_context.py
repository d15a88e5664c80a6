"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. Everything that touches the database or the mail
servers is built lazily, so ``--help``, ``--version`` and ``parse`` never
open a connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from viamail.output.renderers import render_response

if TYPE_CHECKING:
    from viamail.config.settings import ViaSettings
    from viamail.domain.permissions import PermissionTable
    from viamail.domain.protocol import CommandResponse
    from viamail.infrastructure.store import Store
    from viamail.services.audit import CommandLogService
    from viamail.services.backoffice import Backoffice
    from viamail.services.engine import CommandEngine
    from viamail.services.poller import MailboxPoller


class AppContext:
    """Settings plus lazily built store, back office and command engine."""

    def __init__(self, settings: ViaSettings) -> None:
        self.settings = settings
        self._store: Store | None = None
        self._engine: CommandEngine | None = None

        from viamail.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> Store:
        if self._store is None:
            from viamail.infrastructure.store import Store

            self._store = Store(self.settings.database_url)
        return self._store

    @property
    def backoffice(self) -> Backoffice:
        from viamail.services.backoffice import Backoffice

        return Backoffice(self.store)

    @property
    def audit(self) -> CommandLogService:
        from viamail.services.audit import CommandLogService

        return CommandLogService(self.store)

    @property
    def permissions(self) -> PermissionTable:
        from viamail.domain.permissions import DEFAULT_PERMISSIONS

        return DEFAULT_PERMISSIONS

    @property
    def engine(self) -> CommandEngine:
        """The command engine (registry and authorizer built once)."""
        if self._engine is None:
            from viamail.services.authorizer import Authorizer
            from viamail.services.dispatcher import Dispatcher
            from viamail.services.engine import CommandEngine
            from viamail.services.handlers import create_registry

            backoffice = self.backoffice
            authorizer = Authorizer(
                self.permissions,
                backoffice.users,
                self.settings.security.sender_policy,
            )
            dispatcher = Dispatcher(create_registry(backoffice, self.permissions))
            self._engine = CommandEngine(authorizer, dispatcher)
        return self._engine

    def require_transport(self) -> None:
        """Stop with a usage error when mailbox/SMTP settings are missing."""
        missing = self.settings.missing_transport_keys()
        if missing:
            raise click.ClickException(
                "Missing mail configuration: "
                + ", ".join(missing)
                + " (set them in viamail.toml or VIAMAIL_* env vars)"
            )

    def build_poller(self) -> MailboxPoller:
        from viamail.infrastructure.mail import Mailbox, SmtpReplySender
        from viamail.services.poller import MailboxPoller

        cfg = self.settings
        return MailboxPoller(
            engine=self.engine,
            mailbox=Mailbox(cfg.mailbox),
            sender=SmtpReplySender(cfg.smtp),
            banner=cfg.reply.banner,
            audit=self.audit,
            cutoff=cfg.mailbox.cutoff_date,
            enabled=cfg.polling.enabled,
        )

    def emit(self, response: CommandResponse) -> None:
        """Print *response*; errors go to stderr and exit with code 1."""
        output = render_response(response, json_output=self.settings.json_output)
        if response.ok:
            click.echo(output)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None
