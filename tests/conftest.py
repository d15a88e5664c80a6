"""Shared pytest fixtures and test helpers for viamail tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from viamail.domain.errors import TransportError
from viamail.domain.permissions import DEFAULT_PERMISSIONS
from viamail.domain.types import Role
from viamail.infrastructure.mail import MailMessage
from viamail.infrastructure.store import Store
from viamail.services.authorizer import Authorizer, SenderPolicy
from viamail.services.backoffice import Backoffice
from viamail.services.dispatcher import Dispatcher
from viamail.services.engine import CommandEngine
from viamail.services.handlers import create_registry

ADMIN_EMAIL = "admin@example.com"
OPERATOR_EMAIL = "secretaria@example.com"
DRIVER_EMAIL = "conductor@example.com"
CLIENT_EMAIL = "cliente@example.com"


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test (the CLI reconfigures it)."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    via = logging.getLogger("viamail")
    via_level = via.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    via.setLevel(via_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty working directory with no viamail.toml and no VIAMAIL_* env vars."""
    for name in list(os.environ):
        if name.startswith("VIAMAIL_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def mail_env(workdir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Working directory plus the mail settings ``serve`` and ``tick`` require."""
    for name, value in {
        "VIAMAIL_MAILBOX__HOST": "pop.example.com",
        "VIAMAIL_MAILBOX__USERNAME": "via",
        "VIAMAIL_MAILBOX__PASSWORD": "secret",
        "VIAMAIL_SMTP__HOST": "smtp.example.com",
        "VIAMAIL_SMTP__FROM_ADDRESS": "via@example.com",
    }.items():
        monkeypatch.setenv(name, value)
    return workdir


@pytest.fixture
def store(tmp_path: Path) -> Iterator[Store]:
    """Store backed by a fresh SQLite file."""
    s = Store(f"sqlite:///{tmp_path / 'viamail.db'}")
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def backoffice(store: Store) -> Backoffice:
    return Backoffice(store)


@pytest.fixture
def people(backoffice: Backoffice) -> dict[str, dict[str, Any]]:
    """One active user per role, keyed by role name in lower case."""
    return {
        "admin": create_user(backoffice, "1000001", Role.ADMIN, ADMIN_EMAIL),
        "secretaria": create_user(backoffice, "1000002", Role.SECRETARIA, OPERATOR_EMAIL),
        "conductor": create_user(backoffice, "1000003", Role.CONDUCTOR, DRIVER_EMAIL),
        "cliente": create_user(backoffice, "1000004", Role.CLIENTE, CLIENT_EMAIL),
    }


@pytest.fixture
def fleet(backoffice: Backoffice, people: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """A vehicle, a route and a trip departing in two days (2 seats, Bs. 50.00)."""
    vehicle = backoffice.vehicles.create(
        "ABC-123", "Toyota", "Coaster", 2020, "Blanco", "Minibús", None, people["conductor"]["id"]
    )
    route = backoffice.routes.create("Santa Cruz", "Comarapa")
    trip = backoffice.trips.create(
        route["id"], vehicle["id"], datetime.now() + timedelta(days=2), Decimal("50.00"), 2
    )
    return {"vehicle": vehicle, "route": route, "trip": trip}


@pytest.fixture
def engine(backoffice: Backoffice) -> CommandEngine:
    """Command engine over the test store with the strict sender policy."""
    return build_engine(backoffice)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_user(
    backoffice: Backoffice, ci: str, rol: Role, correo: str | None = None, **kwargs: Any
) -> dict[str, Any]:
    """Create a user with placeholder names."""
    nombre = kwargs.pop("nombre", "Ana")
    apellido = kwargs.pop("apellido", "Rojas")
    return backoffice.users.create(ci, nombre, apellido, rol.value, correo=correo, **kwargs)


def build_engine(
    backoffice: Backoffice, policy: SenderPolicy = SenderPolicy.STRICT
) -> CommandEngine:
    authorizer = Authorizer(DEFAULT_PERMISSIONS, backoffice.users, policy)
    dispatcher = Dispatcher(create_registry(backoffice, DEFAULT_PERMISSIONS))
    return CommandEngine(authorizer, dispatcher)


def mail(
    key: str,
    subject: str,
    sender: str = ADMIN_EMAIL,
    received_at: datetime | None = None,
    deleted: bool = False,
) -> MailMessage:
    return MailMessage(
        key=key, sender=sender, subject=subject, received_at=received_at, deleted=deleted
    )


class FakeSession:
    """In-memory mailbox session recording marks, commits and aborts."""

    def __init__(
        self,
        messages: list[MailMessage] | None = None,
        *,
        fail_list: bool = False,
        fail_mark: set[str] | None = None,
    ) -> None:
        self.messages = list(messages or [])
        self.fail_list = fail_list
        self.fail_mark = fail_mark or set()
        self.marked: list[str] = []
        self.committed = False
        self.aborted = False

    def list_messages(self) -> list[MailMessage]:
        if self.fail_list:
            raise TransportError("list_messages: connection reset by peer")
        return list(self.messages)

    def mark_for_deletion(self, message: MailMessage) -> None:
        if message.key in self.fail_mark:
            raise TransportError(f"mark_for_deletion: lost connection at {message.key}")
        self.marked.append(message.key)

    def commit(self) -> None:
        self.committed = True

    def abort(self) -> None:
        self.aborted = True


class FakeMailbox:
    """Opens :class:`FakeSession` with the same abort-unless-committed contract."""

    def __init__(self, session: FakeSession) -> None:
        self.session = session
        self.opened = 0

    @contextmanager
    def open(self) -> Iterator[FakeSession]:
        self.opened += 1
        try:
            yield self.session
        finally:
            if not self.session.committed:
                self.session.abort()


class RecordingSender:
    """Reply sender that records every reply instead of sending it."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = fail_for or set()

    def send_reply(self, to: str, subject: str, body: str) -> None:
        if to in self.fail_for:
            raise TransportError(f"send_reply: relay refused {to}")
        self.sent.append((to, subject, body))

    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]
