"""Mailbox sessions (POP3 / IMAP) and the SMTP reply sender.

A mailbox session is a scoped value: :meth:`Mailbox.open` connects,
yields the session, and releases the connection on every exit path. If
:meth:`MailboxSession.commit` was never reached, nothing the session
marked is made durable: POP3 issues ``RSET`` before ``QUIT`` and IMAP
keeps its marks in memory until commit.

Every protocol, socket, or timeout failure surfaces as
:class:`~viamail.domain.errors.TransportError`.
"""

from __future__ import annotations

import functools
import imaplib
import logging
import poplib
import smtplib
import ssl
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import formataddr, parseaddr, parsedate_to_datetime
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from viamail.domain.errors import TransportError

if TYPE_CHECKING:
    from viamail.config.models import MailboxConfig, SmtpConfig

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    EOFError,
    poplib.error_proto,
    imaplib.IMAP4.error,
    smtplib.SMTPException,
)

_T = TypeVar("_T")


def _transport_errors(func: Callable[..., _T]) -> Callable[..., _T]:
    """Re-raise low-level mail failures as TransportError."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> _T:
        try:
            return func(*args, **kwargs)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{func.__name__}: {exc}") from exc

    return wrapper


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MailMessage:
    """Headers of one candidate message.

    Attributes:
        key: POP3 message number or IMAP UID; only meaningful inside the
            session that listed it.
        sender: Bare address of the ``From`` header.
        subject: Decoded subject line.
        received_at: Parsed ``Date`` header, or None when absent/invalid.
        deleted: Already flagged for deletion on the server.
    """

    key: str
    sender: str
    subject: str
    received_at: datetime | None = None
    deleted: bool = False


def message_from_bytes(key: str, raw: bytes, *, deleted: bool = False) -> MailMessage:
    """Build a :class:`MailMessage` from raw RFC 5322 bytes (headers suffice)."""
    parsed = BytesParser(policy=policy.default).parsebytes(raw, headersonly=True)
    subject = str(parsed.get("Subject", "") or "")
    sender = parseaddr(str(parsed.get("From", "") or ""))[1]
    received_at: datetime | None = None
    try:
        raw_date = parsed.get("Date")
        if raw_date:
            received_at = parsedate_to_datetime(str(raw_date))
    except (TypeError, ValueError):
        # the header object itself may fail to parse, depending on the interpreter
        logger.debug("Unparseable Date header on message %s", key)
    return MailMessage(
        key=key,
        sender=sender,
        subject=" ".join(subject.split()),
        received_at=received_at,
        deleted=deleted,
    )


class MailboxSession(Protocol):
    """Operations available while a mailbox session is open."""

    committed: bool

    def list_messages(self) -> list[MailMessage]: ...

    def mark_for_deletion(self, message: MailMessage) -> None: ...

    def commit(self) -> None: ...

    def abort(self) -> None: ...


# ---------------------------------------------------------------------------
# POP3
# ---------------------------------------------------------------------------


class Pop3Session:
    """POP3 session: ``DELE`` marks, ``QUIT`` commits, ``RSET`` discards."""

    def __init__(self, client: poplib.POP3) -> None:
        self._client = client
        self.committed = False

    @_transport_errors
    def list_messages(self) -> list[MailMessage]:
        _, listing, _ = self._client.list()
        messages: list[MailMessage] = []
        for entry in listing:
            number = entry.split()[0].decode("ascii")
            _, lines, _ = self._client.retr(number)
            messages.append(message_from_bytes(number, b"\r\n".join(lines)))
        return messages

    @_transport_errors
    def mark_for_deletion(self, message: MailMessage) -> None:
        self._client.dele(message.key)

    @_transport_errors
    def commit(self) -> None:
        self._client.quit()
        self.committed = True

    def abort(self) -> None:
        try:
            self._client.rset()
            self._client.quit()
        except _TRANSPORT_ERRORS:
            logger.debug("POP3 abort failed; closing socket", exc_info=True)
            self._client.close()


# ---------------------------------------------------------------------------
# IMAP
# ---------------------------------------------------------------------------


class ImapSession:
    """IMAP session with deferred marks.

    ``consumption="delete"`` lists undeleted messages and commits with
    ``\\Deleted`` + ``EXPUNGE``; ``consumption="seen"`` lists unseen
    messages and commits with ``\\Seen`` only.
    """

    def __init__(self, client: imaplib.IMAP4, *, consumption: str = "delete") -> None:
        self._client = client
        self._consumption = consumption
        self._pending: list[str] = []
        self.committed = False

    @_transport_errors
    def list_messages(self) -> list[MailMessage]:
        criteria = "UNSEEN" if self._consumption == "seen" else "UNDELETED"
        typ, data = self._client.uid("SEARCH", None, criteria)
        if typ != "OK":
            raise TransportError(f"IMAP SEARCH failed: {data!r}")
        messages: list[MailMessage] = []
        for uid in (data[0] or b"").split():
            key = uid.decode("ascii")
            typ, fetched = self._client.uid("FETCH", key, "(BODY.PEEK[HEADER])")
            if typ != "OK" or not fetched or not isinstance(fetched[0], tuple):
                raise TransportError(f"IMAP FETCH failed for UID {key}")
            messages.append(message_from_bytes(key, fetched[0][1]))
        return messages

    def mark_for_deletion(self, message: MailMessage) -> None:
        self._pending.append(message.key)

    @_transport_errors
    def commit(self) -> None:
        flag = "(\\Seen)" if self._consumption == "seen" else "(\\Deleted)"
        for uid in self._pending:
            self._client.uid("STORE", uid, "+FLAGS", flag)
        if self._consumption == "delete" and self._pending:
            self._client.expunge()
        self._client.logout()
        self._pending.clear()
        self.committed = True

    def abort(self) -> None:
        self._pending.clear()
        try:
            self._client.logout()
        except _TRANSPORT_ERRORS:
            logger.debug("IMAP logout failed during abort", exc_info=True)


# ---------------------------------------------------------------------------
# Mailbox factory
# ---------------------------------------------------------------------------


class Mailbox:
    """Opens scoped sessions against the configured mailbox."""

    def __init__(self, config: MailboxConfig) -> None:
        self._config = config

    @contextmanager
    def open(self) -> Iterator[MailboxSession]:
        session = self._connect()
        try:
            yield session
        finally:
            if not session.committed:
                session.abort()

    @_transport_errors
    def _connect(self) -> MailboxSession:
        cfg = self._config
        logger.debug("Connecting to %s %s:%s", cfg.protocol, cfg.host, cfg.port)
        if cfg.protocol == "imap":
            imap: imaplib.IMAP4
            if cfg.use_ssl:
                imap = imaplib.IMAP4_SSL(
                    cfg.host,
                    cfg.port,
                    ssl_context=ssl.create_default_context(),
                    timeout=cfg.timeout_seconds,
                )
            else:
                imap = imaplib.IMAP4(cfg.host, cfg.port, timeout=cfg.timeout_seconds)
            imap.login(cfg.username, cfg.password)
            typ, data = imap.select(cfg.folder)
            if typ != "OK":
                imap.logout()
                raise TransportError(f"Cannot select folder {cfg.folder}: {data!r}")
            return ImapSession(imap, consumption=cfg.consumption)

        pop: poplib.POP3
        if cfg.use_ssl:
            pop = poplib.POP3_SSL(
                cfg.host,
                cfg.port,
                timeout=cfg.timeout_seconds,
                context=ssl.create_default_context(),
            )
        else:
            pop = poplib.POP3(cfg.host, cfg.port, timeout=cfg.timeout_seconds)
        pop.user(cfg.username)
        pop.pass_(cfg.password)
        return Pop3Session(pop)


def open_session(config: MailboxConfig) -> AbstractContextManager[MailboxSession]:
    """Shorthand for ``Mailbox(config).open()``."""
    return Mailbox(config).open()


# ---------------------------------------------------------------------------
# SMTP
# ---------------------------------------------------------------------------


class ReplySender(Protocol):
    def send_reply(self, to: str, subject: str, body: str) -> None: ...


class SmtpReplySender:
    """Sends plain-text UTF-8 replies through the configured SMTP relay."""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self._config.from_name, self._config.from_address))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body, charset="utf-8")
        return message

    @_transport_errors
    def send_reply(self, to: str, subject: str, body: str) -> None:
        cfg = self._config
        message = self.build_message(to, subject, body)
        with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as smtp:
            if cfg.starttls:
                smtp.starttls(context=ssl.create_default_context())
            if cfg.username:
                smtp.login(cfg.username, cfg.password)
            smtp.send_message(message)
        logger.debug("Reply sent to %s: %s", to, subject)
