"""MailboxPoller — one tick of the mailbox polling loop.

A tick opens one mailbox session, feeds every eligible message through
the command engine in listing order, replies, marks each message for
deletion, and commits the whole batch at the end.

INVARIANTS:
- :meth:`MailboxPoller.tick` never raises and returns nothing.
- A failure while processing one message never stops the batch: the
  message still gets a best-effort error reply and is still marked.
- A transport failure aborts the tick with nothing committed; every
  candidate stays in the mailbox for the next tick.
- Ticks never overlap.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import TYPE_CHECKING, Protocol

import structlog

from viamail.domain.errors import INTERNAL_DETAIL, TransportError
from viamail.domain.subject import COMMAND_PATTERN
from viamail.domain.types import CommandStatus
from viamail.output.formatters import (
    INVALID_COMMAND,
    failure_subject,
    format_failure_notice,
    format_reply,
    reply_subject,
)

if TYPE_CHECKING:
    from viamail.infrastructure.mail import MailboxSession, MailMessage, ReplySender
    from viamail.services.audit import CommandLogService
    from viamail.services.engine import CommandEngine, Exchange

logger = structlog.get_logger(__name__)


class MailboxOpener(Protocol):
    def open(self) -> AbstractContextManager[MailboxSession]: ...


def _command_of(subject: str) -> str | None:
    match = COMMAND_PATTERN.match(subject.strip())
    return match.group(1) if match else None


class MailboxPoller:
    """Drives :class:`CommandEngine` from a mailbox, one tick at a time."""

    def __init__(
        self,
        *,
        engine: CommandEngine,
        mailbox: MailboxOpener,
        sender: ReplySender,
        banner: str,
        audit: CommandLogService | None = None,
        cutoff: date | None = None,
        enabled: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._engine = engine
        self._mailbox = mailbox
        self._sender = sender
        self._banner = banner
        self._audit = audit
        self._cutoff = cutoff
        self._clock = clock
        self.enabled = enabled
        self._lock = threading.Lock()

    def eligible(self, messages: list[MailMessage]) -> list[MailMessage]:
        """Drop messages already marked deleted or received before the cutoff.

        Messages without a ``Date`` header are always kept.
        """
        kept: list[MailMessage] = []
        for message in messages:
            if message.deleted:
                continue
            if (
                self._cutoff is not None
                and message.received_at is not None
                and message.received_at.date() < self._cutoff
            ):
                logger.debug("message.skipped", key=message.key, reason="before_cutoff")
                continue
            kept.append(message)
        return kept

    def tick(self) -> None:
        if not self.enabled:
            logger.debug("tick.skipped", reason="disabled")
            return
        if not self._lock.acquire(blocking=False):
            logger.warning("tick.skipped", reason="previous tick still running")
            return
        try:
            self._run_tick()
        finally:
            self._lock.release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_tick(self) -> None:
        started = time.monotonic()
        processed = 0
        try:
            with self._mailbox.open() as session:
                candidates = self.eligible(session.list_messages())
                logger.info("tick.start", candidates=len(candidates))
                for message in candidates:
                    self._process(message)
                    session.mark_for_deletion(message)
                    processed += 1
                session.commit()
        except TransportError as exc:
            logger.warning("tick.aborted", error=str(exc), processed=processed)
            return
        except Exception:
            logger.exception("tick.failed", processed=processed)
            return
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info("tick.committed", processed=processed, elapsed_ms=elapsed_ms)

    def _process(self, message: MailMessage) -> None:
        """Run one message through the engine; contain every failure."""
        started = time.monotonic()
        log = logger.bind(key=message.key, sender=message.sender)
        try:
            exchange = self._engine.handle(message.subject, message.sender)
            response = exchange.response
            body = format_reply(response, banner=self._banner, now=self._clock())
        except Exception:
            log.exception("message.failed", subject=message.subject)
            command = _command_of(message.subject)
            self._send(
                message.sender,
                failure_subject(command),
                format_failure_notice(INTERNAL_DETAIL),
            )
            self._record(
                message,
                command=command or INVALID_COMMAND,
                status=CommandStatus.ERROR,
                error=INTERNAL_DETAIL,
                started=started,
            )
            return

        self._send(message.sender, reply_subject(response), body)
        log.info("message.processed", command=exchange.command_name, status=str(response.status))
        self._record(
            message,
            command=exchange.command_name,
            status=response.status,
            error=response.error_detail,
            started=started,
            exchange=exchange,
        )

    def _send(self, to: str, subject: str, body: str) -> None:
        """Best-effort reply: failures are logged and otherwise ignored."""
        if not to:
            logger.warning("reply.skipped", reason="no sender address", subject=subject)
            return
        try:
            self._sender.send_reply(to, subject, body)
        except TransportError as exc:
            logger.warning("reply.failed", to=to, subject=subject, error=str(exc))
        except Exception:
            logger.exception("reply.failed", to=to, subject=subject)

    def _record(
        self,
        message: MailMessage,
        *,
        command: str,
        status: CommandStatus,
        error: str | None,
        started: float,
        exchange: Exchange | None = None,
    ) -> None:
        if self._audit is None:
            return
        request = exchange.request if exchange is not None else None
        self._audit.record(
            sender=message.sender,
            command=command,
            parameters=request.parameters if request is not None else (),
            status=str(status),
            error=error,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
