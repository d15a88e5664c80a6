"""CommandLogService — append-only audit trail of processed messages."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import insert, select

from viamail.infrastructure.database.schema import command_log
from viamail.services.base import BaseService

logger = logging.getLogger(__name__)


class CommandLogService(BaseService):
    def record(
        self,
        *,
        sender: str,
        command: str,
        parameters: tuple[str, ...] | list[str] = (),
        status: str,
        error: str | None = None,
        elapsed_ms: int = 0,
    ) -> None:
        """Append one row.

        INVARIANT: Audit failures are logged, never raised.
        """
        try:
            with self._store.transaction() as conn:
                conn.execute(
                    insert(command_log).values(
                        sender=sender,
                        command=command,
                        parameters=", ".join(parameters) or None,
                        status=status,
                        error=error,
                        elapsed_ms=elapsed_ms,
                        created_at=self._now(),
                    )
                )
        except Exception:
            logger.warning(
                "Could not write audit row for %s from %s", command, sender, exc_info=True
            )

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent rows first."""
        stmt = select(command_log).order_by(command_log.c.id.desc()).limit(limit)
        with self._store.read() as conn:
            return self._rows(conn, stmt)
