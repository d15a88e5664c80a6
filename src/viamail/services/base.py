"""BaseService — common foundation for the back-office services.

Every service receives a :class:`Store` at construction time and owns its
transaction boundaries via ``self._store.transaction()``. Services return
plain ``dict`` rows and raise only :class:`NotFoundError`,
:class:`ValidationError` or :class:`ConflictError`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from viamail.domain.errors import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy import Connection, Table

    from viamail.infrastructure.store import Store

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class RouteService(BaseService):
            def create(self, origen: str, destino: str) -> dict[str, Any]:
                with self._store.transaction() as conn:
                    ...
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    @staticmethod
    def _now() -> datetime:
        return datetime.now()

    @staticmethod
    def _require_row(
        conn: Connection, table: Table, row_id: int, label: str
    ) -> dict[str, Any]:
        """Fetch ``table`` row *row_id* as a dict or raise NotFoundError."""
        row = conn.execute(select(table).where(table.c.id == row_id)).first()
        if row is None:
            raise NotFoundError.entity(label, row_id)
        return dict(row._mapping)

    @staticmethod
    def _rows(conn: Connection, stmt: Any) -> list[dict[str, Any]]:
        return [dict(r._mapping) for r in conn.execute(stmt)]
