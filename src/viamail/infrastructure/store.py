"""Store — the single persistence dependency injected into services.

Owns the database engine (created lazily, so ``--help`` never touches
the database) and hands out transactional connections. Each
:meth:`transaction` block is one independent unit of work: a failed
command never rolls back the work of an earlier one.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from viamail.infrastructure.database.engine import init_database

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class Store:
    """Lazy engine holder with transaction and read-only connection helpers."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            logger.debug("Initializing database at %s", self.url)
            self._engine = init_database(self.url)
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside ``BEGIN``; commit on success, roll back on error."""
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def read(self) -> Iterator[Connection]:
        """Yield a plain connection for queries."""
        with self.engine.connect() as conn:
            yield conn

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
