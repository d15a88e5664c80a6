"""Database engine setup.

SQLAlchemy Core (not ORM) is used: every unit of work is a short
``engine.begin()`` block issued by a service, so there is no benefit
from session management or identity maps.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from viamail.infrastructure.database.schema import metadata


def create_db_engine(url: str) -> Engine:
    """Create an engine for *url*; SQLite gets WAL mode and foreign keys."""
    engine = create_engine(url, echo=False)

    if make_url(url).get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def init_database(url: str) -> Engine:
    """Create all tables at *url* and return the engine.

    Idempotent — safe to call on an existing database.
    """
    engine = create_db_engine(url)
    metadata.create_all(engine)
    return engine
