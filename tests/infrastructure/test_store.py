"""Tests for Store transaction boundaries."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import func, insert, select

from viamail.infrastructure.database.schema import routes
from viamail.infrastructure.store import Store


def _count(store: Store) -> int:
    with store.read() as conn:
        return conn.execute(select(func.count()).select_from(routes)).scalar_one()


class TestStore:
    def test_engine_is_lazy(self, tmp_path: Path) -> None:
        store = Store(f"sqlite:///{tmp_path / 'lazy.db'}")
        assert not (tmp_path / "lazy.db").exists()
        assert store.engine is not None
        assert (tmp_path / "lazy.db").exists()
        store.close()

    def test_transaction_commits(self, store: Store) -> None:
        with store.transaction() as conn:
            conn.execute(insert(routes).values(origen="A", destino="B", nombre="A - B"))
        assert _count(store) == 1

    def test_transaction_rolls_back_on_error(self, store: Store) -> None:
        with pytest.raises(RuntimeError), store.transaction() as conn:
            conn.execute(insert(routes).values(origen="A", destino="B", nombre="A - B"))
            raise RuntimeError("boom")
        assert _count(store) == 0

    def test_units_of_work_are_independent(self, store: Store) -> None:
        with store.transaction() as conn:
            conn.execute(insert(routes).values(origen="A", destino="B", nombre="A - B"))
        with pytest.raises(RuntimeError), store.transaction() as conn:
            conn.execute(insert(routes).values(origen="C", destino="D", nombre="C - D"))
            raise RuntimeError("boom")
        assert _count(store) == 1

    def test_close_and_reopen(self, store: Store) -> None:
        with store.transaction() as conn:
            conn.execute(insert(routes).values(origen="A", destino="B", nombre="A - B"))
        store.close()
        assert _count(store) == 1
