"""Tests for sequential ID claims."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from loandesk.infrastructure.database.counters import next_sequential_id
from loandesk.infrastructure.database.engine import init_database


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    eng = init_database(tmp_path / "db.sqlite")
    try:
        yield eng
    finally:
        eng.dispose()


class TestNextSequentialId:
    def test_starts_at_one(self, engine: Engine) -> None:
        with engine.begin() as conn:
            assert next_sequential_id(conn, "BOOK-") == "BOOK-0001"
            assert next_sequential_id(conn, "BOOK-") == "BOOK-0002"

    def test_prefixes_are_independent(self, engine: Engine) -> None:
        with engine.begin() as conn:
            next_sequential_id(conn, "BOOK-")
            assert next_sequential_id(conn, "LOAN-") == "LOAN-0001"

    def test_rollback_returns_the_id(self, engine: Engine) -> None:
        with pytest.raises(RuntimeError), engine.begin() as conn:
            next_sequential_id(conn, "LOAN-")
            raise RuntimeError("abort")
        with engine.begin() as conn:
            assert next_sequential_id(conn, "LOAN-") == "LOAN-0001"

    def test_unknown_prefix(self, engine: Engine) -> None:
        with pytest.raises(ValueError, match="no counter for prefix"), engine.begin() as conn:
            next_sequential_id(conn, "USER-")
