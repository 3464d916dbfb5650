"""Tests for database engine setup."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import inspect, select, text

from loandesk.infrastructure.database.engine import init_database
from loandesk.infrastructure.database.schema import id_counters


class TestInitDatabase:
    def test_creates_parent_and_tables(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path / ".loandesk" / "loandesk.db")
        try:
            assert (tmp_path / ".loandesk" / "loandesk.db").exists()
            tables = set(inspect(engine).get_table_names())
            assert {
                "books",
                "loans",
                "borrowers",
                "id_counters",
                "overdue_notices",
                "overdue_snapshot",
                "event_wal",
            } <= tables
        finally:
            engine.dispose()

    def test_wal_mode_and_foreign_keys(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path / "db.sqlite")
        try:
            with engine.connect() as conn:
                assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
                assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        finally:
            engine.dispose()

    def test_idempotent(self, tmp_path: Path) -> None:
        db = tmp_path / "db.sqlite"
        init_database(db).dispose()
        engine = init_database(db)
        try:
            with engine.connect() as conn:
                rows = conn.execute(select(id_counters)).fetchall()
            assert sorted(r.type_prefix for r in rows) == ["BOOK-", "LOAN-"]
        finally:
            engine.dispose()
