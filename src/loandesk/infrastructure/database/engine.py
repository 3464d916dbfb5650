"""SQLite engine for the library database.

The database runs in WAL mode, so availability reads are not blocked by
a writer. Writers queue on the busy timeout rather than erroring out.
Unless configured otherwise the file is ``{root}/.loandesk/loandesk.db``.

Only SQLAlchemy Core is used; each write is an explicit compare-and-swap
statement.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

from loandesk.infrastructure.database.schema import id_counters, metadata

SEQUENTIAL_PREFIXES = ("BOOK-", "LOAN-")
BUSY_TIMEOUT_SECONDS = 30

_PRAGMAS = ("journal_mode=WAL", "foreign_keys=ON")


def _apply_pragmas(dbapi_conn: Any, _record: Any) -> None:
    cursor = dbapi_conn.cursor()
    try:
        for pragma in _PRAGMAS:
            cursor.execute(f"PRAGMA {pragma}")
    finally:
        cursor.close()


def create_db_engine(db_path: Path) -> Engine:
    """Engine for *db_path*; its pooled connections may cross threads."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": BUSY_TIMEOUT_SECONDS},
    )
    event.listen(engine, "connect", _apply_pragmas)
    return engine


def init_database(db_path: Path) -> Engine:
    """Create the schema at *db_path* and seed the ID counters.

    Running it again on an existing database changes nothing.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            sqlite_insert(id_counters)
            .values([{"type_prefix": p, "next_value": 1} for p in SEQUENTIAL_PREFIXES])
            .on_conflict_do_nothing(index_elements=["type_prefix"])
        )
    return engine
