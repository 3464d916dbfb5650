"""Library database: SQLAlchemy Core tables on SQLite, plus ID counters."""

from loandesk.infrastructure.database.counters import next_sequential_id
from loandesk.infrastructure.database.engine import create_db_engine, init_database
from loandesk.infrastructure.database.schema import (
    books,
    borrowers,
    event_wal,
    id_counters,
    loans,
    metadata,
    overdue_notices,
    overdue_snapshot,
)

__all__ = [
    "books",
    "borrowers",
    "create_db_engine",
    "event_wal",
    "id_counters",
    "init_database",
    "loans",
    "metadata",
    "next_sequential_id",
    "overdue_notices",
    "overdue_snapshot",
]
