"""SQLAlchemy Core table definitions for the loandesk database.

Every mutable row carries a ``version`` column: writers compare-and-swap
on it, which is what serializes concurrent commands on the same book,
loan, or borrower. CHECK constraints make an out-of-range counter
unwritable, so readers never observe one.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

from loandesk.domain.lifecycle import MAX_ACTIVE_LOANS, MAX_RENEWALS

metadata = MetaData()

books = Table(
    "books",
    metadata,
    Column("id", Text, primary_key=True),  # BOOK-NNNN
    Column("isbn", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False),
    Column("total_copies", Integer, nullable=False),
    Column("available_copies", Integer, nullable=False),
    Column("status", Text, nullable=False),
    Column("version", Integer, nullable=False, default=1, server_default="1"),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
    CheckConstraint("total_copies >= 0", name="ck_books_total_copies"),
    CheckConstraint(
        "available_copies >= 0 AND available_copies <= total_copies",
        name="ck_books_available_copies",
    ),
)

loans = Table(
    "loans",
    metadata,
    Column("id", Text, primary_key=True),  # LOAN-NNNN
    Column("book_id", Text, ForeignKey("books.id"), nullable=False),
    Column("borrower_id", Text, nullable=False),
    Column("borrowed_at", Text, nullable=False),
    Column("due_at", Text, nullable=False),
    Column("returned_at", Text),
    Column("lost_at", Text),
    Column("status", Text, nullable=False),
    Column("renewal_count", Integer, nullable=False, default=0, server_default="0"),
    # Fine columns are all NULL unless the loan was returned late
    Column("fine_amount", Text),  # Decimal as string
    Column("fine_reason", Text),
    Column("fine_paid", Integer),
    Column("fine_paid_at", Text),
    Column("version", Integer, nullable=False, default=1, server_default="1"),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
    CheckConstraint(
        f"renewal_count >= 0 AND renewal_count <= {MAX_RENEWALS}",
        name="ck_loans_renewal_count",
    ),
    CheckConstraint("status IN ('active', 'returned', 'lost')", name="ck_loans_status"),
)

borrowers = Table(
    "borrowers",
    metadata,
    Column("borrower_id", Text, primary_key=True),
    Column("active_loans", Integer, nullable=False, default=0, server_default="0"),
    Column("version", Integer, nullable=False, default=1, server_default="1"),
    CheckConstraint(
        f"active_loans >= 0 AND active_loans <= {MAX_ACTIVE_LOANS}",
        name="ck_borrowers_active_loans",
    ),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_loans_book_status", loans.c.book_id, loans.c.status)
Index("ix_loans_borrower_status", loans.c.borrower_id, loans.c.status)
Index("ix_loans_due_at", loans.c.due_at)

id_counters = Table(
    "id_counters",
    metadata,
    Column("type_prefix", Text, primary_key=True),
    Column("next_value", Integer, nullable=False, default=1, server_default="1"),
)

# One row per loan that has ever been seen overdue. Never cleared, so the
# overdue event fires once per loan no matter how often the sweep runs.
overdue_notices = Table(
    "overdue_notices",
    metadata,
    Column("loan_id", Text, ForeignKey("loans.id"), primary_key=True),
    Column("first_seen", Text, nullable=False),
)

# Reporting snapshot rebuilt by every sweep. Derived data only.
overdue_snapshot = Table(
    "overdue_snapshot",
    metadata,
    Column("loan_id", Text, primary_key=True),
    Column("book_id", Text, nullable=False),
    Column("borrower_id", Text, nullable=False),
    Column("due_at", Text, nullable=False),
    Column("days_overdue", Integer, nullable=False),
    Column("computed_at", Text, nullable=False),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)
