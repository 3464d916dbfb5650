"""Store — the persistence collaborator with optimistic concurrency.

The Store is the single dependency injected into every service. It owns
the database engine and the plugin event bus, and maps rows to domain
snapshots and back.

Every ``save_*`` is a compare-and-swap: the row is only written if its
``version`` still equals the version the caller loaded, and the version
is bumped in the same statement. A stale write raises
:class:`~loandesk.domain.errors.VersionConflict`; retrying is the
caller's decision.

Each call runs in its own short transaction. Commands that touch several
rows coordinate through compensating actions in the service layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from loandesk.domain.errors import (
    BookNotFound,
    DuplicateIsbn,
    InternalError,
    LoanNotFound,
    VersionConflict,
)
from loandesk.domain.fines import Fine
from loandesk.domain.inventory import Book
from loandesk.domain.lifecycle import LoanStatus
from loandesk.domain.loans import BorrowerLedger, Loan
from loandesk.infrastructure.database.counters import next_sequential_id
from loandesk.infrastructure.database.engine import init_database
from loandesk.infrastructure.database.schema import (
    books,
    borrowers,
    loans,
    overdue_notices,
    overdue_snapshot,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection, Row
    from sqlalchemy.engine import Engine

    from loandesk.config.settings import LoanDeskSettings
    from loandesk.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


def _stamp() -> str:
    return datetime.now(UTC).isoformat()


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Row <-> snapshot mapping
# ---------------------------------------------------------------------------


def _book_from_row(row: Row[Any]) -> Book:
    return Book(
        id=row.id,
        isbn=row.isbn,
        title=row.title,
        total_copies=row.total_copies,
        available_copies=row.available_copies,
        status=row.status,
        version=row.version,
    )


def _book_values(book: Book) -> dict[str, Any]:
    return {
        "isbn": book.isbn,
        "title": book.title,
        "total_copies": book.total_copies,
        "available_copies": book.available_copies,
        "status": str(book.status),
    }


def _loan_from_row(row: Row[Any]) -> Loan:
    fine: Fine | None = None
    if row.fine_amount is not None:
        fine = Fine(
            amount=Decimal(row.fine_amount),
            reason=row.fine_reason,
            paid=bool(row.fine_paid),
            paid_at=_dt(row.fine_paid_at),
        )
    return Loan(
        id=row.id,
        book_id=row.book_id,
        borrower_id=row.borrower_id,
        borrowed_at=_dt(row.borrowed_at),
        due_at=_dt(row.due_at),
        returned_at=_dt(row.returned_at),
        lost_at=_dt(row.lost_at),
        status=row.status,
        renewal_count=row.renewal_count,
        fine=fine,
        version=row.version,
    )


def _loan_values(loan: Loan) -> dict[str, Any]:
    fine = loan.fine
    return {
        "due_at": _iso(loan.due_at),
        "returned_at": _iso(loan.returned_at),
        "lost_at": _iso(loan.lost_at),
        "status": str(loan.status),
        "renewal_count": loan.renewal_count,
        "fine_amount": str(fine.amount) if fine else None,
        "fine_reason": fine.reason if fine else None,
        "fine_paid": int(fine.paid) if fine else None,
        "fine_paid_at": _iso(fine.paid_at) if fine else None,
    }


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class Store:
    """Repository for books, loans, and borrower ledgers.

    Constructed once per process from :class:`LoanDeskSettings` and shared
    by every worker thread; it holds no mutable state besides the engine's
    connection pool.
    """

    def __init__(self, settings: LoanDeskSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(settings.database_path)
        self._event_bus: EventBus | None = None

    @property
    def settings(self) -> LoanDeskSettings:
        """The resolved settings for this library."""
        return self._settings

    @property
    def db_path(self) -> Path:
        return self._settings.database_path

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool = False) -> None:
        """Create a PluginManager, discover entry-point plugins, wire the EventBus."""
        from loandesk.plugins.event_bus import EventBus
        from loandesk.plugins.manager import PluginManager

        pm = PluginManager()
        pm.discover_and_load()
        events = self._settings.events
        self._event_bus = EventBus(
            self._engine,
            pm,
            sync=sync,
            max_retries=events.max_retries,
            max_workers=events.max_workers,
        )

    def close(self) -> None:
        """Flush pending events and dispose of the connection pool."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
            self._event_bus = None
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """A single database transaction: commit on success, rollback on error."""
        with self._engine.begin() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def load_book(self, book_id: str) -> Book:
        with self._engine.connect() as conn:
            row = conn.execute(select(books).where(books.c.id == book_id)).first()
        if row is None:
            raise BookNotFound(f"No book found with ID: {book_id}", book_id=book_id)
        return _book_from_row(row)

    def find_book_by_isbn(self, isbn: str) -> Book | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(books).where(books.c.isbn == isbn)).first()
        return _book_from_row(row) if row is not None else None

    def list_books(self) -> list[Book]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(books).order_by(books.c.id)).fetchall()
        return [_book_from_row(r) for r in rows]

    def insert_book(self, build: Callable[[str], Book]) -> Book:
        """Claim a ``BOOK-`` ID, build the book with it, and insert it.

        *build* may raise; the claimed ID is then rolled back with the
        transaction.
        """
        stamp = _stamp()
        try:
            with self.transaction() as conn:
                book = build(next_sequential_id(conn, "BOOK-"))
                conn.execute(
                    insert(books).values(
                        id=book.id,
                        version=1,
                        created=stamp,
                        modified=stamp,
                        **_book_values(book),
                    )
                )
        except IntegrityError as exc:
            if self.find_book_by_isbn(book.isbn) is not None:
                raise DuplicateIsbn(
                    f"A book with ISBN {book.isbn} already exists", isbn=book.isbn
                ) from exc
            raise InternalError(
                f"Database rejected book {book.id}: {exc.orig}", book_id=book.id
            ) from exc
        return book.model_copy(update={"version": 1})

    def save_book(self, book: Book, expected_version: int) -> Book:
        """Compare-and-swap write of *book*. Returns the saved snapshot."""
        with self.transaction() as conn:
            result = conn.execute(
                update(books)
                .where(books.c.id == book.id, books.c.version == expected_version)
                .values(version=expected_version + 1, modified=_stamp(), **_book_values(book))
            )
        if result.rowcount == 0:
            self.load_book(book.id)  # NotFound if the row is gone
            raise VersionConflict(
                f"Book {book.id} changed since version {expected_version}",
                book_id=book.id,
                expected_version=expected_version,
            )
        return book.model_copy(update={"version": expected_version + 1})

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def load_loan(self, loan_id: str) -> Loan:
        with self._engine.connect() as conn:
            row = conn.execute(select(loans).where(loans.c.id == loan_id)).first()
        if row is None:
            raise LoanNotFound(f"No loan found with ID: {loan_id}", loan_id=loan_id)
        return _loan_from_row(row)

    def insert_loan(self, build: Callable[[str], Loan]) -> Loan:
        """Claim a ``LOAN-`` ID, build the loan with it, and insert it."""
        stamp = _stamp()
        with self.transaction() as conn:
            loan = build(next_sequential_id(conn, "LOAN-"))
            conn.execute(
                insert(loans).values(
                    id=loan.id,
                    book_id=loan.book_id,
                    borrower_id=loan.borrower_id,
                    borrowed_at=_iso(loan.borrowed_at),
                    version=1,
                    created=stamp,
                    modified=stamp,
                    **_loan_values(loan),
                )
            )
        return loan.model_copy(update={"version": 1})

    def save_loan(self, loan: Loan, expected_version: int) -> Loan:
        """Compare-and-swap write of *loan*. Returns the saved snapshot."""
        with self.transaction() as conn:
            result = conn.execute(
                update(loans)
                .where(loans.c.id == loan.id, loans.c.version == expected_version)
                .values(version=expected_version + 1, modified=_stamp(), **_loan_values(loan))
            )
        if result.rowcount == 0:
            self.load_loan(loan.id)
            raise VersionConflict(
                f"Loan {loan.id} changed since version {expected_version}",
                loan_id=loan.id,
                expected_version=expected_version,
            )
        return loan.model_copy(update={"version": expected_version + 1})

    def list_loans(
        self,
        *,
        borrower_id: str | None = None,
        book_id: str | None = None,
        status: LoanStatus | str | None = None,
    ) -> list[Loan]:
        query = select(loans).order_by(loans.c.id)
        if borrower_id is not None:
            query = query.where(loans.c.borrower_id == borrower_id)
        if book_id is not None:
            query = query.where(loans.c.book_id == book_id)
        if status is not None:
            query = query.where(loans.c.status == str(status))
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_loan_from_row(r) for r in rows]

    def count_active_loans(self, column: str) -> dict[str, int]:
        """Active loan counts grouped by ``"book_id"`` or ``"borrower_id"``."""
        col = loans.c[column]
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(col, func.count())
                .where(loans.c.status == str(LoanStatus.ACTIVE))
                .group_by(col)
            ).fetchall()
        return {r[0]: r[1] for r in rows}

    # ------------------------------------------------------------------
    # Borrower ledgers
    # ------------------------------------------------------------------

    def load_borrower(self, borrower_id: str) -> BorrowerLedger:
        """Load a borrower's ledger. Unknown borrowers start at version 0."""
        with self._engine.connect() as conn:
            row = conn.execute(
                select(borrowers).where(borrowers.c.borrower_id == borrower_id)
            ).first()
        if row is None:
            return BorrowerLedger(borrower_id=borrower_id)
        return BorrowerLedger(
            borrower_id=row.borrower_id,
            active_loans=row.active_loans,
            version=row.version,
        )

    def list_borrowers(self) -> list[BorrowerLedger]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(borrowers).order_by(borrowers.c.borrower_id)).fetchall()
        return [
            BorrowerLedger(borrower_id=r.borrower_id, active_loans=r.active_loans, version=r.version)
            for r in rows
        ]

    def save_borrower(self, ledger: BorrowerLedger, expected_version: int) -> BorrowerLedger:
        """Compare-and-swap write of a borrower ledger.

        Version 0 means "never persisted": the row is inserted, and a
        concurrent insert of the same borrower surfaces as a conflict.
        """
        if expected_version == 0:
            try:
                with self.transaction() as conn:
                    conn.execute(
                        insert(borrowers).values(
                            borrower_id=ledger.borrower_id,
                            active_loans=ledger.active_loans,
                            version=1,
                        )
                    )
            except IntegrityError as exc:
                raise VersionConflict(
                    f"Borrower {ledger.borrower_id} was created concurrently",
                    borrower_id=ledger.borrower_id,
                ) from exc
            return ledger.model_copy(update={"version": 1})

        with self.transaction() as conn:
            result = conn.execute(
                update(borrowers)
                .where(
                    borrowers.c.borrower_id == ledger.borrower_id,
                    borrowers.c.version == expected_version,
                )
                .values(active_loans=ledger.active_loans, version=expected_version + 1)
            )
        if result.rowcount == 0:
            raise VersionConflict(
                f"Borrower {ledger.borrower_id} changed since version {expected_version}",
                borrower_id=ledger.borrower_id,
                expected_version=expected_version,
            )
        return ledger.model_copy(update={"version": expected_version + 1})

    # ------------------------------------------------------------------
    # Overdue tracking
    # ------------------------------------------------------------------

    def record_overdue_notice(self, loan_id: str, seen_at: datetime) -> bool:
        """Remember that *loan_id* has been seen overdue.

        Returns True only the first time for a given loan.
        """
        with self.transaction() as conn:
            result = conn.execute(
                sqlite_insert(overdue_notices)
                .values(loan_id=loan_id, first_seen=seen_at.isoformat())
                .on_conflict_do_nothing(index_elements=["loan_id"])
            )
        return result.rowcount == 1

    def replace_overdue_snapshot(self, rows: list[dict[str, Any]], computed_at: datetime) -> None:
        """Swap the whole reporting snapshot for *rows* in one transaction."""
        with self.transaction() as conn:
            conn.execute(delete(overdue_snapshot))
            if rows:
                conn.execute(
                    insert(overdue_snapshot),
                    [{**row, "computed_at": computed_at.isoformat()} for row in rows],
                )

    def load_overdue_snapshot(self) -> list[dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(overdue_snapshot).order_by(overdue_snapshot.c.due_at)
            ).fetchall()
        return [dict(r._mapping) for r in rows]
