"""LoanService — borrow, return, renew, and mark-lost commands.

Each command is a short sequence of independent compare-and-swap writes
against three ledgers: the book's copy counters, the borrower's active
loan count, and the loan row itself. Steps that commit register an undo
with :func:`~loandesk.services._compensation.compensating`, so a command
either applies completely or leaves no trace.

Ordering for borrow is reserve copy -> claim borrower slot -> insert
loan. A copy is always reserved before its loan exists, and never stays
reserved without one.

Return and mark-lost close the loan, then settle the copy; either step
failing reopens the loan. Freeing the borrower slot comes last and only
ever rolls forward, since the released copy may already be lent again.

Each ledger write retries in place on a stale version. A
:class:`VersionConflict` that still escapes re-runs the whole command
from fresh snapshots, up to ``engine.max_attempts`` times. Domain events
are dispatched only after every step has committed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from loandesk.domain import inventory
from loandesk.domain.errors import CommandTimeout, LedgerDrift, LoanDeskError, VersionConflict
from loandesk.domain.lifecycle import LoanStatus
from loandesk.domain.loans import (
    BorrowerLedger,
    Loan,
    claim_slot,
    free_slot,
    mark_lost,
    open_loan,
    pay_fine,
    renew,
    return_loan,
    validate_period,
)
from loandesk.services._compensation import compensating
from loandesk.services._helpers import as_utc
from loandesk.services.base import BaseService, Clock
from loandesk.services.inventory import InventoryService
from loandesk.services.result import ServiceResult

if TYPE_CHECKING:
    from loandesk.infrastructure.store import Store

logger = logging.getLogger(__name__)

# A command body: (deadline, warnings) -> result data.
Command = Callable[[float | None, list[str]], dict[str, Any]]


class LoanService(BaseService):
    """Loan lifecycle commands coordinating the inventory and borrower ledgers."""

    def __init__(
        self,
        store: Store,
        *,
        clock: Clock | None = None,
        ledger: InventoryService | None = None,
    ) -> None:
        super().__init__(store, clock=clock)
        settings = store.settings
        self._ledger = ledger or InventoryService(store, clock=clock)
        self._max_attempts = settings.engine.max_attempts
        self._timeout = settings.engine.command_timeout_seconds
        self._loans_config = settings.loans
        self._monotonic: Callable[[], float] = time.monotonic

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def borrow(
        self,
        book_id: str,
        borrower_id: str,
        due_at: datetime | None = None,
        *,
        loan_days: int | None = None,
    ) -> ServiceResult:
        """Lend one copy of *book_id* to *borrower_id*.

        *due_at* defaults to ``loan_days`` (or ``loans.default_loan_days``)
        from now.
        """

        def command(deadline: float | None, warnings: list[str]) -> dict[str, Any]:
            now = self._now()
            if due_at is not None:
                due = as_utc(due_at)
            elif loan_days is not None:
                due = now + timedelta(days=loan_days)
            else:
                due = now + timedelta(days=self._loans_config.default_loan_days)

            # Preconditions, read-only and in order.
            inventory.reserve(self._store.load_book(book_id))
            claim_slot(self._store.load_borrower(borrower_id))
            validate_period(now, due)

            with compensating("borrow", attempts=self._max_attempts) as undo:
                book = self._ledger.reserve_copy(book_id)
                undo.push(f"release copy of {book_id}", lambda: self._ledger.release_copy(book_id))
                self._check_deadline(deadline)

                self._claim_slot(borrower_id)
                undo.push(f"free slot of {borrower_id}", lambda: self._free_slot(borrower_id))
                self._check_deadline(deadline)

                loan = self._store.insert_loan(
                    lambda loan_id: open_loan(loan_id, book_id, borrower_id, due, now)
                )

            logger.debug("%s lent %s to %s until %s", loan.id, book_id, borrower_id, due)
            self._dispatch_event(
                "loan_created",
                {
                    "loan_id": loan.id,
                    "book_id": loan.book_id,
                    "borrower_id": loan.borrower_id,
                    "due_at": loan.due_at.isoformat(),
                },
                warnings,
            )
            return {"loan": self._loan_data(loan, now), "book": book.availability()}

        return self._run("borrow", command)

    def return_loan(self, loan_id: str) -> ServiceResult:
        """Close an active loan, attaching a fine if it is late."""

        def command(deadline: float | None, warnings: list[str]) -> dict[str, Any]:
            now = self._now()
            loan = self._store.load_loan(loan_id)
            returned = return_loan(loan, now, self._loans_config.daily_fine_rate)

            with compensating("return_loan", attempts=self._max_attempts) as undo:
                saved = self._store.save_loan(returned, loan.version)
                undo.push(f"reopen {loan_id}", lambda: self._revert_loan(loan))
                book = self._ledger.release_copy(loan.book_id)

            # The loan is closed and its copy is back: only roll forward now.
            self._settle_slot(loan.borrower_id, loan_id)

            fine = saved.fine.model_dump(mode="json") if saved.fine else None
            logger.debug("%s returned%s", loan_id, f" with fine {fine['amount']}" if fine else "")
            self._dispatch_event(
                "loan_returned",
                {
                    "loan_id": saved.id,
                    "book_id": saved.book_id,
                    "borrower_id": saved.borrower_id,
                    "returned_at": now.isoformat(),
                    "fine": fine,
                },
                warnings,
            )
            return {
                "loan": self._loan_data(saved, now),
                "book": book.availability(),
                "fine": fine,
            }

        return self._run("return_loan", command)

    def renew(self, loan_id: str, additional_days: int | None = None) -> ServiceResult:
        """Extend an active, not-yet-overdue loan."""
        days = additional_days
        if days is None:
            days = self._loans_config.default_renewal_days

        def command(deadline: float | None, warnings: list[str]) -> dict[str, Any]:
            now = self._now()
            loan = self._store.load_loan(loan_id)
            saved = self._store.save_loan(renew(loan, days, now), loan.version)

            logger.debug("%s renewed until %s", loan_id, saved.due_at)
            self._dispatch_event(
                "loan_renewed",
                {
                    "loan_id": saved.id,
                    "due_at": saved.due_at.isoformat(),
                    "renewal_count": saved.renewal_count,
                },
                warnings,
            )
            return {"loan": self._loan_data(saved, now)}

        return self._run("renew", command)

    def mark_lost(self, loan_id: str) -> ServiceResult:
        """Declare the copy on an active loan lost.

        The copy is written off the book's total rather than released, so
        available + on-loan still equals total afterwards.
        """

        def command(deadline: float | None, warnings: list[str]) -> dict[str, Any]:
            now = self._now()
            loan = self._store.load_loan(loan_id)
            lost = mark_lost(loan, now)

            with compensating("mark_lost", attempts=self._max_attempts) as undo:
                saved = self._store.save_loan(lost, loan.version)
                undo.push(f"reopen {loan_id}", lambda: self._revert_loan(loan))
                book = self._ledger.write_off_copy(loan.book_id)

            self._settle_slot(loan.borrower_id, loan_id)

            logger.debug("%s marked lost; %s now has %d copies", loan_id, book.id, book.total_copies)
            self._dispatch_event(
                "loan_lost",
                {
                    "loan_id": saved.id,
                    "book_id": saved.book_id,
                    "borrower_id": saved.borrower_id,
                    "lost_at": now.isoformat(),
                },
                warnings,
            )
            return {"loan": self._loan_data(saved, now), "book": book.availability()}

        return self._run("mark_lost", command)

    def pay_fine(self, loan_id: str) -> ServiceResult:
        """Settle the fine attached to a returned loan."""

        def command(deadline: float | None, warnings: list[str]) -> dict[str, Any]:
            now = self._now()
            loan = self._store.load_loan(loan_id)
            saved = self._store.save_loan(pay_fine(loan, now), loan.version)
            return {"loan": self._loan_data(saved, now)}

        return self._run("pay_fine", command)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> ServiceResult:
        op = "get_loan"
        try:
            loan = self._store.load_loan(loan_id)
        except LoanDeskError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"loan": self._loan_data(loan, self._now())})

    def list_loans(
        self,
        *,
        borrower_id: str | None = None,
        book_id: str | None = None,
        status: LoanStatus | str | None = None,
        overdue: bool = False,
    ) -> ServiceResult:
        """List loans, optionally only those currently overdue."""
        now = self._now()
        if overdue:
            status = LoanStatus.ACTIVE
        loans = self._store.list_loans(borrower_id=borrower_id, book_id=book_id, status=status)
        if overdue:
            loans = [loan for loan in loans if loan.is_overdue(now)]
        items = [self._loan_data(loan, now) for loan in loans]
        return ServiceResult(ok=True, op="list_loans", data={"count": len(items), "items": items})

    def sweep_overdue(self) -> ServiceResult:
        """Refresh the overdue snapshot and announce newly overdue loans.

        Idempotent: loan rows are never modified, and ``loan_overdue``
        fires only the first time a loan is seen overdue.
        """
        op = "sweep_overdue"
        now = self._now()
        warnings: list[str] = []

        overdue = [
            loan
            for loan in self._store.list_loans(status=LoanStatus.ACTIVE)
            if loan.is_overdue(now)
        ]
        rows = [
            {
                "loan_id": loan.id,
                "book_id": loan.book_id,
                "borrower_id": loan.borrower_id,
                "due_at": loan.due_at.isoformat(),
                "days_overdue": loan.days_overdue(now),
            }
            for loan in overdue
        ]
        self._store.replace_overdue_snapshot(rows, now)

        newly: list[str] = []
        for row in rows:
            if not self._store.record_overdue_notice(row["loan_id"], now):
                continue
            newly.append(row["loan_id"])
            self._dispatch_event("loan_overdue", dict(row), warnings)

        logger.debug("Sweep: %d overdue, %d new", len(rows), len(newly))
        return ServiceResult(
            ok=True,
            op=op,
            data={"overdue": len(rows), "newly_overdue": newly, "items": rows},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, op: str, command: Command) -> ServiceResult:
        """Execute *command*, re-running it on version conflicts."""
        deadline = None if self._timeout is None else self._monotonic() + self._timeout
        attempt = 0
        while True:
            attempt += 1
            warnings: list[str] = []
            try:
                self._check_deadline(deadline)
                data = command(deadline, warnings)
            except VersionConflict as exc:
                if attempt >= self._max_attempts:
                    return self._failure(op, exc, meta={"attempts": attempt})
                logger.debug("%s conflicted (attempt %d/%d)", op, attempt, self._max_attempts)
                continue
            except LoanDeskError as exc:
                return self._failure(op, exc, meta={"attempts": attempt})
            return ServiceResult(
                ok=True,
                op=op,
                data=data,
                warnings=warnings,
                meta={"attempts": attempt},
            )

    def _check_deadline(self, deadline: float | None) -> None:
        if deadline is not None and self._monotonic() > deadline:
            raise CommandTimeout(
                f"Command exceeded its {self._timeout}s deadline",
                timeout_seconds=self._timeout,
            )

    def _update_borrower(
        self,
        borrower_id: str,
        transition: Callable[[BorrowerLedger], BorrowerLedger],
    ) -> BorrowerLedger:
        for attempt in range(1, self._max_attempts + 1):
            ledger = self._store.load_borrower(borrower_id)
            updated = transition(ledger)
            try:
                return self._store.save_borrower(updated, ledger.version)
            except VersionConflict:
                logger.debug(
                    "%s on %s conflicted (attempt %d/%d)",
                    transition.__name__,
                    borrower_id,
                    attempt,
                    self._max_attempts,
                )
        raise VersionConflict(
            f"Borrower {borrower_id} stayed contended after {self._max_attempts} attempts",
            borrower_id=borrower_id,
            attempts=self._max_attempts,
        )

    def _claim_slot(self, borrower_id: str) -> BorrowerLedger:
        return self._update_borrower(borrower_id, claim_slot)

    def _free_slot(self, borrower_id: str) -> BorrowerLedger:
        return self._update_borrower(borrower_id, free_slot)

    def _settle_slot(self, borrower_id: str, loan_id: str) -> None:
        """Free the slot of a loan that is already closed.

        Nothing is undone from here: a ledger that cannot be written is
        reported as drift for ``loandesk check`` to find.
        """
        try:
            self._free_slot(borrower_id)
        except VersionConflict as exc:
            logger.error("%s closed but %s kept its slot", loan_id, borrower_id)
            raise LedgerDrift(
                f"{loan_id} is closed but the loan count of {borrower_id} was not updated",
                borrower_id=borrower_id,
                loan_id=loan_id,
            ) from exc

    def _revert_loan(self, original: Loan) -> Loan:
        """Write *original* back over whatever the loan row holds now."""
        current = self._store.load_loan(original.id)
        return self._store.save_loan(original, current.version)

    @staticmethod
    def _loan_data(loan: Loan, now: datetime) -> dict[str, Any]:
        data = loan.model_dump(mode="json")
        data["overdue"] = loan.is_overdue(now)
        data["days_overdue"] = loan.days_overdue(now)
        return data
