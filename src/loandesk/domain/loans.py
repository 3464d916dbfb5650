"""Loan state machine and the per-borrower active-loan ledger.

States: ``active`` (initial) -> ``returned`` | ``lost`` (terminal).
Overdue is derived (``active and now > due_at``) and never stored.

Every transition is a pure function returning a new :class:`Loan`
snapshot or raising a typed error; nothing here touches persistence.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from loandesk.domain.errors import (
    AlreadyLost,
    AlreadyOverdue,
    AlreadyReturned,
    FineAlreadyPaid,
    InvalidPeriod,
    LedgerDrift,
    MaxActiveLoansExceeded,
    NoFineDue,
    RenewalLimitExceeded,
)
from loandesk.domain.fines import Fine, compute_fine, late_days
from loandesk.domain.lifecycle import (
    LOAN_TRANSITIONS,
    MAX_ACTIVE_LOANS,
    MAX_LOAN_DAYS,
    MAX_RENEWALS,
    MIN_LOAN_DAYS,
    LoanStatus,
    is_valid_transition,
)

MIN_PERIOD = timedelta(days=MIN_LOAN_DAYS)
MAX_PERIOD = timedelta(days=MAX_LOAN_DAYS)


class Loan(BaseModel):
    """Snapshot of a single borrow event."""

    model_config = {"frozen": True}

    id: str
    book_id: str
    borrower_id: str
    borrowed_at: datetime
    due_at: datetime
    returned_at: datetime | None = None
    lost_at: datetime | None = None
    status: LoanStatus = LoanStatus.ACTIVE
    renewal_count: int = Field(default=0, ge=0, le=MAX_RENEWALS)
    fine: Fine | None = None
    version: int = 0

    @model_validator(mode="after")
    def check_lifecycle(self) -> Loan:
        if not self.due_at > self.borrowed_at:
            msg = "due_at must be after borrowed_at"
            raise ValueError(msg)
        if (self.returned_at is not None) != (self.status == LoanStatus.RETURNED):
            msg = "returned_at is set exactly when the loan is returned"
            raise ValueError(msg)
        if (self.lost_at is not None) != (self.status == LoanStatus.LOST):
            msg = "lost_at is set exactly when the loan is lost"
            raise ValueError(msg)
        if self.fine is not None and self.status != LoanStatus.RETURNED:
            msg = "a fine is only attached to a returned loan"
            raise ValueError(msg)
        return self

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    def is_overdue(self, now: datetime) -> bool:
        return self.is_active and now > self.due_at

    def days_overdue(self, now: datetime) -> int:
        if not self.is_active:
            return 0
        return late_days(self.due_at, now)


def validate_period(borrowed_at: datetime, due_at: datetime) -> None:
    """Raise InvalidPeriod unless *due_at* is 1 to 90 days after *borrowed_at*."""
    period = due_at - borrowed_at
    if period < MIN_PERIOD or period > MAX_PERIOD:
        raise InvalidPeriod(
            f"Loan period must be between {MIN_LOAN_DAYS} and {MAX_LOAN_DAYS} days",
            borrowed_at=borrowed_at.isoformat(),
            due_at=due_at.isoformat(),
        )


def open_loan(
    loan_id: str,
    book_id: str,
    borrower_id: str,
    due_at: datetime,
    now: datetime,
) -> Loan:
    """Create a new active loan borrowed at *now*."""
    validate_period(now, due_at)
    return Loan(
        id=loan_id,
        book_id=book_id,
        borrower_id=borrower_id,
        borrowed_at=now,
        due_at=due_at,
    )


def _require_active(loan: Loan) -> None:
    if loan.status == LoanStatus.RETURNED:
        raise AlreadyReturned(f"Loan {loan.id} has already been returned", loan_id=loan.id)
    if loan.status == LoanStatus.LOST:
        raise AlreadyLost(f"Loan {loan.id} has been marked lost", loan_id=loan.id)


def _transition(loan: Loan, target: LoanStatus, **changes: object) -> Loan:
    if not is_valid_transition(loan.status, target, LOAN_TRANSITIONS):
        _require_active(loan)
    return Loan.model_validate({**loan.model_dump(), **changes, "status": target})


def renew(loan: Loan, additional_days: int, now: datetime) -> Loan:
    """Push the due date back by *additional_days*.

    Checked in order: loan is active, renewal limit, not overdue, and the
    extended period still fits the maximum loan period.
    """
    _require_active(loan)
    if loan.renewal_count >= MAX_RENEWALS:
        raise RenewalLimitExceeded(
            f"Loan {loan.id} has already been renewed {loan.renewal_count} times",
            loan_id=loan.id,
            renewal_count=loan.renewal_count,
        )
    if loan.is_overdue(now):
        raise AlreadyOverdue(
            f"Loan {loan.id} was due {loan.due_at.isoformat()} and cannot be renewed",
            loan_id=loan.id,
            due_at=loan.due_at.isoformat(),
        )
    if additional_days < MIN_LOAN_DAYS:
        raise InvalidPeriod(
            f"A renewal must add at least {MIN_LOAN_DAYS} day",
            additional_days=additional_days,
        )

    due_at = loan.due_at + timedelta(days=additional_days)
    validate_period(loan.borrowed_at, due_at)
    return Loan.model_validate(
        {
            **loan.model_dump(),
            "due_at": due_at,
            "renewal_count": loan.renewal_count + 1,
        }
    )


def return_loan(loan: Loan, now: datetime, daily_rate: Decimal) -> Loan:
    """Close the loan as returned, attaching a fine if it came back late."""
    fine = compute_fine(loan.due_at, now, daily_rate)
    return _transition(loan, LoanStatus.RETURNED, returned_at=now, fine=fine)


def mark_lost(loan: Loan, now: datetime) -> Loan:
    """Close the loan as lost. No time-based fine applies."""
    return _transition(loan, LoanStatus.LOST, lost_at=now)


def pay_fine(loan: Loan, now: datetime) -> Loan:
    """Mark the fine attached to a returned loan as paid."""
    if loan.fine is None:
        raise NoFineDue(f"Loan {loan.id} has no fine", loan_id=loan.id)
    if loan.fine.paid:
        raise FineAlreadyPaid(f"The fine on loan {loan.id} is already paid", loan_id=loan.id)
    paid = loan.fine.model_copy(update={"paid": True, "paid_at": now})
    return loan.model_copy(update={"fine": paid})


# ---------------------------------------------------------------------------
# Borrower ledger
# ---------------------------------------------------------------------------


class BorrowerLedger(BaseModel):
    """Count of a borrower's active loans, guarded by a version token.

    ``version == 0`` means the borrower has never been persisted.
    """

    model_config = {"frozen": True}

    borrower_id: str
    active_loans: int = Field(default=0, ge=0, le=MAX_ACTIVE_LOANS)
    version: int = 0


def claim_slot(ledger: BorrowerLedger) -> BorrowerLedger:
    """Count one more active loan against the borrower."""
    if ledger.active_loans >= MAX_ACTIVE_LOANS:
        raise MaxActiveLoansExceeded(
            f"Borrower {ledger.borrower_id} already has {ledger.active_loans} active loans",
            borrower_id=ledger.borrower_id,
            limit=MAX_ACTIVE_LOANS,
        )
    return ledger.model_copy(update={"active_loans": ledger.active_loans + 1})


def free_slot(ledger: BorrowerLedger) -> BorrowerLedger:
    """Stop counting a closed loan against the borrower."""
    if ledger.active_loans == 0:
        raise LedgerDrift(
            f"Borrower {ledger.borrower_id} has no active loans to release",
            borrower_id=ledger.borrower_id,
        )
    return ledger.model_copy(update={"active_loans": ledger.active_loans - 1})
