"""Loan and book status enums, transition maps, and lending policy limits.

Loan status is the only stored lifecycle: ``active`` moves to exactly one
terminal state. Overdue is a view over an active loan, never a status.

Book status is derived from the copy counters plus the administrative
withdrawn flag, and is recomputed inside every counter transition.
"""

from __future__ import annotations

from enum import StrEnum


class LoanStatus(StrEnum):
    """Stored lifecycle status of a loan."""

    ACTIVE = "active"
    RETURNED = "returned"
    LOST = "lost"


class BookStatus(StrEnum):
    """Availability status of a book (derived, persisted alongside counters)."""

    AVAILABLE = "available"
    FULLY_LOANED = "fully_loaned"
    WITHDRAWN = "withdrawn"


LOAN_TRANSITIONS: dict[str, list[str]] = {
    "active": ["returned", "lost"],
    "returned": [],
    "lost": [],
}


# --- Lending policy ---

MAX_ACTIVE_LOANS = 3  # per borrower
MAX_RENEWALS = 2  # per loan
MIN_LOAN_DAYS = 1
MAX_LOAN_DAYS = 90


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed


def compute_book_status(available_copies: int, *, withdrawn: bool) -> BookStatus:
    """Derive a book's status from its available count.

    Withdrawal overrides availability; otherwise a book with no
    available copies is fully loaned.
    """
    if withdrawn:
        return BookStatus.WITHDRAWN
    if available_copies == 0:
        return BookStatus.FULLY_LOANED
    return BookStatus.AVAILABLE
