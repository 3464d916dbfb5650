"""Typed failures raised by domain transitions and the persistence layer.

Each failure carries a machine-readable ``code`` and ``kind`` plus a
human-readable message. Services catch these and convert them into a
failed :class:`~loandesk.services.result.ServiceResult`; they never
reach the caller as exceptions.

Kinds:
- ``not_found``: unknown book or loan id.
- ``conflict``: optimistic-version mismatch or timeout; the caller may
  retry the whole command.
- ``policy_violation``: the request breaks a lending rule.
- ``internal``: an invariant breach. Never expected, always surfaced.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar


class ErrorKind(StrEnum):
    """Top-level failure taxonomy."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    POLICY_VIOLATION = "policy_violation"
    INTERNAL = "internal"


class LoanDeskError(Exception):
    """Base class for every typed failure."""

    code: ClassVar[str] = "INTERNAL"
    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


# --- not_found ---


class NotFoundError(LoanDeskError):
    code = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class BookNotFound(NotFoundError):
    pass


class LoanNotFound(NotFoundError):
    pass


# --- conflict ---


class VersionConflict(LoanDeskError):
    """A save was attempted against a stale version token."""

    code = "CONFLICT"
    kind = ErrorKind.CONFLICT


class CommandTimeout(LoanDeskError):
    code = "TIMEOUT"
    kind = ErrorKind.CONFLICT


# --- policy_violation ---


class PolicyViolation(LoanDeskError):
    kind = ErrorKind.POLICY_VIOLATION


class BookUnavailable(PolicyViolation):
    code = "BOOK_UNAVAILABLE"


class MaxActiveLoansExceeded(PolicyViolation):
    code = "MAX_ACTIVE_LOANS_EXCEEDED"


class InvalidPeriod(PolicyViolation):
    code = "INVALID_PERIOD"


class RenewalLimitExceeded(PolicyViolation):
    code = "RENEWAL_LIMIT_EXCEEDED"


class AlreadyOverdue(PolicyViolation):
    code = "ALREADY_OVERDUE"


class AlreadyReturned(PolicyViolation):
    code = "ALREADY_RETURNED"


class AlreadyLost(PolicyViolation):
    code = "ALREADY_LOST"


class NoFineDue(PolicyViolation):
    code = "NO_FINE_DUE"


class FineAlreadyPaid(PolicyViolation):
    code = "FINE_ALREADY_PAID"


class CopiesOnLoan(PolicyViolation):
    code = "COPIES_ON_LOAN"


class InvalidIsbn(PolicyViolation):
    code = "INVALID_ISBN"


class DuplicateIsbn(PolicyViolation):
    code = "DUPLICATE_ISBN"


class InvalidCopies(PolicyViolation):
    code = "INVALID_COPIES"


# --- internal ---


class InternalError(LoanDeskError):
    code = "INTERNAL"
    kind = ErrorKind.INTERNAL


class OverRelease(InternalError):
    """Releasing a copy would push available above total."""

    code = "OVER_RELEASE"


class LedgerDrift(InternalError):
    """A counter disagrees with the loans it is supposed to track."""

    code = "LEDGER_DRIFT"


class CompensationFailed(InternalError):
    code = "COMPENSATION_FAILED"
