"""Tests for the typed error taxonomy."""

from __future__ import annotations

import pytest

from loandesk.domain import errors
from loandesk.domain.errors import ErrorKind, LoanDeskError


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        ("cls", "code", "kind"),
        [
            (errors.BookNotFound, "NOT_FOUND", ErrorKind.NOT_FOUND),
            (errors.LoanNotFound, "NOT_FOUND", ErrorKind.NOT_FOUND),
            (errors.VersionConflict, "CONFLICT", ErrorKind.CONFLICT),
            (errors.CommandTimeout, "TIMEOUT", ErrorKind.CONFLICT),
            (errors.BookUnavailable, "BOOK_UNAVAILABLE", ErrorKind.POLICY_VIOLATION),
            (
                errors.MaxActiveLoansExceeded,
                "MAX_ACTIVE_LOANS_EXCEEDED",
                ErrorKind.POLICY_VIOLATION,
            ),
            (errors.InvalidPeriod, "INVALID_PERIOD", ErrorKind.POLICY_VIOLATION),
            (errors.RenewalLimitExceeded, "RENEWAL_LIMIT_EXCEEDED", ErrorKind.POLICY_VIOLATION),
            (errors.AlreadyOverdue, "ALREADY_OVERDUE", ErrorKind.POLICY_VIOLATION),
            (errors.AlreadyReturned, "ALREADY_RETURNED", ErrorKind.POLICY_VIOLATION),
            (errors.AlreadyLost, "ALREADY_LOST", ErrorKind.POLICY_VIOLATION),
            (errors.OverRelease, "OVER_RELEASE", ErrorKind.INTERNAL),
            (errors.CompensationFailed, "COMPENSATION_FAILED", ErrorKind.INTERNAL),
        ],
    )
    def test_code_and_kind(self, cls: type[LoanDeskError], code: str, kind: ErrorKind) -> None:
        exc = cls("boom")
        assert exc.code == code
        assert exc.kind == kind
        assert isinstance(exc, LoanDeskError)

    def test_message_and_detail(self) -> None:
        exc = errors.BookNotFound("No book found with ID: BOOK-0009", book_id="BOOK-0009")
        assert str(exc) == "No book found with ID: BOOK-0009"
        assert exc.message == str(exc)
        assert exc.detail == {"book_id": "BOOK-0009"}
