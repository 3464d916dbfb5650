"""Tests for output mode selection."""

from __future__ import annotations

import json

from loandesk.output.formatters import OutputSettings, format_result
from loandesk.services.result import ServiceError, ServiceResult

BORROWED = ServiceResult(
    ok=True,
    op="borrow",
    data={
        "loan": {
            "id": "LOAN-0007",
            "book_id": "BOOK-0001",
            "borrower_id": "alice",
            "due_at": "2024-03-16T12:00:00+00:00",
            "status": "active",
            "renewal_count": 0,
            "overdue": False,
            "fine": None,
        },
        "book": {"book_id": "BOOK-0001", "available": 0, "total": 1, "status": "fully_loaned"},
    },
    meta={"attempts": 2},
)


class TestFormatResult:
    def test_json_is_the_whole_result(self) -> None:
        out = format_result(BORROWED, settings=OutputSettings(json_output=True))
        parsed = json.loads(out)
        assert parsed["op"] == "borrow"
        assert parsed["meta"] == {"attempts": 2}
        assert parsed["data"]["loan"]["id"] == "LOAN-0007"

    def test_json_wins_over_quiet(self) -> None:
        out = format_result(BORROWED, settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(out)["ok"] is True

    def test_quiet(self) -> None:
        assert format_result(BORROWED, settings=OutputSettings(quiet=True)) == "LOAN-0007"

    def test_default_is_rich(self) -> None:
        out = format_result(BORROWED)
        assert out.startswith("OK")
        assert "LOAN-0007" in out
        assert "0/1 available (fully_loaned)" in out
        assert "attempts" not in out

    def test_verbose_shows_meta(self) -> None:
        out = format_result(BORROWED, settings=OutputSettings(verbose=True))
        assert "attempts: 2" in out

    def test_quiet_failure(self) -> None:
        failed = ServiceResult(
            ok=False,
            op="renew",
            error=ServiceError(code="ALREADY_OVERDUE", message="Loan LOAN-0001 is overdue"),
        )
        out = format_result(failed, settings=OutputSettings(quiet=True))
        assert out.startswith("ERROR: renew")
        assert "overdue" in out
