"""Tests for operation-specific Rich renderers."""

from __future__ import annotations

from loandesk.output.renderers import render_quiet, render_result
from loandesk.services.result import ServiceError, ServiceResult


def _loan(**overrides: object) -> dict[str, object]:
    loan: dict[str, object] = {
        "id": "LOAN-0001",
        "book_id": "BOOK-0001",
        "borrower_id": "alice",
        "borrowed_at": "2024-03-01T12:00:00+00:00",
        "due_at": "2024-03-16T12:00:00+00:00",
        "status": "active",
        "renewal_count": 0,
        "overdue": False,
        "days_overdue": 0,
        "fine": None,
    }
    loan.update(overrides)
    return loan


class TestLoanRenderers:
    def test_overdue_loan_shows_days(self) -> None:
        result = ServiceResult(
            ok=True, op="get_loan", data={"loan": _loan(overdue=True, days_overdue=4)}
        )
        out = render_result(result)
        assert "status: overdue" in out
        assert "days_overdue: 4" in out

    def test_fine_line(self) -> None:
        fine = {"amount": "15", "reason": "late by 3 day(s)", "paid": False, "paid_at": None}
        result = ServiceResult(
            ok=True,
            op="return_loan",
            data={"loan": _loan(status="returned", fine=fine), "fine": fine},
        )
        assert "fine: 15 (late by 3 day(s), unpaid)" in render_result(result)

    def test_loan_table(self) -> None:
        items = [_loan(), _loan(id="LOAN-0002", overdue=True)]
        result = ServiceResult(ok=True, op="list_loans", data={"count": 2, "items": items})
        out = render_result(result, verbose=True)
        assert "LOAN-0002" in out
        assert "overdue" in out
        assert "Renewals" in out
        assert "2 loans" in out

    def test_sweep(self) -> None:
        row = {
            "loan_id": "LOAN-0003",
            "book_id": "BOOK-0002",
            "borrower_id": "bob",
            "due_at": "2024-03-02T12:00:00+00:00",
            "days_overdue": 6,
        }
        result = ServiceResult(
            ok=True,
            op="sweep_overdue",
            data={"overdue": 1, "newly_overdue": ["LOAN-0003"], "items": [row]},
        )
        out = render_result(result)
        assert "newly_overdue: 1" in out
        assert "LOAN-0003" in out


class TestOtherRenderers:
    def test_check_groups_by_category(self) -> None:
        issues = [
            {
                "category": "inventory_balance",
                "severity": "error",
                "subject": "BOOK-0001",
                "message": "1 available + 0 on loan != 2 total",
            },
            {
                "category": "lending_limits",
                "severity": "warning",
                "subject": "alice",
                "message": "at the active-loan limit",
            },
        ]
        result = ServiceResult(ok=True, op="check", data={"issues": issues, "count": 2})
        out = render_result(result)
        assert "inventory_balance" in out
        assert "[BOOK-0001]" in out
        assert "1 errors, 1 warnings" in out

    def test_generic_fallback(self) -> None:
        result = ServiceResult(ok=True, op="something_new", data={"n": 3, "ids": ["a"]})
        out = render_result(result)
        assert "something_new" in out
        assert "n: 3" in out
        assert 'ids: ["a"]' in out

    def test_error_with_detail(self) -> None:
        result = ServiceResult(
            ok=False,
            op="borrow",
            error=ServiceError(
                code="BOOK_UNAVAILABLE",
                kind="policy_violation",
                message="No copies of BOOK-0001 are available",
                detail={"book_id": "BOOK-0001"},
            ),
        )
        assert "[BOOK_UNAVAILABLE]" in render_result(result)
        assert "book_id: BOOK-0001" in render_result(result, verbose=True)
        assert "book_id" not in render_result(result)


class TestRenderQuiet:
    def test_list_ids(self) -> None:
        result = ServiceResult(
            ok=True,
            op="list_books",
            data={"count": 2, "items": [{"id": "BOOK-0001"}, {"id": "BOOK-0002"}]},
        )
        assert render_quiet(result) == "BOOK-0001\nBOOK-0002"

    def test_availability_id(self) -> None:
        result = ServiceResult(
            ok=True,
            op="get_availability",
            data={"book_id": "BOOK-0001", "available": 1, "total": 1, "status": "available"},
        )
        assert render_quiet(result) == "BOOK-0001"

    def test_no_id(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"issues": [], "count": 0})
        assert render_quiet(result) == "OK: check"
