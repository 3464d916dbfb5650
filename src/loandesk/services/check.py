"""CheckService — ledger integrity report.

Read-only: issues are reported, never repaired. Three categories:
inventory balance, borrower ledger agreement, and lending limits.
"""

from __future__ import annotations

from typing import Any

from loandesk.domain.lifecycle import MAX_ACTIVE_LOANS
from loandesk.services.base import BaseService
from loandesk.services.result import ServiceResult

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_INVENTORY = "inventory_balance"
CAT_BORROWER = "borrower_ledger"
CAT_LIMITS = "lending_limits"

_SEVERITY_RANK = {SEVERITY_WARNING: 0, SEVERITY_ERROR: 1}


class CheckService(BaseService):
    """Cross-checks the counters against the loan rows they summarize."""

    def check(self, *, min_severity: str = SEVERITY_WARNING) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        issues: list[dict[str, Any]] = []
        issues.extend(self._check_inventory())
        issues.extend(self._check_borrowers())

        threshold = _SEVERITY_RANK[min_severity]
        issues = [i for i in issues if _SEVERITY_RANK[i["severity"]] >= threshold]
        return ServiceResult(
            ok=True,
            op="check",
            data={"issues": issues, "count": len(issues)},
        )

    def _check_inventory(self) -> list[dict[str, Any]]:
        """available + active loans == total, for every book."""
        issues: list[dict[str, Any]] = []
        active = self._store.count_active_loans("book_id")
        for book in self._store.list_books():
            on_loan = active.get(book.id, 0)
            if book.available_copies + on_loan != book.total_copies:
                issues.append(
                    {
                        "category": CAT_INVENTORY,
                        "severity": SEVERITY_ERROR,
                        "subject": book.id,
                        "message": (
                            f"{book.available_copies} available + {on_loan} on loan "
                            f"!= {book.total_copies} total"
                        ),
                    }
                )
        return issues

    def _check_borrowers(self) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        active = self._store.count_active_loans("borrower_id")
        ledgers = {ledger.borrower_id: ledger for ledger in self._store.list_borrowers()}

        for borrower_id in sorted(set(active) | set(ledgers)):
            counted = active.get(borrower_id, 0)
            ledger = ledgers.get(borrower_id)
            recorded = ledger.active_loans if ledger is not None else 0
            if counted != recorded:
                issues.append(
                    {
                        "category": CAT_BORROWER,
                        "severity": SEVERITY_ERROR,
                        "subject": borrower_id,
                        "message": f"ledger records {recorded} active loans, found {counted}",
                    }
                )
            if counted > MAX_ACTIVE_LOANS:
                issues.append(
                    {
                        "category": CAT_LIMITS,
                        "severity": SEVERITY_ERROR,
                        "subject": borrower_id,
                        "message": f"{counted} active loans exceeds the limit of {MAX_ACTIVE_LOANS}",
                    }
                )
            elif counted == MAX_ACTIVE_LOANS:
                issues.append(
                    {
                        "category": CAT_LIMITS,
                        "severity": SEVERITY_WARNING,
                        "subject": borrower_id,
                        "message": "at the active-loan limit",
                    }
                )
        return issues
