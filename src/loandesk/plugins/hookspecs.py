"""Pluggy hook specifications for loandesk domain events.

Each event fires once, after the state change it describes has been
committed. Payloads are JSON-safe: ids as strings, datetimes as ISO 8601,
money as decimal strings.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("loandesk")


class LoanDeskHookSpec:
    """Hook specifications for the loandesk plugin system."""

    @hookspec
    def loan_created(
        self,
        loan_id: str,
        book_id: str,
        borrower_id: str,
        due_at: str,
    ) -> None:
        """Called after a borrow commits."""

    @hookspec
    def loan_returned(
        self,
        loan_id: str,
        book_id: str,
        borrower_id: str,
        returned_at: str,
        fine: dict[str, Any] | None,
    ) -> None:
        """Called after a return commits. *fine* is None for on-time returns."""

    @hookspec
    def loan_renewed(
        self,
        loan_id: str,
        due_at: str,
        renewal_count: int,
    ) -> None:
        """Called after a renewal commits."""

    @hookspec
    def loan_overdue(
        self,
        loan_id: str,
        book_id: str,
        borrower_id: str,
        due_at: str,
        days_overdue: int,
    ) -> None:
        """Called the first time a sweep finds a loan overdue."""

    @hookspec
    def loan_lost(
        self,
        loan_id: str,
        book_id: str,
        borrower_id: str,
        lost_at: str,
    ) -> None:
        """Called after a loan is marked lost."""
