"""Command group: loan lifecycle."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import click

from loandesk.commands._base import LoanDeskGroup

if TYPE_CHECKING:
    from loandesk.commands._context import AppContext

_LOAN_EXAMPLES = """\
  loandesk loan borrow BOOK-0001 alice
  loandesk loan borrow BOOK-0001 alice --days 30
  loandesk loan return LOAN-0001
  loandesk loan renew LOAN-0001 --days 7
  loandesk loan lost LOAN-0002
  loandesk loan pay LOAN-0001
  loandesk loan list --borrower alice --overdue"""


@click.group(cls=LoanDeskGroup, examples=_LOAN_EXAMPLES)
@click.pass_obj
def loan(app: AppContext) -> None:
    """Borrow, return, renew, and track loans."""


@loan.command(
    examples="""\
  loandesk loan borrow BOOK-0001 alice
  loandesk loan borrow BOOK-0001 alice --days 7
  loandesk loan borrow BOOK-0001 alice --due 2026-12-01T17:00:00"""
)
@click.argument("book_id")
@click.argument("borrower_id")
@click.option("--days", type=int, default=None, help="Loan period in days (1-90).")
@click.option(
    "--due",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    default=None,
    help="Explicit due date (UTC).",
)
@click.pass_obj
def borrow(
    app: AppContext,
    book_id: str,
    borrower_id: str,
    days: int | None,
    due: datetime | None,
) -> None:
    """Lend a copy of a book to a borrower."""
    if days is not None and due is not None:
        raise click.UsageError("Use either --days or --due, not both.")
    app.emit(app.loans().borrow(book_id, borrower_id, due, loan_days=days))


@loan.command("return", examples="  loandesk loan return LOAN-0001")
@click.argument("loan_id")
@click.pass_obj
def return_cmd(app: AppContext, loan_id: str) -> None:
    """Return a borrowed copy. Late returns incur a fine."""
    app.emit(app.loans().return_loan(loan_id))


@loan.command(
    examples="""\
  loandesk loan renew LOAN-0001
  loandesk loan renew LOAN-0001 --days 7"""
)
@click.argument("loan_id")
@click.option("--days", type=int, default=None, help="Days to add to the due date.")
@click.pass_obj
def renew(app: AppContext, loan_id: str, days: int | None) -> None:
    """Extend a loan that is not yet overdue (at most twice)."""
    app.emit(app.loans().renew(loan_id, days))


@loan.command(examples="  loandesk loan lost LOAN-0002")
@click.argument("loan_id")
@click.pass_obj
def lost(app: AppContext, loan_id: str) -> None:
    """Declare the copy on a loan lost and write it off."""
    app.emit(app.loans().mark_lost(loan_id))


@loan.command(examples="  loandesk loan pay LOAN-0001")
@click.argument("loan_id")
@click.pass_obj
def pay(app: AppContext, loan_id: str) -> None:
    """Mark a returned loan's fine as paid."""
    app.emit(app.loans().pay_fine(loan_id))


@loan.command(examples="  loandesk loan show LOAN-0001")
@click.argument("loan_id")
@click.pass_obj
def show(app: AppContext, loan_id: str) -> None:
    """Show a single loan."""
    app.emit(app.loans().get_loan(loan_id))


@loan.command(
    "list",
    examples="""\
  loandesk loan list
  loandesk loan list --borrower alice
  loandesk loan list --book BOOK-0001 --status active
  loandesk loan list --overdue""",
)
@click.option("--borrower", "borrower_id", default=None, help="Filter by borrower.")
@click.option("--book", "book_id", default=None, help="Filter by book.")
@click.option(
    "--status",
    type=click.Choice(["active", "returned", "lost"]),
    default=None,
    help="Filter by loan status.",
)
@click.option("--overdue", is_flag=True, help="Only active loans past their due date.")
@click.pass_obj
def list_cmd(
    app: AppContext,
    borrower_id: str | None,
    book_id: str | None,
    status: str | None,
    overdue: bool,
) -> None:
    """List loans."""
    app.emit(
        app.loans().list_loans(
            borrower_id=borrower_id,
            book_id=book_id,
            status=status,
            overdue=overdue,
        )
    )
