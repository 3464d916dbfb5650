"""Command: overdue sweep."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from loandesk.commands._base import LoanDeskCommand

if TYPE_CHECKING:
    from loandesk.commands._context import AppContext


@click.command(
    cls=LoanDeskCommand,
    examples="""\
  loandesk sweep
  loandesk --json sweep""",
)
@click.pass_obj
def sweep(app: AppContext) -> None:
    """Refresh the overdue report and notify newly overdue loans."""
    app.emit(app.loans().sweep_overdue())
