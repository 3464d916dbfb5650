"""Command: ledger integrity check."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from loandesk.commands._base import LoanDeskCommand

if TYPE_CHECKING:
    from loandesk.commands._context import AppContext


@click.command(
    cls=LoanDeskCommand,
    examples="""\
  loandesk check
  loandesk check --errors-only""",
)
@click.option(
    "--min-severity",
    type=click.Choice(["warning", "error"]),
    default="warning",
    help="Hide issues below this severity.",
)
@click.option("--errors-only", is_flag=True, help="Shortcut for --min-severity error.")
@click.pass_obj
def check(app: AppContext, min_severity: str, errors_only: bool) -> None:
    """Report books and borrowers whose counters disagree with their loans."""
    from loandesk.services.check import CheckService

    threshold = "error" if errors_only else min_severity
    app.emit(CheckService(app.store).check(min_severity=threshold))
