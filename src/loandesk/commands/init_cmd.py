"""Command: library initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING

import click

from loandesk.commands._base import LoanDeskCommand

if TYPE_CHECKING:
    from loandesk.commands._context import AppContext

_INIT_EXAMPLES = """\
  loandesk init
  loandesk init /srv/branch-library --name "Riverside Branch"
  loandesk init . --loan-days 21 --fine-rate 0.50"""


@click.command("init", cls=LoanDeskCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--name", default=None, help="Library name (defaults to the directory name).")
@click.option("--loan-days", type=click.IntRange(1, 90), default=None, help="Default loan period.")
@click.option("--fine-rate", type=Decimal, default=None, help="Fine per late day.")
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str,
    name: str | None,
    loan_days: int | None,
    fine_rate: Decimal | None,
) -> None:
    """Initialize a new loandesk library."""
    from loandesk.services.init import InitService

    library_path = Path(path).resolve()
    app.emit(
        InitService.init_library(
            library_path,
            name=name or library_path.name,
            loan_days=loan_days,
            fine_rate=fine_rate,
        )
    )
