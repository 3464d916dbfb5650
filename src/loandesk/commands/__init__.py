"""CLI commands.

Command modules are imported inside :func:`register_commands` so that
importing :mod:`loandesk.cli` stays cheap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    from loandesk.commands.book import book
    from loandesk.commands.check import check
    from loandesk.commands.init_cmd import init_cmd
    from loandesk.commands.loan import loan
    from loandesk.commands.sweep import sweep

    for command in (init_cmd, book, loan, sweep, check):
        cli.add_command(command)
