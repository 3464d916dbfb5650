"""The ``loandesk`` entry point: global flags, then the command groups."""

from __future__ import annotations

from typing import Any

import click

from loandesk import __version__
from loandesk.commands import register_commands
from loandesk.commands._context import AppContext
from loandesk.config.settings import LoanDeskSettings


@click.group(
    name="loandesk",
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(__version__, prog_name="loandesk")
@click.option("-c", "--config", "config_path", help="Use this loandesk.toml instead of searching.")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only ids or OK.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option("--sync", is_flag=True, help="Deliver plugin events before exiting.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, **flags: Any) -> None:
    """Library loan and inventory desk."""
    app = AppContext(LoanDeskSettings.from_cli(config_path=config_path, **flags))
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
