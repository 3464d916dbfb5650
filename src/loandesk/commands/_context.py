"""Per-invocation state shared by every command.

The root group builds one :class:`AppContext` and subcommands receive it
through ``@click.pass_obj``.
"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

import click

from loandesk.config.logging import configure_logging
from loandesk.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from loandesk.config.settings import LoanDeskSettings
    from loandesk.infrastructure.store import Store
    from loandesk.services.inventory import InventoryService
    from loandesk.services.loans import LoanService
    from loandesk.services.result import ServiceResult


class AppContext:
    """Settings plus a store opened on first use.

    ``--help`` and ``--version`` never reach the database.
    """

    def __init__(self, settings: LoanDeskSettings) -> None:
        self.settings = settings
        self._store: Store | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> Store:
        if self._store is None:
            from loandesk.infrastructure.store import Store

            store = Store(self.settings)
            if self.settings.events.enabled:
                store.init_event_bus(sync=self.settings.sync)
            self._store = store
        return self._store

    def inventory(self) -> InventoryService:
        from loandesk.services.inventory import InventoryService

        return InventoryService(self.store)

    def loans(self) -> LoanService:
        from loandesk.services.loans import LoanService

        return LoanService(self.store)

    def close(self) -> None:
        """Flush queued events and dispose of the engine."""
        store, self._store = self._store, None
        if store is not None:
            store.close()

    @cached_property
    def output(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and turn a failure into exit status 1.

        Successful output goes to stdout, failures and warnings to stderr
        so piped output stays clean. JSON output already carries warnings.
        """
        rendered = format_result(result, settings=self.output)
        if not result.ok:
            click.echo(rendered, err=True)
            raise SystemExit(1)
        click.echo(rendered)
        if self.output.json_output:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
