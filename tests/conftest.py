"""Shared pytest fixtures and test helpers for loandesk tests."""

from __future__ import annotations

import itertools
import json
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from loandesk.config.settings import LoanDeskSettings
from loandesk.infrastructure.store import Store
from loandesk.services.inventory import InventoryService
from loandesk.services.loans import LoanService

START = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class FrozenClock:
    """A settable clock for services: call it to read, ``advance`` to move."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own LOANDESK_* environment out of tests."""
    monkeypatch.delenv("LOANDESK_CONFIG", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings(tmp_path: Path) -> LoanDeskSettings:
    return LoanDeskSettings.from_cli(root=tmp_path)


@pytest.fixture
def store(settings: LoanDeskSettings) -> Iterator[Store]:
    """Store on a fresh database under tmp_path."""
    s = Store(settings)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def inventory(store: Store, clock: FrozenClock) -> InventoryService:
    return InventoryService(store, clock=clock)


@pytest.fixture
def loans(store: Store, clock: FrozenClock, inventory: InventoryService) -> LoanService:
    return LoanService(store, clock=clock, ledger=inventory)


@pytest.fixture
def _isolated_library(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to tmp_path so the CLI works against an isolated library.

    Use via ``@pytest.mark.usefixtures("_isolated_library")`` on command
    test classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------

_isbns = itertools.count(1)


def next_isbn() -> str:
    """A fresh, valid 13-digit ISBN."""
    return f"978{next(_isbns):010d}"


def add_book(
    inventory: InventoryService,
    copies: int = 1,
    *,
    title: str = "Test Book",
) -> dict[str, Any]:
    """Add a book via InventoryService, asserting success."""
    result = inventory.add_book(next_isbn(), title, copies)
    assert result.ok, result.error
    return result.data["book"]


def borrow(
    loans: LoanService,
    book_id: str,
    borrower_id: str = "alice",
    **kwargs: Any,
) -> dict[str, Any]:
    """Borrow via LoanService, asserting success. Returns the loan data."""
    result = loans.borrow(book_id, borrower_id, **kwargs)
    assert result.ok, result.error
    return result.data["loan"]


def invoke_json(runner: CliRunner, *args: str, exit_code: int = 0) -> dict[str, Any]:
    """Invoke the CLI with ``--json --sync`` and parse the emitted result.

    Failures are emitted on stderr, successes on stdout.
    """
    from loandesk.cli import cli

    result = runner.invoke(cli, ["--json", "--sync", *args])
    assert result.exit_code == exit_code, result.output
    return json.loads(result.stdout if exit_code == 0 else result.stderr)
