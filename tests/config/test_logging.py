"""Tests for configure_logging."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from loandesk.config.logging import configure_logging


@pytest.fixture(autouse=True)
def _saved_loggers() -> Iterator[None]:
    touched = [logging.getLogger(name) for name in ("", "loandesk", "sqlalchemy", "pluggy")]
    saved = [(lg, lg.level, list(lg.handlers)) for lg in touched]
    yield
    for lg, level, handlers in saved:
        lg.setLevel(level)
        lg.handlers[:] = handlers


def _one_json_line(capfd: pytest.CaptureFixture[str]) -> dict[str, object]:
    lines = capfd.readouterr().err.splitlines()
    assert len(lines) == 1, lines
    return json.loads(lines[0])


class TestLevels:
    def test_default_keeps_loandesk_at_warning(self) -> None:
        configure_logging()
        assert logging.getLogger("loandesk").level == logging.WARNING

    def test_verbose_only_opens_loandesk(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("loandesk").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_repeat_calls_replace_the_handler(self) -> None:
        for _ in range(3):
            configure_logging(log_json=True)
        assert len(logging.getLogger().handlers) == 1


class TestJsonOutput:
    def test_structlog_event(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("loandesk.test").warning("copy released", book_id="BOOK-0001")
        line = _one_json_line(capfd)
        assert line["event"] == "copy released"
        assert line["book_id"] == "BOOK-0001"
        assert line["level"] == "warning"
        assert line["logger"] == "loandesk.test"
        assert isinstance(line["timestamp"], str)

    def test_stdlib_record(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("loandesk.services.loans").debug("borrow conflicted (attempt 1/5)")
        line = _one_json_line(capfd)
        assert line["event"] == "borrow conflicted (attempt 1/5)"
        assert line["level"] == "debug"
        assert line["logger"] == "loandesk.services.loans"

    def test_sql_echo_stays_silent(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("sqlalchemy.engine").debug("SELECT 1")
        assert capfd.readouterr().err == ""
