"""Tests for the compensating-action undo log."""

from __future__ import annotations

import pytest

from loandesk.domain.errors import BookUnavailable, CompensationFailed, VersionConflict
from loandesk.services._compensation import CompensationLog, compensating


class TestCompensationLog:
    def test_unwinds_newest_first(self) -> None:
        order: list[str] = []
        log = CompensationLog(op="test")
        log.push("first", lambda: order.append("first"))
        log.push("second", lambda: order.append("second"))
        assert log.unwind() == []
        assert order == ["second", "first"]

    def test_conflicting_undo_is_retried(self) -> None:
        calls = {"n": 0}

        def undo() -> None:
            calls["n"] += 1
            if calls["n"] < 3:
                raise VersionConflict("moved")

        log = CompensationLog(op="test", attempts=5)
        log.push("flaky", undo)
        assert log.unwind() == []
        assert calls["n"] == 3

    def test_undo_gives_up_after_attempts(self) -> None:
        def undo() -> None:
            raise VersionConflict("moved")

        log = CompensationLog(op="test", attempts=2)
        log.push("stuck", undo)
        assert log.unwind() == ["stuck"]

    def test_failing_undo_does_not_stop_the_rest(self) -> None:
        ran: list[str] = []

        def broken() -> None:
            raise RuntimeError("boom")

        log = CompensationLog(op="test")
        log.push("older", lambda: ran.append("older"))
        log.push("broken", broken)
        assert log.unwind() == ["broken"]
        assert ran == ["older"]


class TestCompensating:
    def test_success_runs_no_undo(self) -> None:
        ran: list[str] = []
        with compensating("ok") as undo:
            undo.push("step", lambda: ran.append("step"))
        assert ran == []

    def test_typed_error_unwinds_and_propagates(self) -> None:
        ran: list[str] = []
        with pytest.raises(BookUnavailable), compensating("borrow") as undo:
            undo.push("step", lambda: ran.append("step"))
            raise BookUnavailable("gone")
        assert ran == ["step"]

    def test_interrupt_unwinds_and_propagates(self) -> None:
        ran: list[str] = []
        with pytest.raises(KeyboardInterrupt), compensating("borrow") as undo:
            undo.push("step", lambda: ran.append("step"))
            raise KeyboardInterrupt
        assert ran == ["step"]

    def test_failed_undo_becomes_compensation_failed(self) -> None:
        def broken() -> None:
            raise RuntimeError("boom")

        with pytest.raises(CompensationFailed) as excinfo, compensating("borrow") as undo:
            undo.push("release copy", broken)
            raise BookUnavailable("gone")

        assert excinfo.value.detail == {
            "failed_steps": ["release copy"],
            "cause": "BOOK_UNAVAILABLE",
        }
        assert isinstance(excinfo.value.__cause__, BookUnavailable)

    def test_untyped_error_is_never_wrapped(self) -> None:
        def broken() -> None:
            raise RuntimeError("boom")

        with pytest.raises(ValueError), compensating("borrow") as undo:
            undo.push("release copy", broken)
            raise ValueError("bad input")
