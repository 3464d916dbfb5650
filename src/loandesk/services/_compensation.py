"""Compensating actions for multi-step commands.

A command that commits several independent writes (reserve a copy, claim
a borrower slot, insert the loan) registers an undo for each step right
after it commits. If anything escapes the block, including
``KeyboardInterrupt``, the undos run newest-first before the exception
propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from loandesk.domain.errors import CompensationFailed, LoanDeskError, VersionConflict

logger = logging.getLogger(__name__)


@dataclass
class _Step:
    """One committed step and the action that undoes it."""

    label: str
    undo: Callable[[], object]


@dataclass
class CompensationLog:
    """Undo actions registered so far, in commit order."""

    op: str
    attempts: int = 5
    _steps: list[_Step] = field(default_factory=list)

    def push(self, label: str, undo: Callable[[], object]) -> None:
        self._steps.append(_Step(label, undo))

    def unwind(self) -> list[str]:
        """Run every undo newest-first. Returns labels of undos that failed."""
        failed: list[str] = []
        for step in reversed(self._steps):
            logger.warning("%s: compensating %s", self.op, step.label)
            if not self._run(step):
                failed.append(step.label)
        self._steps.clear()
        return failed

    def _run(self, step: _Step) -> bool:
        for attempt in range(1, self.attempts + 1):
            try:
                step.undo()
            except VersionConflict:
                logger.debug("%s: %s conflicted (attempt %d)", self.op, step.label, attempt)
                continue
            except Exception:
                logger.error(
                    "%s: compensation %s could not be applied",
                    self.op,
                    step.label,
                    exc_info=True,
                )
                return False
            return True
        logger.error(
            "%s: compensation %s still conflicting after %d attempts",
            self.op,
            step.label,
            self.attempts,
        )
        return False


@contextmanager
def compensating(op: str, *, attempts: int = 5) -> Iterator[CompensationLog]:
    """Run the block with an undo log; unwind it if the block fails.

    Raises:
        CompensationFailed: If a typed failure escaped the block and one of
            the undos could not be applied. The original error is chained.
    """
    log = CompensationLog(op=op, attempts=attempts)
    try:
        yield log
    except BaseException as exc:
        failed = log.unwind()
        if failed and isinstance(exc, LoanDeskError):
            raise CompensationFailed(
                f"{op} failed ({exc.code}) and could not be fully undone",
                failed_steps=failed,
                cause=exc.code,
            ) from exc
        raise
