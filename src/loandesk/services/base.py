"""BaseService — shared foundation for all loandesk services.

Every service receives a :class:`Store` at construction time, plus an
optional clock so tests can pin "now". Services translate typed domain
errors into :class:`ServiceResult` failures at their public boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from loandesk.domain.errors import ErrorKind, LoanDeskError
from loandesk.services._helpers import as_utc, utc_now
from loandesk.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from loandesk.infrastructure.store import Store

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class InventoryService(BaseService):
            def get_availability(self, book_id: str) -> ServiceResult:
                try:
                    book = self._store.load_book(book_id)
                except LoanDeskError as exc:
                    return self._failure("get_availability", exc)
                ...
    """

    def __init__(self, store: Store, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock: Clock = clock or utc_now

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a domain event. No-op if event bus not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    @staticmethod
    def _failure(
        op: str,
        exc: LoanDeskError,
        *,
        meta: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Map a typed domain error onto a failed ServiceResult."""
        if exc.kind == ErrorKind.INTERNAL:
            logger.error("%s failed: %s (%s)", op, exc.message, exc.code)
        else:
            logger.debug("%s rejected: %s (%s)", op, exc.message, exc.code)
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(
                code=exc.code,
                kind=str(exc.kind),
                message=exc.message,
                detail=exc.detail,
            ),
            meta=meta,
        )
