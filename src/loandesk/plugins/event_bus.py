"""Domain event delivery backed by the ``event_wal`` table.

Every event is committed to the log before any plugin sees it. Delivery
then runs inline (``sync``) or on a small thread pool. A delivery that
raises stays in the log as ``failed`` until :meth:`EventBus.drain`
redelivers it; once it has used up ``max_retries`` it is parked as
``dead_letter``.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, insert, null, select, update

from loandesk.infrastructure.database.schema import event_wal
from loandesk.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from loandesk.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

_SETTLE_TIMEOUT = 30


class EventStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


_REDELIVERABLE = (EventStatus.PENDING.value, EventStatus.FAILED.value)


class EventBus:
    """Log-then-deliver dispatch of pluggy hooks.

    ``sync=True`` (the ``--sync`` flag) delivers on the calling thread,
    which is what tests and one-shot CLI invocations want.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._plugins = plugin_manager
        self._max_retries = max_retries
        self._pool: ThreadPoolExecutor | None = None
        if not sync:
            self._pool = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="loandesk-events"
            )
        self._inflight: list[Future[EventStatus]] = []

    @property
    def plugin_manager(self) -> PluginManager:
        return self._plugins

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Log *payload* under *hook_name*, then deliver it.

        Returns the id of the log row.
        """
        with self._engine.begin() as conn:
            event_id: int = conn.execute(
                insert(event_wal).values(
                    hook_name=hook_name,
                    payload=json.dumps(payload, default=str),
                    status=EventStatus.PENDING.value,
                    retries=0,
                    created=now_iso(),
                )
            ).inserted_primary_key[0]

        if self._pool is None:
            self._deliver(event_id, hook_name, payload)
        else:
            self._inflight.append(self._pool.submit(self._deliver, event_id, hook_name, payload))
        return event_id

    def drain(self) -> list[dict[str, Any]]:
        """Settle in-flight deliveries, then redeliver whatever is not done.

        Returns ``{id, hook_name, status}`` for each redelivered event.
        """
        self._settle()
        with self._engine.connect() as conn:
            backlog = conn.execute(
                select(event_wal.c.id, event_wal.c.hook_name, event_wal.c.payload)
                .where(event_wal.c.status.in_(_REDELIVERABLE))
                .order_by(event_wal.c.id)
            ).fetchall()

        return [
            {
                "id": row.id,
                "hook_name": row.hook_name,
                "status": str(self._deliver(row.id, row.hook_name, json.loads(row.payload))),
            }
            for row in backlog
        ]

    def shutdown(self) -> None:
        self._settle()
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def _deliver(self, event_id: int, hook_name: str, payload: dict[str, Any]) -> EventStatus:
        caller = getattr(self._plugins.hook, hook_name, None)
        try:
            if caller is not None:
                caller(**payload)
        except Exception as exc:
            logger.warning("Plugin hook %s failed: %s", hook_name, exc)
            return self._record_failure(event_id, str(exc))

        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(status=EventStatus.COMPLETED.value, completed=now_iso())
            )
        return EventStatus.COMPLETED

    def _record_failure(self, event_id: int, error: str) -> EventStatus:
        # SET expressions see the pre-update row, so this is the new count.
        exhausted = event_wal.c.retries + 1 >= self._max_retries
        with self._engine.begin() as conn:
            status = conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(
                    retries=event_wal.c.retries + 1,
                    error=error,
                    status=case(
                        (exhausted, EventStatus.DEAD_LETTER.value),
                        else_=EventStatus.FAILED.value,
                    ),
                    completed=case((exhausted, now_iso()), else_=null()),
                )
                .returning(event_wal.c.status)
            ).scalar_one()
        if status == EventStatus.DEAD_LETTER:
            logger.warning("Event %d (%s) moved to dead_letter", event_id, error)
        return EventStatus(status)

    def _settle(self) -> None:
        inflight, self._inflight = self._inflight, []
        for future in inflight:
            try:
                future.result(timeout=_SETTLE_TIMEOUT)
            except Exception:
                logger.warning("Event delivery did not finish cleanly", exc_info=True)
