"""Late-return fines.

A fine exists only for a late return. An on-time return produces no fine
object at all, so reporting can tell "on time" apart from "fined 0".
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field

ONE_DAY = timedelta(days=1)


class Fine(BaseModel):
    """Monetary penalty attached to a returned loan."""

    model_config = {"frozen": True}

    amount: Decimal = Field(ge=0)
    reason: str
    paid: bool = False
    paid_at: datetime | None = None


def late_days(due_at: datetime, returned_at: datetime) -> int:
    """Whole days late, rounding any partial day up. Never negative.

    Examples:
        >>> from datetime import UTC
        >>> due = datetime(2024, 1, 1, tzinfo=UTC)
        >>> late_days(due, datetime(2024, 1, 4, tzinfo=UTC))
        3
        >>> late_days(due, datetime(2024, 1, 1, 0, 0, 1, tzinfo=UTC))
        1
        >>> late_days(due, due)
        0
    """
    overdue = returned_at - due_at
    if overdue <= timedelta(0):
        return 0
    whole, remainder = divmod(overdue, ONE_DAY)
    return whole + (1 if remainder else 0)


def compute_fine(
    due_at: datetime,
    returned_at: datetime,
    daily_rate: Decimal | int | str,
) -> Fine | None:
    """Compute the fine for a return at *returned_at*.

    Returns None when the loan came back on time.
    """
    rate = Decimal(daily_rate)
    if rate < 0:
        msg = f"Daily fine rate must be non-negative, got {rate}"
        raise ValueError(msg)

    days = late_days(due_at, returned_at)
    if days == 0:
        return None
    return Fine(amount=days * rate, reason=f"late by {days} day(s)")
