"""Gap-free sequential IDs (``BOOK-0001``, ``LOAN-0042``).

A counter is bumped and read back in one ``UPDATE ... RETURNING``, so
concurrent writers always get distinct values. The caller's transaction
owns the bump: if the row that needed the ID is rolled back, so is the
counter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update

from loandesk.infrastructure.database.engine import SEQUENTIAL_PREFIXES
from loandesk.infrastructure.database.schema import id_counters

if TYPE_CHECKING:
    from sqlalchemy import Connection


def next_sequential_id(conn: Connection, type_prefix: str) -> str:
    """Claim the next ID for *type_prefix* inside *conn*'s transaction.

    IDs are zero-padded to four digits and keep growing past ``9999``.
    An unknown prefix is a programming error and raises ``ValueError``.
    """
    if type_prefix not in SEQUENTIAL_PREFIXES:
        raise ValueError(f"no counter for prefix {type_prefix!r}")

    after = conn.execute(
        update(id_counters)
        .where(id_counters.c.type_prefix == type_prefix)
        .values(next_value=id_counters.c.next_value + 1)
        .returning(id_counters.c.next_value)
    ).scalar_one()
    return f"{type_prefix}{after - 1:04d}"
