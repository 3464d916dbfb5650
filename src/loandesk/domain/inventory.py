"""Book copy counters and their transitions.

Every function here is a pure transition: it takes a :class:`Book`
snapshot and returns a new one, or raises a typed error. Status is
recomputed by the same step that changes the counters, so a snapshot
with a stale status can never be built.

INVARIANT: 0 <= available_copies <= total_copies.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, model_validator

from loandesk.domain.errors import (
    BookUnavailable,
    CopiesOnLoan,
    InvalidCopies,
    InvalidIsbn,
    LedgerDrift,
    OverRelease,
)
from loandesk.domain.lifecycle import BookStatus, compute_book_status

ISBN_PATTERN = re.compile(r"^(?:\d{10}|\d{13})$")


class Book(BaseModel):
    """Snapshot of a book's lendable inventory."""

    model_config = {"frozen": True}

    id: str
    isbn: str
    title: str
    total_copies: int = Field(ge=0)
    available_copies: int = Field(ge=0)
    status: BookStatus = BookStatus.AVAILABLE
    version: int = 0

    @model_validator(mode="after")
    def check_counters(self) -> Book:
        if self.available_copies > self.total_copies:
            msg = (
                f"available_copies ({self.available_copies}) exceeds "
                f"total_copies ({self.total_copies})"
            )
            raise ValueError(msg)
        expected = compute_book_status(self.available_copies, withdrawn=self.withdrawn)
        if self.status != expected:
            msg = f"status {self.status!s} does not match counters (expected {expected!s})"
            raise ValueError(msg)
        return self

    @property
    def withdrawn(self) -> bool:
        return self.status == BookStatus.WITHDRAWN

    @property
    def on_loan(self) -> int:
        """Copies currently out on active loans."""
        return self.total_copies - self.available_copies

    @property
    def can_lend(self) -> bool:
        return not self.withdrawn and self.available_copies > 0

    def availability(self) -> dict[str, Any]:
        """Read-only availability view exposed to request handlers."""
        return {
            "book_id": self.id,
            "available": self.available_copies,
            "total": self.total_copies,
            "status": str(self.status),
        }


def _recount(
    book: Book,
    *,
    available: int | None = None,
    total: int | None = None,
    withdrawn: bool | None = None,
) -> Book:
    """Build the successor snapshot with status derived from the new counters."""
    new_available = book.available_copies if available is None else available
    new_total = book.total_copies if total is None else total
    new_withdrawn = book.withdrawn if withdrawn is None else withdrawn
    status = compute_book_status(new_available, withdrawn=new_withdrawn)
    return Book.model_validate(
        {
            **book.model_dump(),
            "available_copies": new_available,
            "total_copies": new_total,
            "status": status,
        }
    )


def new_book(book_id: str, isbn: str, title: str, total_copies: int) -> Book:
    """Create a book with every copy on the shelf."""
    isbn = isbn.strip()
    if not ISBN_PATTERN.match(isbn):
        raise InvalidIsbn(f"ISBN must be 10 or 13 digits: {isbn!r}", isbn=isbn)
    if total_copies < 0:
        raise InvalidCopies(
            f"Total copies cannot be negative: {total_copies}",
            total_copies=total_copies,
        )
    return Book(
        id=book_id,
        isbn=isbn,
        title=title.strip(),
        total_copies=total_copies,
        available_copies=total_copies,
        status=compute_book_status(total_copies, withdrawn=False),
    )


def reserve(book: Book) -> Book:
    """Take one copy off the shelf for a new loan."""
    if book.withdrawn:
        raise BookUnavailable(f"Book {book.id} has been withdrawn", book_id=book.id)
    if book.available_copies == 0:
        raise BookUnavailable(f"No copies of {book.id} are available", book_id=book.id)
    return _recount(book, available=book.available_copies - 1)


def release(book: Book) -> Book:
    """Put one copy back on the shelf.

    Raises:
        OverRelease: If every copy is already on the shelf. This means an
            upstream bookkeeping bug and is never clamped away.
    """
    if book.available_copies + 1 > book.total_copies:
        raise OverRelease(
            f"Releasing a copy of {book.id} would exceed its {book.total_copies} total copies",
            book_id=book.id,
            available=book.available_copies,
            total=book.total_copies,
        )
    return _recount(book, available=book.available_copies + 1)


def write_off(book: Book) -> Book:
    """Remove a copy that was on loan and is now lost from the inventory.

    The available count is untouched; the total shrinks so that
    ``available + on_loan == total`` still holds once the loan stops
    being active.
    """
    if book.on_loan == 0:
        raise LedgerDrift(
            f"Cannot write off a copy of {book.id}: no copies are on loan",
            book_id=book.id,
        )
    return _recount(book, total=book.total_copies - 1)


def adjust_total(book: Book, total_copies: int) -> Book:
    """Change the number of copies owned, keeping copies on loan intact."""
    if total_copies < 0:
        raise InvalidCopies(
            f"Total copies cannot be negative: {total_copies}",
            total_copies=total_copies,
        )
    if total_copies < book.on_loan:
        raise CopiesOnLoan(
            f"Cannot reduce {book.id} to {total_copies} copies: {book.on_loan} are on loan",
            book_id=book.id,
            on_loan=book.on_loan,
        )
    return _recount(
        book,
        total=total_copies,
        available=total_copies - book.on_loan,
    )


def withdraw(book: Book) -> Book:
    """Take the book out of circulation. Loans already out are unaffected."""
    return _recount(book, withdrawn=True)


def reinstate(book: Book) -> Book:
    """Return a withdrawn book to circulation."""
    return _recount(book, withdrawn=False)
