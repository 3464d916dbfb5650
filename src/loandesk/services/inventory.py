"""InventoryService — per-book copy counters and catalog administration.

Two surfaces:

* Ledger operations (``reserve_copy``, ``release_copy``, ``write_off_copy``)
  are called by :class:`~loandesk.services.loans.LoanService`
  and raise typed errors so the caller can compensate.
* Catalog operations (``add_book``, ``get_availability``, ``withdraw`` ...)
  are public and return :class:`ServiceResult`.

Every counter change is load -> pure transition -> compare-and-swap save,
retried on :class:`VersionConflict`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from loandesk.domain import inventory
from loandesk.domain.errors import LoanDeskError, VersionConflict
from loandesk.domain.inventory import Book
from loandesk.services.base import BaseService, Clock
from loandesk.services.result import ServiceResult

if TYPE_CHECKING:
    from loandesk.infrastructure.store import Store

logger = logging.getLogger(__name__)


class InventoryService(BaseService):
    """Book inventory ledger backed by the Store."""

    def __init__(self, store: Store, *, clock: Clock | None = None) -> None:
        super().__init__(store, clock=clock)
        self._max_attempts = store.settings.engine.max_attempts

    # ------------------------------------------------------------------
    # Ledger operations (raise typed errors)
    # ------------------------------------------------------------------

    def reserve_copy(self, book_id: str) -> Book:
        """Take one copy of *book_id* off the shelf.

        Raises:
            BookNotFound: Unknown book.
            BookUnavailable: Withdrawn, or no copy left.
            VersionConflict: Still contended after every attempt.
        """
        return self._apply(book_id, inventory.reserve)

    def release_copy(self, book_id: str) -> Book:
        """Put one copy of *book_id* back on the shelf.

        Raises:
            OverRelease: Every copy is already on the shelf.
        """
        return self._apply(book_id, inventory.release)

    def write_off_copy(self, book_id: str) -> Book:
        """Remove a lost copy from the book's total."""
        return self._apply(book_id, inventory.write_off)

    def _apply(self, book_id: str, transition: Callable[[Book], Book]) -> Book:
        for attempt in range(1, self._max_attempts + 1):
            book = self._store.load_book(book_id)
            updated = transition(book)
            try:
                saved = self._store.save_book(updated, book.version)
            except VersionConflict:
                logger.debug(
                    "%s on %s conflicted (attempt %d/%d)",
                    transition.__name__,
                    book_id,
                    attempt,
                    self._max_attempts,
                )
                continue
            logger.debug(
                "%s %s: %d/%d available",
                transition.__name__,
                book_id,
                saved.available_copies,
                saved.total_copies,
            )
            return saved
        raise VersionConflict(
            f"Book {book_id} stayed contended after {self._max_attempts} attempts",
            book_id=book_id,
            attempts=self._max_attempts,
        )

    # ------------------------------------------------------------------
    # Catalog operations (return ServiceResult)
    # ------------------------------------------------------------------

    def add_book(self, isbn: str, title: str, total_copies: int = 1) -> ServiceResult:
        """Register a new book with all of its copies available."""
        op = "add_book"
        try:
            book = self._store.insert_book(
                lambda book_id: inventory.new_book(book_id, isbn, title, total_copies)
            )
        except LoanDeskError as exc:
            return self._failure(op, exc)
        logger.debug("Added %s (%s) with %d copies", book.id, book.isbn, book.total_copies)
        return ServiceResult(ok=True, op=op, data={"book": self._book_data(book)})

    def get_book(self, book_id: str) -> ServiceResult:
        op = "get_book"
        try:
            book = self._store.load_book(book_id)
        except LoanDeskError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"book": self._book_data(book)})

    def get_availability(self, book_id: str) -> ServiceResult:
        """Read-only ``{available, total, status}`` view of a book."""
        op = "get_availability"
        try:
            book = self._store.load_book(book_id)
        except LoanDeskError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data=book.availability())

    def list_books(self) -> ServiceResult:
        books = self._store.list_books()
        return ServiceResult(
            ok=True,
            op="list_books",
            data={"count": len(books), "items": [self._book_data(b) for b in books]},
        )

    def withdraw(self, book_id: str) -> ServiceResult:
        """Stop lending *book_id*. Copies already out stay on their loans."""
        return self._catalog_change("withdraw", book_id, inventory.withdraw)

    def reinstate(self, book_id: str) -> ServiceResult:
        return self._catalog_change("reinstate", book_id, inventory.reinstate)

    def adjust_copies(self, book_id: str, total_copies: int) -> ServiceResult:
        """Change how many copies the library owns."""
        return self._catalog_change(
            "adjust_copies",
            book_id,
            lambda book: inventory.adjust_total(book, total_copies),
        )

    def _catalog_change(
        self,
        op: str,
        book_id: str,
        transition: Callable[[Book], Book],
    ) -> ServiceResult:
        try:
            book = self._apply(book_id, transition)
        except LoanDeskError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"book": self._book_data(book)})

    @staticmethod
    def _book_data(book: Book) -> dict[str, object]:
        return book.model_dump(mode="json")
