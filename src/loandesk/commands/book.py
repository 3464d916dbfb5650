"""Command group: catalog and copy inventory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from loandesk.commands._base import LoanDeskGroup

if TYPE_CHECKING:
    from loandesk.commands._context import AppContext

_BOOK_EXAMPLES = """\
  loandesk book add 9780262033848 "Introduction to Algorithms" --copies 3
  loandesk book show BOOK-0001
  loandesk book list
  loandesk book copies BOOK-0001 5
  loandesk book withdraw BOOK-0001"""


@click.group(cls=LoanDeskGroup, examples=_BOOK_EXAMPLES)
@click.pass_obj
def book(app: AppContext) -> None:
    """Add books and manage their copies."""


@book.command(
    examples="""\
  loandesk book add 9780262033848 "Introduction to Algorithms"
  loandesk book add 0131103628 "The C Programming Language" --copies 4"""
)
@click.argument("isbn")
@click.argument("title")
@click.option("--copies", default=1, type=click.IntRange(min=0), help="Copies owned.")
@click.pass_obj
def add(app: AppContext, isbn: str, title: str, copies: int) -> None:
    """Add a book to the catalog."""
    app.emit(app.inventory().add_book(isbn, title, copies))


@book.command(
    examples="""\
  loandesk book show BOOK-0001
  loandesk --json book show BOOK-0001"""
)
@click.argument("book_id")
@click.pass_obj
def show(app: AppContext, book_id: str) -> None:
    """Show a book's availability."""
    app.emit(app.inventory().get_availability(book_id))


@book.command("list", examples="  loandesk book list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every book in the catalog."""
    app.emit(app.inventory().list_books())


@book.command(examples="  loandesk book withdraw BOOK-0001")
@click.argument("book_id")
@click.pass_obj
def withdraw(app: AppContext, book_id: str) -> None:
    """Stop lending a book. Copies already out stay on loan."""
    app.emit(app.inventory().withdraw(book_id))


@book.command(examples="  loandesk book reinstate BOOK-0001")
@click.argument("book_id")
@click.pass_obj
def reinstate(app: AppContext, book_id: str) -> None:
    """Return a withdrawn book to circulation."""
    app.emit(app.inventory().reinstate(book_id))


@book.command(examples="  loandesk book copies BOOK-0001 5")
@click.argument("book_id")
@click.argument("total", type=click.IntRange(min=0))
@click.pass_obj
def copies(app: AppContext, book_id: str, total: int) -> None:
    """Set how many copies of a book the library owns."""
    app.emit(app.inventory().adjust_copies(book_id, total))
