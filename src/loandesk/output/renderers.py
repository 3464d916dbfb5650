"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). Renderers
are dispatched by ``result.op`` in :func:`render_result`; unknown ops
fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from loandesk.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from loandesk.services.result import ServiceResult

Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode: ids only."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(i for i in (_extract_id(item) for item in items) if i)

    for key in ("loan", "book"):
        ident = _extract_id(result.data.get(key))
        if ident:
            return ident
    return _extract_id(result.data) or f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("id", "loan_id", "book_id"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="ld.ok"), Text(f"  {result.op}", style="ld.op"))


def _field(console: Console, key: str, value: Any, *, style: str | None = None) -> None:
    """Print a single indented key-value field."""
    line = Text(f"  {key}: ", style="ld.key")
    if style is None:
        if key == "id" or key.endswith("_id"):
            style = "ld.id"
        elif key == "title":
            style = "ld.title"
        elif key == "status":
            style = style_for_status(str(value))
    line.append(str(value), style=style or "")
    console.print(line)


def _loan_status(loan: dict[str, Any]) -> str:
    return "overdue" if loan.get("overdue") else str(loan.get("status", ""))


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="ld.error"),
        Text(f"  {result.op}", style="ld.op"),
        Text(f"{code} — {msg}"),
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Book renderers ────────────────────────────────────────────────────


def _render_book(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add_book / withdraw / reinstate / adjust_copies results."""
    _status_line(console, result)
    book = result.data.get("book", {})
    for key in ("id", "isbn", "title", "status"):
        if key in book:
            _field(console, key, book[key])
    _field(console, "copies", f"{book.get('available_copies')}/{book.get('total_copies')} available")
    if verbose:
        _field(console, "version", book.get("version"))
        _render_meta(console, result)


def _render_availability(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _field(console, "book_id", d.get("book_id"))
    _field(console, "available", f"{d.get('available')}/{d.get('total')}")
    _field(console, "status", d.get("status"))


def _render_book_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("ID", style="ld.id", no_wrap=True)
    table.add_column("ISBN", no_wrap=True)
    table.add_column("Title", style="ld.title")
    table.add_column("Available", justify="right")
    table.add_column("Status")
    if verbose:
        table.add_column("Version", style="dim", justify="right")

    for item in items:
        status = str(item.get("status", ""))
        row = [
            str(item.get("id", "")),
            str(item.get("isbn", "")),
            str(item.get("title", "")),
            f"{item.get('available_copies')}/{item.get('total_copies')}",
            Text(status, style=style_for_status(status)),
        ]
        if verbose:
            row.append(str(item.get("version", "")))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} books")


# ── Loan renderers ────────────────────────────────────────────────────


def _render_loan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render borrow / return / renew / lost / pay / show results."""
    _status_line(console, result)
    loan = result.data.get("loan", {})
    for key in ("id", "book_id", "borrower_id", "borrowed_at", "due_at"):
        if key in loan:
            _field(console, key, loan[key])
    status = _loan_status(loan)
    _field(console, "status", status, style=style_for_status(status))
    if loan.get("overdue"):
        _field(console, "days_overdue", loan.get("days_overdue"))
    if loan.get("renewal_count"):
        _field(console, "renewals", loan["renewal_count"])
    for key in ("returned_at", "lost_at"):
        if loan.get(key):
            _field(console, key, loan[key])

    fine = loan.get("fine")
    if fine:
        paid = "paid" if fine.get("paid") else "unpaid"
        _field(console, "fine", f"{fine['amount']} ({fine['reason']}, {paid})", style="ld.money")

    book = result.data.get("book")
    if book:
        _field(console, "book", f"{book['available']}/{book['total']} available ({book['status']})")
    if verbose:
        _render_meta(console, result)


def _render_loan_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("ID", style="ld.id", no_wrap=True)
    table.add_column("Book", no_wrap=True)
    table.add_column("Borrower")
    table.add_column("Due")
    table.add_column("Status")
    table.add_column("Fine", style="ld.money", justify="right")
    if verbose:
        table.add_column("Renewals", justify="right")

    for item in items:
        status = _loan_status(item)
        fine = item.get("fine")
        row = [
            str(item.get("id", "")),
            str(item.get("book_id", "")),
            str(item.get("borrower_id", "")),
            str(item.get("due_at", "")),
            Text(status, style=style_for_status(status)),
            str(fine["amount"]) if fine else "",
        ]
        if verbose:
            row.append(str(item.get("renewal_count", 0)))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} loans")


def _render_sweep(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "overdue", d.get("overdue", 0))
    _field(console, "newly_overdue", len(d.get("newly_overdue", [])))
    rows = d.get("items", [])
    if not rows:
        return
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Loan", style="ld.id", no_wrap=True)
    table.add_column("Book", no_wrap=True)
    table.add_column("Borrower")
    table.add_column("Due")
    table.add_column("Days", style="ld.status.overdue", justify="right")
    for row in rows:
        table.add_row(
            str(row["loan_id"]),
            str(row["book_id"]),
            str(row["borrower_id"]),
            str(row["due_at"]),
            str(row["days_overdue"]),
        )
    console.print()
    console.print(table)


# ── Check renderer ────────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))

    if count == 0:
        console.print("[ld.ok]OK[/ld.ok]  No issues found.")
        return

    severity_styles = {"error": "ld.error", "warning": "ld.warning"}

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            subject = issue.get("subject")
            tag = f" \\[{subject}]" if subject else ""
            console.print(f"  {prefix}{tag}: {issue.get('message', '')}")

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {count - errors} warnings")


# ── Init renderer ─────────────────────────────────────────────────────


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("name", "path", "config", "database"):
        if key in result.data:
            _field(console, key, result.data[key])


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Catalog
    "add_book": _render_book,
    "get_book": _render_book,
    "withdraw": _render_book,
    "reinstate": _render_book,
    "adjust_copies": _render_book,
    "get_availability": _render_availability,
    "list_books": _render_book_table,
    # Loans
    "borrow": _render_loan,
    "return_loan": _render_loan,
    "renew": _render_loan,
    "mark_lost": _render_loan,
    "pay_fine": _render_loan,
    "get_loan": _render_loan,
    "list_loans": _render_loan_table,
    "sweep_overdue": _render_sweep,
    # Maintenance
    "check": _render_check,
    "init": _render_init,
}
