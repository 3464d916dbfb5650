"""Tests for the book command group."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from loandesk.cli import cli
from tests.conftest import invoke_json


@pytest.mark.usefixtures("_isolated_library")
class TestBookCommands:
    def test_add_and_show(self, cli_runner: CliRunner) -> None:
        added = invoke_json(cli_runner, "book", "add", "9780262033848", "CLRS", "--copies", "3")
        assert added["data"]["book"]["id"] == "BOOK-0001"

        shown = invoke_json(cli_runner, "book", "show", "BOOK-0001")
        assert shown["data"] == {
            "book_id": "BOOK-0001",
            "available": 3,
            "total": 3,
            "status": "available",
        }

    def test_add_rich_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["book", "add", "9780262033848", "CLRS", "--copies", "2"])
        assert result.exit_code == 0
        assert "add_book" in result.stdout
        assert "BOOK-0001" in result.stdout
        assert "2/2 available" in result.stdout

    def test_quiet_prints_id(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "book", "add", "9780262033848", "CLRS"])
        assert result.stdout.strip() == "BOOK-0001"

    def test_duplicate_isbn(self, cli_runner: CliRunner) -> None:
        invoke_json(cli_runner, "book", "add", "9780262033848", "CLRS")
        error = invoke_json(cli_runner, "book", "add", "9780262033848", "Again", exit_code=1)
        assert error["ok"] is False
        assert error["error"]["code"] == "DUPLICATE_ISBN"

    def test_invalid_isbn_rich_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["book", "add", "12-34", "Bad"])
        assert result.exit_code == 1
        assert "ERROR" in result.stderr
        assert "[INVALID_ISBN]" in result.stderr

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        error = invoke_json(cli_runner, "book", "show", "BOOK-0042", exit_code=1)
        assert error["error"]["code"] == "NOT_FOUND"

    def test_list(self, cli_runner: CliRunner) -> None:
        invoke_json(cli_runner, "book", "add", "9780262033848", "CLRS")
        invoke_json(cli_runner, "book", "add", "0131103628", "K&R")
        listed = invoke_json(cli_runner, "book", "list")
        assert listed["data"]["count"] == 2

        table = cli_runner.invoke(cli, ["book", "list"])
        assert "K&R" in table.stdout
        assert "2 books" in table.stdout

    def test_withdraw_and_reinstate(self, cli_runner: CliRunner) -> None:
        invoke_json(cli_runner, "book", "add", "9780262033848", "CLRS")
        withdrawn = invoke_json(cli_runner, "book", "withdraw", "BOOK-0001")
        assert withdrawn["data"]["book"]["status"] == "withdrawn"
        reinstated = invoke_json(cli_runner, "book", "reinstate", "BOOK-0001")
        assert reinstated["data"]["book"]["status"] == "available"

    def test_copies(self, cli_runner: CliRunner) -> None:
        invoke_json(cli_runner, "book", "add", "9780262033848", "CLRS", "--copies", "2")
        adjusted = invoke_json(cli_runner, "book", "copies", "BOOK-0001", "5")
        assert adjusted["data"]["book"]["total_copies"] == 5
        assert adjusted["data"]["book"]["available_copies"] == 5

    def test_negative_copies_rejected_by_parser(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["book", "copies", "BOOK-0001", "-1"])
        assert result.exit_code == 2
