"""Tests for loandesk.toml discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from loandesk.config.discovery import CONFIG_ENV_VAR, find_config


class TestFindConfig:
    def test_found_in_start_dir(self, tmp_path: Path) -> None:
        (tmp_path / "loandesk.toml").write_text("", encoding="utf-8")
        assert find_config(tmp_path) == (tmp_path / "loandesk.toml").resolve()

    def test_walks_up(self, tmp_path: Path) -> None:
        (tmp_path / "loandesk.toml").write_text("", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == (tmp_path / "loandesk.toml").resolve()

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "loandesk.toml").write_text("", encoding="utf-8")
        other = tmp_path / "elsewhere.toml"
        other.write_text("", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(other))
        assert find_config(tmp_path) == other

    def test_env_var_pointing_nowhere(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "loandesk.toml").write_text("", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None
