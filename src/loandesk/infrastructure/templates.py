"""Jinja2 template loading with per-library override support."""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader


def build_template_environment(*, root: Path | None = None) -> Environment:
    """Build a Jinja2 environment with user overrides before packaged defaults.

    Overrides are loaded from ``.loandesk/templates/`` under *root*.
    """
    loaders: list[BaseLoader] = []
    if root is not None:
        loaders.append(FileSystemLoader(str(root / ".loandesk" / "templates")))

    loaders.append(PackageLoader("loandesk", "templates"))
    return Environment(loader=ChoiceLoader(loaders), keep_trailing_newline=True)
