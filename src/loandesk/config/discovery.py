"""Locating ``loandesk.toml``.

The working directory and then each of its ancestors is searched, the
same way git looks for ``.git``. ``LOANDESK_CONFIG`` skips the search.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "loandesk.toml"
CONFIG_ENV_VAR = "LOANDESK_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file governing *start* (default: cwd), or None.

    When ``LOANDESK_CONFIG`` is set it is the only candidate: a missing
    file there means no config, not a fallback to the search.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        pinned = Path(override)
        return pinned if pinned.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
