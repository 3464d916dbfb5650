"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, loandesk.toml only contains
overrides. Lending limits that are part of the data invariants (active
loans per borrower, renewals per loan, loan period bounds) are not
configurable; see :mod:`loandesk.domain.lifecycle`.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field

from loandesk.domain.lifecycle import MAX_LOAN_DAYS, MIN_LOAN_DAYS


class LibraryConfig(BaseModel):
    """[library] section."""

    model_config = {"frozen": True}

    name: str = "my-library"


class LoansConfig(BaseModel):
    """[loans] section."""

    model_config = {"frozen": True}

    default_loan_days: int = Field(default=15, ge=MIN_LOAN_DAYS, le=MAX_LOAN_DAYS)
    default_renewal_days: int = Field(default=15, ge=MIN_LOAN_DAYS, le=MAX_LOAN_DAYS)
    daily_fine_rate: Decimal = Field(default=Decimal("5"), ge=0)


class EngineConfig(BaseModel):
    """[engine] section — concurrency control."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=5, ge=1)
    command_timeout_seconds: float | None = Field(default=None, gt=0)


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    path: Path = Path(".loandesk/loandesk.db")


class EventsConfig(BaseModel):
    """[events] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    max_retries: int = Field(default=3, ge=1)
    max_workers: int = Field(default=2, ge=1)
