"""What every public service method returns.

INVARIANT: Service methods never raise domain errors to their caller;
failures come back as a ``ServiceResult`` with ``ok=False``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceError(BaseModel):
    """Why an operation failed.

    ``code`` is the precise failure (``BOOK_UNAVAILABLE``); ``kind`` groups
    codes (``policy_violation``) for callers that only care about the class.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    kind: str = "internal"
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation, named by ``op``.

    ``data`` carries the payload on success, ``error`` the reason on
    failure. ``warnings`` hold problems that did not stop the operation
    and ``meta`` holds bookkeeping such as the attempt count.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
