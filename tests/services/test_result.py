"""Tests for ServiceResult and ServiceError."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from loandesk.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_defaults(self) -> None:
        result = ServiceResult(ok=True, op="borrow", data={"loan": {"id": "LOAN-0001"}})
        assert result.error is None
        assert result.warnings == []
        assert result.meta is None

    def test_failure_carries_error(self) -> None:
        result = ServiceResult(
            ok=False,
            op="borrow",
            error=ServiceError(
                code="BOOK_UNAVAILABLE",
                kind="policy_violation",
                message="No copies",
                detail={"book_id": "BOOK-0001"},
            ),
        )
        payload = json.loads(result.model_dump_json())
        assert payload["error"]["code"] == "BOOK_UNAVAILABLE"
        assert payload["error"]["kind"] == "policy_violation"
        assert payload["error"]["detail"] == {"book_id": "BOOK-0001"}

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="x")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]
