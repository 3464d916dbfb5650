"""Tests for service-layer helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from loandesk.services._helpers import as_utc, now_iso, utc_now


class TestHelpers:
    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is UTC

    def test_now_iso_parses(self) -> None:
        assert datetime.fromisoformat(now_iso()).utcoffset() == timedelta(0)

    def test_naive_taken_as_utc(self) -> None:
        assert as_utc(datetime(2024, 1, 1, 9)) == datetime(2024, 1, 1, 9, tzinfo=UTC)

    def test_offset_converted(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        converted = as_utc(datetime(2024, 1, 1, 9, tzinfo=plus_two))
        assert converted == datetime(2024, 1, 1, 7, tzinfo=UTC)
        assert converted.tzinfo is UTC
