"""
Tests for clock sources and timestamp parsing.
"""
from datetime import datetime, timedelta, timezone, UTC

import pytest

from src.rotation.clock import FixedClock, SystemClock, ensure_utc, parse_timestamp


class TestEnsureUtc:

    def test_naive_is_taken_as_utc(self):
        result = ensure_utc(datetime(2025, 1, 1, 12, 0))

        assert result == datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def test_other_offset_is_converted(self):
        plus_two = timezone(timedelta(hours=2))

        result = ensure_utc(datetime(2025, 1, 1, 12, 0, tzinfo=plus_two))

        assert result.utcoffset() == timedelta(0)
        assert result.hour == 10


class TestParseTimestamp:

    def test_trailing_z(self):
        assert parse_timestamp("2025-01-02T08:00:00Z") == datetime(2025, 1, 2, 8, tzinfo=UTC)

    def test_explicit_offset(self):
        assert parse_timestamp("2025-01-02T10:00:00+02:00") == datetime(2025, 1, 2, 8, tzinfo=UTC)

    def test_datetime_passthrough(self):
        value = datetime(2025, 1, 2, 8, tzinfo=UTC)

        assert parse_timestamp(value) == value

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", None, 42])
    def test_invalid_raises(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestClocks:

    def test_system_clock_is_aware_utc(self):
        now = SystemClock().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_fixed_clock_does_not_move(self):
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=UTC))

        assert clock.now() == clock.now() == datetime(2025, 1, 1, tzinfo=UTC)

    def test_fixed_clock_advance_and_set(self):
        clock = FixedClock(datetime(2025, 1, 1))

        assert clock.advance(timedelta(hours=32)) == datetime(2025, 1, 2, 8, tzinfo=UTC)

        clock.set(datetime(2030, 6, 1, tzinfo=UTC))
        assert clock.now() == datetime(2030, 6, 1, tzinfo=UTC)
