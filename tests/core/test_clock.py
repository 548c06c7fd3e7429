"""
Tests for the clock abstraction and timestamp helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.clock import (
    CHAIN_EPOCH,
    MockClock,
    SystemClock,
    millis_between,
    parse_chain_time,
    to_iso8601,
    whole_seconds_between,
)


BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================
# CLOCK TESTS
# ============================================================

class TestMockClock:
    """Tests for MockClock."""

    def test_initial_time(self):
        clock = MockClock(BASE_TIME)
        assert clock.now() == BASE_TIME

    def test_naive_time_treated_as_utc(self):
        clock = MockClock(datetime(2024, 5, 1, 12, 0, 0))
        assert clock.now() == BASE_TIME
        assert clock.now().tzinfo == timezone.utc

    def test_advance(self):
        clock = MockClock(BASE_TIME)
        clock.advance(seconds=90)
        clock.advance(hours=1)

        assert clock.now() == BASE_TIME + timedelta(hours=1, seconds=90)

    def test_set_time(self):
        clock = MockClock(BASE_TIME)
        target = BASE_TIME + timedelta(days=3)
        clock.set_time(target)

        assert clock.now() == target
        assert clock.timestamp() == target.timestamp()

    def test_format_iso(self):
        clock = MockClock(BASE_TIME)
        assert clock.format_iso() == "2024-05-01T12:00:00+00:00"


class TestSystemClock:
    """Tests for SystemClock."""

    def test_now_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo == timezone.utc


# ============================================================
# TIMESTAMP TESTS
# ============================================================

class TestParseChainTime:
    """Tests for parse_chain_time."""

    def test_chain_format(self):
        assert parse_chain_time("2024-05-01T12:00:00.000") == BASE_TIME

    def test_trailing_z(self):
        assert parse_chain_time("2024-05-01T12:00:00Z") == BASE_TIME

    def test_without_fraction(self):
        assert parse_chain_time("2024-05-01T12:00:00") == BASE_TIME

    @pytest.mark.parametrize("value", [None, "", "not-a-date", 12345])
    def test_missing_or_malformed_is_absent(self, value):
        assert parse_chain_time(value) is None

    def test_epoch_sentinel_is_absent(self):
        assert parse_chain_time("1970-01-01T00:00:00.000") is None

    def test_epoch_constant(self):
        assert CHAIN_EPOCH == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_iso_roundtrip_of_naive(self):
        assert to_iso8601(datetime(2024, 5, 1, 12, 0, 0)) == "2024-05-01T12:00:00+00:00"


class TestDurations:
    """Tests for elapsed-time helpers."""

    def test_whole_seconds_floored(self):
        end = BASE_TIME + timedelta(seconds=5, milliseconds=999)
        assert whole_seconds_between(BASE_TIME, end) == 5

    def test_whole_seconds_clamped_for_future_start(self):
        assert whole_seconds_between(BASE_TIME + timedelta(seconds=30), BASE_TIME) == 0

    def test_millis_signed(self):
        assert millis_between(BASE_TIME, BASE_TIME + timedelta(seconds=1)) == 1000
        assert millis_between(BASE_TIME + timedelta(seconds=1), BASE_TIME) == -1000

    def test_millis_floored(self):
        end = BASE_TIME + timedelta(microseconds=1500)
        assert millis_between(BASE_TIME, end) == 1
