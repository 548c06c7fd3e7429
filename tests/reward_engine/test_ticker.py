"""
Tests for the Live Ticker.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.clock import MockClock
from reward_engine.eligibility import EligibilityState
from reward_engine.ticker import LiveTicker, format_countdown


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class StateHolder:
    """Mutable stand-in for the cache's timestamps."""

    def __init__(self, last_claim=None, last_event=None):
        self.last_claim = last_claim
        self.last_event = last_event
        self.reads = 0

    def __call__(self):
        self.reads += 1
        return EligibilityState(
            last_claim_time=self.last_claim,
            last_event_time=self.last_event,
            cooldown_seconds=86400,
            priority_window_seconds=172800,
        )


# ============================================================
# FORMAT TESTS
# ============================================================

class TestFormatCountdown:
    """Tests for format_countdown."""

    @pytest.mark.parametrize("ms, expected", [
        (0, "Ready!"),
        (-5, "Ready!"),
        (1000, "0h 0m 1s"),
        (999, "0h 0m 0s"),
        (86399000, "23h 59m 59s"),
        (172800000, "48h 0m 0s"),
    ])
    def test_format(self, ms, expected):
        assert format_countdown(ms) == expected


# ============================================================
# TICK TESTS
# ============================================================

class TestTick:
    """Tests for LiveTicker.tick."""

    def test_countdowns_follow_clock(self):
        clock = MockClock(NOW)
        source = StateHolder(last_claim=NOW - timedelta(seconds=86390))
        ticker = LiveTicker(source, clock)

        first = ticker.tick()
        clock.advance(seconds=1)
        second = ticker.tick()

        assert first.time_until_cooldown_ready_ms == 10000
        assert second.time_until_cooldown_ready_ms == 9000
        assert second.time_remaining_in_priority_window_ms == 0

    def test_absent_timestamps_emit_zero_once_then_disarm(self):
        clock = MockClock(NOW)
        ticker = LiveTicker(StateHolder(), clock)
        readings = []
        ticker.add_listener(readings.append)

        first = ticker.tick()
        second = ticker.tick()

        assert first.time_until_cooldown_ready_ms == 0
        assert first.time_remaining_in_priority_window_ms == 0
        assert not first.armed
        assert second is None
        assert len(readings) == 1
        assert not ticker.is_armed

    def test_rearm_when_timestamp_reappears(self):
        clock = MockClock(NOW)
        source = StateHolder()
        ticker = LiveTicker(source, clock)
        ticker.tick()

        assert ticker.rearm() is False

        source.last_event = NOW - timedelta(seconds=1)
        assert ticker.rearm() is True
        assert ticker.is_armed

        reading = ticker.tick()
        assert reading.time_remaining_in_priority_window_ms == 172799000

    def test_listener_error_does_not_stop_ticking(self):
        ticker = LiveTicker(StateHolder(last_claim=NOW), MockClock(NOW))
        received = []

        def broken(reading):
            raise RuntimeError("boom")

        ticker.add_listener(broken)
        ticker.add_listener(received.append)
        ticker.tick()

        assert len(received) == 1

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            LiveTicker(StateHolder(), MockClock(NOW), interval=0)


# ============================================================
# LIFECYCLE TESTS
# ============================================================

class TestLifecycle:
    """Tests for start/stop."""

    @pytest.mark.asyncio
    async def test_runs_periodically(self):
        ticker = LiveTicker(StateHolder(last_claim=NOW), MockClock(NOW), interval=0.01)
        readings = []
        ticker.add_listener(readings.append)

        await ticker.start()
        await asyncio.sleep(0.05)
        await ticker.stop()

        assert len(readings) >= 3

    @pytest.mark.asyncio
    async def test_no_emission_after_stop(self):
        source = StateHolder(last_claim=NOW)
        ticker = LiveTicker(source, MockClock(NOW), interval=0.01)
        readings = []
        ticker.add_listener(readings.append)

        await ticker.start()
        await asyncio.sleep(0.03)
        await ticker.stop()
        count = len(readings)

        await asyncio.sleep(0.03)
        assert ticker.tick() is None
        assert len(readings) == count
        assert not ticker.is_running

    @pytest.mark.asyncio
    async def test_disarmed_loop_sleeps_until_rearmed(self):
        source = StateHolder()
        ticker = LiveTicker(source, MockClock(NOW), interval=0.01)
        readings = []
        ticker.add_listener(readings.append)

        await ticker.start()
        await asyncio.sleep(0.05)
        assert len(readings) == 1
        reads_while_disarmed = source.reads

        await asyncio.sleep(0.03)
        assert source.reads == reads_while_disarmed

        source.last_claim = NOW
        ticker.rearm()
        await asyncio.sleep(0.03)
        await ticker.stop()

        assert len(readings) > 1
        assert readings[-1].armed
