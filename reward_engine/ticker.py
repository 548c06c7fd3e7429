"""
Reward Engine - Live Ticker.

============================================================
RESPONSIBILITY
============================================================
Once per second, recompute the two countdowns from timestamps the
feed cache already holds:

    time_until_cooldown_ready      = max(0, cooldown - (now - last_claim))
    time_remaining_in_priority_win = max(0, window - (now - last_event))

Never performs network I/O. When both timestamps are absent it emits
a single zero reading and disarms until rearm() finds a timestamp
again. stop() cancels the task; nothing is emitted afterwards.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from core.clock import ClockProtocol
from core.constants import SECONDS_PER_HOUR, TICK_INTERVAL_SECONDS
from reward_engine.eligibility import (
    EligibilityState,
    time_remaining_in_priority_window_ms,
    time_until_cooldown_ready_ms,
)


logger = logging.getLogger(__name__)

StateSource = Callable[[], Optional[EligibilityState]]
TickListener = Callable[["TickerReading"], None]


def format_countdown(ms: int) -> str:
    """Render a countdown as ``"Hh Mm Ss"``, or ``"Ready!"`` once it reaches 0."""
    if ms <= 0:
        return "Ready!"

    total_seconds = ms // 1000
    hours = total_seconds // SECONDS_PER_HOUR
    minutes = (total_seconds % SECONDS_PER_HOUR) // 60
    seconds = total_seconds % 60
    return f"{hours}h {minutes}m {seconds}s"


@dataclass(frozen=True)
class TickerReading:
    """Countdowns at one tick."""
    now: datetime
    time_until_cooldown_ready_ms: int
    time_remaining_in_priority_window_ms: int
    armed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "now": self.now.isoformat(),
            "time_until_cooldown_ready_ms": self.time_until_cooldown_ready_ms,
            "time_remaining_in_priority_window_ms": self.time_remaining_in_priority_window_ms,
            "cooldown_countdown": format_countdown(self.time_until_cooldown_ready_ms),
            "priority_window_countdown": format_countdown(self.time_remaining_in_priority_window_ms),
            "armed": self.armed,
        }


def _has_timestamp(state: Optional[EligibilityState]) -> bool:
    return state is not None and (
        state.last_claim_time is not None or state.last_event_time is not None
    )


class LiveTicker:
    """
    Cooperative one-second timer over cached timestamps.

    Usage:
        ticker = LiveTicker(engine.eligibility_state, clock)
        ticker.add_listener(lambda reading: print(reading.to_dict()))
        await ticker.start()
        ...
        await ticker.stop()
    """

    def __init__(
        self,
        source: StateSource,
        clock: ClockProtocol,
        interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        if interval <= 0:
            raise ValueError("Ticker interval must be positive")

        self._source = source
        self._clock = clock
        self.interval = interval

        self._listeners: list[TickListener] = []
        self._armed = asyncio.Event()
        self._armed.set()
        self._running = False
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._last_reading: Optional[TickerReading] = None

    # ─────────────────────────────────────────────────────────────
    # Listeners
    # ─────────────────────────────────────────────────────────────

    def add_listener(self, listener: TickListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self, reading: TickerReading) -> None:
        if self._stopped:
            return
        self._last_reading = reading
        for listener in list(self._listeners):
            try:
                listener(reading)
            except Exception as e:
                logger.error(f"Ticker listener error: {e}")

    # ─────────────────────────────────────────────────────────────
    # Ticking
    # ─────────────────────────────────────────────────────────────

    def tick(self) -> Optional[TickerReading]:
        """
        Compute and emit one reading.

        Returns None (and emits nothing) while disarmed with no
        timestamp to count from.
        """
        if self._stopped:
            return None

        state = self._source()
        now = self._clock.now()

        if not _has_timestamp(state):
            if not self._armed.is_set():
                return None
            self._armed.clear()
            logger.debug("Ticker disarmed: no timestamps to count from")
            reading = TickerReading(
                now=now,
                time_until_cooldown_ready_ms=0,
                time_remaining_in_priority_window_ms=0,
                armed=False,
            )
            self._emit(reading)
            return reading

        self._armed.set()
        reading = TickerReading(
            now=now,
            time_until_cooldown_ready_ms=time_until_cooldown_ready_ms(
                now, state.last_claim_time, state.cooldown_seconds
            ),
            time_remaining_in_priority_window_ms=time_remaining_in_priority_window_ms(
                now, state.last_event_time, state.priority_window_seconds
            ),
        )
        self._emit(reading)
        return reading

    def rearm(self) -> bool:
        """Resume ticking if a timestamp has reappeared; call on cache updates."""
        if self._stopped or self._armed.is_set():
            return self._armed.is_set()
        if _has_timestamp(self._source()):
            logger.debug("Ticker re-armed")
            self._armed.set()
            return True
        return False

    @property
    def is_armed(self) -> bool:
        return self._armed.is_set()

    @property
    def last_reading(self) -> Optional[TickerReading]:
        return self._last_reading

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._running or self._stopped:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Live ticker started ({self.interval}s)")

    async def stop(self) -> None:
        """Cancel the timer; no reading is emitted after this returns."""
        self._running = False
        self._stopped = True

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._listeners.clear()
        logger.info("Live ticker stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _run(self) -> None:
        while self._running:
            if not self._armed.is_set():
                await self._armed.wait()
                continue
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Ticker error: {e}")
            await asyncio.sleep(self.interval)
