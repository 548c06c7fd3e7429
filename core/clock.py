"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Provides the time source used by every recomputation.

- Feed cache stamps successful fetches with it
- Accrual, eligibility and ticker read `now` from it
- Tests swap in MockClock for deterministic countdowns

============================================================
DESIGN PRINCIPLES
============================================================
- UTC only, timezone-aware datetimes everywhere
- Passed in explicitly, never read from ambient state
- Chain timestamps carry no zone marker and are UTC

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import threading
import time


logger = logging.getLogger(__name__)

# Chain tables use the epoch for "never happened"
CHAIN_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the engine clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    @abstractmethod
    def timestamp(self) -> float:
        """Get current Unix timestamp."""
        pass

    def format_iso(self, dt: Optional[datetime] = None) -> str:
        """Format datetime as ISO 8601."""
        dt = dt or self.now()
        return dt.isoformat()


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    def timestamp(self) -> float:
        """Get current Unix timestamp."""
        return time.time()


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        self._time = _ensure_utc(initial_time or datetime.now(timezone.utc))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Get current (mocked) datetime."""
        with self._lock:
            return self._time

    def timestamp(self) -> float:
        """Get current (mocked) timestamp."""
        with self._lock:
            return self._time.timestamp()

    def set_time(self, new_time: datetime) -> None:
        """Set the current time."""
        with self._lock:
            self._time = _ensure_utc(new_time)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)


# ============================================================
# TIMESTAMP UTILITIES
# ============================================================

def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso8601(dt: datetime) -> str:
    """Convert datetime to ISO 8601 string."""
    return _ensure_utc(dt).isoformat()


def parse_chain_time(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a chain timestamp such as ``2024-05-01T12:00:00.000``.

    Returns None for missing or malformed values and for the epoch
    sentinel, which the chain writes when the event never happened.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]

    try:
        parsed = _ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.warning(f"Unparseable chain timestamp {value!r}, treating as absent")
        return None

    if parsed <= CHAIN_EPOCH:
        return None
    return parsed


def whole_seconds_between(start: datetime, end: datetime) -> int:
    """Floored seconds from start to end, clamped at zero."""
    elapsed = (end - start) // timedelta(seconds=1)
    return max(0, elapsed)


def millis_between(start: datetime, end: datetime) -> int:
    """Floored signed milliseconds from start to end."""
    return (end - start) // timedelta(milliseconds=1)


__all__ = [
    "CHAIN_EPOCH",
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "to_iso8601",
    "parse_chain_time",
    "whole_seconds_between",
    "millis_between",
]
