"""
Source Feed Cache - Independently polled slots with graceful degradation.

============================================================
RESPONSIBILITY
============================================================
Owns one slot per external feed. Each slot:

- Refetches on its own timer, regardless of other slots
- Tracks value, loading, fetching, error, last success, staleness
- Keeps its last good value when a refresh fails
- Applies responses latest-request-wins: a response whose request
  was issued before the last applied one is discarded

============================================================
CONCURRENCY
============================================================
Single event loop. Each slot is written only by its own requests;
readers take an immutable CacheSnapshot. stop() cancels every poll
loop and in-flight request, and a closed slot ignores late results.

============================================================
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from core.clock import ClockProtocol
from core.constants import DEFAULT_REFRESH_INTERVAL_SECONDS, DEFAULT_STALE_AFTER_SECONDS
from ledger_feeds.exceptions import FeedError, SlotNotFoundError
from ledger_feeds.models import CacheSnapshot, FeedName, SlotStatus


logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[str], None]


def _slot_key(name: Any) -> str:
    return name.value if isinstance(name, FeedName) else str(name)


# =============================================================
# SLOT
# =============================================================


class FeedSlot:
    """
    One independently refreshed feed.

    Every request gets a sequence number when it is issued. Its
    outcome (value or error) is applied only if no later-issued
    request has been applied already.
    """

    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        clock: ClockProtocol,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        stale_after: float = DEFAULT_STALE_AFTER_SECONDS,
        on_change: Optional[Listener] = None,
    ) -> None:
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")

        self.name = name
        self.refresh_interval = refresh_interval
        self.stale_after = stale_after
        self._fetcher = fetcher
        self._clock = clock
        self._on_change = on_change

        self._value: Any = None
        self._has_value = False
        self._is_error = False
        self._last_error: Optional[FeedError] = None
        self._last_success_at: Optional[datetime] = None

        self._issued_seq = 0
        self._applied_seq = 0
        self._in_flight = 0
        self._closed = False

    # ─────────────────────────────────────────────────────────────
    # Refresh
    # ─────────────────────────────────────────────────────────────

    async def refresh(self) -> bool:
        """
        Fetch once and apply the outcome if it is still the latest.

        Never raises a feed failure; returns True when the outcome
        was applied, False when it was discarded.
        """
        if self._closed:
            return False

        self._issued_seq += 1
        seq = self._issued_seq
        self._in_flight += 1

        value: Any = None
        error: Optional[FeedError] = None
        try:
            value = await self._fetcher()
        except FeedError as e:
            error = e
        except Exception as e:
            error = FeedError(
                message=f"Unexpected error: {e}",
                source=self.name,
                original_error=e,
            )
        finally:
            self._in_flight -= 1

        if self._closed:
            return False

        if seq <= self._applied_seq:
            logger.debug(
                f"[{self.name}] Discarded stale response "
                f"(request {seq}, already applied {self._applied_seq})"
            )
            return False

        self._applied_seq = seq
        if error is None:
            self._apply_value(value)
        else:
            self._apply_error(error)

        if self._on_change is not None:
            self._on_change(self.name)
        return True

    def _apply_value(self, value: Any) -> None:
        if self._is_error:
            logger.info(f"[{self.name}] Recovered")
        self._value = value
        self._has_value = True
        self._is_error = False
        self._last_error = None
        self._last_success_at = self._clock.now()

    def _apply_error(self, error: FeedError) -> None:
        self._is_error = True
        self._last_error = error
        if self._has_value:
            logger.warning(f"[{self.name}] Refresh failed, keeping last good value: {error}")
        else:
            logger.error(f"[{self.name}] Refresh failed with no value to fall back on: {error}")

    def close(self) -> None:
        """Stop accepting results."""
        self._closed = True

    # ─────────────────────────────────────────────────────────────
    # Status
    # ─────────────────────────────────────────────────────────────

    @property
    def value(self) -> Any:
        return self._value

    @property
    def has_value(self) -> bool:
        """A successful fetch has landed (its value may legitimately be None)."""
        return self._has_value

    @property
    def is_fetching(self) -> bool:
        return self._in_flight > 0

    @property
    def is_loading(self) -> bool:
        """First load still pending."""
        return self._in_flight > 0 and not self._has_value

    @property
    def is_error(self) -> bool:
        """Latest applied attempt failed."""
        return self._is_error

    @property
    def last_error(self) -> Optional[FeedError]:
        return self._last_error

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        if self._last_success_at is None:
            return True
        now = now or self._clock.now()
        return now - self._last_success_at > timedelta(seconds=self.stale_after)

    def status(self, now: Optional[datetime] = None) -> SlotStatus:
        return SlotStatus(
            name=self.name,
            has_value=self._has_value,
            is_loading=self.is_loading,
            is_fetching=self.is_fetching,
            is_error=self._is_error,
            is_stale=self.is_stale(now),
            last_error=str(self._last_error) if self._last_error else None,
            last_success_at=self._last_success_at,
            refresh_interval_seconds=self.refresh_interval,
        )

    def __repr__(self) -> str:
        return (
            f"<FeedSlot(name={self.name}, has_value={self._has_value}, "
            f"error={self._is_error}, in_flight={self._in_flight})>"
        )


# =============================================================
# CACHE
# =============================================================


class SourceFeedCache:
    """
    Registry of feed slots with one polling task per slot.

    Usage:
        cache = SourceFeedCache(clock)
        cache.register(FeedName.POOL_RESERVES, fetch_pool, refresh_interval=30)
        await cache.start()

        cache.refresh_all()          # fire-and-forget refetch
        snapshot = cache.snapshot()  # immutable view

        await cache.stop()
    """

    def __init__(self, clock: ClockProtocol) -> None:
        self._clock = clock
        self._slots: dict[str, FeedSlot] = {}
        self._listeners: list[Listener] = []
        self._poll_tasks: dict[str, asyncio.Task] = {}
        self._pending: set[asyncio.Task] = set()
        self._running = False
        self._closed = False

    # ─────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────

    def register(
        self,
        name: Any,
        fetcher: Fetcher,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        stale_after: float = DEFAULT_STALE_AFTER_SECONDS,
    ) -> FeedSlot:
        """Register a slot; must happen before start()."""
        key = _slot_key(name)
        if key in self._slots:
            raise ValueError(f"Feed slot '{key}' already registered")
        if self._running:
            raise RuntimeError("Cannot register slots on a running cache")

        slot = FeedSlot(
            name=key,
            fetcher=fetcher,
            clock=self._clock,
            refresh_interval=refresh_interval,
            stale_after=stale_after,
            on_change=self._notify,
        )
        self._slots[key] = slot
        logger.debug(f"Registered feed slot {key} (every {refresh_interval}s)")
        return slot

    def slot(self, name: Any) -> FeedSlot:
        key = _slot_key(name)
        try:
            return self._slots[key]
        except KeyError:
            raise SlotNotFoundError(key, list(self._slots))

    @property
    def slot_names(self) -> list[str]:
        return list(self._slots)

    # ─────────────────────────────────────────────────────────────
    # Listeners
    # ─────────────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call listener(slot_name) after any slot applies an outcome."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, slot_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(slot_name)
            except Exception as e:
                logger.error(f"Feed listener error for {slot_name}: {e}")

    # ─────────────────────────────────────────────────────────────
    # Refresh
    # ─────────────────────────────────────────────────────────────

    def refresh(self, name: Any) -> asyncio.Task:
        """Schedule a refetch of one slot; does not wait for it."""
        if self._closed:
            raise RuntimeError("Feed cache is stopped")
        slot = self.slot(name)
        task = asyncio.get_running_loop().create_task(slot.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def refresh_all(self) -> list[asyncio.Task]:
        """Schedule a refetch of every slot concurrently; does not wait."""
        return [self.refresh(name) for name in self._slots]

    async def _poll_loop(self, slot: FeedSlot) -> None:
        while True:
            await slot.refresh()
            await asyncio.sleep(slot.refresh_interval)

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Launch one polling task per slot."""
        if self._closed:
            raise RuntimeError("Feed cache is stopped")
        if self._running:
            return

        loop = asyncio.get_running_loop()
        for name, slot in self._slots.items():
            self._poll_tasks[name] = loop.create_task(self._poll_loop(slot))
        self._running = True
        logger.info(f"Feed cache started with {len(self._slots)} slots")

    async def stop(self) -> None:
        """Cancel every poll loop and in-flight request."""
        if self._closed:
            return
        self._closed = True
        self._running = False

        for slot in self._slots.values():
            slot.close()

        tasks = list(self._poll_tasks.values()) + list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._poll_tasks.clear()
        self._pending.clear()
        self._listeners.clear()
        logger.info("Feed cache stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # ─────────────────────────────────────────────────────────────
    # Reading
    # ─────────────────────────────────────────────────────────────

    def snapshot(self) -> CacheSnapshot:
        """Immutable view of every slot."""
        now = self._clock.now()
        return CacheSnapshot(
            taken_at=now,
            values={name: slot.value for name, slot in self._slots.items()},
            slots={name: slot.status(now) for name, slot in self._slots.items()},
        )
