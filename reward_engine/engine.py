"""
Reward Engine - Facade.

============================================================
RESPONSIBILITY
============================================================
Wires the feed cache, accrual calculator, eligibility gate,
distribution partitioner and live ticker together.

    cache change ──► compute_snapshot() ──► update listeners
         │                                       │
         └─► ticker.rearm()                      └─► can_claim transition?
    ticker tick ───────────────────────────────────► can_claim transition?

============================================================
DESIGN PRINCIPLES
============================================================
1. compute_snapshot() is pure: cache snapshot + now -> RewardSnapshot
2. The session is passed in, never looked up globally
3. can_claim subscribers hear only real transitions
4. One failed feed never blocks the snapshot

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from core.clock import ClockProtocol, SystemClock
from ledger_feeds.base import BaseFeedClient
from ledger_feeds.cache import SourceFeedCache
from ledger_feeds.feeds import LedgerFeeds, build_feed_cache
from ledger_feeds.models import (
    CacheSnapshot,
    ContractConfig,
    FeedName,
    GlobalVoteshare,
    PoolReserves,
    VoterRecord,
)
from ledger_feeds.providers import LedgerClient, MarketClient
from reward_engine.accrual import AccrualCalculator, apply_exchange
from reward_engine.config import EngineConfig
from reward_engine.distribution import partition, partition_units
from reward_engine.eligibility import EligibilityGate, EligibilityResult, EligibilityState
from reward_engine.models import RewardSnapshot
from reward_engine.session import WalletSession
from reward_engine.ticker import LiveTicker, TickerReading


logger = logging.getLogger(__name__)

CanClaimListener = Callable[[bool], None]
UpdateListener = Callable[[RewardSnapshot], None]


class RewardEngine:
    """
    Reward accrual and eligibility engine for one watched contract.

    Usage:
        engine = RewardEngine.build(config, StaticSession("alice"))
        engine.subscribe(lambda allowed: print("can claim:", allowed))

        async with engine:
            snapshot = engine.compute_snapshot()
            print(snapshot.summary())
    """

    def __init__(
        self,
        config: EngineConfig,
        cache: SourceFeedCache,
        session: WalletSession,
        clock: Optional[ClockProtocol] = None,
        clients: Sequence[BaseFeedClient] = (),
    ) -> None:
        config.validate()

        self._config = config
        self._cache = cache
        self._session = session
        self._clock = clock or SystemClock()
        self._clients = list(clients)

        self._calculator = AccrualCalculator(
            scale_exp=config.share_scale_exp,
            native_precision=config.native_precision,
        )
        self._gate = EligibilityGate(
            cooldown_seconds=config.cooldown_seconds,
            default_priority_window_seconds=config.priority_window_seconds,
        )
        self._ticker = LiveTicker(
            self.eligibility_state,
            self._clock,
            interval=config.tick_interval_seconds,
        )

        self._can_claim_listeners: list[CanClaimListener] = []
        self._update_listeners: list[UpdateListener] = []
        self._last_can_claim = False
        self._remove_cache_listener: Optional[Callable[[], None]] = None
        self._remove_tick_listener: Optional[Callable[[], None]] = None
        self._running = False
        self._stopped = False

    @classmethod
    def build(
        cls,
        config: EngineConfig,
        session: WalletSession,
        clock: Optional[ClockProtocol] = None,
    ) -> "RewardEngine":
        """Create clients, feeds and cache from config; the engine owns the clients."""
        clock = clock or SystemClock()
        timeout = config.endpoints.http_timeout_seconds
        ledger = LedgerClient(config.endpoints.ledger_api_url, timeout=timeout)
        market = MarketClient(config.endpoints.market_api_url, timeout=timeout)

        feeds = LedgerFeeds(ledger, market, config.feeds)
        cache = build_feed_cache(feeds, config.feeds, clock)
        return cls(config, cache, session, clock, clients=(ledger, market))

    # ─────────────────────────────────────────────────────────────
    # Accessors
    # ─────────────────────────────────────────────────────────────

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def cache(self) -> SourceFeedCache:
        return self._cache

    @property
    def session(self) -> WalletSession:
        return self._session

    @property
    def ticker(self) -> LiveTicker:
        return self._ticker

    # ─────────────────────────────────────────────────────────────
    # Computation
    # ─────────────────────────────────────────────────────────────

    def eligibility_state(self, snapshot: Optional[CacheSnapshot] = None) -> EligibilityState:
        """Gate input from the cached timestamps and the session account."""
        snapshot = snapshot or self._cache.snapshot()
        voter: Optional[VoterRecord] = snapshot.get(FeedName.ACCOUNT_VOTESHARE)
        contract: Optional[ContractConfig] = snapshot.get(FeedName.CONTRACT_CONFIG)

        return self._gate.state_for(
            last_claim_time=voter.last_claim_time if voter else None,
            last_event_time=snapshot.get(FeedName.LAST_EVENT),
            account_id=self._session.current_account_id,
            whitelist=snapshot.get(FeedName.WHITELIST, frozenset()),
            priority_window_seconds=contract.priority_window_seconds if contract else None,
        )

    def evaluate_eligibility(self, now: Optional[datetime] = None) -> EligibilityResult:
        now = now or self._clock.now()
        return self._gate.evaluate(self.eligibility_state(), now)

    def compute_snapshot(self, now: Optional[datetime] = None) -> RewardSnapshot:
        """Derive the full reward view from current cache contents; no side effects."""
        cached = self._cache.snapshot()
        now = now or self._clock.now()

        voter: Optional[VoterRecord] = cached.get(FeedName.ACCOUNT_VOTESHARE)
        network: Optional[GlobalVoteshare] = cached.get(FeedName.GLOBAL_VOTESHARE)
        pool: Optional[PoolReserves] = cached.get(FeedName.POOL_RESERVES)
        contract: Optional[ContractConfig] = cached.get(FeedName.CONTRACT_CONFIG)

        estimate = self._calculator.estimate(
            voter.accrual if voter else None,
            network.accrual if network else None,
            network.bucket if network else 0,
            now,
        )
        exchange = apply_exchange(
            estimate.claimable,
            self._config.native_split,
            self._config.exchange_bound_allocation,
            pool.rate_per_unit() if pool else 0.0,
        )
        output_allocations = partition(exchange.exchanged_output, self._config.output_split)
        eligibility = self._gate.evaluate(self.eligibility_state(cached), now)

        defaulted: list[str] = []
        for feed in FeedName:
            record = cached.get(feed)
            for name in getattr(record, "defaulted_fields", ()):
                defaulted.append(f"{feed.value}.{name}")

        return RewardSnapshot(
            computed_at=now,
            account=self._session.current_account_id,
            estimate=estimate,
            exchange=exchange,
            output_allocations=output_allocations,
            eligibility=eligibility,
            native_unit_allocations=partition_units(estimate.reward_units, self._config.native_split),
            contract_enabled=bool(contract and contract.enabled),
            meets_minimum=bool(contract and estimate.reward_units >= contract.min_native_to_act.amount),
            stats=cached.get(FeedName.CONTRACT_STATS),
            is_loading=cached.is_loading,
            is_error=cached.is_error,
            slots=cached.slots,
            defaulted_fields=tuple(defaulted),
        )

    @property
    def can_claim(self) -> bool:
        """Whether the gated action is allowed right now (cooldown and window)."""
        return self.evaluate_eligibility().action_allowed

    # ─────────────────────────────────────────────────────────────
    # Subscriptions
    # ─────────────────────────────────────────────────────────────

    def subscribe(self, listener: CanClaimListener) -> Callable[[], None]:
        """Call listener(new_value) whenever can_claim flips; returns an unsubscribe."""
        self._can_claim_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._can_claim_listeners:
                self._can_claim_listeners.remove(listener)

        return unsubscribe

    def on_update(self, listener: UpdateListener) -> Callable[[], None]:
        """Call listener(snapshot) after every feed update."""
        self._update_listeners.append(listener)

        def remove() -> None:
            if listener in self._update_listeners:
                self._update_listeners.remove(listener)

        return remove

    def _publish_can_claim(self, value: bool) -> None:
        if value == self._last_can_claim:
            return
        self._last_can_claim = value
        logger.info(f"can_claim -> {value}")

        for listener in list(self._can_claim_listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(f"can_claim listener error: {e}")

    def _on_cache_change(self, slot_name: str) -> None:
        if self._stopped:
            return
        self._ticker.rearm()

        snapshot = self.compute_snapshot()
        for listener in list(self._update_listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener error after {slot_name}: {e}")

        self._publish_can_claim(snapshot.action_allowed)

    def _on_tick(self, reading: TickerReading) -> None:
        if self._stopped:
            return
        self._publish_can_claim(self.evaluate_eligibility(reading.now).action_allowed)

    # ─────────────────────────────────────────────────────────────
    # Control
    # ─────────────────────────────────────────────────────────────

    def refresh(self) -> list[Any]:
        """Refetch every feed now; does not wait for completion."""
        logger.debug("Manual refresh of all feeds")
        return self._cache.refresh_all()

    async def start(self) -> None:
        if self._running:
            return
        if self._stopped:
            raise RuntimeError("Reward engine is stopped")

        self._remove_cache_listener = self._cache.add_listener(self._on_cache_change)
        self._remove_tick_listener = self._ticker.add_listener(self._on_tick)

        await self._cache.start()
        await self._ticker.start()
        self._running = True
        logger.info(
            f"Reward engine started for {self._config.feeds.contract} "
            f"(session account: {self._session.current_account_id})"
        )

    async def stop(self) -> None:
        """Cancel the ticker, every poll loop and in-flight request, then close clients."""
        if self._stopped:
            return
        self._stopped = True
        self._running = False

        await self._ticker.stop()
        await self._cache.stop()

        if self._remove_cache_listener:
            self._remove_cache_listener()
        if self._remove_tick_listener:
            self._remove_tick_listener()

        for client in self._clients:
            await client.close()

        self._can_claim_listeners.clear()
        self._update_listeners.clear()
        logger.info("Reward engine stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def __aenter__(self) -> "RewardEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
