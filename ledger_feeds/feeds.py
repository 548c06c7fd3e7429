"""
Feed Wiring - Which slots exist and what each one fetches.

Each fetcher is a zero-argument coroutine that performs the network
reads for one slot and returns a normalized record (or None when the
record legitimately does not exist yet).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from core.clock import ClockProtocol
from core.constants import (
    CONFIG_TABLE,
    DEFAULT_BURNER_CONTRACT,
    DEFAULT_POOL_ID,
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    DEFAULT_STALE_AFTER_SECONDS,
    GLOBAL_TABLE,
    LAST_EVENT_TABLE,
    NATIVE_SYMBOL,
    SIDE_POOL_STATS_TABLE,
    STATS_TABLE,
    SYSTEM_CONTRACT,
    VOTERS_TABLE,
    WHITELIST_TABLE,
)
from ledger_feeds.cache import SourceFeedCache
from ledger_feeds.models import (
    ContractConfig,
    ContractStats,
    FeedName,
    GlobalVoteshare,
    PoolReserves,
    VoterRecord,
)
from ledger_feeds.normalizers import (
    normalize_config,
    normalize_global,
    normalize_last_event,
    normalize_pool,
    normalize_stats,
    normalize_voter,
    normalize_whitelist,
)
from ledger_feeds.providers import LedgerClient, MarketClient


logger = logging.getLogger(__name__)


@dataclass
class FeedSettings:
    """What to read and how often."""
    account: str = DEFAULT_BURNER_CONTRACT
    contract: str = DEFAULT_BURNER_CONTRACT
    pool_id: int = DEFAULT_POOL_ID
    native_symbol: str = NATIVE_SYMBOL
    # Rows per page when paging through the whitelist table
    whitelist_limit: int = 1000
    refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS
    # Per-slot overrides, keyed by FeedName value
    interval_overrides: dict[str, float] = field(default_factory=dict)

    def interval_for(self, name: FeedName) -> float:
        return self.interval_overrides.get(name.value, self.refresh_interval_seconds)


class LedgerFeeds:
    """Fetchers for every slot, bound to one set of clients."""

    def __init__(
        self,
        ledger: LedgerClient,
        market: MarketClient,
        settings: FeedSettings,
    ) -> None:
        self._ledger = ledger
        self._market = market
        self._settings = settings

    async def account_voteshare(self) -> Optional[VoterRecord]:
        row = await self._ledger.query_row(
            SYSTEM_CONTRACT, SYSTEM_CONTRACT, VOTERS_TABLE, key=self._settings.account
        )
        if row is None or row.get("owner") not in (None, self._settings.account):
            logger.info(f"[{FeedName.ACCOUNT_VOTESHARE.value}] No voter row for {self._settings.account}")
            return None
        return normalize_voter(row)

    async def global_voteshare(self) -> GlobalVoteshare:
        row = await self._ledger.query_row(SYSTEM_CONTRACT, SYSTEM_CONTRACT, GLOBAL_TABLE)
        return normalize_global(row)

    async def pool_reserves(self) -> PoolReserves:
        data = await self._market.get_pool(self._settings.pool_id)
        return normalize_pool(data, self._settings.native_symbol)

    async def contract_config(self) -> ContractConfig:
        contract = self._settings.contract
        row = await self._ledger.query_row(contract, contract, CONFIG_TABLE)
        return normalize_config(row)

    async def whitelist(self) -> frozenset[str]:
        contract = self._settings.contract
        rows = await self._ledger.query_all(
            contract, contract, WHITELIST_TABLE, page_size=self._settings.whitelist_limit
        )
        return normalize_whitelist(rows)

    async def last_event(self) -> Optional[datetime]:
        contract = self._settings.contract
        row = await self._ledger.query_row(contract, contract, LAST_EVENT_TABLE)
        return normalize_last_event(row)

    async def contract_stats(self) -> ContractStats:
        contract = self._settings.contract
        stats_row, side_pool_row = await asyncio.gather(
            self._ledger.query_row(contract, contract, STATS_TABLE),
            self._ledger.query_row(contract, contract, SIDE_POOL_STATS_TABLE),
        )
        return normalize_stats(stats_row, side_pool_row)

    def fetchers(self) -> dict[FeedName, Any]:
        return {
            FeedName.ACCOUNT_VOTESHARE: self.account_voteshare,
            FeedName.GLOBAL_VOTESHARE: self.global_voteshare,
            FeedName.POOL_RESERVES: self.pool_reserves,
            FeedName.CONTRACT_CONFIG: self.contract_config,
            FeedName.WHITELIST: self.whitelist,
            FeedName.LAST_EVENT: self.last_event,
            FeedName.CONTRACT_STATS: self.contract_stats,
        }


def build_feed_cache(
    feeds: LedgerFeeds,
    settings: FeedSettings,
    clock: ClockProtocol,
) -> SourceFeedCache:
    """Register one slot per feed on a fresh cache."""
    cache = SourceFeedCache(clock)
    for name, fetcher in feeds.fetchers().items():
        cache.register(
            name,
            fetcher,
            refresh_interval=settings.interval_for(name),
            stale_after=settings.stale_after_seconds,
        )
    return cache
