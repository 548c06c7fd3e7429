"""
Ledger Feeds Package - Polled, read-only chain and market data.

Features:
- Async HTTP clients for the chain table API and the AMM pool API
- Normalization of raw rows into exact-integer records
- Source feed cache: one independently polled slot per feed,
  latest-request-wins, last good value kept on failure

Quick Start:
    from ledger_feeds import (
        FeedSettings,
        LedgerClient,
        LedgerFeeds,
        MarketClient,
        build_feed_cache,
    )

    async def watch(clock):
        settings = FeedSettings(account="cheeseburner")
        feeds = LedgerFeeds(
            LedgerClient("https://wax.api.eosnation.io"),
            MarketClient("https://wax.alcor.exchange"),
            settings,
        )
        cache = build_feed_cache(feeds, settings, clock)
        await cache.start()

        snapshot = cache.snapshot()
        if snapshot.is_error:
            print("Some feed has never loaded")
"""

from ledger_feeds.base import BaseFeedClient, ClientHealth
from ledger_feeds.cache import FeedSlot, SourceFeedCache
from ledger_feeds.exceptions import (
    FeedError,
    FetchError,
    MalformedResponseError,
    RateLimitError,
    SlotNotFoundError,
)
from ledger_feeds.feeds import FeedSettings, LedgerFeeds, build_feed_cache
from ledger_feeds.models import (
    AccrualRecord,
    Asset,
    CacheSnapshot,
    ContractConfig,
    ContractStats,
    FeedName,
    GlobalVoteshare,
    PoolReserves,
    SlotStatus,
    VoterRecord,
)
from ledger_feeds.providers import LedgerClient, MarketClient


__version__ = "1.0.0"

__all__ = [
    # Clients
    "BaseFeedClient",
    "ClientHealth",
    "LedgerClient",
    "MarketClient",

    # Cache
    "FeedSlot",
    "SourceFeedCache",
    "FeedSettings",
    "LedgerFeeds",
    "build_feed_cache",

    # Models
    "AccrualRecord",
    "Asset",
    "CacheSnapshot",
    "ContractConfig",
    "ContractStats",
    "FeedName",
    "GlobalVoteshare",
    "PoolReserves",
    "SlotStatus",
    "VoterRecord",

    # Exceptions
    "FeedError",
    "FetchError",
    "MalformedResponseError",
    "RateLimitError",
    "SlotNotFoundError",
]
