"""
Tests for feed wiring: what each slot reads and how it is registered.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.clock import MockClock
from ledger_feeds.exceptions import MalformedResponseError
from ledger_feeds.feeds import FeedSettings, LedgerFeeds, build_feed_cache
from ledger_feeds.models import FeedName


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def settings():
    return FeedSettings(account="cheeseburner", contract="cheeseburner", pool_id=1252)


@pytest.fixture
def ledger():
    client = MagicMock()
    client.query_row = AsyncMock()
    client.query_table = AsyncMock()
    client.query_all = AsyncMock()
    return client


@pytest.fixture
def market():
    client = MagicMock()
    client.get_pool = AsyncMock()
    return client


# ============================================================
# FETCHER TESTS
# ============================================================

class TestLedgerFeeds:
    """Tests for the per-slot fetchers."""

    @pytest.mark.asyncio
    async def test_account_voteshare(self, ledger, market, settings):
        ledger.query_row.return_value = {
            "owner": "cheeseburner",
            "unpaid_voteshare": "100",
            "unpaid_voteshare_change_rate": "2",
            "unpaid_voteshare_last_updated": "2024-05-01T12:00:00.000",
            "last_claim_time": "2024-04-30T12:00:00.000",
        }
        feeds = LedgerFeeds(ledger, market, settings)

        voter = await feeds.account_voteshare()

        ledger.query_row.assert_awaited_once_with("eosio", "eosio", "voters", key="cheeseburner")
        assert voter.accrual.base == 100

    @pytest.mark.asyncio
    async def test_account_voteshare_other_owner_is_absent(self, ledger, market, settings):
        ledger.query_row.return_value = {"owner": "someoneelse"}
        feeds = LedgerFeeds(ledger, market, settings)

        assert await feeds.account_voteshare() is None

    @pytest.mark.asyncio
    async def test_account_voteshare_no_row(self, ledger, market, settings):
        ledger.query_row.return_value = None
        feeds = LedgerFeeds(ledger, market, settings)

        assert await feeds.account_voteshare() is None

    @pytest.mark.asyncio
    async def test_global_voteshare_missing_is_failure(self, ledger, market, settings):
        ledger.query_row.return_value = None
        feeds = LedgerFeeds(ledger, market, settings)

        with pytest.raises(MalformedResponseError):
            await feeds.global_voteshare()

    @pytest.mark.asyncio
    async def test_pool_reserves(self, ledger, market, settings):
        market.get_pool.return_value = {
            "id": 1252,
            "tokenA": {"symbol": "CHEESE", "quantity": "200.0000", "decimals": 4},
            "tokenB": {"symbol": "WAX", "quantity": "100.00000000", "decimals": 8},
        }
        feeds = LedgerFeeds(ledger, market, settings)

        pool = await feeds.pool_reserves()

        market.get_pool.assert_awaited_once_with(1252)
        assert pool.rate_per_unit() == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_whitelist(self, ledger, market, settings):
        ledger.query_all.return_value = [{"account": "alice"}, {"account": "bob"}]
        feeds = LedgerFeeds(ledger, market, settings)

        assert await feeds.whitelist() == frozenset({"alice", "bob"})
        ledger.query_all.assert_awaited_once_with(
            "cheeseburner", "cheeseburner", "whitelist", page_size=settings.whitelist_limit
        )

    @pytest.mark.asyncio
    async def test_last_event(self, ledger, market, settings):
        ledger.query_row.return_value = {"timestamp": "2024-05-01T00:00:00.000"}
        feeds = LedgerFeeds(ledger, market, settings)

        assert await feeds.last_event() == datetime(2024, 5, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_contract_stats_reads_both_tables(self, ledger, market, settings):
        ledger.query_row.side_effect = [
            {"total_burns": 3, "total_wax_claimed": "1.00000000 WAX"},
            {"total_wax_cheesepowerz": "0.05000000 WAX"},
        ]
        feeds = LedgerFeeds(ledger, market, settings)

        stats = await feeds.contract_stats()

        assert stats.total_actions == 3
        assert stats.total_native_side_pool.amount == 5000000
        tables = [call.args[2] for call in ledger.query_row.await_args_list]
        assert tables == ["stats", "cpowerstats"]

    def test_fetchers_cover_every_slot(self, ledger, market, settings):
        feeds = LedgerFeeds(ledger, market, settings)
        assert set(feeds.fetchers()) == set(FeedName)


# ============================================================
# WIRING TESTS
# ============================================================

class TestBuildFeedCache:
    """Tests for build_feed_cache."""

    def test_one_slot_per_feed_with_overrides(self, ledger, market):
        settings = FeedSettings(
            refresh_interval_seconds=30,
            stale_after_seconds=10,
            interval_overrides={"contract_stats": 120},
        )
        cache = build_feed_cache(LedgerFeeds(ledger, market, settings), settings, MockClock())

        assert sorted(cache.slot_names) == sorted(name.value for name in FeedName)
        assert cache.slot(FeedName.CONTRACT_STATS).refresh_interval == 120
        assert cache.slot(FeedName.POOL_RESERVES).refresh_interval == 30
        assert cache.slot(FeedName.POOL_RESERVES).stale_after == 10
