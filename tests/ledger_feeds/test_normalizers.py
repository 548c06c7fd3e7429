"""
Tests for raw row normalization.

============================================================
PURPOSE
============================================================
Rows from the chain API and the AMM API become typed records.

TEST PRINCIPLES:
- Malformed numbers become 0 and are listed as defaulted
- Wrong row shape is a feed failure
- Pools are oriented native-side in

============================================================
"""

from datetime import datetime, timezone

import pytest

from ledger_feeds.exceptions import MalformedResponseError
from ledger_feeds.models import Asset
from ledger_feeds.normalizers import (
    normalize_config,
    normalize_global,
    normalize_last_event,
    normalize_pool,
    normalize_stats,
    normalize_voter,
    normalize_whitelist,
    parse_asset,
)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def voter_row():
    return {
        "owner": "cheeseburner",
        "proxy": "",
        "producers": ["bp1", "bp2"],
        "staked": "150000000000",
        "unpaid_voteshare": "123456789012345678901234.56789",
        "unpaid_voteshare_last_updated": "2024-05-01T12:00:00.000",
        "unpaid_voteshare_change_rate": "98765432109876.5",
        "last_claim_time": "2024-04-30T12:00:00.000",
    }


@pytest.fixture
def global_row():
    return {
        "total_unpaid_voteshare": "987654321098765432109876.0",
        "total_voteshare_change_rate": "1234567890123456.0",
        "total_unpaid_voteshare_last_updated": "2024-05-01T11:59:00.000",
        "voters_bucket": "2500000000000",
    }


@pytest.fixture
def pool_data():
    return {
        "id": 1252,
        "tokenA": {"contract": "eosio.token", "symbol": "WAX", "quantity": "1000000.12345678", "decimals": 8},
        "tokenB": {"contract": "cheeseburger", "symbol": "CHEESE", "quantity": "5000000.1234", "decimals": 4},
    }


# ============================================================
# ASSET TESTS
# ============================================================

class TestParseAsset:
    """Tests for asset string parsing."""

    def test_native_asset(self):
        assert parse_asset("2.60796579 WAX") == Asset(260796579, 8, "WAX")

    def test_output_asset(self):
        assert parse_asset("10.0000 CHEESE") == Asset(100000, 4, "CHEESE")

    def test_integer_asset(self):
        assert parse_asset("5 TOKEN") == Asset(5, 0, "TOKEN")

    @pytest.mark.parametrize("bad", [None, "", "2.6", "WAX 2.6", "abc WAX", "1.0 W4X", 42])
    def test_malformed(self, bad):
        assert parse_asset(bad) is None

    def test_str(self):
        assert str(Asset(260796579, 8, "WAX")) == "2.60796579 WAX"


# ============================================================
# VOTESHARE TESTS
# ============================================================

class TestNormalizeVoter:
    """Tests for voter rows."""

    def test_fields(self, voter_row):
        voter = normalize_voter(voter_row)

        assert voter.owner == "cheeseburner"
        assert voter.accrual.base == 123456789012345678901234
        assert voter.accrual.rate == 98765432109876
        assert voter.accrual.last_updated == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert voter.last_claim_time == datetime(2024, 4, 30, 12, 0, tzinfo=timezone.utc)
        assert voter.staked == 150000000000
        assert voter.defaulted_fields == ()

    def test_malformed_number_is_defaulted_and_recorded(self, voter_row):
        voter_row["unpaid_voteshare"] = "not-a-number"
        voter = normalize_voter(voter_row)

        assert voter.accrual.base == 0
        assert "unpaid_voteshare" in voter.defaulted_fields

    def test_epoch_claim_time_is_absent(self, voter_row):
        voter_row["last_claim_time"] = "1970-01-01T00:00:00.000"
        assert normalize_voter(voter_row).last_claim_time is None


class TestNormalizeGlobal:
    """Tests for the global row."""

    def test_fields(self, global_row):
        network = normalize_global(global_row)

        assert network.accrual.base == 987654321098765432109876
        assert network.accrual.rate == 1234567890123456
        assert network.bucket == 2500000000000

    def test_missing_row_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            normalize_global(None)

    def test_missing_bucket_defaulted(self, global_row):
        del global_row["voters_bucket"]
        network = normalize_global(global_row)

        assert network.bucket == 0
        assert network.defaulted_fields == ("voters_bucket",)


# ============================================================
# MARKET TESTS
# ============================================================

class TestNormalizePool:
    """Tests for pool orientation and reserves."""

    def test_native_side_in(self, pool_data):
        pool = normalize_pool(pool_data, "WAX")

        assert pool.symbol_in == "WAX"
        assert pool.symbol_out == "CHEESE"
        assert pool.reserve_in == 100000012345678
        assert pool.reserve_out == 50000001234
        assert pool.pool_id == 1252

    def test_swapped_sides_reoriented(self, pool_data):
        pool_data["tokenA"], pool_data["tokenB"] = pool_data["tokenB"], pool_data["tokenA"]
        pool = normalize_pool(pool_data, "WAX")

        assert pool.symbol_in == "WAX"
        assert pool.precision_in == 8
        assert pool.precision_out == 4

    def test_rate_per_unit(self, pool_data):
        pool_data["tokenA"]["quantity"] = "1000.00000000"
        pool_data["tokenB"]["quantity"] = "5000.0000"

        assert normalize_pool(pool_data).rate_per_unit() == pytest.approx(5.0)

    def test_empty_pool_rate_is_zero(self, pool_data):
        pool_data["tokenA"]["quantity"] = "0.00000000"
        pool = normalize_pool(pool_data)

        assert pool.rate_per_unit() == 0.0
        assert pool.defaulted_fields == ()

    def test_malformed_reserve_is_recorded(self, pool_data):
        pool_data["tokenB"]["quantity"] = "garbage"
        pool = normalize_pool(pool_data, "WAX")

        assert pool.reserve_out == 0
        assert pool.defaulted_fields == ("tokenOut.quantity",)

    def test_no_native_side(self, pool_data):
        pool_data["tokenA"]["symbol"] = "TLM"
        with pytest.raises(MalformedResponseError):
            normalize_pool(pool_data, "WAX")

    def test_missing_decimals(self, pool_data):
        del pool_data["tokenB"]["decimals"]
        with pytest.raises(MalformedResponseError):
            normalize_pool(pool_data, "WAX")


# ============================================================
# CONTRACT TESTS
# ============================================================

class TestNormalizeContract:
    """Tests for burner contract tables."""

    def test_config(self):
        config = normalize_config({
            "admin": "cheeseadmin1",
            "alcor_pool_id": 1252,
            "enabled": 1,
            "min_wax_to_burn": "1.00000000 WAX",
            "priority_window": 86400,
        })

        assert config.admin == "cheeseadmin1"
        assert config.pool_id == 1252
        assert config.enabled is True
        assert config.min_native_to_act == Asset(100000000, 8, "WAX")
        assert config.priority_window_seconds == 86400

    def test_config_without_window(self):
        config = normalize_config({"admin": "a", "alcor_pool_id": 1, "enabled": False})

        assert config.enabled is False
        assert config.priority_window_seconds is None
        assert config.min_native_to_act.amount == 0

    def test_config_malformed_minimum_recorded(self):
        config = normalize_config({
            "admin": "a",
            "alcor_pool_id": 1,
            "enabled": True,
            "min_wax_to_burn": "lots WAX",
        })

        assert config.min_native_to_act.amount == 0
        assert config.defaulted_fields == ("min_wax_to_burn",)

    def test_missing_config_row(self):
        with pytest.raises(MalformedResponseError):
            normalize_config(None)

    def test_whitelist(self):
        rows = [{"account": "alice"}, {"account": "bob"}, {"account": ""}, {"other": "x"}]
        assert normalize_whitelist(rows) == frozenset({"alice", "bob"})

    def test_last_event(self):
        assert normalize_last_event({"timestamp": "2024-05-01T12:00:00.000"}) == datetime(
            2024, 5, 1, 12, 0, tzinfo=timezone.utc
        )
        assert normalize_last_event(None) is None
        assert normalize_last_event({"timestamp": "1970-01-01T00:00:00.000"}) is None

    def test_stats(self):
        stats = normalize_stats(
            {
                "total_burns": 17,
                "total_wax_claimed": "120.50000000 WAX",
                "total_wax_staked": "24.10000000 WAX",
                "total_cheese_burned": "1000.0000 CHEESE",
                "total_cheese_rewards": "0.0000 CHEESE",
                "total_cheese_liquidity": "176.4705 CHEESE",
            },
            {"total_wax_cheesepowerz": "6.02500000 WAX"},
        )

        assert stats.total_actions == 17
        assert stats.total_native_claimed == Asset(12050000000, 8, "WAX")
        assert stats.total_output_liquidity == Asset(1764705, 4, "CHEESE")
        assert stats.total_native_side_pool == Asset(602500000, 8, "WAX")

    def test_stats_missing_rows_are_zero(self):
        stats = normalize_stats(None, None)

        assert stats.total_actions == 0
        assert stats.total_output_burned.amount == 0
        assert stats.total_output_burned.symbol == "CHEESE"

    def test_stats_malformed_totals_recorded(self):
        stats = normalize_stats(
            {"total_burns": "many", "total_wax_claimed": "12 0 WAX"},
            {"total_wax_cheesepowerz": "n/a"},
        )

        assert stats.total_actions == 0
        assert stats.defaulted_fields == ("total_burns", "total_wax_claimed", "total_wax_cheesepowerz")
