"""
Ledger Feed Normalizers - Raw rows to typed records.

============================================================
RESPONSIBILITY
============================================================
Converts upstream JSON rows into the immutable records in models.py.

- Numeric fields go through core.fixed_point (exact, truncating)
- A malformed number becomes 0 and its field name is recorded in
  ``defaulted_fields`` so a defaulted zero stays distinguishable
- A row with the wrong SHAPE is a feed failure
  (MalformedResponseError), not a zero

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from core.clock import parse_chain_time
from core.constants import NATIVE_PRECISION, NATIVE_SYMBOL, OUTPUT_PRECISION, OUTPUT_SYMBOL
from core.fixed_point import try_parse_exact, try_parse_scaled
from ledger_feeds.exceptions import MalformedResponseError
from ledger_feeds.models import (
    AccrualRecord,
    Asset,
    ContractConfig,
    ContractStats,
    GlobalVoteshare,
    PoolReserves,
    VoterRecord,
)


logger = logging.getLogger(__name__)


class FieldParser:
    """Parses fields of one row, remembering which ones defaulted."""

    def __init__(self, row: Mapping[str, Any], source: str) -> None:
        self._row = row
        self._source = source
        self.defaulted: list[str] = []

    def _defaulted(self, field: str, raw: Any) -> None:
        self.defaulted.append(field)
        logger.warning(
            f"[{self._source}] Defaulted malformed {field}={raw!r} to zero"
        )

    def exact(self, field: str) -> int:
        raw = self._row.get(field)
        value = try_parse_exact(raw)
        if value is None:
            self._defaulted(field, raw)
            return 0
        return value

    def scaled(self, field: str, precision: int, raw: Any = None) -> int:
        raw = self._row.get(field) if raw is None else raw
        value = try_parse_scaled(raw, precision)
        if value is None:
            self._defaulted(field, raw)
            return 0
        return value

    def time(self, field: str) -> Optional[datetime]:
        return parse_chain_time(self._row.get(field))

    def asset(self, field: str, precision: int, symbol: str) -> Asset:
        raw = self._row.get(field)
        parsed = parse_asset(raw)
        if parsed is None:
            if raw not in (None, ""):
                self._defaulted(field, raw)
            return Asset.zero(precision, symbol)
        return parsed

    def text(self, field: str) -> str:
        value = self._row.get(field)
        return value if isinstance(value, str) else ""


def parse_asset(text: Any) -> Optional[Asset]:
    """Parse ``"2.60796579 WAX"`` into an Asset; None when malformed."""
    if not isinstance(text, str):
        return None
    parts = text.strip().split()
    if len(parts) != 2:
        return None

    quantity, symbol = parts
    precision = len(quantity.split(".", 1)[1]) if "." in quantity else 0
    amount = try_parse_scaled(quantity, precision)
    if amount is None or not symbol.isalpha():
        return None
    return Asset(amount=amount, precision=precision, symbol=symbol)


# =============================================================
# VOTESHARE
# =============================================================


def normalize_voter(row: Mapping[str, Any]) -> VoterRecord:
    """Normalize an ``eosio::voters`` row."""
    fields = FieldParser(row, "voters")

    accrual = AccrualRecord(
        base=fields.exact("unpaid_voteshare"),
        rate=fields.exact("unpaid_voteshare_change_rate"),
        last_updated=fields.time("unpaid_voteshare_last_updated"),
    )
    return VoterRecord(
        owner=fields.text("owner"),
        accrual=accrual,
        last_claim_time=fields.time("last_claim_time"),
        staked=fields.exact("staked"),
        defaulted_fields=tuple(fields.defaulted),
    )


def normalize_global(row: Optional[Mapping[str, Any]]) -> GlobalVoteshare:
    """Normalize the ``eosio::global`` row."""
    if row is None:
        raise MalformedResponseError(
            message="Global state table returned no row",
            source="global",
        )
    fields = FieldParser(row, "global")

    accrual = AccrualRecord(
        base=fields.exact("total_unpaid_voteshare"),
        rate=fields.exact("total_voteshare_change_rate"),
        last_updated=fields.time("total_unpaid_voteshare_last_updated"),
    )
    return GlobalVoteshare(
        accrual=accrual,
        bucket=fields.exact("voters_bucket"),
        defaulted_fields=tuple(fields.defaulted),
    )


# =============================================================
# MARKET
# =============================================================


def normalize_pool(
    data: Mapping[str, Any],
    native_symbol: str = NATIVE_SYMBOL,
) -> PoolReserves:
    """
    Normalize a pool object, orienting it so ``in`` is the native asset.

    Raises:
        MalformedResponseError: Neither side is the native asset
    """
    token_a = data["tokenA"]
    token_b = data["tokenB"]

    if token_a.get("symbol") == native_symbol:
        token_in, token_out = token_a, token_b
    elif token_b.get("symbol") == native_symbol:
        token_in, token_out = token_b, token_a
    else:
        raise MalformedResponseError(
            message=f"Pool has no {native_symbol} side",
            source="market",
            raw_data=data,
            field_name="symbol",
        )

    precision_in = _token_decimals(token_in)
    precision_out = _token_decimals(token_out)
    fields = FieldParser(data, "market")

    return PoolReserves(
        reserve_in=fields.scaled("tokenIn.quantity", precision_in, raw=token_in.get("quantity")),
        reserve_out=fields.scaled("tokenOut.quantity", precision_out, raw=token_out.get("quantity")),
        precision_in=precision_in,
        precision_out=precision_out,
        symbol_in=str(token_in.get("symbol", "")),
        symbol_out=str(token_out.get("symbol", "")),
        pool_id=try_parse_exact(data.get("id")),
        defaulted_fields=tuple(fields.defaulted),
    )


def _token_decimals(token: Mapping[str, Any]) -> int:
    decimals = try_parse_exact(token.get("decimals"))
    if decimals is None or decimals < 0:
        raise MalformedResponseError(
            message=f"Pool token {token.get('symbol')!r} has no decimals",
            source="market",
            raw_data=token,
            field_name="decimals",
        )
    return decimals


# =============================================================
# BURNER CONTRACT
# =============================================================


def normalize_config(row: Optional[Mapping[str, Any]]) -> ContractConfig:
    """Normalize the contract ``config`` singleton."""
    if row is None:
        raise MalformedResponseError(
            message="Contract is not configured",
            source="config",
        )
    fields = FieldParser(row, "config")

    window = try_parse_exact(row.get("priority_window"))
    return ContractConfig(
        admin=fields.text("admin"),
        pool_id=fields.exact("alcor_pool_id"),
        enabled=row.get("enabled") in (True, 1, "1", "true"),
        min_native_to_act=fields.asset("min_wax_to_burn", NATIVE_PRECISION, NATIVE_SYMBOL),
        priority_window_seconds=window if window is not None and window >= 0 else None,
        defaulted_fields=tuple(fields.defaulted),
    )


def normalize_whitelist(rows: Iterable[Mapping[str, Any]]) -> frozenset[str]:
    """Collect account names from ``whitelist`` rows."""
    return frozenset(
        row["account"] for row in rows
        if isinstance(row.get("account"), str) and row["account"]
    )


def normalize_last_event(row: Optional[Mapping[str, Any]]) -> Optional[datetime]:
    """Timestamp of the last priority-window event, or None."""
    if row is None:
        return None
    return parse_chain_time(row.get("timestamp"))


def normalize_stats(
    stats_row: Optional[Mapping[str, Any]],
    side_pool_row: Optional[Mapping[str, Any]] = None,
) -> ContractStats:
    """Normalize lifetime totals; missing rows read as zero totals."""
    stats = FieldParser(stats_row or {}, "stats")
    side_pool = FieldParser(side_pool_row or {}, "cpowerstats")

    return ContractStats(
        total_actions=stats.exact("total_burns") if stats_row else 0,
        total_native_claimed=stats.asset("total_wax_claimed", NATIVE_PRECISION, NATIVE_SYMBOL),
        total_native_staked=stats.asset("total_wax_staked", NATIVE_PRECISION, NATIVE_SYMBOL),
        total_output_burned=stats.asset("total_cheese_burned", OUTPUT_PRECISION, OUTPUT_SYMBOL),
        total_output_rewards=stats.asset("total_cheese_rewards", OUTPUT_PRECISION, OUTPUT_SYMBOL),
        total_output_liquidity=stats.asset("total_cheese_liquidity", OUTPUT_PRECISION, OUTPUT_SYMBOL),
        total_native_side_pool=side_pool.asset(
            "total_wax_cheesepowerz", NATIVE_PRECISION, NATIVE_SYMBOL
        ),
        defaulted_fields=tuple(stats.defaulted + side_pool.defaulted),
    )
