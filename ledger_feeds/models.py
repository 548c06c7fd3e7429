"""
Ledger Feed Models - Typed records produced by the feed slots.

Records are immutable once fetched; the next fetch of the same feed
supersedes them. Quantities are exact integers in smallest units.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from core.clock import whole_seconds_between
from core.fixed_point import format_quantity, to_display_float


class FeedName(str, Enum):
    """Slots owned by the source feed cache."""
    ACCOUNT_VOTESHARE = "account_voteshare"
    GLOBAL_VOTESHARE = "global_voteshare"
    POOL_RESERVES = "pool_reserves"
    CONTRACT_CONFIG = "contract_config"
    WHITELIST = "whitelist"
    LAST_EVENT = "last_event"
    CONTRACT_STATS = "contract_stats"


# =============================================================
# LEDGER RECORDS
# =============================================================


@dataclass(frozen=True)
class Asset:
    """Token quantity in smallest units, e.g. ``2.60796579 WAX``."""
    amount: int
    precision: int
    symbol: str

    @classmethod
    def zero(cls, precision: int, symbol: str) -> "Asset":
        return cls(amount=0, precision=precision, symbol=symbol)

    def to_float(self) -> float:
        """Display value; lossy."""
        return to_display_float(self.amount, self.precision)

    def __str__(self) -> str:
        return f"{format_quantity(self.to_float(), self.precision)} {self.symbol}"


@dataclass(frozen=True)
class AccrualRecord:
    """
    Continuously accruing quantity: ``base + rate * elapsed``.

    Elapsed seconds are floored and never negative, so a
    ``last_updated`` in the future (clock skew) contributes nothing.
    """
    base: int
    rate: int
    last_updated: Optional[datetime]

    def elapsed_seconds(self, now: datetime) -> int:
        if self.last_updated is None:
            return 0
        return whole_seconds_between(self.last_updated, now)

    def value_at(self, now: datetime) -> int:
        return self.base + self.rate * self.elapsed_seconds(now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": str(self.base),
            "rate": str(self.rate),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass(frozen=True)
class VoterRecord:
    """Account-level voteshare plus the account's claim bookkeeping."""
    owner: str
    accrual: AccrualRecord
    last_claim_time: Optional[datetime]
    staked: int = 0
    defaulted_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "accrual": self.accrual.to_dict(),
            "last_claim_time": self.last_claim_time.isoformat() if self.last_claim_time else None,
            "staked": str(self.staked),
            "defaulted_fields": list(self.defaulted_fields),
        }


@dataclass(frozen=True)
class GlobalVoteshare:
    """Network-wide voteshare and the bucket it is paid from."""
    accrual: AccrualRecord
    bucket: int
    defaulted_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "accrual": self.accrual.to_dict(),
            "bucket": str(self.bucket),
            "defaulted_fields": list(self.defaulted_fields),
        }


@dataclass(frozen=True)
class PoolReserves:
    """
    AMM reserves oriented for a swap of ``symbol_in`` into ``symbol_out``.

    The rate is a market estimate, so float is acceptable here.
    """
    reserve_in: int
    reserve_out: int
    precision_in: int
    precision_out: int
    symbol_in: str = ""
    symbol_out: str = ""
    pool_id: Optional[int] = None
    defaulted_fields: tuple[str, ...] = ()

    def rate_per_unit(self) -> float:
        """Output units received per input unit; 0 for an empty pool."""
        if self.reserve_in == 0:
            return 0.0
        return (
            to_display_float(self.reserve_out, self.precision_out)
            / to_display_float(self.reserve_in, self.precision_in)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "reserve_in": str(self.reserve_in),
            "reserve_out": str(self.reserve_out),
            "precision_in": self.precision_in,
            "precision_out": self.precision_out,
            "symbol_in": self.symbol_in,
            "symbol_out": self.symbol_out,
            "rate_per_unit": self.rate_per_unit(),
            "defaulted_fields": list(self.defaulted_fields),
        }


@dataclass(frozen=True)
class ContractConfig:
    """Burner contract configuration row."""
    admin: str
    pool_id: int
    enabled: bool
    min_native_to_act: Asset
    priority_window_seconds: Optional[int] = None
    defaulted_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "pool_id": self.pool_id,
            "enabled": self.enabled,
            "min_native_to_act": str(self.min_native_to_act),
            "priority_window_seconds": self.priority_window_seconds,
            "defaulted_fields": list(self.defaulted_fields),
        }


@dataclass(frozen=True)
class ContractStats:
    """Lifetime totals kept by the burner contract."""
    total_actions: int
    total_native_claimed: Asset
    total_native_staked: Asset
    total_output_burned: Asset
    total_output_rewards: Asset
    total_output_liquidity: Asset
    total_native_side_pool: Asset
    defaulted_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_actions": self.total_actions,
            "total_native_claimed": str(self.total_native_claimed),
            "total_native_staked": str(self.total_native_staked),
            "total_output_burned": str(self.total_output_burned),
            "total_output_rewards": str(self.total_output_rewards),
            "total_output_liquidity": str(self.total_output_liquidity),
            "total_native_side_pool": str(self.total_native_side_pool),
            "defaulted_fields": list(self.defaulted_fields),
        }


# =============================================================
# CACHE VIEW
# =============================================================


@dataclass(frozen=True)
class SlotStatus:
    """Point-in-time status of one cache slot."""
    name: str
    has_value: bool
    is_loading: bool
    is_fetching: bool
    is_error: bool
    is_stale: bool
    last_error: Optional[str] = None
    last_success_at: Optional[datetime] = None
    refresh_interval_seconds: float = 0.0

    @property
    def is_blocking_error(self) -> bool:
        """Failed with nothing to fall back on."""
        return self.is_error and not self.has_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "has_value": self.has_value,
            "is_loading": self.is_loading,
            "is_fetching": self.is_fetching,
            "is_error": self.is_error,
            "is_stale": self.is_stale,
            "last_error": self.last_error,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "refresh_interval_seconds": self.refresh_interval_seconds,
        }


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable view of every slot's best-known value and status."""
    taken_at: datetime
    values: Mapping[str, Any] = field(default_factory=dict)
    slots: Mapping[str, SlotStatus] = field(default_factory=dict)

    @property
    def is_loading(self) -> bool:
        return any(status.is_loading for status in self.slots.values())

    @property
    def is_error(self) -> bool:
        return any(status.is_blocking_error for status in self.slots.values())

    def get(self, name: str, default: Any = None) -> Any:
        key = name.value if isinstance(name, FeedName) else name
        value = self.values.get(key)
        return default if value is None else value

    def to_dict(self) -> dict[str, Any]:
        return {
            "taken_at": self.taken_at.isoformat(),
            "is_loading": self.is_loading,
            "is_error": self.is_error,
            "slots": {name: status.to_dict() for name, status in self.slots.items()},
        }
