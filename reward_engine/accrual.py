"""
Reward Engine - Accrual Calculator.

============================================================
RESPONSIBILITY
============================================================
Turns two time-stamped voteshare records and the shared bucket
into the account's current, time-adjusted reward.

    account_value = base + rate * elapsed      (exact int)
    network_value = base + rate * elapsed      (exact int)
    share         = account_value * 10**18 // network_value
    reward        = bucket * share / 10**18

Exact integers are mandatory up to and including the ratio;
voteshare magnitudes are far beyond what a double holds exactly.

Also projects the reward through the AMM: the native amount is
split by the native weight table and only the exchange-bound
entry is converted at the pool rate.

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from core.constants import NATIVE_PRECISION, SHARE_SCALE_EXP
from core.fixed_point import scaled_ratio, to_display_float
from ledger_feeds.models import AccrualRecord
from reward_engine.distribution import DistributionWeights, partition


logger = logging.getLogger(__name__)


def accrue(base: int, rate: int, elapsed_seconds: int) -> int:
    """Value of an accruing quantity after elapsed_seconds (clamped >= 0)."""
    return base + rate * max(0, elapsed_seconds)


@dataclass(frozen=True)
class RewardEstimate:
    """Account's share of the bucket at one instant."""
    account_value: int
    network_value: int
    share_scaled: int
    scale_exp: int
    bucket: int
    # Smallest native units, exact (truncated)
    reward_units: int
    # bucket * display share, in smallest native units
    reward: float
    # reward in whole native units, for display
    claimable: float

    @property
    def share(self) -> float:
        return to_display_float(self.share_scaled, self.scale_exp)

    @classmethod
    def empty(cls, scale_exp: int, bucket: int = 0) -> "RewardEstimate":
        return cls(
            account_value=0,
            network_value=0,
            share_scaled=0,
            scale_exp=scale_exp,
            bucket=bucket,
            reward_units=0,
            reward=0.0,
            claimable=0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_value": str(self.account_value),
            "network_value": str(self.network_value),
            "share": self.share,
            "bucket": str(self.bucket),
            "reward_units": str(self.reward_units),
            "reward": self.reward,
            "claimable": self.claimable,
        }


class AccrualCalculator:
    """Pure reward estimation from voteshare records."""

    def __init__(
        self,
        scale_exp: int = SHARE_SCALE_EXP,
        native_precision: int = NATIVE_PRECISION,
    ) -> None:
        self.scale_exp = scale_exp
        self.native_precision = native_precision

    def estimate(
        self,
        account: Optional[AccrualRecord],
        network: Optional[AccrualRecord],
        bucket: int,
        now: datetime,
    ) -> RewardEstimate:
        """
        Compute the account's reward at ``now``.

        Missing records or a zero network total give a zero estimate
        rather than an error.
        """
        if account is None or network is None:
            return RewardEstimate.empty(self.scale_exp, bucket)

        account_value = accrue(account.base, account.rate, account.elapsed_seconds(now))
        network_value = accrue(network.base, network.rate, network.elapsed_seconds(now))

        if network_value == 0:
            logger.debug("Network voteshare is zero, share defined as 0")
            return RewardEstimate(
                account_value=account_value,
                network_value=0,
                share_scaled=0,
                scale_exp=self.scale_exp,
                bucket=bucket,
                reward_units=0,
                reward=0.0,
                claimable=0.0,
            )

        share_scaled = scaled_ratio(account_value, network_value, self.scale_exp)
        reward = bucket * to_display_float(share_scaled, self.scale_exp)
        reward_units = bucket * share_scaled // 10 ** self.scale_exp

        return RewardEstimate(
            account_value=account_value,
            network_value=network_value,
            share_scaled=share_scaled,
            scale_exp=self.scale_exp,
            bucket=bucket,
            reward_units=reward_units,
            reward=reward,
            claimable=reward / 10 ** self.native_precision,
        )


# =============================================================
# EXCHANGE PROJECTION
# =============================================================


@dataclass(frozen=True)
class ExchangeProjection:
    """Native split of the claimable amount and the exchanged output."""
    native_allocations: dict[str, float] = field(default_factory=dict)
    exchange_bound: str = ""
    exchange_input: float = 0.0
    rate_per_unit: float = 0.0
    exchanged_output: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "native_allocations": dict(self.native_allocations),
            "exchange_bound": self.exchange_bound,
            "exchange_input": self.exchange_input,
            "rate_per_unit": self.rate_per_unit,
            "exchanged_output": self.exchanged_output,
        }


def apply_exchange(
    native_amount: float,
    native_split: DistributionWeights,
    exchange_bound: str,
    rate_per_unit: float,
) -> ExchangeProjection:
    """
    Split native_amount by policy, converting only the exchange-bound part.

    Args:
        native_amount: Claimable amount in whole native units
        native_split: Policy table (e.g. stake / side pool / swap)
        exchange_bound: Name of the entry that goes through the AMM
        rate_per_unit: Output units per native unit (0 for an empty pool)
    """
    allocations = partition(native_amount, native_split)
    exchange_input = allocations.get(exchange_bound, 0.0)

    return ExchangeProjection(
        native_allocations=allocations,
        exchange_bound=exchange_bound,
        exchange_input=exchange_input,
        rate_per_unit=rate_per_unit,
        exchanged_output=exchange_input * rate_per_unit,
    )
