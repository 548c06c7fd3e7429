"""
Reward Engine Models - The derived snapshot handed to displays.

A RewardSnapshot has no identity and is never stored; it is
recomputed from the current cache snapshot and clock on demand.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from core.constants import NATIVE_PRECISION, NATIVE_SYMBOL, OUTPUT_PRECISION, OUTPUT_SYMBOL
from core.fixed_point import format_quantity
from ledger_feeds.models import ContractStats, SlotStatus
from reward_engine.accrual import ExchangeProjection, RewardEstimate
from reward_engine.eligibility import EligibilityResult


@dataclass(frozen=True)
class RewardSnapshot:
    """
    Everything a display needs at one instant.

    Amounts in ``exchange`` are whole native units; amounts in
    ``output_allocations`` are whole output units.
    """
    computed_at: datetime
    account: Optional[str]
    estimate: RewardEstimate
    exchange: ExchangeProjection
    output_allocations: dict[str, float]
    eligibility: EligibilityResult

    # Exact native split of reward_units, in smallest units
    native_unit_allocations: Mapping[str, int] = field(default_factory=dict)

    # Contract state
    contract_enabled: bool = False
    meets_minimum: bool = False
    stats: Optional[ContractStats] = None

    # Feed state
    is_loading: bool = False
    is_error: bool = False
    slots: Mapping[str, SlotStatus] = field(default_factory=dict)
    defaulted_fields: tuple[str, ...] = ()

    @property
    def can_claim(self) -> bool:
        return self.eligibility.can_claim

    @property
    def action_allowed(self) -> bool:
        return self.eligibility.action_allowed

    @property
    def claimable(self) -> float:
        return self.estimate.claimable

    @property
    def exchanged_output(self) -> float:
        return self.exchange.exchanged_output

    def summary(self) -> str:
        """One-line log summary."""
        claimable = format_quantity(self.claimable, NATIVE_PRECISION)
        output = format_quantity(self.exchanged_output, OUTPUT_PRECISION, grouping=True)
        return (
            f"claimable={claimable} {NATIVE_SYMBOL} "
            f"-> {output} {OUTPUT_SYMBOL} | "
            f"allowed={self.action_allowed} "
            f"cooldown={self.eligibility.cooldown.value} "
            f"window={self.eligibility.priority_window.value} | "
            f"loading={self.is_loading} error={self.is_error}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "computed_at": self.computed_at.isoformat(),
            "account": self.account,
            "estimate": self.estimate.to_dict(),
            "exchange": self.exchange.to_dict(),
            "native_unit_allocations": {name: str(units) for name, units in self.native_unit_allocations.items()},
            "output_allocations": dict(self.output_allocations),
            "eligibility": self.eligibility.to_dict(),
            "contract_enabled": self.contract_enabled,
            "meets_minimum": self.meets_minimum,
            "stats": self.stats.to_dict() if self.stats else None,
            "is_loading": self.is_loading,
            "is_error": self.is_error,
            "slots": {name: status.to_dict() for name, status in self.slots.items()},
            "defaulted_fields": list(self.defaulted_fields),
        }
