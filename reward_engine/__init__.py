"""
Reward Engine Package - Reward estimation and action gating.

Features:
- Exact-integer voteshare accrual and share-of-bucket estimate
- Cooldown and priority window gates with whitelist override
- Configurable weight tables for the native and output splits
- One-second live countdown ticker
- can_claim transition subscription

Quick Start:
    from reward_engine import EngineConfig, RewardEngine, StaticSession

    async def main():
        config = EngineConfig.from_env()
        engine = RewardEngine.build(config, StaticSession("alice"))
        engine.subscribe(lambda allowed: print("can claim:", allowed))

        async with engine:
            snapshot = engine.compute_snapshot()
            print(snapshot.summary())
"""

from reward_engine.accrual import (
    AccrualCalculator,
    ExchangeProjection,
    RewardEstimate,
    accrue,
    apply_exchange,
)
from reward_engine.claims import ClaimSubmitter
from reward_engine.config import EndpointConfig, EngineConfig, get_config, set_config
from reward_engine.distribution import DistributionWeights, partition, partition_units
from reward_engine.eligibility import (
    CooldownState,
    EligibilityGate,
    EligibilityResult,
    EligibilityState,
    PriorityWindowState,
)
from reward_engine.engine import RewardEngine
from reward_engine.exceptions import (
    ActionNotAllowedError,
    ConfigurationError,
    RewardEngineError,
)
from reward_engine.models import RewardSnapshot
from reward_engine.session import StaticSession, WalletSession
from reward_engine.ticker import LiveTicker, TickerReading, format_countdown


__version__ = "1.0.0"

__all__ = [
    # Engine
    "RewardEngine",
    "RewardSnapshot",
    "ClaimSubmitter",

    # Accrual
    "AccrualCalculator",
    "ExchangeProjection",
    "RewardEstimate",
    "accrue",
    "apply_exchange",

    # Distribution
    "DistributionWeights",
    "partition",
    "partition_units",

    # Eligibility
    "CooldownState",
    "EligibilityGate",
    "EligibilityResult",
    "EligibilityState",
    "PriorityWindowState",

    # Ticker
    "LiveTicker",
    "TickerReading",
    "format_countdown",

    # Session
    "StaticSession",
    "WalletSession",

    # Config
    "EndpointConfig",
    "EngineConfig",
    "get_config",
    "set_config",

    # Exceptions
    "ActionNotAllowedError",
    "ConfigurationError",
    "RewardEngineError",
]
