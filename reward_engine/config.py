"""
Reward Engine - Configuration.

============================================================
CONFIGURABLE ENGINE
============================================================

Everything that has changed over the system's lifetime is
configuration, not code:
- Endpoints and the watched contract/pool
- Feed polling intervals and staleness windows
- Cooldown and fallback priority window
- Native split and output split weight tables

Configuration can be loaded from:
- Default values
- Environment variables (a local .env file is honoured)
- YAML config file

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml
from dotenv import load_dotenv

from core.constants import (
    CLAIM_COOLDOWN_SECONDS,
    DEFAULT_LEDGER_API_URL,
    DEFAULT_MARKET_API_URL,
    DEFAULT_PRIORITY_WINDOW_SECONDS,
    NATIVE_PRECISION,
    OUTPUT_PRECISION,
    SHARE_SCALE_EXP,
    TICK_INTERVAL_SECONDS,
)
from ledger_feeds.feeds import FeedSettings
from ledger_feeds.models import FeedName
from reward_engine.distribution import DistributionWeights
from reward_engine.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_NATIVE_SPLIT = (("stake", "0.20"), ("side_pool", "0.05"), ("swap", "0.75"))
DEFAULT_OUTPUT_SPLIT = (("burn", "0.85"), ("liquidity", "0.15"))
DEFAULT_EXCHANGE_BOUND = "swap"


def _default_native_split() -> DistributionWeights:
    return DistributionWeights.from_config(DEFAULT_NATIVE_SPLIT)


def _default_output_split() -> DistributionWeights:
    return DistributionWeights.from_config(DEFAULT_OUTPUT_SPLIT)


def _env(name: str, cast: Callable[[str], Any]) -> Optional[Any]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}", config_key=name, original_error=e)


# =============================================================
# SUB-CONFIGURATIONS
# =============================================================


@dataclass
class EndpointConfig:
    """Where the read-only services live."""
    ledger_api_url: str = DEFAULT_LEDGER_API_URL
    market_api_url: str = DEFAULT_MARKET_API_URL
    http_timeout_seconds: float = 30.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "ledger_api_url": self.ledger_api_url,
            "market_api_url": self.market_api_url,
            "http_timeout_seconds": self.http_timeout_seconds,
        }


# =============================================================
# MAIN CONFIGURATION
# =============================================================


@dataclass
class EngineConfig:
    """
    Main configuration for the reward engine.

    Combines all sub-configurations.
    """
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)
    feeds: FeedSettings = field(default_factory=FeedSettings)

    # Gates
    cooldown_seconds: int = CLAIM_COOLDOWN_SECONDS
    priority_window_seconds: int = DEFAULT_PRIORITY_WINDOW_SECONDS

    # Ticker
    tick_interval_seconds: float = TICK_INTERVAL_SECONDS

    # Arithmetic
    share_scale_exp: int = SHARE_SCALE_EXP
    native_precision: int = NATIVE_PRECISION
    output_precision: int = OUTPUT_PRECISION

    # Weight tables
    native_split: DistributionWeights = field(default_factory=_default_native_split)
    exchange_bound_allocation: str = DEFAULT_EXCHANGE_BOUND
    output_split: DistributionWeights = field(default_factory=_default_output_split)

    def validate(self) -> None:
        """Raise ConfigurationError on inconsistent settings."""
        if self.exchange_bound_allocation not in self.native_split:
            raise ConfigurationError(
                f"Exchange-bound allocation '{self.exchange_bound_allocation}' "
                f"is not in the native split {self.native_split.names}",
                config_key="exchange_bound_allocation",
            )
        if self.cooldown_seconds < 0:
            raise ConfigurationError("cooldown_seconds must be >= 0", config_key="cooldown_seconds")
        if self.priority_window_seconds < 0:
            raise ConfigurationError(
                "priority_window_seconds must be >= 0", config_key="priority_window_seconds"
            )
        if self.tick_interval_seconds <= 0:
            raise ConfigurationError(
                "tick_interval_seconds must be positive", config_key="tick_interval_seconds"
            )
        if self.feeds.refresh_interval_seconds <= 0:
            raise ConfigurationError(
                "refresh_interval_seconds must be positive", config_key="refresh_interval_seconds"
            )
        if self.feeds.stale_after_seconds < 0:
            raise ConfigurationError(
                "stale_after_seconds must be >= 0", config_key="stale_after_seconds"
            )
        known_feeds = {name.value for name in FeedName}
        for name, seconds in self.feeds.interval_overrides.items():
            if name not in known_feeds:
                raise ConfigurationError(
                    f"Unknown feed '{name}' in interval_overrides (expected one of {sorted(known_feeds)})",
                    config_key="interval_overrides",
                )
            if seconds <= 0:
                raise ConfigurationError(
                    f"interval_overrides.{name} must be positive", config_key="interval_overrides"
                )
        if self.endpoints.http_timeout_seconds <= 0:
            raise ConfigurationError(
                "http_timeout_seconds must be positive", config_key="http_timeout_seconds"
            )

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "EngineConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - LEDGER_API_URL
        - MARKET_API_URL
        - BURNER_CONTRACT
        - POOL_ID
        - FEED_REFRESH_SECONDS
        - FEED_STALE_SECONDS
        - CLAIM_COOLDOWN_SECONDS
        - PRIORITY_WINDOW_SECONDS
        - HTTP_TIMEOUT_SECONDS
        - NATIVE_SPLIT            e.g. "stake=0.20,side_pool=0.05,swap=0.75"
        - OUTPUT_SPLIT            e.g. "burn=0.85,liquidity=0.15"
        - EXCHANGE_BOUND_ALLOCATION
        """
        if dotenv:
            load_dotenv()

        config = cls()

        # Endpoints
        if os.getenv("LEDGER_API_URL"):
            config.endpoints.ledger_api_url = os.getenv("LEDGER_API_URL")
        if os.getenv("MARKET_API_URL"):
            config.endpoints.market_api_url = os.getenv("MARKET_API_URL")
        timeout = _env("HTTP_TIMEOUT_SECONDS", float)
        if timeout is not None:
            config.endpoints.http_timeout_seconds = timeout

        # Feeds
        if os.getenv("BURNER_CONTRACT"):
            config.feeds.contract = os.getenv("BURNER_CONTRACT")
            config.feeds.account = config.feeds.contract
        pool_id = _env("POOL_ID", int)
        if pool_id is not None:
            config.feeds.pool_id = pool_id
        refresh = _env("FEED_REFRESH_SECONDS", float)
        if refresh is not None:
            config.feeds.refresh_interval_seconds = refresh
        stale = _env("FEED_STALE_SECONDS", float)
        if stale is not None:
            config.feeds.stale_after_seconds = stale

        # Gates
        cooldown = _env("CLAIM_COOLDOWN_SECONDS", int)
        if cooldown is not None:
            config.cooldown_seconds = cooldown
        window = _env("PRIORITY_WINDOW_SECONDS", int)
        if window is not None:
            config.priority_window_seconds = window

        # Weight tables
        if os.getenv("NATIVE_SPLIT"):
            config.native_split = DistributionWeights.parse(os.getenv("NATIVE_SPLIT"))
        if os.getenv("OUTPUT_SPLIT"):
            config.output_split = DistributionWeights.parse(os.getenv("OUTPUT_SPLIT"))
        if os.getenv("EXCHANGE_BOUND_ALLOCATION"):
            config.exchange_bound_allocation = os.getenv("EXCHANGE_BOUND_ALLOCATION")

        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineConfig":
        """Load configuration from a YAML file; missing sections keep defaults."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load YAML config from {path}", original_error=e)

        if not isinstance(data, dict):
            raise ConfigurationError(f"YAML config {path} must be a mapping")

        config = cls()

        try:
            # Load endpoints
            if "endpoints" in data:
                ep = data["endpoints"]
                config.endpoints = EndpointConfig(
                    ledger_api_url=ep.get("ledger_api_url", DEFAULT_LEDGER_API_URL),
                    market_api_url=ep.get("market_api_url", DEFAULT_MARKET_API_URL),
                    http_timeout_seconds=float(ep.get("http_timeout_seconds", 30.0)),
                )

            # Load feeds
            if "feeds" in data:
                fd = data["feeds"]
                defaults = FeedSettings()
                contract = fd.get("contract", defaults.contract)
                config.feeds = FeedSettings(
                    account=fd.get("account", contract),
                    contract=contract,
                    pool_id=int(fd.get("pool_id", defaults.pool_id)),
                    native_symbol=fd.get("native_symbol", defaults.native_symbol),
                    whitelist_limit=int(fd.get("whitelist_limit", defaults.whitelist_limit)),
                    refresh_interval_seconds=float(
                        fd.get("refresh_interval_seconds", defaults.refresh_interval_seconds)
                    ),
                    stale_after_seconds=float(
                        fd.get("stale_after_seconds", defaults.stale_after_seconds)
                    ),
                    interval_overrides={
                        str(name): float(seconds)
                        for name, seconds in (fd.get("interval_overrides") or {}).items()
                    },
                )

            # Load gates
            if "eligibility" in data:
                el = data["eligibility"]
                config.cooldown_seconds = int(el.get("cooldown_seconds", CLAIM_COOLDOWN_SECONDS))
                config.priority_window_seconds = int(
                    el.get("priority_window_seconds", DEFAULT_PRIORITY_WINDOW_SECONDS)
                )

            if "tick_interval_seconds" in data:
                config.tick_interval_seconds = float(data["tick_interval_seconds"])

            # Load weight tables
            if "native_split" in data:
                config.native_split = DistributionWeights.from_config(data["native_split"])
            if "output_split" in data:
                config.output_split = DistributionWeights.from_config(data["output_split"])
            if "exchange_bound_allocation" in data:
                config.exchange_bound_allocation = str(data["exchange_bound_allocation"])

        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid YAML config {path}: {e}", original_error=e)

        config.validate()
        logger.info(f"Loaded engine config from {path}")
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "endpoints": self.endpoints.to_dict(),
            "feeds": {
                "account": self.feeds.account,
                "contract": self.feeds.contract,
                "pool_id": self.feeds.pool_id,
                "native_symbol": self.feeds.native_symbol,
                "whitelist_limit": self.feeds.whitelist_limit,
                "refresh_interval_seconds": self.feeds.refresh_interval_seconds,
                "stale_after_seconds": self.feeds.stale_after_seconds,
                "interval_overrides": dict(self.feeds.interval_overrides),
            },
            "cooldown_seconds": self.cooldown_seconds,
            "priority_window_seconds": self.priority_window_seconds,
            "tick_interval_seconds": self.tick_interval_seconds,
            "share_scale_exp": self.share_scale_exp,
            "native_precision": self.native_precision,
            "output_precision": self.output_precision,
            "native_split": self.native_split.to_dict(),
            "exchange_bound_allocation": self.exchange_bound_allocation,
            "output_split": self.output_split.to_dict(),
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the global engine configuration."""
    global _default_config
    if _default_config is None:
        _default_config = EngineConfig.from_env()
    return _default_config


def set_config(config: EngineConfig) -> None:
    """Set the global engine configuration."""
    global _default_config
    _default_config = config
