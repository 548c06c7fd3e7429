#!/usr/bin/env python3
"""
Reward Accrual Engine - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Watches one burner contract, estimates its claimable voter reward
and reports whether the claim action is currently allowed.

- Polls every feed on its own interval
- Logs a summary line whenever a feed updates
- Logs can_claim transitions
- Handles SIGINT/SIGTERM gracefully

============================================================
USAGE
============================================================
One-shot JSON snapshot:
    python app.py --once

Watch, as a given wallet account:
    python app.py --account alice --log-level DEBUG

With a YAML config:
    python app.py --config config/engine.example.yaml

============================================================
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Optional

from ledger_feeds.models import FeedName
from reward_engine.config import EngineConfig, set_config
from reward_engine.engine import RewardEngine
from reward_engine.exceptions import ConfigurationError
from reward_engine.session import StaticSession
from reward_engine.ticker import TickerReading, format_countdown


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="reward-engine",
        description="Voter reward accrual and claim eligibility monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --once                       # Print one JSON snapshot and exit
  %(prog)s --account alice              # Watch as wallet account 'alice'
  %(prog)s --config engine.yaml         # Load settings from YAML
        """
    )

    parser.add_argument(
        "--account",
        type=str,
        default=None,
        help="Wallet account used for the whitelist check",
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        default=None,
        help="YAML config file (default: environment variables)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Fetch every feed once, print the snapshot as JSON and exit",
    )

    parser.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        default=None,
        help="Override the feed polling interval",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Build configuration from YAML or environment plus CLI overrides."""
    config = EngineConfig.from_yaml(args.config) if args.config else EngineConfig.from_env()

    if args.interval is not None:
        config.feeds.refresh_interval_seconds = args.interval
    config.validate()

    set_config(config)
    return config


# ============================================================
# RUN MODES
# ============================================================

async def run_once(engine: RewardEngine) -> int:
    """Fetch every feed once and print the snapshot."""
    try:
        await asyncio.gather(*engine.refresh())
        snapshot = engine.compute_snapshot()
        print(json.dumps(snapshot.to_dict(), indent=2))
        return 1 if snapshot.is_error else 0
    finally:
        await engine.stop()


async def run_forever(engine: RewardEngine) -> int:
    """Watch until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

    def log_tick(reading: TickerReading) -> None:
        logger.debug(
            f"cooldown {format_countdown(reading.time_until_cooldown_ready_ms)} | "
            f"priority window {format_countdown(reading.time_remaining_in_priority_window_ms)}"
        )

    engine.on_update(lambda snapshot: logger.info(snapshot.summary()))
    engine.subscribe(lambda allowed: logger.info(f"Claim {'ALLOWED' if allowed else 'BLOCKED'}"))
    engine.ticker.add_listener(log_tick)

    try:
        async with engine:
            logger.info(
                f"Watching {len(engine.cache.slot_names)} feeds "
                f"({', '.join(name.value for name in FeedName)}); press Ctrl+C to stop"
            )
            await stop_event.wait()
            logger.info("Shutdown requested")
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        await engine.stop()
        return 130


async def run_application(args: argparse.Namespace) -> int:
    try:
        config = load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    engine = RewardEngine.build(config, StaticSession(args.account))

    try:
        if args.once:
            return await run_once(engine)
        return await run_forever(engine)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        await engine.stop()
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    return asyncio.run(run_application(args))


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
