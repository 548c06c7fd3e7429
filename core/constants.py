"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines the chain-side constants the engine relies on.

- Account and table names on the ledger
- Asset precisions
- Fixed-point scale for voteshare ratios
- Default durations and polling cadence

These are defaults only; runtime values come from EngineConfig.

============================================================
"""

# ============================================================
# LEDGER ACCOUNTS & TABLES
# ============================================================

SYSTEM_CONTRACT = "eosio"
VOTERS_TABLE = "voters"
GLOBAL_TABLE = "global"

DEFAULT_BURNER_CONTRACT = "cheeseburner"
CONFIG_TABLE = "config"
WHITELIST_TABLE = "whitelist"
LAST_EVENT_TABLE = "lastevent"
STATS_TABLE = "stats"
SIDE_POOL_STATS_TABLE = "cpowerstats"

# Name of the contract action that claims and distributes rewards
CLAIM_ACTION = "burn"

# ============================================================
# ASSETS
# ============================================================

NATIVE_SYMBOL = "WAX"
NATIVE_PRECISION = 8
OUTPUT_SYMBOL = "CHEESE"
OUTPUT_PRECISION = 4

DEFAULT_POOL_ID = 1252

# ============================================================
# ARITHMETIC
# ============================================================

# Voteshare ratios are carried as integers scaled by 10**18
SHARE_SCALE_EXP = 18

# ============================================================
# TIME
# ============================================================

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

CLAIM_COOLDOWN_SECONDS = 24 * SECONDS_PER_HOUR
DEFAULT_PRIORITY_WINDOW_SECONDS = 48 * SECONDS_PER_HOUR

DEFAULT_REFRESH_INTERVAL_SECONDS = 30.0
DEFAULT_STALE_AFTER_SECONDS = 10.0
TICK_INTERVAL_SECONDS = 1.0

# ============================================================
# ENDPOINTS
# ============================================================

DEFAULT_LEDGER_API_URL = "https://wax.api.eosnation.io"
DEFAULT_MARKET_API_URL = "https://wax.alcor.exchange"
