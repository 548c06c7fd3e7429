"""Upstream service clients."""

from ledger_feeds.providers.ledger import LedgerClient
from ledger_feeds.providers.market import MarketClient

__all__ = [
    "LedgerClient",
    "MarketClient",
]
