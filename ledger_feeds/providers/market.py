"""
Market Data Client - AMM pool reads.

Talks to the swap exchange's public REST API
(``GET /api/v2/swap/pools/{id}``).
"""

import logging
from typing import Any, Optional

import aiohttp

from ledger_feeds.base import BaseFeedClient
from ledger_feeds.exceptions import MalformedResponseError


logger = logging.getLogger(__name__)


class MarketClient(BaseFeedClient):
    """Read-only AMM pool lookups."""

    POOLS_PATH = "/api/v2/swap/pools"

    def __init__(
        self,
        base_url: str,
        timeout: float = BaseFeedClient.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(base_url, timeout, session)

    @property
    def name(self) -> str:
        return "market"

    async def get_pool(self, pool_id: int) -> dict[str, Any]:
        """
        Fetch one pool.

        Raises:
            FetchError: Transport or HTTP failure
            MalformedResponseError: Pool lacks tokenA/tokenB objects
        """
        data = await self._request("GET", f"{self.POOLS_PATH}/{pool_id}")

        if not isinstance(data, dict):
            raise MalformedResponseError(
                message=f"Pool {pool_id} response is not an object",
                source=self.name,
                raw_data=data,
            )
        for side in ("tokenA", "tokenB"):
            if not isinstance(data.get(side), dict):
                raise MalformedResponseError(
                    message=f"Pool {pool_id} response has no {side}",
                    source=self.name,
                    raw_data=data,
                    field_name=side,
                )

        return data
