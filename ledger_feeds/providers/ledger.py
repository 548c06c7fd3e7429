"""
Ledger Query Client - Chain table reads over the standard chain API.

Uses ``POST /v1/chain/get_table_rows``; every read is public and
unauthenticated, so any compatible API node works.
"""

import logging
from typing import Any, Optional

import aiohttp

from ledger_feeds.base import BaseFeedClient
from ledger_feeds.exceptions import MalformedResponseError


logger = logging.getLogger(__name__)


class LedgerClient(BaseFeedClient):
    """Read-only table queries against a chain API node."""

    TABLE_ROWS_PATH = "/v1/chain/get_table_rows"
    DEFAULT_LIMIT = 100
    MAX_PAGES = 50

    def __init__(
        self,
        base_url: str,
        timeout: float = BaseFeedClient.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(base_url, timeout, session)

    @property
    def name(self) -> str:
        return "ledger"

    async def query_table(
        self,
        code: str,
        scope: str,
        table: str,
        lower_bound: Optional[str] = None,
        upper_bound: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[dict[str, Any]]:
        """
        Fetch one page of rows from a contract table.

        Args:
            code: Contract account owning the table
            scope: Table scope
            table: Table name
            lower_bound: Inclusive primary-key lower bound
            upper_bound: Inclusive primary-key upper bound
            limit: Maximum rows to return

        Returns:
            Decoded rows (possibly empty)

        Raises:
            FetchError: Transport or HTTP failure
            MalformedResponseError: Body lacks a ``rows`` list
        """
        rows, _ = await self._query_page(code, scope, table, lower_bound, upper_bound, limit)
        return rows

    async def query_all(
        self,
        code: str,
        scope: str,
        table: str,
        page_size: int = DEFAULT_LIMIT,
        max_pages: int = MAX_PAGES,
    ) -> list[dict[str, Any]]:
        """
        Fetch every row of a table, following ``next_key`` while ``more`` is set.

        Stops after ``max_pages`` pages with a warning rather than
        looping on a node that keeps returning the same key.
        """
        rows: list[dict[str, Any]] = []
        lower_bound: Optional[str] = None

        for _ in range(max_pages):
            page, next_key = await self._query_page(code, scope, table, lower_bound, None, page_size)
            rows.extend(page)
            if next_key is None or next_key == lower_bound:
                return rows
            lower_bound = next_key

        logger.warning(
            f"[{self.name}] {code}/{scope}/{table}: stopped after {max_pages} pages "
            f"({len(rows)} rows), table may be truncated"
        )
        return rows

    async def _query_page(
        self,
        code: str,
        scope: str,
        table: str,
        lower_bound: Optional[str],
        upper_bound: Optional[str],
        limit: int,
    ) -> tuple[list[dict[str, Any]], Optional[str]]:
        """One ``get_table_rows`` call; returns the rows and the next key when more remain."""
        payload: dict[str, Any] = {
            "code": code,
            "scope": scope,
            "table": table,
            "limit": limit,
            "json": True,
        }
        if lower_bound is not None:
            payload["lower_bound"] = lower_bound
        if upper_bound is not None:
            payload["upper_bound"] = upper_bound

        data = await self._request("POST", self.TABLE_ROWS_PATH, payload=payload)

        rows = data.get("rows") if isinstance(data, dict) else None
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise MalformedResponseError(
                message=f"Table {code}/{table} response has no rows list",
                source=self.name,
                raw_data=data,
                field_name="rows",
            )

        logger.debug(f"[{self.name}] {code}/{scope}/{table}: {len(rows)} rows")

        next_key = data.get("next_key")
        if data.get("more") and next_key not in (None, ""):
            return rows, str(next_key)
        return rows, None

    async def query_row(
        self,
        code: str,
        scope: str,
        table: str,
        key: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """Fetch a single row (by primary key when given), or None."""
        rows = await self.query_table(
            code,
            scope,
            table,
            lower_bound=key,
            upper_bound=key,
            limit=1,
        )
        return rows[0] if rows else None
