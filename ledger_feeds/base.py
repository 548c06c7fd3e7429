"""
Base Feed Client - Shared HTTP plumbing for read-only upstream services.

All clients MUST:
- Treat non-2xx and malformed JSON as a feed-level failure
- Retry only transient failures, and only a little
- Never hold state that a slot depends on (the cache owns values)
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from ledger_feeds.exceptions import (
    FeedError,
    FetchError,
    MalformedResponseError,
    RateLimitError,
)


logger = logging.getLogger(__name__)


@dataclass
class ClientHealth:
    """Rolling health of one upstream client."""
    request_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    latency_ms: Optional[float] = None
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None

    def is_healthy(self) -> bool:
        return self.consecutive_failures == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_count": self.request_count,
            "error_count": self.error_count,
            "consecutive_failures": self.consecutive_failures,
            "latency_ms": self.latency_ms,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "last_success_time": self.last_success_time.isoformat() if self.last_success_time else None,
        }


class BaseFeedClient(ABC):
    """
    Abstract base class for upstream JSON services.

    Features:
    - Owned or injected aiohttp session
    - Limited retries with exponential backoff (5xx / connection only)
    - Health counters for diagnostics
    """

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 2
    RETRY_BACKOFF_BASE = 1.5

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._health = ClientHealth()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this client."""
        pass

    @property
    def base_url(self) -> str:
        return self._base_url

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "RewardAccrualEngine/1.0",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make a request with limited retries; raises FeedError on failure."""
        last_error: Optional[FeedError] = None

        for attempt in range(self.MAX_RETRIES + 1):
            try:
                result = await self._make_request(method, path, params, payload)
                self._on_success()
                return result

            except (RateLimitError, MalformedResponseError) as e:
                self._on_error(e)
                raise

            except FetchError as e:
                self._on_error(e)
                if e.is_client_error():
                    raise
                last_error = e

            if attempt < self.MAX_RETRIES:
                wait_time = self.RETRY_BACKOFF_BASE ** attempt
                logger.warning(
                    f"[{self.name}] Retry {attempt + 1}/{self.MAX_RETRIES} "
                    f"in {wait_time:.1f}s: {last_error}"
                )
                await asyncio.sleep(wait_time)

        raise FetchError(
            message=f"Failed after {self.MAX_RETRIES} retries",
            source=self.name,
            status_code=last_error.status_code if isinstance(last_error, FetchError) else None,
            request_url=f"{self._base_url}{path}",
            original_error=last_error,
        )

    async def _make_request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make one HTTP request and decode its JSON body."""
        session = await self._get_session()
        url = f"{self._base_url}{path}"

        start_time = time.time()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
            ) as response:
                self._health.latency_ms = (time.time() - start_time) * 1000

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        source=self.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        request_url=url,
                    )

                body = await response.text()

                if response.status < 200 or response.status >= 300:
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        source=self.name,
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

        except asyncio.TimeoutError as e:
            raise FetchError(
                message="Request timed out",
                source=self.name,
                request_url=url,
                original_error=e,
            )
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                source=self.name,
                request_url=url,
                original_error=e,
            )

        try:
            return json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(
                message="Response body is not valid JSON",
                source=self.name,
                raw_data=body,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Health Tracking
    # ─────────────────────────────────────────────────────────────

    def _on_success(self) -> None:
        """Handle successful request."""
        self._health.request_count += 1
        self._health.last_success_time = datetime.now(timezone.utc)
        if self._health.consecutive_failures:
            logger.info(
                f"[{self.name}] Recovered after "
                f"{self._health.consecutive_failures} failures"
            )
        self._health.consecutive_failures = 0

    def _on_error(self, error: FeedError) -> None:
        """Handle request error."""
        self._health.request_count += 1
        self._health.error_count += 1
        self._health.consecutive_failures += 1
        self._health.last_error = str(error)
        self._health.last_error_time = datetime.now(timezone.utc)
        logger.warning(f"[{self.name}] Request failed: {error}")

    def get_health(self) -> ClientHealth:
        """Get current health counters."""
        return self._health

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseFeedClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, url={self._base_url})>"
