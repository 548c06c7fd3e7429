"""
Ledger Feed Exceptions - Custom exception hierarchy.

Every feed failure is local to its slot: the cache catches these,
keeps the last good value and surfaces the error flag instead.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class FeedError(Exception):
    """Base exception for all ledger feed errors."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source": self.source,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.source:
            parts.append(f"[source={self.source}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class FetchError(FeedError):
    """Error during a request to an upstream service."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def is_client_error(self) -> bool:
        """4xx responses are not worth retrying."""
        return self.status_code is not None and 400 <= self.status_code < 500

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data


class RateLimitError(FetchError):
    """Upstream answered 429."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            source,
            status_code=429,
            request_url=request_url,
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class MalformedResponseError(FeedError):
    """Response was not valid JSON or lacked the expected shape."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        raw_data: Optional[Any] = None,
        field_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source, original_error, context)
        self.raw_data = raw_data
        self.field_name = field_name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "raw_data": str(self.raw_data)[:500] if self.raw_data else None,
            "field_name": self.field_name,
        })
        return data


class SlotNotFoundError(FeedError):
    """Requested cache slot is not registered."""

    def __init__(
        self,
        slot_name: str,
        registered: Optional[list[str]] = None,
    ) -> None:
        super().__init__(f"Unknown feed slot '{slot_name}'", source="cache")
        self.slot_name = slot_name
        self.registered = registered or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "slot_name": self.slot_name,
            "registered": self.registered,
        })
        return data
