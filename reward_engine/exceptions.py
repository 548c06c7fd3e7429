"""
Reward Engine - Exceptions.

Computation never raises on bad upstream data (that degrades to
zero); these cover configuration mistakes and refused actions.
"""

from typing import Any, Optional


class RewardEngineError(Exception):
    """Base exception for the reward engine."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (caused by: {self.original_error})"
        return self.message


class ConfigurationError(RewardEngineError):
    """Invalid engine configuration (weights, durations, file contents)."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, {"config_key": config_key}, original_error)
        self.config_key = config_key


class ActionNotAllowedError(RewardEngineError):
    """The gated action was requested while a gate is closed."""

    def __init__(self, reasons: list[str]) -> None:
        super().__init__(
            f"Action not allowed: {'; '.join(reasons)}",
            {"reasons": reasons},
        )
        self.reasons = reasons
