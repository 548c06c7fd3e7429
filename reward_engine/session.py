"""
Reward Engine - Wallet Session Handle.

The engine never signs or broadcasts anything. It reads the current
account from an explicitly passed session and hands finished action
payloads to it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional


logger = logging.getLogger(__name__)


class WalletSession(ABC):
    """Interface to whatever wallet owns signing."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @property
    @abstractmethod
    def current_account_id(self) -> Optional[str]:
        pass

    @abstractmethod
    async def submit(self, actions: list[dict[str, Any]]) -> Optional[Any]:
        """
        Sign and broadcast actions.

        Returns the wallet's result, or None if nothing was submitted
        (e.g. the user cancelled).
        """
        pass


class StaticSession(WalletSession):
    """
    Read-only session for a fixed account.

    Connected whenever an account is set; never submits.
    """

    def __init__(self, account_id: Optional[str] = None) -> None:
        self._account_id = account_id or None

    @property
    def is_connected(self) -> bool:
        return self._account_id is not None

    @property
    def current_account_id(self) -> Optional[str]:
        return self._account_id

    async def submit(self, actions: list[dict[str, Any]]) -> Optional[Any]:
        logger.warning(
            f"Read-only session for {self._account_id}: "
            f"dropping {len(actions)} action(s)"
        )
        return None

    def __repr__(self) -> str:
        return f"<StaticSession(account={self._account_id})>"
