"""
Reward Engine - Claim Submission.

Builds the contract action for a claim and hands it to the wallet
session, but only while every gate is open. Signing, broadcasting
and finality belong to the session.
"""

import logging
from typing import Any, Optional

from core.constants import CLAIM_ACTION
from reward_engine.engine import RewardEngine
from reward_engine.exceptions import ActionNotAllowedError
from reward_engine.models import RewardSnapshot


logger = logging.getLogger(__name__)


class ClaimSubmitter:
    """
    Hands the claim action to the engine's session.

    Usage:
        submitter = ClaimSubmitter(engine)
        try:
            result = await submitter.submit()
        except ActionNotAllowedError as e:
            print(e.reasons)
    """

    def __init__(
        self,
        engine: RewardEngine,
        action_name: str = CLAIM_ACTION,
        permission: str = "active",
    ) -> None:
        self._engine = engine
        self._action_name = action_name
        self._permission = permission

    def build_actions(self, account: str) -> list[dict[str, Any]]:
        """Action payload calling the contract on behalf of ``account``."""
        return [{
            "account": self._engine.config.feeds.contract,
            "name": self._action_name,
            "authorization": [{"actor": account, "permission": self._permission}],
            "data": {"caller": account},
        }]

    def blockers(self, snapshot: RewardSnapshot) -> list[str]:
        """Reasons the claim would be refused right now; empty when allowed."""
        session = self._engine.session
        reasons = []

        if not session.is_connected or not session.current_account_id:
            reasons.append("Wallet session is not connected")
        if not snapshot.contract_enabled:
            reasons.append("Contract is disabled or its config is unavailable")
        reasons.extend(snapshot.eligibility.blockers)
        if not snapshot.action_allowed and not snapshot.eligibility.blockers:
            reasons.append("Eligibility gate is closed")

        return reasons

    async def submit(self, snapshot: Optional[RewardSnapshot] = None) -> Optional[Any]:
        """
        Submit the claim if allowed.

        Raises:
            ActionNotAllowedError: A gate is closed or the session is not connected

        Returns:
            The session's result, or None if nothing was submitted
        """
        snapshot = snapshot or self._engine.compute_snapshot()
        reasons = self.blockers(snapshot)
        if reasons:
            logger.warning(f"Claim refused: {'; '.join(reasons)}")
            raise ActionNotAllowedError(reasons)

        account = self._engine.session.current_account_id
        actions = self.build_actions(account)
        logger.info(f"Submitting {self._action_name} for {account}")

        result = await self._engine.session.submit(actions)
        if result is None:
            logger.info("Claim was not submitted by the session")
            return None

        logger.info(f"Claim submitted for {account}, refreshing feeds")
        self._engine.refresh()
        return result
