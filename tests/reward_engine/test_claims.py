"""
Tests for claim submission.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import patch

import pytest

from core.clock import MockClock
from ledger_feeds.cache import SourceFeedCache
from ledger_feeds.models import (
    AccrualRecord,
    Asset,
    ContractConfig,
    FeedName,
    GlobalVoteshare,
    VoterRecord,
)
from reward_engine.claims import ClaimSubmitter
from reward_engine.config import EngineConfig
from reward_engine.engine import RewardEngine
from reward_engine.exceptions import ActionNotAllowedError
from reward_engine.session import StaticSession, WalletSession


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSession(WalletSession):
    """Session that records submitted actions and returns a canned result."""

    def __init__(self, account_id: Optional[str], result: Any = None) -> None:
        self._account_id = account_id
        self._result = result
        self.submitted: list[list[dict[str, Any]]] = []

    @property
    def is_connected(self) -> bool:
        return self._account_id is not None

    @property
    def current_account_id(self) -> Optional[str]:
        return self._account_id

    async def submit(self, actions):
        self.submitted.append(actions)
        return self._result


def register_values(cache, values):
    for name, value in values.items():
        async def fetch(value=value):
            return value
        cache.register(name, fetch, refresh_interval=3600)


def ready_values(last_claim=NOW - timedelta(days=2), enabled=True, last_event=None):
    return {
        FeedName.ACCOUNT_VOTESHARE: VoterRecord(
            owner="cheeseburner",
            accrual=AccrualRecord(base=50, rate=0, last_updated=NOW),
            last_claim_time=last_claim,
        ),
        FeedName.GLOBAL_VOTESHARE: GlobalVoteshare(
            accrual=AccrualRecord(base=100, rate=0, last_updated=NOW),
            bucket=2_000_000_000,
        ),
        FeedName.CONTRACT_CONFIG: ContractConfig(
            admin="admin",
            pool_id=1252,
            enabled=enabled,
            min_native_to_act=Asset(0, 8, "WAX"),
        ),
        FeedName.WHITELIST: frozenset(),
        FeedName.LAST_EVENT: last_event,
    }


async def loaded_engine(session, **kwargs):
    clock = MockClock(NOW)
    cache = SourceFeedCache(clock)
    register_values(cache, ready_values(**kwargs))
    engine = RewardEngine(EngineConfig(), cache, session, clock)
    await asyncio.gather(*cache.refresh_all())
    return engine


# ============================================================
# ACTION PAYLOAD TESTS
# ============================================================

class TestBuildActions:
    """Tests for the claim action payload."""

    @pytest.mark.asyncio
    async def test_payload(self):
        engine = await loaded_engine(RecordingSession("alice"))

        actions = ClaimSubmitter(engine).build_actions("alice")

        assert actions == [{
            "account": "cheeseburner",
            "name": "burn",
            "authorization": [{"actor": "alice", "permission": "active"}],
            "data": {"caller": "alice"},
        }]


# ============================================================
# BLOCKER TESTS
# ============================================================

class TestBlockers:
    """Tests for ClaimSubmitter.blockers."""

    @pytest.mark.asyncio
    async def test_open_gates_have_no_blockers(self):
        engine = await loaded_engine(RecordingSession("alice"))
        assert ClaimSubmitter(engine).blockers(engine.compute_snapshot()) == []

    @pytest.mark.asyncio
    async def test_disconnected_session(self):
        engine = await loaded_engine(RecordingSession(None))
        reasons = ClaimSubmitter(engine).blockers(engine.compute_snapshot())
        assert "Wallet session is not connected" in reasons

    @pytest.mark.asyncio
    async def test_disabled_contract(self):
        engine = await loaded_engine(RecordingSession("alice"), enabled=False)
        reasons = ClaimSubmitter(engine).blockers(engine.compute_snapshot())
        assert any("disabled" in reason for reason in reasons)

    @pytest.mark.asyncio
    async def test_cooldown_reason_included(self):
        engine = await loaded_engine(RecordingSession("alice"), last_claim=NOW - timedelta(hours=1))
        reasons = ClaimSubmitter(engine).blockers(engine.compute_snapshot())
        assert reasons
        assert reasons == engine.compute_snapshot().eligibility.blockers


# ============================================================
# SUBMIT TESTS
# ============================================================

class TestSubmit:
    """Tests for ClaimSubmitter.submit."""

    @pytest.mark.asyncio
    async def test_submits_and_refreshes(self):
        session = RecordingSession("alice", result={"transaction_id": "abc"})
        engine = await loaded_engine(session)

        with patch.object(engine, "refresh", return_value=[]) as refresh:
            result = await ClaimSubmitter(engine).submit()

        assert result == {"transaction_id": "abc"}
        assert session.submitted[0][0]["authorization"][0]["actor"] == "alice"
        refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_refused_when_in_priority_window(self):
        session = RecordingSession("alice", result={"transaction_id": "abc"})
        engine = await loaded_engine(session, last_event=NOW - timedelta(minutes=5))

        with pytest.raises(ActionNotAllowedError) as exc_info:
            await ClaimSubmitter(engine).submit()

        assert exc_info.value.reasons
        assert session.submitted == []

    @pytest.mark.asyncio
    async def test_no_refresh_when_session_declines(self):
        engine = await loaded_engine(StaticSession("alice"))

        with patch.object(engine, "refresh") as refresh:
            result = await ClaimSubmitter(engine).submit()

        assert result is None
        refresh.assert_not_called()
