"""
Reward Engine - Eligibility Gate.

============================================================
RESPONSIBILITY
============================================================
Decides whether the account may trigger the claim action now.

Two independent timers:

1. Cooldown           LOCKED -> READY
   once now - last_claim_time >= cooldown
2. Priority window    RESTRICTED -> OPEN_TO_ALL
   once now - last_event_time >= priority_window

    action_allowed = READY and (OPEN_TO_ALL or whitelisted)

============================================================
DESIGN PRINCIPLES
============================================================
1. Pure functions of (now, stored timestamps, durations)
2. Absent last claim: LOCKED, since "ready" cannot be proven
3. Absent last event: OPEN_TO_ALL, no window was ever opened
4. Remaining durations in integer milliseconds

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from core.clock import millis_between
from core.constants import CLAIM_COOLDOWN_SECONDS, DEFAULT_PRIORITY_WINDOW_SECONDS


logger = logging.getLogger(__name__)


# ============================================================
# GATE STATES
# ============================================================

class CooldownState(str, Enum):
    """Cooldown gate state."""

    LOCKED = "LOCKED"
    """Cooldown running, or no claim on record."""

    READY = "READY"
    """Cooldown elapsed."""


class PriorityWindowState(str, Enum):
    """Priority window gate state."""

    OPEN_TO_ALL = "OPEN_TO_ALL"
    """Any account may act."""

    RESTRICTED = "RESTRICTED"
    """Only whitelisted accounts may act."""


# ============================================================
# INPUT / OUTPUT
# ============================================================

@dataclass(frozen=True)
class EligibilityState:
    """Timestamps and durations the gate is evaluated from."""
    last_claim_time: Optional[datetime]
    last_event_time: Optional[datetime]
    cooldown_seconds: int = CLAIM_COOLDOWN_SECONDS
    priority_window_seconds: int = DEFAULT_PRIORITY_WINDOW_SECONDS
    is_whitelisted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_claim_time": self.last_claim_time.isoformat() if self.last_claim_time else None,
            "last_event_time": self.last_event_time.isoformat() if self.last_event_time else None,
            "cooldown_seconds": self.cooldown_seconds,
            "priority_window_seconds": self.priority_window_seconds,
            "is_whitelisted": self.is_whitelisted,
        }


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of one gate evaluation."""
    cooldown: CooldownState
    priority_window: PriorityWindowState
    is_whitelisted: bool
    time_until_cooldown_ready_ms: int
    time_remaining_in_priority_window_ms: int
    evaluated_at: datetime
    blockers: list[str] = field(default_factory=list)

    @property
    def can_claim(self) -> bool:
        return self.cooldown == CooldownState.READY

    @property
    def in_priority_window(self) -> bool:
        return self.priority_window == PriorityWindowState.RESTRICTED

    @property
    def action_allowed(self) -> bool:
        return self.can_claim and (not self.in_priority_window or self.is_whitelisted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cooldown": self.cooldown.value,
            "priority_window": self.priority_window.value,
            "can_claim": self.can_claim,
            "in_priority_window": self.in_priority_window,
            "is_whitelisted": self.is_whitelisted,
            "action_allowed": self.action_allowed,
            "time_until_cooldown_ready_ms": self.time_until_cooldown_ready_ms,
            "time_remaining_in_priority_window_ms": self.time_remaining_in_priority_window_ms,
            "evaluated_at": self.evaluated_at.isoformat(),
            "blockers": list(self.blockers),
        }


# ============================================================
# TIMER FUNCTIONS
# ============================================================

def time_until_cooldown_ready_ms(
    now: datetime,
    last_claim_time: Optional[datetime],
    cooldown_seconds: int,
) -> int:
    """max(0, cooldown - (now - last_claim_time)) in ms; 0 when absent."""
    if last_claim_time is None:
        return 0
    return max(0, cooldown_seconds * 1000 - millis_between(last_claim_time, now))


def time_remaining_in_priority_window_ms(
    now: datetime,
    last_event_time: Optional[datetime],
    priority_window_seconds: int,
) -> int:
    """max(0, window - (now - last_event_time)) in ms; 0 when absent."""
    if last_event_time is None:
        return 0
    return max(0, priority_window_seconds * 1000 - millis_between(last_event_time, now))


def cooldown_state(
    now: datetime,
    last_claim_time: Optional[datetime],
    cooldown_seconds: int,
) -> CooldownState:
    if last_claim_time is None:
        return CooldownState.LOCKED
    if millis_between(last_claim_time, now) >= cooldown_seconds * 1000:
        return CooldownState.READY
    return CooldownState.LOCKED


def priority_window_state(
    now: datetime,
    last_event_time: Optional[datetime],
    priority_window_seconds: int,
) -> PriorityWindowState:
    if last_event_time is None:
        return PriorityWindowState.OPEN_TO_ALL
    if millis_between(last_event_time, now) >= priority_window_seconds * 1000:
        return PriorityWindowState.OPEN_TO_ALL
    return PriorityWindowState.RESTRICTED


# ============================================================
# GATE
# ============================================================

class EligibilityGate:
    """
    Combines the cooldown and priority window gates.

    Holds only durations; every timestamp comes in with the call.

    Usage:
        gate = EligibilityGate(cooldown_seconds=86400)
        state = gate.state_for(last_claim, last_event, "alice", whitelist)
        result = gate.evaluate(state, clock.now())
        if result.action_allowed:
            ...
    """

    def __init__(
        self,
        cooldown_seconds: int = CLAIM_COOLDOWN_SECONDS,
        default_priority_window_seconds: int = DEFAULT_PRIORITY_WINDOW_SECONDS,
    ) -> None:
        if cooldown_seconds < 0 or default_priority_window_seconds < 0:
            raise ValueError("Gate durations must be non-negative")
        self.cooldown_seconds = cooldown_seconds
        self.default_priority_window_seconds = default_priority_window_seconds

    def state_for(
        self,
        last_claim_time: Optional[datetime],
        last_event_time: Optional[datetime],
        account_id: Optional[str],
        whitelist: Optional[frozenset[str]] = None,
        priority_window_seconds: Optional[int] = None,
    ) -> EligibilityState:
        """
        Assemble gate input from fetched values.

        ``priority_window_seconds`` comes from chain state; None falls
        back to the configured default. A missing account is never
        whitelisted.
        """
        window = (
            priority_window_seconds
            if priority_window_seconds is not None
            else self.default_priority_window_seconds
        )
        is_whitelisted = bool(account_id) and account_id in (whitelist or frozenset())

        return EligibilityState(
            last_claim_time=last_claim_time,
            last_event_time=last_event_time,
            cooldown_seconds=self.cooldown_seconds,
            priority_window_seconds=window,
            is_whitelisted=is_whitelisted,
        )

    def evaluate(self, state: EligibilityState, now: datetime) -> EligibilityResult:
        cooldown = cooldown_state(now, state.last_claim_time, state.cooldown_seconds)
        window = priority_window_state(now, state.last_event_time, state.priority_window_seconds)

        blockers = []
        if state.last_claim_time is None:
            blockers.append("No claim on record; cooldown cannot be verified")
        elif cooldown == CooldownState.LOCKED:
            blockers.append("Cooldown has not elapsed")
        if window == PriorityWindowState.RESTRICTED and not state.is_whitelisted:
            blockers.append("Priority window active and account is not whitelisted")

        return EligibilityResult(
            cooldown=cooldown,
            priority_window=window,
            is_whitelisted=state.is_whitelisted,
            time_until_cooldown_ready_ms=time_until_cooldown_ready_ms(
                now, state.last_claim_time, state.cooldown_seconds
            ),
            time_remaining_in_priority_window_ms=time_remaining_in_priority_window_ms(
                now, state.last_event_time, state.priority_window_seconds
            ),
            evaluated_at=now,
            blockers=blockers,
        )
