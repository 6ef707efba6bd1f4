"""Exam window gate: decides whether a candidate request may proceed."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from examgate.errors import GateRejection
from examgate.store import AppConfig


class GateState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    server_now: int
    open_at_utc: int
    end_at_utc: int

    @property
    def is_open(self) -> bool:
        return self.state is GateState.OPEN

    def rejection(self) -> GateRejection:
        return GateRejection(self.state.value, self.server_now, self.open_at_utc, self.end_at_utc)


def evaluate_gate(now: int, open_at_utc: int, duration_seconds: int) -> GateDecision:
    """Classify ``now`` against the exam window.

    An unset open time (0) disables gating entirely. A zero duration means
    the exam never expires once it has opened.
    """
    end_at = open_at_utc + duration_seconds * 1000
    if open_at_utc == 0:
        state = GateState.OPEN
    elif now < open_at_utc:
        state = GateState.LOCKED
    elif duration_seconds > 0 and now > end_at:
        state = GateState.EXPIRED
    else:
        state = GateState.OPEN
    return GateDecision(state, now, open_at_utc, end_at)


def check_gate(config: AppConfig) -> GateDecision:
    """Evaluate the gate for a config snapshot, raising ``GateRejection`` when closed."""
    decision = evaluate_gate(config.server_now, config.open_at_utc, config.duration_seconds)
    if not decision.is_open:
        raise decision.rejection()
    return decision
