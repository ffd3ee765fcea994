"""
Turn Clock - Per-turn countdown anchored at the state's turn start.

The clock holds no timer of its own: the match loop ticks it and it
answers from the state, so both clients agree on the deadline and a
remote snapshot with a new turn start restarts the countdown.
"""

from __future__ import annotations
from dataclasses import dataclass
import math

from ..engine_core.state import MatchState, Seat, Phase
from ..engine_core.action import Action


@dataclass(frozen=True)
class TurnClock:
    turn_seconds: float = 30.0
    strike_limit: int = 2

    def is_running(self, state: MatchState) -> bool:
        return state.phase is Phase.PLAYING and state.winner is None

    def elapsed(self, state: MatchState, now: float) -> float:
        return max(0.0, now - state.turn_start_time)

    def seconds_left(self, state: MatchState, now: float) -> int:
        """Whole seconds shown on the countdown."""
        if not self.is_running(state):
            return int(self.turn_seconds)
        return max(0, int(self.turn_seconds) - math.floor(self.elapsed(state, now)))

    def expired(self, state: MatchState, now: float) -> bool:
        return self.is_running(state) and self.elapsed(state, now) >= self.turn_seconds

    def timeout_action(self, state: MatchState, now: float) -> Action | None:
        """The turn pass to apply if the current turn ran out."""
        if not self.expired(state, now):
            return None
        return Action.timeout(expected_turn_start=state.turn_start_time, now=now)

    def is_unresponsive(self, state: MatchState, seat: Seat) -> bool:
        """A seat with strike_limit consecutive timeouts is treated as gone."""
        return state.timeout_count[seat] >= self.strike_limit
