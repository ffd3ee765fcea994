"""
Tests for the turn clock and strike counting.
"""

from ..engine_core.action import Action
from ..engine_core.reducer import apply_action
from ..engine_core.state import Seat, Hand, Phase
from ..session.turn_clock import TurnClock
from .conftest import make_state


class TestCountdown:
    """Tests for the per-turn countdown."""

    def test_seconds_left_counts_down(self):
        clock = TurnClock(turn_seconds=30)
        state = make_state(now=100.0)

        assert clock.seconds_left(state, 100.0) == 30
        assert clock.seconds_left(state, 100.5) == 30
        assert clock.seconds_left(state, 112.2) == 18
        assert clock.seconds_left(state, 200.0) == 0

    def test_expires_at_turn_length(self):
        clock = TurnClock(turn_seconds=30)
        state = make_state(now=100.0)

        assert not clock.expired(state, 129.9)
        assert clock.expired(state, 130.0)

    def test_clock_stops_outside_play(self):
        clock = TurnClock(turn_seconds=30)
        janken = make_state(phase=Phase.JANKEN, now=100.0)
        finished = make_state(two=(0, 0), now=100.0)._copy_with(winner=Seat.ONE)

        for state in (janken, finished):
            assert not clock.expired(state, 500.0)
            assert clock.timeout_action(state, 500.0) is None
            assert clock.seconds_left(state, 500.0) == 30

    def test_timeout_action_targets_current_turn(self):
        clock = TurnClock(turn_seconds=30)
        state = make_state(now=100.0)

        assert clock.timeout_action(state, 110.0) is None
        action = clock.timeout_action(state, 131.0)
        assert action.payload.expected_turn_start == 100.0
        assert action.payload.now == 131.0


class TestStrikes:
    """Tests for the two-strike disconnect inference."""

    def expire(self, rules, clock, state, now):
        action = clock.timeout_action(state, now)
        assert action is not None
        return apply_action(rules, state, action).new_state

    def test_two_consecutive_timeouts_mark_unresponsive(self, local_rules):
        clock = TurnClock(turn_seconds=30, strike_limit=2)
        state = make_state(now=0.0)

        # Seat 1 stalls, seat 2 stalls, seat 1 stalls again
        state = self.expire(local_rules, clock, state, 30.0)
        assert not clock.is_unresponsive(state, Seat.ONE)
        state = self.expire(local_rules, clock, state, 60.0)
        state = self.expire(local_rules, clock, state, 90.0)

        assert state.timeout_count[Seat.ONE] == 2
        assert clock.is_unresponsive(state, Seat.ONE)
        assert not clock.is_unresponsive(state, Seat.TWO)

    def test_successful_move_resets_strikes(self, local_rules):
        clock = TurnClock(turn_seconds=30)
        state = self.expire(local_rules, clock, make_state(now=0.0), 30.0)
        assert state.timeout_count[Seat.ONE] == 1

        # Seat 2 moves, then seat 1 moves
        state = apply_action(
            local_rules, state, Action.attack(Seat.TWO, Seat.ONE, Hand.LEFT, 35.0, hand=Hand.LEFT)
        ).new_state
        assert state.timeout_count == {Seat.ONE: 0, Seat.TWO: 0}

    def test_timeout_restarts_countdown(self, local_rules):
        clock = TurnClock(turn_seconds=30)
        state = self.expire(local_rules, clock, make_state(now=0.0), 31.0)

        assert state.current_player is Seat.TWO
        assert clock.seconds_left(state, 31.0) == 30
