"""
Tests for remote snapshot verification.

Tests:
- Invariant checks
- Stale snapshot rejection
- One-step replay of the opponent's move
"""

from ..engine_core.action import Action, ActionType
from ..engine_core.reducer import RuleSet, apply_action
from ..engine_core.state import PlayerHands, Seat, Hand, Phase, PlayMode, SelectedHand
from ..engine_core.verification import SnapshotVerifier, check_invariants
from .conftest import make_state


REMOTE_RULES = RuleSet(mode=PlayMode.ONLINE, local_seat=Seat.TWO)


def remote_move(state, action):
    result = apply_action(REMOTE_RULES, state, action)
    assert result.success, result.error
    return result.new_state


class TestInvariants:
    """Tests for snapshot invariants."""

    def test_fresh_state_is_valid(self, fresh_state):
        assert check_invariants(fresh_state) == []

    def test_winner_with_fingers_left_is_invalid(self):
        state = make_state()._copy_with(winner=Seat.ONE)
        assert check_invariants(state)

    def test_elimination_without_winner_is_invalid(self):
        assert check_invariants(make_state(two=(0, 0)))

    def test_selection_of_waiting_seat_is_invalid(self):
        state = make_state()._copy_with(selected_hand=SelectedHand(Seat.TWO, Hand.LEFT))
        assert check_invariants(state)

    def test_selection_of_dead_hand_is_invalid(self):
        state = make_state(one=(0, 1))._copy_with(selected_hand=SelectedHand(Seat.ONE, Hand.LEFT))
        assert check_invariants(state)


class TestSnapshotVerifier:
    """Tests for accepting or rejecting snapshots written by the opponent."""

    def setup_method(self):
        self.verifier = SnapshotVerifier(local_seat=Seat.ONE)
        self.previous = make_state(current=Seat.TWO)._copy_with(revision=4)

    def test_first_snapshot_accepted(self, fresh_state):
        assert self.verifier.verify(None, fresh_state).accepted

    def test_older_revision_is_stale(self):
        result = self.verifier.verify(self.previous, self.previous._copy_with(revision=3))

        assert not result.accepted
        assert result.stale

    def test_opponent_attack_is_explained(self):
        incoming = remote_move(
            self.previous, Action.attack(Seat.TWO, Seat.ONE, Hand.RIGHT, 1010.0, hand=Hand.LEFT)
        )
        result = self.verifier.verify(self.previous, incoming)

        assert result.accepted
        assert result.explained_by is ActionType.ATTACK

    def test_opponent_selection_is_explained(self):
        incoming = remote_move(self.previous, Action.select(Seat.TWO, Hand.RIGHT))
        result = self.verifier.verify(self.previous, incoming)

        assert result.accepted
        assert result.explained_by is ActionType.SELECT

    def test_timeout_is_explained(self):
        incoming = remote_move(self.previous, Action.timeout(self.previous.turn_start_time, 1030.0))
        assert self.verifier.verify(self.previous, incoming).accepted

    def test_impossible_jump_is_rejected(self):
        forged = self.previous.with_hands(Seat.ONE, PlayerHands(left=4, right=4))._copy_with(
            current_player=Seat.ONE, revision=5,
        )
        result = self.verifier.verify(self.previous, forged)

        assert not result.accepted
        assert not result.stale

    def test_move_for_wrong_seat_is_rejected(self):
        # Seat 2 cannot have moved seat 1's hands on seat 1's turn
        previous = make_state(current=Seat.ONE)._copy_with(revision=4)
        forged = previous.with_hands(Seat.TWO, PlayerHands(left=2, right=1))._copy_with(
            current_player=Seat.TWO, revision=5,
        )
        assert not self.verifier.verify(previous, forged).accepted

    def test_invalid_snapshot_is_rejected(self):
        forged = self.previous._copy_with(winner=Seat.TWO, revision=5)
        assert not self.verifier.verify(self.previous, forged).accepted

    def test_same_game_fields_accepted(self):
        # Heartbeats and room metadata changes leave the game untouched
        incoming = self.previous._copy_with(players=2)
        assert self.verifier.verify(self.previous, incoming).accepted

    def test_revision_gap_checks_invariants_only(self):
        incoming = make_state(one=(3, 2), two=(1, 4))._copy_with(revision=9)
        assert self.verifier.verify(self.previous, incoming).accepted

    def test_janken_transition_accepted(self):
        previous = make_state(phase=Phase.JANKEN)._copy_with(revision=2)
        incoming = make_state(current=Seat.TWO)._copy_with(revision=3, janken_round=1)
        assert self.verifier.verify(previous, incoming).accepted
