"""
Reducer - Applies actions to match state.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Pure function: (state, action) -> new_state
- Validates before applying, including who may act
- Illegal moves return a failed ActionResult, never raise
- Every successful action bumps the state revision
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import (
    MatchState, PlayerHands, Seat, Hand, Phase, PlayMode, SelectedHand,
    resolve_fingers, is_alive, STARTING_FINGERS,
)
from .action import Action, ActionType, ActionResult, ErrorCode, Origin
from .janken import judge


MIN_TRANSFER_SOURCE = 2

_PLAYING_ACTIONS = {ActionType.SELECT, ActionType.ATTACK, ActionType.TRANSFER, ActionType.TIMEOUT}
_JANKEN_ACTIONS = {ActionType.JANKEN, ActionType.RESOLVE_JANKEN}
_MOVE_ACTIONS = {ActionType.SELECT, ActionType.ATTACK, ActionType.TRANSFER}


@dataclass(frozen=True)
class RuleSet:
    """
    Who may act and which rule variant applies.

    local_seat is the seat owned by this client in online mode.
    """
    mode: PlayMode = PlayMode.LOCAL_HUMAN
    local_seat: Seat | None = None
    allow_self_attack: bool = True

    def __post_init__(self):
        if self.mode is PlayMode.ONLINE and self.local_seat is None:
            raise ValueError("Online rules need a local seat")


def check_victory(state: MatchState) -> MatchState:
    """
    Set the winner if a player has lost both hands.

    Idempotent: a decided state is returned unchanged.
    """
    if state.winner is not None:
        return state
    for seat in Seat:
        if state.hands_of(seat).is_eliminated:
            return state._copy_with(winner=seat.other)
    return state


def _complete_move(state: MatchState, now: float) -> MatchState:
    """Post-conditions shared by attack and transfer."""
    new_state = state._copy_with(
        selected_hand=None,
        current_player=state.current_player.other,
        turn_start_time=now,
        timeout_count={seat: 0 for seat in Seat},
    )
    return check_victory(new_state)


@dataclass
class Reducer:
    """
    Reducer applies actions to match state.

    Stateless - all state is in MatchState.
    RuleSet decides who may act.
    """
    rules: RuleSet

    def apply(self, state: MatchState, action: Action) -> ActionResult:
        """
        Apply an action to the match state.

        Returns ActionResult with new state or error.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            return validation_error

        handler = self._get_handler(action.action_type)
        try:
            result = handler(state, action)
        except ValueError as e:
            return ActionResult.failure(str(e))

        if result.success and result.new_state is not None:
            result.new_state = result.new_state._copy_with(revision=state.revision + 1)
        return result

    def _validate_action(self, state: MatchState, action: Action) -> ActionResult | None:
        """
        Validate that an action is legal in the current state.

        Returns a failed result if invalid, None if valid.
        """
        if action.action_type is ActionType.RESET:
            return None

        if state.winner is not None:
            return ActionResult.failure("Match is over - no actions allowed", ErrorCode.GAME_OVER)

        if action.action_type in _PLAYING_ACTIONS and state.phase is not Phase.PLAYING:
            return ActionResult.failure("Match has not started", ErrorCode.WRONG_PHASE)

        if action.action_type in _JANKEN_ACTIONS and state.phase is not Phase.JANKEN:
            return ActionResult.failure("Janken is already decided", ErrorCode.WRONG_PHASE)

        if action.action_type in _MOVE_ACTIONS:
            turn_error = self._check_turn(state, action)
            if turn_error:
                return ActionResult.failure(turn_error, ErrorCode.NOT_YOUR_TURN)

        if action.action_type is ActionType.JANKEN:
            seat = action.payload.seat
            if seat is None:
                return ActionResult.failure("No seat given")
            if self.rules.mode is PlayMode.ONLINE and seat != self.rules.local_seat:
                return ActionResult.failure(
                    f"Seat {seat.value} is not played by this client", ErrorCode.NOT_YOUR_TURN
                )
            if state.players < 2:
                return ActionResult.failure("Waiting for an opponent", ErrorCode.WRONG_PHASE)

        return None

    def _check_turn(self, state: MatchState, action: Action) -> str | None:
        """Turn ownership guard shared by every move."""
        seat = action.payload.seat
        if seat is None:
            return "No acting seat"
        if seat != state.current_player:
            return f"Not seat {seat.value}'s turn"

        mode = self.rules.mode
        if mode is PlayMode.ONLINE and seat != self.rules.local_seat:
            return f"Seat {seat.value} is not played by this client"
        if mode is PlayMode.LOCAL_COMPUTER:
            if seat is Seat.TWO and action.origin is not Origin.COMPUTER:
                return "Seat 2 is played by the computer"
            if seat is Seat.ONE and action.origin is Origin.COMPUTER:
                return "The computer only plays seat 2"
        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.SELECT: self._handle_select,
            ActionType.ATTACK: self._handle_attack,
            ActionType.TRANSFER: self._handle_transfer,
            ActionType.JANKEN: self._handle_janken,
            ActionType.TIMEOUT: self._handle_timeout,
            ActionType.RESOLVE_JANKEN: self._handle_resolve_janken,
            ActionType.RESET: self._handle_reset,
        }
        return handlers[action_type]

    def _handle_select(self, state: MatchState, action: Action) -> ActionResult:
        """Toggle the attacking hand."""
        seat = action.payload.seat
        hand = action.payload.hand
        if hand is None:
            return ActionResult.failure("No hand given")

        if not is_alive(state.hands_of(seat).get(hand)):
            return ActionResult.failure(f"Seat {seat.value} {hand.value} hand is dead")

        selection = SelectedHand(seat=seat, hand=hand)
        if state.selected_hand == selection:
            return ActionResult.success_with_state(
                state._copy_with(selected_hand=None),
                changes=[f"Seat {seat.value} deselected {hand.value}"],
            )
        return ActionResult.success_with_state(
            state._copy_with(selected_hand=selection),
            changes=[f"Seat {seat.value} selected {hand.value}"],
        )

    def _handle_attack(self, state: MatchState, action: Action) -> ActionResult:
        """Add the attacking hand into a target hand."""
        payload = action.payload
        seat = payload.seat

        attacking_hand = payload.hand
        if attacking_hand is None:
            if state.selected_hand is None:
                return ActionResult.failure("No hand selected")
            if state.selected_hand.seat != seat:
                return ActionResult.failure("Selected hand belongs to the other seat")
            attacking_hand = state.selected_hand.hand

        if payload.target_seat is None or payload.target_hand is None:
            return ActionResult.failure("No target given")

        if payload.target_seat == seat:
            if payload.target_hand is attacking_hand:
                return ActionResult.failure("A hand cannot attack itself")
            if not self.rules.allow_self_attack:
                return ActionResult.failure("Attacking your own hand is not allowed")

        attacker_value = state.hands_of(seat).get(attacking_hand)
        target_hands = state.hands_of(payload.target_seat)
        target_value = target_hands.get(payload.target_hand)

        if not is_alive(attacker_value):
            return ActionResult.failure("Attacking hand is dead")
        if not is_alive(target_value):
            return ActionResult.failure("Target hand is dead")

        new_value = resolve_fingers(attacker_value + target_value)
        new_state = state.with_hands(
            payload.target_seat,
            target_hands.with_hand(payload.target_hand, new_value),
        )
        new_state = _complete_move(new_state, payload.now)

        changes = [
            f"Seat {seat.value} {attacking_hand.value} ({attacker_value}) hit "
            f"seat {payload.target_seat.value} {payload.target_hand.value}: "
            f"{target_value} -> {new_value}"
        ]
        if new_state.winner is not None:
            changes.append(f"Seat {new_state.winner.value} wins")
        return ActionResult.success_with_state(new_state, changes=changes)

    def _handle_transfer(self, state: MatchState, action: Action) -> ActionResult:
        """Move one finger between the acting seat's hands."""
        payload = action.payload
        seat = payload.seat
        from_hand, to_hand = payload.hand, payload.target_hand

        if from_hand is None or to_hand is None:
            return ActionResult.failure("Transfer needs two hands")
        if from_hand is to_hand:
            return ActionResult.failure("Cannot transfer to the same hand")

        hands = state.hands_of(seat)
        source = hands.get(from_hand)
        if source < MIN_TRANSFER_SOURCE:
            return ActionResult.failure(
                f"Need at least {MIN_TRANSFER_SOURCE} fingers to transfer, have {source}"
            )

        destination = resolve_fingers(hands.get(to_hand) + 1)
        new_hands = hands.with_hand(from_hand, source - 1).with_hand(to_hand, destination)
        new_state = _complete_move(state.with_hands(seat, new_hands), payload.now)

        changes = [f"Seat {seat.value} moved a finger {from_hand.value} -> {to_hand.value}"]
        if new_state.winner is not None:
            changes.append(f"Seat {new_state.winner.value} wins")
        return ActionResult.success_with_state(new_state, changes=changes)

    def _handle_janken(self, state: MatchState, action: Action) -> ActionResult:
        """Record a hidden choice."""
        seat = action.payload.seat
        choice = action.payload.choice
        if choice is None:
            return ActionResult.failure("No janken choice given")
        if state.janken[seat] is not None:
            return ActionResult.failure(f"Seat {seat.value} already chose")

        new_janken = state.janken.copy()
        new_janken[seat] = choice
        return ActionResult.success_with_state(
            state._copy_with(janken=new_janken),
            changes=[f"Seat {seat.value} chose"],
        )

    def _handle_timeout(self, state: MatchState, action: Action) -> ActionResult:
        """Pass the turn and record a strike against the stalled seat."""
        payload = action.payload
        if payload.expected_turn_start != state.turn_start_time:
            return ActionResult.failure("Turn already ended", ErrorCode.STALE_ACTION)

        stalled = state.current_player
        new_counts = state.timeout_count.copy()
        new_counts[stalled] += 1

        new_state = state._copy_with(
            selected_hand=None,
            current_player=stalled.other,
            turn_start_time=payload.now,
            timeout_count=new_counts,
        )
        return ActionResult.success_with_state(
            new_state,
            changes=[f"Seat {stalled.value} timed out ({new_counts[stalled]} strikes)"],
        )

    def _handle_resolve_janken(self, state: MatchState, action: Action) -> ActionResult:
        """Settle a full round: repeat on draw, otherwise start play."""
        payload = action.payload
        if payload.expected_round != state.janken_round:
            return ActionResult.failure("Janken round already resolved", ErrorCode.STALE_ACTION)
        if not state.janken_complete:
            return ActionResult.failure("Waiting for both janken choices")

        winner = judge(state.janken[Seat.ONE], state.janken[Seat.TWO])
        cleared = {seat: None for seat in Seat}

        if winner is None:
            new_state = state._copy_with(janken=cleared, janken_round=state.janken_round + 1)
            return ActionResult.success_with_state(new_state, changes=["Janken draw"])

        new_state = state._copy_with(
            janken=cleared,
            janken_round=state.janken_round + 1,
            phase=Phase.PLAYING,
            current_player=winner,
            turn_start_time=payload.now,
        )
        return ActionResult.success_with_state(
            new_state,
            changes=[f"Seat {winner.value} won janken and moves first"],
        )

    def _handle_reset(self, state: MatchState, action: Action) -> ActionResult:
        """Restart the match, keeping room metadata."""
        online = self.rules.mode is PlayMode.ONLINE
        new_state = state._copy_with(
            hands={seat: PlayerHands(STARTING_FINGERS, STARTING_FINGERS) for seat in Seat},
            current_player=Seat.ONE,
            selected_hand=None,
            winner=None,
            phase=Phase.JANKEN if online else Phase.PLAYING,
            turn_start_time=action.payload.now,
            timeout_count={seat: 0 for seat in Seat},
            janken={seat: None for seat in Seat},
            janken_round=state.janken_round + 1,
        )
        return ActionResult.success_with_state(new_state, changes=["Match reset"])


def apply_action(rules: RuleSet, state: MatchState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer(rules=rules)
    return reducer.apply(state, action)
