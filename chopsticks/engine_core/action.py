"""
Action System - Actions, payloads, and results.

Actions represent:
1. Player moves (select, attack, transfer, janken choice)
2. System transitions (turn timeout, janken resolution, reset)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import Seat, Hand, JankenChoice


class ActionType(Enum):
    """Types of actions in the system."""
    # Player moves
    SELECT = "select"
    ATTACK = "attack"
    TRANSFER = "transfer"
    JANKEN = "janken"

    # System transitions
    TIMEOUT = "timeout"
    RESOLVE_JANKEN = "resolve_janken"
    RESET = "reset"


class Origin(Enum):
    """Who issued an action. Seat two of a computer match only accepts COMPUTER."""
    HUMAN = "human"
    COMPUTER = "computer"
    SYSTEM = "system"


class ErrorCode:
    """Rejection codes carried by ActionResult."""
    ILLEGAL_MOVE = "ILLEGAL_MOVE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    GAME_OVER = "GAME_OVER"
    WRONG_PHASE = "WRONG_PHASE"
    STALE_ACTION = "STALE_ACTION"


@dataclass(frozen=True)
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields; validation
    happens in the reducer.
    """
    seat: Seat | None = None
    hand: Hand | None = None

    # Attack target, or transfer destination (hand only)
    target_seat: Seat | None = None
    target_hand: Hand | None = None

    choice: JankenChoice | None = None

    # Time the transition is applied at (turn clock anchor)
    now: float | None = None

    # Guards against applying a system transition twice
    expected_turn_start: float | None = None
    expected_round: int | None = None


@dataclass(frozen=True)
class Action:
    """
    A complete action to be applied to the match state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload
    origin: Origin = Origin.HUMAN

    @classmethod
    def select(cls, seat: Seat, hand: Hand) -> Action:
        """Toggle the selection of one of the seat's own hands."""
        return cls(
            action_type=ActionType.SELECT,
            payload=ActionPayload(seat=seat, hand=hand),
        )

    @classmethod
    def attack(
        cls,
        seat: Seat,
        target_seat: Seat,
        target_hand: Hand,
        now: float,
        hand: Hand | None = None,
        origin: Origin = Origin.HUMAN,
    ) -> Action:
        """
        Attack with the selected hand.

        An explicit attacking hand overrides the current selection
        (used by the computer opponent and by snapshot verification).
        """
        return cls(
            action_type=ActionType.ATTACK,
            payload=ActionPayload(
                seat=seat,
                hand=hand,
                target_seat=target_seat,
                target_hand=target_hand,
                now=now,
            ),
            origin=origin,
        )

    @classmethod
    def transfer(cls, seat: Seat, from_hand: Hand, to_hand: Hand, now: float) -> Action:
        """Move one finger between the seat's own hands."""
        return cls(
            action_type=ActionType.TRANSFER,
            payload=ActionPayload(seat=seat, hand=from_hand, target_hand=to_hand, now=now),
        )

    @classmethod
    def janken(cls, seat: Seat, choice: JankenChoice) -> Action:
        """Submit a hidden rock/paper/scissors choice."""
        return cls(
            action_type=ActionType.JANKEN,
            payload=ActionPayload(seat=seat, choice=choice),
        )

    @classmethod
    def timeout(cls, expected_turn_start: float, now: float) -> Action:
        """Pass the turn of a player who let the clock run out."""
        return cls(
            action_type=ActionType.TIMEOUT,
            payload=ActionPayload(expected_turn_start=expected_turn_start, now=now),
            origin=Origin.SYSTEM,
        )

    @classmethod
    def resolve_janken(cls, expected_round: int, now: float) -> Action:
        """Settle a completed janken round."""
        return cls(
            action_type=ActionType.RESOLVE_JANKEN,
            payload=ActionPayload(expected_round=expected_round, now=now),
            origin=Origin.SYSTEM,
        )

    @classmethod
    def reset(cls, now: float) -> Action:
        """Start the match over, keeping the room."""
        return cls(
            action_type=ActionType.RESET,
            payload=ActionPayload(now=now),
            origin=Origin.SYSTEM,
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Errors (if failed)
    - Human-readable changes (for logs and UI)
    """
    success: bool
    new_state: Any | None = None  # MatchState
    error: str | None = None
    error_code: str | None = None

    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: str | None = ErrorCode.ILLEGAL_MOVE) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
        )
