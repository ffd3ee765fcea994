"""
Engine Core - Deterministic match state and rule transitions.

The engine is the pure part of the system that:
1. Models the match state
2. Validates who may act
3. Applies moves via the reducer
4. Detects victory
5. Re-checks snapshots received from the other client
"""

from .state import (
    MatchState, PlayerHands, SelectedHand, SeatInfo,
    Seat, Hand, Phase, RoomType, PlayMode, JankenChoice,
    resolve_fingers, is_alive,
)
from .action import Action, ActionType, ActionPayload, ActionResult, ErrorCode, Origin
from .reducer import Reducer, RuleSet, apply_action, check_victory
from .action_generator import ActionGenerator, legal_actions
from .janken import JankenOutcome, judge
from .verification import SnapshotVerifier, VerificationResult, check_invariants

__all__ = [
    "MatchState",
    "PlayerHands",
    "SelectedHand",
    "SeatInfo",
    "Seat",
    "Hand",
    "Phase",
    "RoomType",
    "PlayMode",
    "JankenChoice",
    "resolve_fingers",
    "is_alive",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorCode",
    "Origin",
    "Reducer",
    "RuleSet",
    "apply_action",
    "check_victory",
    "ActionGenerator",
    "legal_actions",
    "JankenOutcome",
    "judge",
    "SnapshotVerifier",
    "VerificationResult",
    "check_invariants",
]
