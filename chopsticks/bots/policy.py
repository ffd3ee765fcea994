"""
Bot Policy - Interface for computer opponent decision-making.

A BotPolicy takes a match state and returns a decision:
- Which action to take
- Explanation (for logs/UI)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
import random

from ..engine_core.state import MatchState, Seat
from ..engine_core.action import Action, Origin


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The action to take
    - Explanation (for UI/debugging)
    - Confidence in the decision
    """
    action: Action
    explanation: str = ""
    confidence: float = 1.0


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a bot selects moves for its seat.
    """

    @abstractmethod
    def select_action(self, state: MatchState, seat: Seat, now: float) -> BotDecision | None:
        """
        Select a move for seat.

        Args:
            state: Current match state
            seat: The seat the bot plays
            now: Time the move is made at

        Returns:
            BotDecision, or None if the bot has no move
        """
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random attacker.

    Picks one of its alive hands uniformly, then one of the opponent's
    alive hands uniformly, and attacks. Never splits.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(self, state: MatchState, seat: Seat, now: float) -> BotDecision | None:
        own_hands = state.hands_of(seat).alive_hands()
        target_hands = state.hands_of(seat.other).alive_hands()
        if not own_hands or not target_hands:
            return None

        hand = self.rng.choice(own_hands)
        target_hand = self.rng.choice(target_hands)
        action = Action.attack(
            seat,
            seat.other,
            target_hand,
            now,
            hand=hand,
            origin=Origin.COMPUTER,
        )
        return BotDecision(
            action=action,
            explanation=f"Attack {target_hand.value} with {hand.value}",
            confidence=1.0 / (len(own_hands) * len(target_hands)),
        )
