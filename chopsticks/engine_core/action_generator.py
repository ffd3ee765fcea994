"""
Action Generator - Generates all legal moves from a match state.

The action generator is used by:
1. The computer opponent to enumerate attacks
2. Snapshot verification (which single move explains a remote change?)
3. UI hints

Design: Generates Action objects, not just action types.
Attacks carry an explicit attacking hand so they do not depend on
the current selection.
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import MatchState, Seat, Hand, Phase, is_alive
from .action import Action, Origin
from .reducer import RuleSet, MIN_TRANSFER_SOURCE


@dataclass
class ActionGenerator:
    """
    Generates legal moves for a seat.

    Turn ownership is not checked here; the reducer does that.
    """
    rules: RuleSet

    def generate(self, state: MatchState, seat: Seat, now: float) -> list[Action]:
        """
        Generate all legal moves of a seat.

        Returns a list of fully-specified Action objects.
        """
        if state.winner is not None or state.phase is not Phase.PLAYING:
            return []
        return self.attacks(state, seat, now) + self.transfers(state, seat, now)

    def attacks(
        self,
        state: MatchState,
        seat: Seat,
        now: float,
        origin: Origin = Origin.HUMAN,
    ) -> list[Action]:
        """Attacks on the opponent and, if allowed, on the seat's other hand."""
        own = state.hands_of(seat)
        actions = []
        for hand in own.alive_hands():
            for target_hand in state.hands_of(seat.other).alive_hands():
                actions.append(
                    Action.attack(seat, seat.other, target_hand, now, hand=hand, origin=origin)
                )
            if self.rules.allow_self_attack and is_alive(own.get(hand.other)):
                actions.append(
                    Action.attack(seat, seat, hand.other, now, hand=hand, origin=origin)
                )
        return actions

    def transfers(self, state: MatchState, seat: Seat, now: float) -> list[Action]:
        """One-finger splits from any hand holding at least two."""
        own = state.hands_of(seat)
        return [
            Action.transfer(seat, hand, hand.other, now)
            for hand in Hand
            if own.get(hand) >= MIN_TRANSFER_SOURCE
        ]


def legal_actions(rules: RuleSet, state: MatchState, seat: Seat, now: float) -> list[Action]:
    """
    Convenience function to get legal moves.

    Creates an ActionGenerator and generates actions.
    """
    generator = ActionGenerator(rules=rules)
    return generator.generate(state, seat, now)
