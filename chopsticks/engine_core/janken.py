"""
Janken - Rock/paper/scissors judgement deciding who moves first online.
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import Seat, JankenChoice


@dataclass(frozen=True)
class JankenOutcome:
    """Result of one completed round. winner is None on a draw."""
    round: int
    choices: tuple[JankenChoice, JankenChoice]
    winner: Seat | None = None

    @property
    def is_draw(self) -> bool:
        return self.winner is None


def judge(first: JankenChoice, second: JankenChoice) -> Seat | None:
    """Return the seat whose choice wins, or None for a draw."""
    if first is second:
        return None
    return Seat.ONE if first.beats(second) else Seat.TWO
