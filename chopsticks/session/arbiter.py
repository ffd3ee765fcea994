"""
Janken Arbiter - Decides who moves first in an online match.

Both seats submit a hidden choice. When a snapshot carries both, each
client judges the round once and shows the outcome for a short delay.
Only the committing client (seat one) writes the resolution, and the
reducer rejects a resolution for a round that is already settled.
"""

from __future__ import annotations
import logging

from ..engine_core.state import MatchState, Seat, Phase
from ..engine_core.janken import JankenOutcome, judge


logger = logging.getLogger(__name__)


class JankenArbiter:
    """
    Tracks janken rounds seen by one client.

    Usage:
        arbiter = JankenArbiter(local_seat=Seat.ONE)
        outcome = arbiter.observe(snapshot)
        if outcome:
            show(outcome)
            schedule(delay, commit, outcome.round)
    """

    def __init__(self, local_seat: Seat, commit_seat: Seat = Seat.ONE):
        self.local_seat = local_seat
        self.commit_seat = commit_seat
        self.displayed: JankenOutcome | None = None
        self._judged_rounds: set[int] = set()

    @property
    def commits(self) -> bool:
        """Whether this client writes the resolution."""
        return self.local_seat == self.commit_seat

    def observe(self, state: MatchState) -> JankenOutcome | None:
        """
        Judge a completed round the first time it is seen.

        Returns None for incomplete rounds and duplicate deliveries.
        """
        if state.phase is not Phase.JANKEN or not state.janken_complete:
            return None
        if state.janken_round in self._judged_rounds:
            return None

        self._judged_rounds.add(state.janken_round)
        choices = (state.janken[Seat.ONE], state.janken[Seat.TWO])
        outcome = JankenOutcome(
            round=state.janken_round,
            choices=choices,
            winner=judge(*choices),
        )
        self.displayed = outcome
        logger.info(
            "Janken round %d: %s vs %s -> %s",
            outcome.round,
            choices[0].value,
            choices[1].value,
            "draw" if outcome.is_draw else f"seat {outcome.winner.value}",
        )
        return outcome

    def finish_display(self, round_id: int) -> None:
        """Stop showing the outcome of round_id."""
        if self.displayed is not None and self.displayed.round == round_id:
            self.displayed = None

    def reset(self) -> None:
        self.displayed = None
