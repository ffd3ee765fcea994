"""
Snapshot Verification - Re-checks remote snapshots before adopting them.

Both clients write the shared record, so a client cannot trust that the
other applied the rules. Every incoming snapshot is checked:

1. Invariants: hand ranges (enforced by parsing), winner consistency,
   selection ownership, strike counters.
2. Ordering: snapshots older than the local revision are stale.
3. One-step replay: when a playing-phase snapshot is exactly one revision
   ahead, some single legal action of the remote seat (or a turn timeout)
   applied to the local state must reproduce it.

Larger revision gaps and janken/reset transitions are checked for
invariants only. Same-revision conflicts are last-writer-wins.
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import MatchState, Seat, Hand, Phase, PlayMode, is_alive
from .action import Action, ActionType
from .reducer import Reducer, RuleSet
from .action_generator import ActionGenerator


@dataclass
class VerificationResult:
    """Outcome of checking one snapshot."""
    accepted: bool
    reason: str = ""
    stale: bool = False
    explained_by: ActionType | None = None

    @classmethod
    def accept(cls, explained_by: ActionType | None = None) -> VerificationResult:
        return cls(accepted=True, explained_by=explained_by)

    @classmethod
    def reject(cls, reason: str, stale: bool = False) -> VerificationResult:
        return cls(accepted=False, reason=reason, stale=stale)


def check_invariants(state: MatchState) -> list[str]:
    """Return the rule invariants a snapshot breaks (empty if none)."""
    problems = []

    eliminated = [seat for seat in Seat if state.hands_of(seat).is_eliminated]
    if state.winner is not None:
        if state.winner.other not in eliminated:
            problems.append(
                f"Seat {state.winner.value} declared winner but seat "
                f"{state.winner.other.value} still has fingers"
            )
    elif eliminated:
        problems.append(f"Seat {eliminated[0].value} is out but no winner is set")

    if state.phase is Phase.JANKEN and state.winner is not None:
        problems.append("Winner set before the match started")

    if state.selected_hand is not None:
        selection = state.selected_hand
        if selection.seat != state.current_player:
            problems.append("Selected hand does not belong to the player to move")
        elif not is_alive(state.hands_of(selection.seat).get(selection.hand)):
            problems.append("Selected hand is dead")

    if any(count < 0 for count in state.timeout_count.values()):
        problems.append("Negative timeout count")

    if state.players not in (1, 2):
        problems.append(f"Invalid occupancy: {state.players}")

    return problems


@dataclass
class SnapshotVerifier:
    """
    Verifies snapshots written by the opponent of local_seat.
    """
    local_seat: Seat
    allow_self_attack: bool = True

    def verify(self, previous: MatchState | None, incoming: MatchState) -> VerificationResult:
        """Decide whether incoming may replace previous."""
        problems = check_invariants(incoming)
        if problems:
            return VerificationResult.reject("; ".join(problems))

        if previous is None:
            return VerificationResult.accept()

        if incoming.revision < previous.revision:
            return VerificationResult.reject(
                f"Snapshot revision {incoming.revision} is older than {previous.revision}",
                stale=True,
            )

        if incoming.game_fields() == previous.game_fields():
            return VerificationResult.accept()

        one_step = incoming.revision == previous.revision + 1
        in_play = (
            previous.phase is Phase.PLAYING
            and incoming.phase is Phase.PLAYING
            and previous.winner is None
        )
        if not (one_step and in_play):
            return VerificationResult.accept()

        for action in self._candidates(previous, incoming):
            result = self._remote_reducer.apply(previous, action)
            if result.success and result.new_state.game_fields() == incoming.game_fields():
                return VerificationResult.accept(explained_by=action.action_type)

        return VerificationResult.reject(
            f"No legal move of seat {self.remote_seat.value} leads to revision {incoming.revision}"
        )

    @property
    def remote_seat(self) -> Seat:
        return self.local_seat.other

    @property
    def _remote_rules(self) -> RuleSet:
        return RuleSet(
            mode=PlayMode.ONLINE,
            local_seat=self.remote_seat,
            allow_self_attack=self.allow_self_attack,
        )

    @property
    def _remote_reducer(self) -> Reducer:
        return Reducer(rules=self._remote_rules)

    def _candidates(self, previous: MatchState, incoming: MatchState) -> list[Action]:
        """Every single action that could have produced incoming."""
        now = incoming.turn_start_time
        generator = ActionGenerator(rules=self._remote_rules)
        candidates = generator.generate(previous, self.remote_seat, now)
        candidates.extend(Action.select(self.remote_seat, hand) for hand in Hand)
        candidates.append(Action.timeout(previous.turn_start_time, now))
        return candidates
