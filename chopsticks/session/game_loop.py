"""
Game Loop - Drives one client's match.

The loop:
1. The player (or the computer) issues an intent
2. The reducer validates and applies it
3. Local state is replaced optimistically
4. Online: the new state is pushed to the shared store
5. Remote snapshots replace local state after verification
6. Derived transitions run alongside: turn clock timeouts,
   the computer's move, janken resolution

Everything runs on one asyncio event loop. Timers belong to the loop's
TimerScope and die with it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import logging
import time

from ..config import GameConfig, get_config
from ..engine_core.state import (
    MatchState, PlayerHands, SelectedHand, Seat, Hand, Phase, PlayMode, JankenChoice,
)
from ..engine_core.action import Action, ActionResult
from ..engine_core.janken import JankenOutcome
from ..engine_core.reducer import Reducer, RuleSet
from ..bots import BotPolicy, RandomPolicy
from ..store.base import SharedStateStore
from ..sync.controller import SyncController
from .arbiter import JankenArbiter
from .timers import TimerScope
from .turn_clock import TurnClock


logger = logging.getLogger(__name__)


class LoopState(Enum):
    """What the match is waiting for."""
    WAITING_OPPONENT = "waiting_opponent"
    JANKEN = "janken"
    PLAYING = "playing"
    GAME_OVER = "game_over"
    CLOSED = "closed"


@dataclass
class MatchView:
    """
    Read-only projection of a match for rendering.

    The opponent's janken choice is only revealed through
    janken_outcome once both seats have chosen.
    """
    mode: PlayMode
    loop_state: LoopState
    phase: Phase
    hands: dict[Seat, PlayerHands]
    current_player: Seat
    selected_hand: SelectedHand | None
    winner: Seat | None
    seconds_left: int
    timeout_count: dict[Seat, int]
    revision: int
    janken_round: int = 0
    local_seat: Seat | None = None
    room_code: str | None = None
    names: dict[Seat, str | None] = field(default_factory=dict)
    opponent_disconnected: bool = False
    room_closed: bool = False
    my_janken_choice: JankenChoice | None = None
    opponent_janken_ready: bool = False
    janken_outcome: JankenOutcome | None = None


ViewListener = Callable[[MatchView], None]


class MatchLoop:
    """
    The match driver for one client.

    Usage:
        loop = MatchLoop.local(computer_opponent=True)
        await loop.start()

        await loop.select(Hand.LEFT)
        await loop.attack(Seat.TWO, Hand.RIGHT)

        render(loop.view())
        ...
        await loop.stop()
    """

    def __init__(
        self,
        mode: PlayMode,
        state: MatchState,
        config: GameConfig | None = None,
        local_seat: Seat | None = None,
        store: SharedStateStore | None = None,
        policy: BotPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.mode = mode
        self.config = config or get_config()
        self.clock = clock
        self.local_seat = local_seat

        self.rules = RuleSet(
            mode=mode,
            local_seat=local_seat,
            allow_self_attack=self.config.allow_self_attack,
        )
        self.reducer = Reducer(rules=self.rules)
        self.turn_clock = TurnClock(
            turn_seconds=self.config.turn_seconds,
            strike_limit=self.config.strike_limit,
        )
        self.scope = TimerScope(name=state.room_code or mode.value)

        self.policy = policy
        if mode is PlayMode.LOCAL_COMPUTER and self.policy is None:
            self.policy = RandomPolicy()

        self.arbiter: JankenArbiter | None = None
        self.sync: SyncController | None = None
        if mode is PlayMode.ONLINE:
            if store is None or state.room_code is None:
                raise ValueError("Online matches need a store and a room code")
            self.arbiter = JankenArbiter(local_seat=local_seat)
            self.sync = SyncController(
                store=store,
                room_code=state.room_code,
                local_seat=local_seat,
                config=self.config,
                scope=self.scope,
                current_state=lambda: self._state,
                on_snapshot=self.adopt_snapshot,
                on_room_closed=self.mark_room_closed,
                clock=clock,
            )

        self._state = state
        self.opponent_disconnected = False
        self.room_closed = False
        self._listeners: list[ViewListener] = []
        self._computer_scheduled_for: int | None = None
        self._started = False

    @classmethod
    def local(
        cls,
        computer_opponent: bool = False,
        config: GameConfig | None = None,
        policy: BotPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> MatchLoop:
        """A match on one device, against a person or the computer."""
        mode = PlayMode.LOCAL_COMPUTER if computer_opponent else PlayMode.LOCAL_HUMAN
        return cls(
            mode=mode,
            state=MatchState.new_local(clock()),
            config=config,
            policy=policy,
            clock=clock,
        )

    @classmethod
    def online(
        cls,
        state: MatchState,
        local_seat: Seat,
        store: SharedStateStore,
        config: GameConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> MatchLoop:
        """A networked match in a room this client already sits in."""
        return cls(
            mode=PlayMode.ONLINE,
            state=state,
            config=config,
            local_seat=local_seat,
            store=store,
            clock=clock,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the clock ticker and, online, the store sync."""
        if self._started:
            return
        self._started = True
        self.scope.call_every(self.config.clock_tick, self.tick)
        if self.sync is not None:
            await self.sync.start()
        self._after_change()

    async def stop(self) -> None:
        """Cancel every timer and stop syncing."""
        self.scope.cancel()
        if self.sync is not None:
            self.sync.stop()
        self._listeners.clear()

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def running(self) -> bool:
        return self._started and not self.scope.closed

    @property
    def _pushes(self) -> bool:
        return self.sync is not None and not self.room_closed

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Call listener with a fresh view after every state change."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # =========================================================================
    # Player intents
    # =========================================================================

    def acting_seat(self) -> Seat:
        """The seat a local player acts for right now."""
        if self.mode is PlayMode.ONLINE:
            return self.local_seat
        if self.mode is PlayMode.LOCAL_COMPUTER:
            return Seat.ONE
        return self._state.current_player

    async def select(self, hand: Hand, seat: Seat | None = None) -> ActionResult:
        """Select or deselect an attacking hand."""
        return await self.dispatch(Action.select(seat or self.acting_seat(), hand))

    async def attack(self, target_seat: Seat, target_hand: Hand) -> ActionResult:
        """Attack a hand (own other hand included) with the selected hand."""
        action = Action.attack(self.acting_seat(), target_seat, target_hand, self.clock())
        return await self.dispatch(action)

    async def transfer(self, from_hand: Hand, to_hand: Hand) -> ActionResult:
        """Move one finger between the acting seat's hands."""
        action = Action.transfer(self.acting_seat(), from_hand, to_hand, self.clock())
        return await self.dispatch(action)

    async def choose_janken(self, choice: JankenChoice) -> ActionResult:
        """Submit this client's hidden janken choice."""
        seat = self.acting_seat()
        result = self.apply(Action.janken(seat, choice))
        if result.success and self._pushes:
            # Only this seat's choice, so a simultaneous submission survives the merge
            await self.sync.push_fields({
                "janken": {str(seat.value): choice.value},
                "revision": self._state.revision,
            })
        return result

    async def reset(self) -> ActionResult:
        """Start over in the same room (or on the same device)."""
        self._computer_scheduled_for = None
        self.opponent_disconnected = False
        if self.arbiter is not None:
            self.arbiter.reset()
        return await self.dispatch(Action.reset(self.clock()))

    async def tick(self) -> ActionResult | None:
        """Check the turn clock; pass the turn if it ran out."""
        action = self.turn_clock.timeout_action(self._state, self.clock())
        if action is None:
            return None
        return await self.dispatch(action)

    # =========================================================================
    # State transitions
    # =========================================================================

    async def dispatch(self, action: Action) -> ActionResult:
        """Apply an action locally, then push it when online."""
        result = self.apply(action)
        if result.success and self._pushes:
            await self.sync.push(self._state)
        return result

    def apply(self, action: Action) -> ActionResult:
        """Apply an action to the local state without pushing it."""
        result = self.reducer.apply(self._state, action)
        if not result.success:
            logger.debug("Rejected %s: %s", action.action_type.value, result.error)
            return result

        self._state = result.new_state
        for change in result.state_changes:
            logger.info("%s", change)
        self._after_change()
        return result

    def adopt_snapshot(self, state: MatchState) -> None:
        """Replace local state with a verified remote snapshot."""
        if self._state.phase is Phase.PLAYING and state.phase is Phase.JANKEN:
            # The other seat started a rematch
            self.opponent_disconnected = False
            if self.arbiter is not None:
                self.arbiter.reset()
        self._state = state
        self._after_change()

    def mark_room_closed(self) -> None:
        """The room record is gone: stop every timer and never write again."""
        if self.room_closed:
            return
        self.room_closed = True
        self.scope.cancel()
        if self.sync is not None:
            self.sync.stop()
        self._notify()

    def _after_change(self) -> None:
        """Derived effects of any state change, local or remote."""
        state = self._state

        if self.mode is PlayMode.ONLINE and not self.opponent_disconnected:
            if self.turn_clock.is_unresponsive(state, self.local_seat.other):
                self.opponent_disconnected = True
                logger.info("Seat %d looks disconnected", self.local_seat.other.value)

        if self.running:
            self._schedule_janken(state)
            self._schedule_computer(state)

        self._notify()

    def _schedule_janken(self, state: MatchState) -> None:
        if self.arbiter is None:
            return
        outcome = self.arbiter.observe(state)
        if outcome is not None:
            self.scope.call_later(self.config.janken_delay, self._finish_janken, outcome.round)

    async def _finish_janken(self, round_id: int) -> None:
        self.arbiter.finish_display(round_id)
        if self.arbiter.commits:
            await self.dispatch(Action.resolve_janken(round_id, self.clock()))
        else:
            self._notify()

    def _schedule_computer(self, state: MatchState) -> None:
        if self.mode is not PlayMode.LOCAL_COMPUTER:
            return
        if state.phase is not Phase.PLAYING or state.winner is not None:
            return
        if state.current_player is not Seat.TWO:
            return
        if self._computer_scheduled_for == state.revision:
            return
        self._computer_scheduled_for = state.revision
        self.scope.call_later(self.config.computer_delay, self._computer_move, state.revision)

    async def _computer_move(self, expected_revision: int) -> None:
        if self._state.revision != expected_revision:
            return
        decision = self.policy.select_action(self._state, Seat.TWO, self.clock())
        if decision is None:
            return
        logger.debug("%s plays %s", self.policy.get_name(), decision.action.action_type.value)
        await self.dispatch(decision.action)

    # =========================================================================
    # Views
    # =========================================================================

    def loop_state(self) -> LoopState:
        state = self._state
        if self.room_closed:
            return LoopState.CLOSED
        if state.winner is not None:
            return LoopState.GAME_OVER
        if self.mode is PlayMode.ONLINE and state.players < 2:
            return LoopState.WAITING_OPPONENT
        if state.phase is Phase.JANKEN:
            return LoopState.JANKEN
        return LoopState.PLAYING

    def view(self) -> MatchView:
        state = self._state
        my_choice = None
        opponent_ready = False
        if self.local_seat is not None:
            my_choice = state.janken[self.local_seat]
            opponent_ready = state.janken[self.local_seat.other] is not None

        return MatchView(
            mode=self.mode,
            loop_state=self.loop_state(),
            phase=state.phase,
            hands=dict(state.hands),
            current_player=state.current_player,
            selected_hand=state.selected_hand,
            winner=state.winner,
            seconds_left=self.turn_clock.seconds_left(state, self.clock()),
            timeout_count=dict(state.timeout_count),
            revision=state.revision,
            janken_round=state.janken_round,
            local_seat=self.local_seat,
            room_code=state.room_code,
            names={seat: info.name for seat, info in state.seats.items()},
            opponent_disconnected=self.opponent_disconnected,
            room_closed=self.room_closed,
            my_janken_choice=my_choice,
            opponent_janken_ready=opponent_ready,
            janken_outcome=self.arbiter.displayed if self.arbiter else None,
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            listener(view)
