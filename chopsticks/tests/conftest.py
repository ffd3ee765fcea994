"""
Pytest fixtures for Chopsticks tests.
"""

import asyncio

import pytest

from ..config import GameConfig
from ..engine_core.state import MatchState, PlayerHands, Seat, Phase, RoomType, PlayMode
from ..engine_core.reducer import RuleSet
from ..errors import StoreWriteFailure
from ..store import InMemoryStore


class FakeClock:
    """Controllable time source. Call it to read, advance() to move on."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FlakyStore(InMemoryStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.failing = False

    async def set(self, key, data, merge=False):
        if self.failing:
            raise StoreWriteFailure("backend unavailable")
        await super().set(key, data, merge=merge)

    async def delete(self, key):
        if self.failing:
            raise StoreWriteFailure("backend unavailable")
        await super().delete(key)


async def settle(rounds: int = 50) -> None:
    """Let scheduled callbacks, notifications and zero-delay timers run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_state(
    one=(1, 1),
    two=(1, 1),
    current: Seat = Seat.ONE,
    phase: Phase = Phase.PLAYING,
    now: float = 1000.0,
) -> MatchState:
    """Build a match state from (left, right) finger pairs."""
    return MatchState(
        hands={
            Seat.ONE: PlayerHands(*one),
            Seat.TWO: PlayerHands(*two),
        },
        current_player=current,
        phase=phase,
        turn_start_time=now,
    )


def make_room_state(code: str = "ABC123", players: int = 2, phase: Phase = Phase.PLAYING) -> MatchState:
    state = MatchState.new_room(code, RoomType.PRIVATE, "Alice", 1000.0)
    return state._copy_with(players=players, phase=phase)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_config() -> GameConfig:
    """
    Config with zero delays.

    The turn clock ticker, heartbeat and poll run far apart so tests
    drive them by hand.
    """
    return GameConfig(
        janken_delay=0.0,
        computer_delay=0.0,
        heartbeat_interval=3600.0,
        poll_interval=3600.0,
        clock_tick=3600.0,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def local_rules() -> RuleSet:
    return RuleSet(mode=PlayMode.LOCAL_HUMAN)


@pytest.fixture
def computer_rules() -> RuleSet:
    return RuleSet(mode=PlayMode.LOCAL_COMPUTER)


@pytest.fixture
def fresh_state() -> MatchState:
    return make_state()
