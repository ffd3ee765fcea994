"""
Match State - The single unit of truth shared by both clients.

Design principles:
- Immutable-friendly: all mutations return new state
- Serializable: round-trips losslessly through the shared store as JSON
- Per-seat data lives in dicts keyed by Seat, never in "player1"/"player2"
  style field names
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidSnapshot


MAX_FINGERS = 4
DEAD = 0
STARTING_FINGERS = 1


class Seat(int, Enum):
    """A logical player slot in the match."""
    ONE = 1
    TWO = 2

    @property
    def other(self) -> Seat:
        return Seat.TWO if self is Seat.ONE else Seat.ONE


class Hand(str, Enum):
    """One of a player's two counters."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def other(self) -> Hand:
        return Hand.RIGHT if self is Hand.LEFT else Hand.LEFT


class Phase(str, Enum):
    """Match phases. Online matches start with janken, local ones skip it."""
    JANKEN = "janken"
    PLAYING = "playing"


class RoomType(str, Enum):
    PRIVATE = "private"
    RANDOM = "random"


class PlayMode(str, Enum):
    """Who drives each seat."""
    LOCAL_HUMAN = "local_human"
    LOCAL_COMPUTER = "local_computer"
    ONLINE = "online"


class JankenChoice(str, Enum):
    """Rock/paper/scissors choices."""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"

    def beats(self, other: JankenChoice) -> bool:
        return _BEATS[self] is other


_BEATS = {
    JankenChoice.ROCK: JankenChoice.SCISSORS,
    JankenChoice.SCISSORS: JankenChoice.PAPER,
    JankenChoice.PAPER: JankenChoice.ROCK,
}


def resolve_fingers(total: int) -> int:
    """Collapse a finger total: five or more kills the hand."""
    return DEAD if total > MAX_FINGERS else total


def is_alive(value: int) -> bool:
    return DEAD < value <= MAX_FINGERS


@dataclass(frozen=True)
class PlayerHands:
    """Finger counts of one player."""
    left: int = STARTING_FINGERS
    right: int = STARTING_FINGERS

    def __post_init__(self):
        for hand in Hand:
            value = getattr(self, hand.value)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{hand.value} hand must be an int, got {value!r}")
            if not DEAD <= value <= MAX_FINGERS:
                raise ValueError(f"{hand.value} hand out of range: {value}")

    def get(self, hand: Hand) -> int:
        return getattr(self, hand.value)

    def with_hand(self, hand: Hand, value: int) -> PlayerHands:
        """Return new hands with one counter replaced."""
        return replace(self, **{hand.value: value})

    def alive_hands(self) -> list[Hand]:
        return [hand for hand in Hand if is_alive(self.get(hand))]

    @property
    def is_eliminated(self) -> bool:
        return self.left == DEAD and self.right == DEAD


@dataclass(frozen=True)
class SelectedHand:
    """The attacking hand picked but not yet committed."""
    seat: Seat
    hand: Hand


@dataclass(frozen=True)
class SeatInfo:
    """Who sits in a seat (labels and presence only, never authorization)."""
    name: str | None = None
    last_active: float | None = None


def _per_seat(value_factory) -> dict[Seat, Any]:
    return {seat: value_factory() for seat in Seat}


@dataclass
class MatchState:
    """
    Complete match state at a point in time.

    All state changes go through the reducer; the sync controller
    replaces the whole object with remote snapshots.
    """
    hands: dict[Seat, PlayerHands] = field(default_factory=lambda: _per_seat(PlayerHands))
    current_player: Seat = Seat.ONE
    selected_hand: SelectedHand | None = None
    winner: Seat | None = None
    phase: Phase = Phase.PLAYING
    turn_start_time: float = 0.0
    timeout_count: dict[Seat, int] = field(default_factory=lambda: _per_seat(int))

    # Janken (pre-match)
    janken: dict[Seat, JankenChoice | None] = field(default_factory=lambda: _per_seat(lambda: None))
    janken_round: int = 0

    # Ordering: bumped on every locally applied action
    revision: int = 0

    # Room metadata (online only)
    room_code: str | None = None
    room_type: RoomType | None = None
    players: int = 1
    seats: dict[Seat, SeatInfo] = field(default_factory=lambda: _per_seat(SeatInfo))

    @classmethod
    def new_local(cls, now: float) -> MatchState:
        """Fresh local match, skipping janken."""
        return cls(phase=Phase.PLAYING, turn_start_time=now)

    @classmethod
    def new_room(
        cls,
        room_code: str,
        room_type: RoomType,
        host_name: str | None,
        now: float,
    ) -> MatchState:
        """Fresh online match with the creator in seat one."""
        return cls(
            phase=Phase.JANKEN,
            turn_start_time=now,
            room_code=room_code,
            room_type=room_type,
            players=1,
            seats={
                Seat.ONE: SeatInfo(name=host_name, last_active=now),
                Seat.TWO: SeatInfo(),
            },
        )

    def hands_of(self, seat: Seat) -> PlayerHands:
        return self.hands[seat]

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def janken_complete(self) -> bool:
        return all(self.janken[seat] is not None for seat in Seat)

    def with_hands(self, seat: Seat, hands: PlayerHands) -> MatchState:
        """Return new state with one seat's hands replaced."""
        new_hands = self.hands.copy()
        new_hands[seat] = hands
        return self._copy_with(hands=new_hands)

    def with_seat_info(self, seat: Seat, info: SeatInfo) -> MatchState:
        new_seats = self.seats.copy()
        new_seats[seat] = info
        return self._copy_with(seats=new_seats)

    def _copy_with(self, **kwargs) -> MatchState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    def game_fields(self) -> dict[str, Any]:
        """Rule-relevant fields, without timestamps and room metadata."""
        data = self.to_dict()
        for key in ("turn_start_time", "revision", "room_code", "room_type", "players", "seats"):
            data.pop(key)
        return data

    # =========================================================================
    # Wire format
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation stored in the shared store."""
        return {
            "hands": {
                str(seat.value): {"left": h.left, "right": h.right}
                for seat, h in self.hands.items()
            },
            "current_player": self.current_player.value,
            "selected_hand": (
                {"seat": self.selected_hand.seat.value, "hand": self.selected_hand.hand.value}
                if self.selected_hand else None
            ),
            "winner": self.winner.value if self.winner else None,
            "phase": self.phase.value,
            "turn_start_time": self.turn_start_time,
            "timeout_count": {str(seat.value): n for seat, n in self.timeout_count.items()},
            "janken": {
                str(seat.value): choice.value if choice else None
                for seat, choice in self.janken.items()
            },
            "janken_round": self.janken_round,
            "revision": self.revision,
            "room_code": self.room_code,
            "room_type": self.room_type.value if self.room_type else None,
            "players": self.players,
            "seats": {
                str(seat.value): {"name": info.name, "last_active": info.last_active}
                for seat, info in self.seats.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchState:
        """
        Parse a stored snapshot.

        Raises InvalidSnapshot if any field is missing or out of range.
        """
        try:
            selected = data.get("selected_hand")
            winner = data.get("winner")
            room_type = data.get("room_type")
            seats = data.get("seats") or {}
            janken = data.get("janken") or {}
            timeouts = data.get("timeout_count") or {}
            return cls(
                hands={
                    seat: PlayerHands(**data["hands"][str(seat.value)])
                    for seat in Seat
                },
                current_player=Seat(data["current_player"]),
                selected_hand=(
                    SelectedHand(seat=Seat(selected["seat"]), hand=Hand(selected["hand"]))
                    if selected else None
                ),
                winner=Seat(winner) if winner else None,
                phase=Phase(data["phase"]),
                turn_start_time=float(data.get("turn_start_time") or 0.0),
                timeout_count={
                    seat: int(timeouts.get(str(seat.value)) or 0) for seat in Seat
                },
                janken={
                    seat: (
                        JankenChoice(janken[str(seat.value)])
                        if janken.get(str(seat.value)) else None
                    )
                    for seat in Seat
                },
                janken_round=int(data.get("janken_round") or 0),
                revision=int(data.get("revision") or 0),
                room_code=data.get("room_code"),
                room_type=RoomType(room_type) if room_type else None,
                players=int(data.get("players") or 1),
                seats={
                    seat: SeatInfo(**(seats.get(str(seat.value)) or {}))
                    for seat in Seat
                },
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSnapshot(f"Malformed match snapshot: {e}") from e
