"""
Room Manager - Matchmaking over the shared store.

Rooms are store documents keyed by a short room code:
- create: the creator takes seat one, the room waits for an opponent
- random match: claim a waiting random room, or open one and wait
- join by code: claim seat two of a private room
- cancel / leave: delete the record (best effort)

Seat claims use the store's conditional update when atomic_claims is
on. With it off, a claim is a plain read followed by a write, and two
clients can both take seat two of the same room.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable
import logging
import random
import string
import time

from ..config import GameConfig, get_config
from ..engine_core.state import MatchState, Seat, RoomType
from ..errors import ChopsticksError, InvalidSnapshot, RoomFull, RoomNotFound, StoreWriteFailure
from ..store.base import SharedStateStore, Snapshot, deep_merge


logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10


@dataclass
class Room:
    """A room this client sits in."""
    code: str
    seat: Seat
    state: MatchState

    @property
    def waiting(self) -> bool:
        """True while the second seat is empty."""
        return self.state.players < 2


def _is_open_random_room(document: Snapshot) -> bool:
    return document.get("room_type") == RoomType.RANDOM.value and document.get("players") == 1


class RoomManager:
    """
    Creates, finds and removes rooms.

    Usage:
        rooms = RoomManager(store)
        room = await rooms.create_room("Alice")
        ...
        room = await rooms.join_room(room.code, "Bob")
    """

    def __init__(
        self,
        store: SharedStateStore,
        config: GameConfig | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.clock = clock
        self.rng = rng or random.Random()

    def generate_code(self) -> str:
        return "".join(
            self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(self.config.room_code_length)
        )

    async def create_room(
        self,
        player_name: str | None,
        room_type: RoomType = RoomType.PRIVATE,
    ) -> Room:
        """Open a room with the caller in seat one."""
        code = await self._unused_code()
        state = MatchState.new_room(code, room_type, player_name, self.clock())
        await self.store.set(code, state.to_dict())
        logger.info("Created %s room %s for %s", room_type.value, code, player_name)
        return Room(code=code, seat=Seat.ONE, state=state)

    async def find_random_match(self, player_name: str | None) -> Room:
        """
        Take the second seat of a waiting random room.

        Falls back to opening a new random room when none is free.
        """
        for attempt in range(self.config.claim_attempts):
            candidates = await self.store.query(_is_open_random_room)
            if not candidates:
                break
            code, document = candidates[0]
            try:
                room = await self._claim(code, document, player_name)
            except InvalidSnapshot as e:
                logger.warning("Skipping unreadable room %s: %s", code, e)
                continue
            if room is not None:
                logger.info("%s joined random room %s", player_name, code)
                return room
            logger.info("Room %s was taken first (attempt %d)", code, attempt + 1)

        return await self.create_room(player_name, RoomType.RANDOM)

    async def join_room(self, code: str, player_name: str | None) -> Room:
        """
        Take the second seat of a room by code.

        Raises RoomNotFound if no such room exists, RoomFull if both
        seats are taken.
        """
        code = code.strip().upper()
        document = await self.store.get(code)
        if document is None:
            raise RoomNotFound(code)
        if (document.get("players") or 1) >= 2:
            raise RoomFull(code)

        room = await self._claim(code, document, player_name)
        if room is None:
            raise RoomFull(code)
        logger.info("%s joined room %s", player_name, code)
        return room

    async def cancel(self, room: Room) -> bool:
        """Delete a room the caller created and nobody joined yet."""
        if room.seat is not Seat.ONE:
            return False
        return await self._delete(room.code)

    async def leave(self, code: str) -> bool:
        """Delete the shared record of a match being left."""
        return await self._delete(code)

    async def _claim(self, code: str, document: Snapshot, player_name: str | None) -> Room | None:
        """Occupy seat two. Returns None if the room was claimed by someone else."""
        MatchState.from_dict(document)  # refuse to claim an unreadable room
        changes = {
            "players": 2,
            "seats": {str(Seat.TWO.value): {"name": player_name, "last_active": self.clock()}},
        }
        if self.config.atomic_claims:
            if not await self.store.update_if(code, {"players": 1}, changes):
                return None
        else:
            await self.store.set(code, changes, merge=True)

        state = MatchState.from_dict(deep_merge(document, changes))
        return Room(code=code, seat=Seat.TWO, state=state)

    async def _unused_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.generate_code()
            if await self.store.get(code) is None:
                return code
        raise ChopsticksError("Could not allocate a free room code")

    async def _delete(self, code: str) -> bool:
        try:
            await self.store.delete(code)
        except StoreWriteFailure as e:
            logger.warning("Could not delete room %s: %s", code, e)
            return False
        logger.info("Removed room %s", code)
        return True
