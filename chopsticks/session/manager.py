"""
Session Manager - Creates and manages match sessions.

A session is one client's seat at one match:
- Local sessions hold a hot-seat or vs-computer match in memory
- Online sessions sit in a room of the shared store

LIFECYCLE:
1. Client starts a local match, creates a room, joins one by code,
   or asks for a random match
2. The session's MatchLoop runs timers and syncs the room
3. Client leaves (or cancels a waiting room): timers are cancelled and
   the room record is deleted, best effort
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable
import logging
import time
import uuid

from ..config import GameConfig, get_config
from ..bots import RandomPolicy
from ..engine_core.state import Seat
from ..rooms import Room, RoomManager
from ..store import InMemoryStore, SharedStateStore
from .game_loop import MatchLoop, LoopState


logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a session."""
    WAITING_OPPONENT = "waiting_opponent"
    JANKEN = "janken"
    PLAYING = "playing"
    GAME_OVER = "game_over"
    CLOSED = "closed"  # Room deleted by the other side
    ENDED = "ended"  # This client left


_SESSION_STATES = {
    LoopState.WAITING_OPPONENT: SessionState.WAITING_OPPONENT,
    LoopState.JANKEN: SessionState.JANKEN,
    LoopState.PLAYING: SessionState.PLAYING,
    LoopState.GAME_OVER: SessionState.GAME_OVER,
    LoopState.CLOSED: SessionState.CLOSED,
}


@dataclass
class Session:
    """
    One client's seat at a match.

    Contains:
    - The match loop driving the state
    - The room (online only)
    - Session metadata
    """
    session_id: str
    loop: MatchLoop
    created_at: float
    player_name: str | None = None
    room: Room | None = None
    ended: bool = False

    @property
    def state(self) -> SessionState:
        if self.ended:
            return SessionState.ENDED
        return _SESSION_STATES[self.loop.loop_state()]

    def is_active(self) -> bool:
        """Check if session is still in play or waiting."""
        return self.state in {
            SessionState.WAITING_OPPONENT,
            SessionState.JANKEN,
            SessionState.PLAYING,
        }


class SessionManager:
    """
    Manages match sessions.

    Responsibilities:
    - Create local and online sessions
    - Track running sessions
    - Tear sessions down, releasing their rooms
    """

    def __init__(
        self,
        store: SharedStateStore | None = None,
        config: GameConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.config = config or get_config()
        self.clock = clock
        self.rooms = RoomManager(self.store, config=self.config, clock=clock)
        self._sessions: dict[str, Session] = {}

    async def create_local_session(
        self,
        computer_opponent: bool = True,
        seed: int | None = None,
    ) -> Session:
        """Start a match played on one device."""
        loop = MatchLoop.local(
            computer_opponent=computer_opponent,
            config=self.config,
            policy=RandomPolicy(seed) if computer_opponent else None,
            clock=self.clock,
        )
        return await self._register(loop)

    async def create_room_session(self, player_name: str | None) -> Session:
        """Open a private room and wait for an opponent."""
        room = await self.rooms.create_room(player_name)
        return await self._start_online(room, player_name)

    async def random_match_session(self, player_name: str | None) -> Session:
        """Join a waiting random room, or open one."""
        room = await self.rooms.find_random_match(player_name)
        return await self._start_online(room, player_name)

    async def join_room_session(self, room_code: str, player_name: str | None) -> Session:
        """Take the second seat of a room. Raises RoomNotFound or RoomFull."""
        room = await self.rooms.join_room(room_code, player_name)
        return await self._start_online(room, player_name)

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    async def end_session(self, session_id: str) -> bool:
        """
        Leave a session.

        Timers stop first so nothing writes to the room after it is
        deleted. Online, a waiting creator cancels the room and a
        seated player deletes the match record.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        await session.loop.stop()
        session.ended = True

        room = session.room
        if room is not None and not session.loop.room_closed:
            if session.loop.state.players < 2 and room.seat is Seat.ONE:
                await self.rooms.cancel(room)
            else:
                await self.rooms.leave(room.code)
        logger.info("Session %s ended", session_id)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    async def cleanup_stale_sessions(self, max_age_seconds: float = 3600) -> list[str]:
        """
        End sessions older than max_age that are no longer in play.

        Called periodically to free memory.
        """
        current_time = self.clock()
        stale = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds and not session.is_active()
        ]
        for session_id in stale:
            await self.end_session(session_id)
        return stale

    async def shutdown(self) -> None:
        for session_id in list(self._sessions):
            await self.end_session(session_id)

    async def _start_online(self, room: Room, player_name: str | None) -> Session:
        loop = MatchLoop.online(
            state=room.state,
            local_seat=room.seat,
            store=self.store,
            config=self.config,
            clock=self.clock,
        )
        return await self._register(loop, room=room, player_name=player_name)

    async def _register(
        self,
        loop: MatchLoop,
        room: Room | None = None,
        player_name: str | None = None,
    ) -> Session:
        session = Session(
            session_id=str(uuid.uuid4()),
            loop=loop,
            created_at=self.clock(),
            player_name=player_name,
            room=room,
        )
        await loop.start()
        self._sessions[session.session_id] = session
        logger.info("Session %s started (%s)", session.session_id, loop.mode.value)
        return session
