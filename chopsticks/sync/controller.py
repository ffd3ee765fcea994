"""
Sync Controller - Bridges the local match state and the shared store.

Contract per client:
- Local actions are applied optimistically, then pushed (merge write)
- Remote snapshots arrive by subscription or polling and replace the
  whole local state once verified (last writer wins per document)
- A heartbeat refreshes the local seat's last-active timestamp and
  retries a full push that failed earlier

Store write failures are logged and never interrupt local play.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Callable
import logging
import time

from ..config import GameConfig
from ..engine_core.state import MatchState, Seat
from ..engine_core.verification import SnapshotVerifier
from ..errors import InvalidSnapshot, StoreWriteFailure
from ..store.base import SharedStateStore, Snapshot, Unsubscribe

if TYPE_CHECKING:
    from ..session.timers import TimerScope


logger = logging.getLogger(__name__)

# Written by the room manager only
ROOM_FIELDS = ("room_code", "room_type", "players")


class SyncController:
    """
    Keeps one client's view of a room in step with the store.

    Usage:
        sync = SyncController(store, "ABC123", Seat.ONE, config, scope,
                              current_state=lambda: loop.state,
                              on_snapshot=loop.adopt_snapshot,
                              on_room_closed=loop.mark_room_closed)
        await sync.start()
        await sync.push(new_state)
    """

    def __init__(
        self,
        store: SharedStateStore,
        room_code: str,
        local_seat: Seat,
        config: GameConfig,
        scope: TimerScope,
        current_state: Callable[[], MatchState | None],
        on_snapshot: Callable[[MatchState], None],
        on_room_closed: Callable[[], None],
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.room_code = room_code
        self.local_seat = local_seat
        self.config = config
        self.scope = scope
        self.clock = clock
        self._current_state = current_state
        self._on_snapshot = on_snapshot
        self._on_room_closed = on_room_closed

        self.verifier = (
            SnapshotVerifier(local_seat, allow_self_attack=config.allow_self_attack)
            if config.verify_remote else None
        )
        self._unsubscribe: Unsubscribe | None = None
        self._unsent: MatchState | None = None
        self._stopped = False

        # Counters, for diagnostics and tests
        self.snapshots_applied = 0
        self.snapshots_rejected = 0
        self.failed_writes = 0

    async def start(self) -> None:
        """Begin receiving snapshots and sending heartbeats."""
        if self.config.sync_mode == "subscribe":
            self._unsubscribe = self.store.subscribe(self.room_code, self.receive)
        else:
            self.scope.call_every(self.config.poll_interval, self.poll)
        self.scope.call_every(self.config.heartbeat_interval, self.heartbeat)
        logger.info(
            "Syncing room %s as seat %d (%s)",
            self.room_code, self.local_seat.value, self.config.sync_mode,
        )

    def stop(self) -> None:
        self._stopped = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def has_unsent_state(self) -> bool:
        return self._unsent is not None

    # =========================================================================
    # Outgoing
    # =========================================================================

    async def push(self, state: MatchState) -> bool:
        """
        Write the full local state.

        Only the local seat's presence is sent so the opponent's fields
        are not overwritten with an old copy. Occupancy and room type are
        left to the room manager: a copy that has not yet seen the guest's
        claim would otherwise reopen the room.
        """
        data = state.to_dict()
        for key in ROOM_FIELDS:
            data.pop(key)
        data["seats"] = {
            str(self.local_seat.value): {
                "name": state.seats[self.local_seat].name,
                "last_active": self.clock(),
            }
        }
        if await self._write(data):
            self._unsent = None
            return True
        self._unsent = state
        return False

    async def push_fields(self, fields: dict[str, Any]) -> bool:
        """Merge a partial update into the shared record."""
        return await self._write(fields)

    async def heartbeat(self) -> bool:
        """Refresh presence, or retry the last failed full push."""
        if self._unsent is not None:
            current = self._current_state()
            if current is not None:
                return await self.push(current)
        return await self.push_fields({
            "seats": {str(self.local_seat.value): {"last_active": self.clock()}},
        })

    async def _write(self, data: Snapshot) -> bool:
        if self._stopped:
            logger.debug("Not writing to room %s after stop", self.room_code)
            return False
        try:
            await self.store.set(self.room_code, data, merge=True)
        except StoreWriteFailure as e:
            self.failed_writes += 1
            logger.warning("Write to room %s failed: %s", self.room_code, e)
            return False
        return True

    # =========================================================================
    # Incoming
    # =========================================================================

    async def poll(self) -> None:
        """Fetch the record once (poll mode)."""
        self.receive(await self.store.get(self.room_code))

    def receive(self, document: Snapshot | None) -> None:
        """Handle one snapshot from the store."""
        if self._stopped:
            return
        if document is None:
            logger.info("Room %s no longer exists", self.room_code)
            self._on_room_closed()
            return

        try:
            incoming = MatchState.from_dict(document)
        except InvalidSnapshot as e:
            self.snapshots_rejected += 1
            logger.warning("Ignoring snapshot of room %s: %s", self.room_code, e)
            return

        previous = self._current_state()
        if self.verifier is not None:
            result = self.verifier.verify(previous, incoming)
            if not result.accepted:
                self.snapshots_rejected += 1
                if result.stale:
                    logger.debug("Dropping stale snapshot of room %s: %s", self.room_code, result.reason)
                else:
                    logger.warning("Rejected snapshot of room %s: %s", self.room_code, result.reason)
                return
        elif previous is not None and incoming.revision < previous.revision:
            self.snapshots_rejected += 1
            logger.debug("Dropping stale snapshot of room %s", self.room_code)
            return

        self.snapshots_applied += 1
        logger.debug("Applied snapshot of room %s at revision %d", self.room_code, incoming.revision)
        self._on_snapshot(incoming)
