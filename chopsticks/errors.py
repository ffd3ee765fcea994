"""
Error taxonomy.

Illegal moves are not exceptions: the reducer reports them through
ActionResult and the state stays unchanged. The exceptions below cover
room lookup, store I/O and snapshot validation.
"""


class ChopsticksError(Exception):
    """Base class for all engine errors."""


class RoomNotFound(ChopsticksError):
    """No room is stored under the requested code."""

    def __init__(self, room_code: str):
        super().__init__(f"Room {room_code} not found")
        self.room_code = room_code


class RoomFull(ChopsticksError):
    """Both seats of the room are already taken."""

    def __init__(self, room_code: str):
        super().__init__(f"Room {room_code} is full")
        self.room_code = room_code


class StoreWriteFailure(ChopsticksError):
    """The shared state store rejected or failed a write."""


class InvalidSnapshot(ChopsticksError):
    """A snapshot read from the store is malformed or breaks the rules."""
