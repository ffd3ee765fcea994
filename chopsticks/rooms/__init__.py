"""
Rooms module - Matchmaking and seat assignment for online matches.
"""

from .manager import Room, RoomManager

__all__ = [
    "Room",
    "RoomManager",
]
