"""
API Module - Client interface.

Exposes the engine via REST and WebSocket for any UI.
A client:
1. Starts a local match, or creates/joins/finds a room
2. Sends selections, attacks, transfers and janken choices
3. Receives the match view after every change

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateLocalMatchRequest,
    RoomRequest,
    SelectRequest,
    AttackRequest,
    TransferRequest,
    JankenRequest,
    # Responses
    MatchStateResponse,
    MoveResponse,
    SessionResponse,
    ErrorResponse,
    ErrorCode,
)
from .service import APIService

__all__ = [
    # Requests
    "CreateLocalMatchRequest",
    "RoomRequest",
    "SelectRequest",
    "AttackRequest",
    "TransferRequest",
    "JankenRequest",
    # Responses
    "MatchStateResponse",
    "MoveResponse",
    "SessionResponse",
    "ErrorResponse",
    "ErrorCode",
    # Service
    "APIService",
]
