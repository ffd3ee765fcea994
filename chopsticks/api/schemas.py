"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a client UI and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has ended
- ROOM_NOT_FOUND: No room with that code
- ROOM_FULL: Both seats of the room are taken
- ILLEGAL_MOVE: Move rejected by the rules (returned with accepted=false)
- VALIDATION_ERROR: Malformed request
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    ILLEGAL_MOVE = "ILLEGAL_MOVE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class HandName(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class JankenName(str, Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


# =============================================================================
# Shared Models
# =============================================================================

class SeatView(BaseModel):
    """One seat of the table."""
    seat: int = Field(..., ge=1, le=2)
    name: Optional[str] = None
    left: int = Field(..., ge=0, le=4)
    right: int = Field(..., ge=0, le=4)
    timeouts: int = 0
    is_you: bool = False


class SelectedHandInfo(BaseModel):
    seat: int
    hand: HandName


class JankenInfo(BaseModel):
    """
    Janken status for the requesting seat.

    The opponent's choice stays hidden until the outcome is shown.
    """
    round: int
    your_choice: Optional[JankenName] = None
    opponent_ready: bool = False
    outcome_choices: Optional[list[JankenName]] = Field(
        None, description="Seat 1 then seat 2, while an outcome is shown"
    )
    outcome_winner: Optional[int] = Field(None, description="Winning seat, null on a draw")


# =============================================================================
# Request Models
# =============================================================================

class CreateLocalMatchRequest(BaseModel):
    """Request to start a match on one device."""
    computer_opponent: bool = Field(True, description="Play against the computer")
    seed: Optional[int] = Field(None, description="Seed for the computer's choices")


class RoomRequest(BaseModel):
    """Request to create, join or find a room."""
    player_name: Optional[str] = Field(None, max_length=20)


class SelectRequest(BaseModel):
    """Select (or deselect) an attacking hand."""
    hand: HandName
    seat: Optional[int] = Field(None, ge=1, le=2, description="Hot-seat play only")


class AttackRequest(BaseModel):
    """Attack with the selected hand."""
    target_seat: int = Field(..., ge=1, le=2)
    target_hand: HandName


class TransferRequest(BaseModel):
    """Move one finger between own hands."""
    from_hand: HandName
    to_hand: HandName


class JankenRequest(BaseModel):
    choice: JankenName


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    api_version: str = Field("v1", description="API version")


class MatchStateResponse(BaseModel):
    """Complete match view for display."""
    session_id: str
    mode: str
    status: str = Field(..., description="waiting_opponent, janken, playing, game_over, closed")
    phase: str
    room_code: Optional[str] = None
    local_seat: Optional[int] = None
    seats: list[SeatView] = Field(default_factory=list)
    current_player: int
    selected_hand: Optional[SelectedHandInfo] = None
    winner: Optional[int] = None
    seconds_left: int
    opponent_disconnected: bool = False
    room_closed: bool = False
    janken: Optional[JankenInfo] = None
    revision: int = 0
    api_version: str = "v1"


class MoveResponse(BaseModel):
    """
    Result of a move.

    A rejected move is not an HTTP error: accepted is false and state
    is the unchanged match.
    """
    accepted: bool
    error_code: Optional[str] = None
    error: Optional[str] = None
    state: MatchStateResponse


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    status: str
    mode: str
    room_code: Optional[str] = None
    local_seat: Optional[int] = None
    created_at: float = 0.0
    state: MatchStateResponse
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
