"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to session and match calls
2. Manages sessions
3. Formats match views for clients

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
Failures come back as ErrorResponse objects, never as exceptions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Awaitable, Callable
import logging

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
    # Shared
    SeatView,
    SelectedHandInfo,
    JankenInfo,
    # Enums
    ErrorCode,
)
from ..engine_core.action import ActionResult
from ..engine_core.state import Seat, Hand, JankenChoice, Phase
from ..errors import RoomFull, RoomNotFound
from ..session import SessionManager, Session, MatchLoop, MatchView


logger = logging.getLogger(__name__)


def _session_not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Session {session_id} not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
    )


@dataclass
class APIService:
    """
    Main API service for client UIs.

    Usage:
        service = APIService()

        # Start a match against the computer
        session = await service.create_local_match(CreateLocalMatchRequest())

        # Play
        await service.select(session.session_id, SelectRequest(hand="left"))
        move = await service.attack(session.session_id, AttackRequest(target_seat=2, target_hand="left"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def create_local_match(self, request: CreateLocalMatchRequest) -> SessionResponse:
        session = await self.session_manager.create_local_session(
            computer_opponent=request.computer_opponent,
            seed=request.seed,
        )
        return self._session_to_response(session)

    async def create_room(self, request: RoomRequest) -> SessionResponse:
        session = await self.session_manager.create_room_session(request.player_name)
        return self._session_to_response(session)

    async def random_match(self, request: RoomRequest) -> SessionResponse:
        session = await self.session_manager.random_match_session(request.player_name)
        return self._session_to_response(session)

    async def join_room(self, room_code: str, request: RoomRequest) -> SessionResponse | ErrorResponse:
        """
        Join a room by code.

        Returns ROOM_NOT_FOUND or ROOM_FULL errors.
        """
        try:
            session = await self.session_manager.join_room_session(room_code, request.player_name)
        except RoomNotFound as e:
            logger.info("Join refused: %s", e)
            return ErrorResponse(error=str(e), error_code=ErrorCode.ROOM_NOT_FOUND)
        except RoomFull as e:
            logger.info("Join refused: %s", e)
            return ErrorResponse(error=str(e), error_code=ErrorCode.ROOM_FULL)
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found(session_id)
        return self._session_to_response(session)

    def get_state(self, session_id: str) -> MatchStateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found(session_id)
        return self.view_to_response(session_id, session.loop.view())

    async def end_session(self, session_id: str) -> bool:
        return await self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Moves
    # =========================================================================

    async def select(self, session_id: str, request: SelectRequest) -> MoveResponse | ErrorResponse:
        seat = Seat(request.seat) if request.seat is not None else None
        return await self._move(
            session_id,
            lambda loop: loop.select(Hand(request.hand.value), seat),
        )

    async def attack(self, session_id: str, request: AttackRequest) -> MoveResponse | ErrorResponse:
        return await self._move(
            session_id,
            lambda loop: loop.attack(Seat(request.target_seat), Hand(request.target_hand.value)),
        )

    async def transfer(self, session_id: str, request: TransferRequest) -> MoveResponse | ErrorResponse:
        return await self._move(
            session_id,
            lambda loop: loop.transfer(Hand(request.from_hand.value), Hand(request.to_hand.value)),
        )

    async def janken(self, session_id: str, request: JankenRequest) -> MoveResponse | ErrorResponse:
        return await self._move(
            session_id,
            lambda loop: loop.choose_janken(JankenChoice(request.choice.value)),
        )

    async def reset(self, session_id: str) -> MoveResponse | ErrorResponse:
        return await self._move(session_id, lambda loop: loop.reset())

    async def _move(
        self,
        session_id: str,
        intent: Callable[[MatchLoop], Awaitable[ActionResult]],
    ) -> MoveResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found(session_id)

        result = await intent(session.loop)
        return MoveResponse(
            accepted=result.success,
            error_code=result.error_code if not result.success else None,
            error=result.error,
            state=self.view_to_response(session_id, session.loop.view()),
        )

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _session_to_response(self, session: Session) -> SessionResponse:
        """Convert Session to SessionResponse."""
        view = session.loop.view()
        return SessionResponse(
            session_id=session.session_id,
            status=session.state.value,
            mode=view.mode.value,
            room_code=view.room_code,
            local_seat=view.local_seat.value if view.local_seat else None,
            created_at=session.created_at,
            state=self.view_to_response(session.session_id, view),
        )

    def view_to_response(self, session_id: str, view: MatchView) -> MatchStateResponse:
        """Convert a MatchView to its API model."""
        seats = [
            SeatView(
                seat=seat.value,
                name=view.names.get(seat),
                left=view.hands[seat].left,
                right=view.hands[seat].right,
                timeouts=view.timeout_count[seat],
                is_you=seat == view.local_seat,
            )
            for seat in (Seat.ONE, Seat.TWO)
        ]

        selected = None
        if view.selected_hand is not None:
            selected = SelectedHandInfo(
                seat=view.selected_hand.seat.value,
                hand=view.selected_hand.hand.value,
            )

        janken = None
        if view.phase is Phase.JANKEN or view.janken_outcome is not None:
            outcome = view.janken_outcome
            janken = JankenInfo(
                round=outcome.round if outcome else view.janken_round,
                your_choice=view.my_janken_choice.value if view.my_janken_choice else None,
                opponent_ready=view.opponent_janken_ready,
                outcome_choices=[c.value for c in outcome.choices] if outcome else None,
                outcome_winner=outcome.winner.value if outcome and outcome.winner else None,
            )

        return MatchStateResponse(
            session_id=session_id,
            mode=view.mode.value,
            status=view.loop_state.value,
            phase=view.phase.value,
            room_code=view.room_code,
            local_seat=view.local_seat.value if view.local_seat else None,
            seats=seats,
            current_player=view.current_player.value,
            selected_hand=selected,
            winner=view.winner.value if view.winner else None,
            seconds_left=view.seconds_left,
            opponent_disconnected=view.opponent_disconnected,
            room_closed=view.room_closed,
            janken=janken,
            revision=view.revision,
        )
