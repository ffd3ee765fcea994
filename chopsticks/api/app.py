"""
FastAPI Application - REST API for match clients.

Endpoints:
    POST   /api/v1/matches/local               Start a match on one device
    POST   /api/v1/rooms                       Create a private room
    POST   /api/v1/rooms/random                Find or open a random room
    POST   /api/v1/rooms/{code}/join           Join a room by code
    GET    /api/v1/sessions                    List active sessions
    GET    /api/v1/sessions/{id}               Get session status
    DELETE /api/v1/sessions/{id}               Leave the match
    GET    /api/v1/sessions/{id}/state         Get the match view
    POST   /api/v1/sessions/{id}/select        Select an attacking hand
    POST   /api/v1/sessions/{id}/attack        Attack a hand
    POST   /api/v1/sessions/{id}/transfer      Move one finger between own hands
    POST   /api/v1/sessions/{id}/janken        Submit a janken choice
    POST   /api/v1/sessions/{id}/reset         Start over
    WS     /api/v1/sessions/{id}/ws            Match view on every change

Rejected moves are not HTTP errors: the response has accepted=false and
the unchanged match view.

Both clients of an online match may be sessions of the same process;
they then share the process's in-memory store.
"""

from contextlib import asynccontextmanager
from typing import Optional, Union
import asyncio
import json
import logging
import os

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .service import APIService
from .schemas import (
    # Request models
    CreateLocalMatchRequest,
    RoomRequest,
    SelectRequest,
    AttackRequest,
    TransferRequest,
    JankenRequest,
    # Response models
    MatchStateResponse,
    MoveResponse,
    SessionResponse,
    SessionListResponse,
    EndSessionResponse,
    HealthResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
)

# Environment configuration
CHOPSTICKS_ENV = os.getenv("CHOPSTICKS_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.ROOM_NOT_FOUND: 404,
    ErrorCode.ROOM_FULL: 409,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INTERNAL_ERROR: 500,
}


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    api_service = service or APIService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Chopsticks API starting (%s)", CHOPSTICKS_ENV)
        yield
        await api_service.session_manager.shutdown()

    app = FastAPI(
        title="Chopsticks API",
        description="""
Two-player Chopsticks: local hot-seat, against the computer, or online
through rooms.

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `SESSION_NOT_FOUND` | 404 | Session does not exist |
| `ROOM_NOT_FOUND` | 404 | No room with that code |
| `ROOM_FULL` | 409 | Both seats are taken |
| `ILLEGAL_MOVE` | 200 | Move rejected, `accepted=false` |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=_ERROR_STATUS.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    # =========================================================================
    # Match / Room Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches/local",
        response_model=SessionResponse,
        tags=["Matches"],
        summary="Start a match on one device",
    )
    async def create_local_match(body: CreateLocalMatchRequest) -> SessionResponse:
        """
        Start a hot-seat match, or a match against the computer.

        Local matches skip janken: seat 1 moves first.
        """
        return await api_service.create_local_match(body)

    @app.post(
        "/api/v1/rooms",
        response_model=SessionResponse,
        tags=["Rooms"],
        summary="Create a private room",
    )
    async def create_room(body: RoomRequest) -> SessionResponse:
        """Create a room and wait in seat 1. Share `room_code` with the opponent."""
        return await api_service.create_room(body)

    @app.post(
        "/api/v1/rooms/random",
        response_model=SessionResponse,
        tags=["Rooms"],
        summary="Find a random opponent",
    )
    async def random_match(body: RoomRequest) -> SessionResponse:
        """Join a waiting random room, or open one and wait."""
        return await api_service.random_match(body)

    @app.post(
        "/api/v1/rooms/{room_code}/join",
        response_model=SessionResponse,
        responses={
            404: {"model": ErrorResponse, "description": "Room not found"},
            409: {"model": ErrorResponse, "description": "Room full"},
        },
        tags=["Rooms"],
        summary="Join a room by code",
    )
    async def join_room(room_code: str, body: RoomRequest) -> Union[SessionResponse, JSONResponse]:
        """Take seat 2 of a room. Codes are case-insensitive."""
        return respond(await api_service.join_room(room_code, body))

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.get_session(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="Leave a match",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """Stop the match's timers and delete its room, if any."""
        success = await api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=MatchStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get the match view",
    )
    async def get_state(session_id: str) -> Union[MatchStateResponse, JSONResponse]:
        return respond(api_service.get_state(session_id))

    # =========================================================================
    # Move Endpoints
    # =========================================================================

    move_responses = {404: {"model": ErrorResponse, "description": "Session not found"}}

    @app.post(
        "/api/v1/sessions/{session_id}/select",
        response_model=MoveResponse,
        responses=move_responses,
        tags=["Moves"],
        summary="Select or deselect an attacking hand",
    )
    async def select(session_id: str, body: SelectRequest) -> Union[MoveResponse, JSONResponse]:
        return respond(await api_service.select(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/attack",
        response_model=MoveResponse,
        responses=move_responses,
        tags=["Moves"],
        summary="Attack with the selected hand",
    )
    async def attack(session_id: str, body: AttackRequest) -> Union[MoveResponse, JSONResponse]:
        """
        Add the selected hand's fingers to the target hand.

        A total of five or more kills the target.
        """
        return respond(await api_service.attack(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/transfer",
        response_model=MoveResponse,
        responses=move_responses,
        tags=["Moves"],
        summary="Move one finger between own hands",
    )
    async def transfer(session_id: str, body: TransferRequest) -> Union[MoveResponse, JSONResponse]:
        return respond(await api_service.transfer(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/janken",
        response_model=MoveResponse,
        responses=move_responses,
        tags=["Moves"],
        summary="Submit a janken choice",
    )
    async def janken(session_id: str, body: JankenRequest) -> Union[MoveResponse, JSONResponse]:
        """The opponent sees only that a choice was made until both have chosen."""
        return respond(await api_service.janken(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/reset",
        response_model=MoveResponse,
        responses=move_responses,
        tags=["Moves"],
        summary="Start over",
    )
    async def reset(session_id: str) -> Union[MoveResponse, JSONResponse]:
        return respond(await api_service.reset(session_id))

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: The match view changed
        - pong: Reply to ping
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()

        session = api_service.session_manager.get_session(session_id)
        if session is None:
            await websocket.send_json({
                "type": "error",
                "payload": {
                    "error_code": ErrorCode.SESSION_NOT_FOUND.value,
                    "message": f"Session {session_id} not found",
                },
            })
            await websocket.close(code=4404)
            return

        def state_message(view) -> dict:
            return {
                "type": "state_update",
                "payload": api_service.view_to_response(session_id, view).model_dump(mode="json"),
            }

        updates: asyncio.Queue = asyncio.Queue()
        remove_listener = session.loop.add_listener(updates.put_nowait)

        async def pump():
            while True:
                view = await updates.get()
                await websocket.send_json(state_message(view))

        sender = None
        try:
            await websocket.send_json(state_message(session.loop.view()))
            sender = asyncio.create_task(pump())

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect as e:
            logger.info("WS: session %s disconnected code=%s", session_id, e.code)
        finally:
            remove_listener()
            if sender is not None:
                sender.cancel()

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="chopsticks",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Chopsticks API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app


# For running directly: uvicorn chopsticks.api.app:app
app = create_app()
