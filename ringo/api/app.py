"""
FastAPI Application - REST API for Ringo clients.

Endpoints:
    POST   /api/v1/rooms                         Create a room
    GET    /api/v1/rooms                         List active rooms
    GET    /api/v1/rooms/{code}                  Get room status
    DELETE /api/v1/rooms/{code}                  End a room
    POST   /api/v1/rooms/{code}/join             Join a room
    POST   /api/v1/rooms/{code}/leave            Leave a room
    POST   /api/v1/rooms/{code}/bots             Add a bot seat
    POST   /api/v1/rooms/{code}/start            Deal a round
    GET    /api/v1/rooms/{code}/state            Get a seat's view
    POST   /api/v1/rooms/{code}/play             Play a run
    POST   /api/v1/rooms/{code}/draw             Draw a card
    POST   /api/v1/rooms/{code}/ringo            Call RINGO
    POST   /api/v1/rooms/{code}/insert-drawn     Keep the drawn card
    POST   /api/v1/rooms/{code}/discard-drawn    Discard the drawn card
    POST   /api/v1/rooms/{code}/special          Use a drawn special card
    POST   /api/v1/rooms/{code}/capture          Decide on captured cards
    POST   /api/v1/rooms/{code}/expire           Apply the turn-timer fallback

Bot Execution Flow:
    Every accepted intent is followed by the bot seats' turns, paced by
    RINGO_BOT_DELAY, until a human owes a decision or the round ends.
    The response carries the acting seat's view after the bots have moved.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Optional
from concurrent.futures import ThreadPoolExecutor
import os

# Environment configuration
RINGO_ENV = os.getenv("RINGO_ENV", "development")
RINGO_BOT_DELAY = float(os.getenv("RINGO_BOT_DELAY", "0.6"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# Rejection code -> HTTP status
STATUS_BY_CODE = {
    "NOT_FOUND": 404,
    "ROOM_FULL": 409,
    "WRONG_PHASE": 409,
    "NOT_YOUR_TURN": 409,
    "NOT_CAPTURE_OWNER": 409,
    "OPPORTUNITY_EXPIRED": 409,
    "INVALID_SELECTION": 400,
    "ILLEGAL_BEAT": 400,
    "VALIDATION_ERROR": 400,
    "INVARIANT_VIOLATION": 500,
}


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query, Request
        from fastapi.exceptions import RequestValidationError
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from ..engine_core.errors import Rejection, InvariantViolation
    from .service import APIService
    from .schemas import (
        # Request models
        CreateRoomRequest,
        JoinRoomRequest,
        AddBotRequest,
        StartRoundRequest,
        SeatRequest,
        PlayRequest,
        RingoRequest,
        InsertDrawnRequest,
        UseSpecialRequest,
        CaptureRequest,
        # Response models
        RoomResponse,
        JoinResponse,
        GameStateResponse,
        ErrorResponse,
        RoomListResponse,
        EndRoomResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Ringo API",
        description="""
Ringo card game engine with AI opponents.

## Turn Flow

1. On your turn, `POST /play` a contiguous run that beats the table, or `POST /draw`.
2. After drawing, `POST /ringo` if an opportunity is offered, else
   `POST /insert-drawn`, `POST /discard-drawn` or `POST /special`.
3. After beating a combo, `POST /capture` decides on its cards.

Bots move after every accepted intent.

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `NOT_FOUND` | 404 | Room or seat does not exist |
| `ROOM_FULL` | 409 | Room already has five seats |
| `WRONG_PHASE` | 409 | Intent not allowed in this phase |
| `NOT_YOUR_TURN` | 409 | Another seat must act |
| `NOT_CAPTURE_OWNER` | 409 | Only the new combo owner decides |
| `OPPORTUNITY_EXPIRED` | 409 | RINGO window has closed |
| `INVALID_SELECTION` | 400 | Cards do not form a playable run |
| `ILLEGAL_BEAT` | 400 | Run does not beat the table |
| `VALIDATION_ERROR` | 400 | Malformed request |
| `INVARIANT_VIOLATION` | 500 | Round aborted by a consistency check |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(
        bot_delay=RINGO_BOT_DELAY,
        executor=ThreadPoolExecutor(max_workers=4, thread_name_prefix="ringo-search"),
    )
    app.state.service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Rejection)
    async def rejection_handler(request: Request, exc: Rejection) -> JSONResponse:
        known = exc.code in ErrorCode._value2member_map_
        return make_error_response(
            ErrorCode(exc.code) if known else ErrorCode.VALIDATION_ERROR,
            exc.message,
            status_code=STATUS_BY_CODE.get(exc.code, 400),
            details=exc.details or None,
        )

    @app.exception_handler(InvariantViolation)
    async def invariant_handler(request: Request, exc: InvariantViolation) -> JSONResponse:
        return make_error_response(
            ErrorCode.INVARIANT_VIOLATION,
            str(exc),
            status_code=500,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            details={"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
            ]},
        )

    error_responses = {
        400: {"model": ErrorResponse, "description": "Invalid selection or illegal beat"},
        404: {"model": ErrorResponse, "description": "Room or seat not found"},
        409: {"model": ErrorResponse, "description": "Not allowed right now"},
        500: {"model": ErrorResponse, "description": "Round aborted"},
    }

    # =========================================================================
    # Room Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/rooms",
        response_model=JoinResponse,
        tags=["Rooms"],
        summary="Create a room",
    )
    async def create_room(body: CreateRoomRequest) -> JoinResponse:
        """Create a room; the response carries the host's seat id and the room code."""
        return api_service.create_room(body)

    @app.get(
        "/api/v1/rooms",
        response_model=RoomListResponse,
        tags=["Rooms"],
        summary="List active rooms",
    )
    async def list_rooms() -> RoomListResponse:
        rooms = api_service.list_rooms()
        return RoomListResponse(rooms=rooms, count=len(rooms))

    @app.get(
        "/api/v1/rooms/{code}",
        response_model=RoomResponse,
        responses={404: error_responses[404]},
        tags=["Rooms"],
        summary="Get room status",
    )
    async def get_room(code: str) -> RoomResponse:
        return api_service.get_room(code)

    @app.delete(
        "/api/v1/rooms/{code}",
        response_model=EndRoomResponse,
        tags=["Rooms"],
        summary="End a room",
    )
    async def end_room(
        code: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "user_ended",
    ) -> EndRoomResponse:
        """End a room and release its state."""
        success = api_service.end_room(code, reason)
        return EndRoomResponse(success=success, code=code.upper())

    @app.post(
        "/api/v1/rooms/{code}/join",
        response_model=JoinResponse,
        responses={404: error_responses[404], 409: error_responses[409]},
        tags=["Rooms"],
        summary="Join a room",
    )
    async def join_room(code: str, body: JoinRoomRequest) -> JoinResponse:
        return api_service.join_room(code, body)

    @app.post(
        "/api/v1/rooms/{code}/leave",
        response_model=Optional[RoomResponse],
        responses={404: error_responses[404]},
        tags=["Rooms"],
        summary="Leave a room",
    )
    async def leave_room(code: str, body: SeatRequest) -> Optional[RoomResponse]:
        """Leave a room. Returns null once the last human has left and the room is closed."""
        return await api_service.leave_room(code, body.seat_id)

    @app.post(
        "/api/v1/rooms/{code}/bots",
        response_model=JoinResponse,
        responses={404: error_responses[404], 409: error_responses[409]},
        tags=["Rooms"],
        summary="Add a bot seat",
    )
    async def add_bot(code: str, body: AddBotRequest) -> JoinResponse:
        return api_service.add_bot(code, body)

    @app.post(
        "/api/v1/rooms/{code}/start",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Rooms"],
        summary="Deal a new round",
    )
    async def start_round(code: str, body: StartRoundRequest) -> RoomResponse:
        """
        Deal a new round. The previous winner starts; otherwise a random seat.

        Bots seated before the first human act immediately.
        """
        return await api_service.start_round(code, body)

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/rooms/{code}/state",
        response_model=GameStateResponse,
        responses={404: error_responses[404]},
        tags=["Game"],
        summary="Get a seat's view of the game",
    )
    async def get_state(
        code: str,
        seat_id: Annotated[str, Query(description="Seat whose view to return")],
    ) -> GameStateResponse:
        """Only the requesting seat's hand and drawn card are included."""
        return api_service.get_state(code, seat_id)

    @app.post(
        "/api/v1/rooms/{code}/play",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Play a run of cards",
    )
    async def play(code: str, body: PlayRequest) -> GameStateResponse:
        return await api_service.play(code, body)

    @app.post(
        "/api/v1/rooms/{code}/draw",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Draw a card",
    )
    async def draw(code: str, body: SeatRequest) -> GameStateResponse:
        return await api_service.draw(code, body.seat_id)

    @app.post(
        "/api/v1/rooms/{code}/ringo",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Call RINGO with the drawn card",
    )
    async def ringo(code: str, body: RingoRequest) -> GameStateResponse:
        """
        `indices` refer to the hand after the drawn card is inserted at
        `insert_position`, and must include that position.
        """
        return await api_service.ringo(code, body)

    @app.post(
        "/api/v1/rooms/{code}/insert-drawn",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Keep the drawn card",
    )
    async def insert_drawn(code: str, body: InsertDrawnRequest) -> GameStateResponse:
        return await api_service.insert_drawn(code, body)

    @app.post(
        "/api/v1/rooms/{code}/discard-drawn",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Discard the drawn card",
    )
    async def discard_drawn(code: str, body: SeatRequest) -> GameStateResponse:
        return await api_service.discard_drawn(code, body.seat_id)

    @app.post(
        "/api/v1/rooms/{code}/special",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Use a drawn special card",
    )
    async def use_special(code: str, body: UseSpecialRequest) -> GameStateResponse:
        """Peek effects return their result in `private_payload`."""
        return await api_service.use_special(code, body)

    @app.post(
        "/api/v1/rooms/{code}/capture",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Decide on captured cards",
    )
    async def capture(code: str, body: CaptureRequest) -> GameStateResponse:
        return await api_service.capture(code, body)

    @app.post(
        "/api/v1/rooms/{code}/expire",
        response_model=GameStateResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Apply the turn-timer fallback for a seat",
    )
    async def expire_turn(code: str, body: SeatRequest) -> GameStateResponse:
        return await api_service.expire_turn(code, body.seat_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="ringo-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Ringo API",
            "version": __version__,
            "environment": RINGO_ENV,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn ringo.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
