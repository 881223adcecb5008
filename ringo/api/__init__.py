"""
API Module - Client interface.

Exposes the engine via REST API.
A client:
1. Creates or joins a room and adds bots
2. Starts a round
3. Reads its seat's view of the game
4. Submits intents (play, draw, RINGO, drawn-card and capture decisions)

All state is room-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateRoomRequest,
    JoinRoomRequest,
    AddBotRequest,
    StartRoundRequest,
    PlayRequest,
    RingoRequest,
    InsertDrawnRequest,
    UseSpecialRequest,
    CaptureRequest,
    # Responses
    RoomResponse,
    JoinResponse,
    GameStateResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateRoomRequest",
    "JoinRoomRequest",
    "AddBotRequest",
    "StartRoundRequest",
    "PlayRequest",
    "RingoRequest",
    "InsertDrawnRequest",
    "UseSpecialRequest",
    "CaptureRequest",
    # Responses
    "RoomResponse",
    "JoinResponse",
    "GameStateResponse",
    "ErrorResponse",
    # Enums
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
