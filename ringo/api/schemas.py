"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between clients and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- INVALID_SELECTION: Selected cards do not form a playable run
- ILLEGAL_BEAT: The run does not beat the table combo
- WRONG_PHASE: The intent is not allowed in the current phase
- NOT_YOUR_TURN: Another seat must act
- NOT_CAPTURE_OWNER: Only the new combo owner decides on captured cards
- OPPORTUNITY_EXPIRED: The RINGO window has closed
- ROOM_FULL: The room already has five seats
- NOT_FOUND: Room or seat does not exist
- INVARIANT_VIOLATION: The round was aborted by an internal consistency check
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class RoomStatus(str, Enum):
    """Room status values."""
    LOBBY = "lobby"
    PLAYING = "playing"
    ROUND_OVER = "round_over"
    ABORTED = "aborted"
    ENDED = "ended"


class DifficultyLevel(str, Enum):
    """Bot tiers."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    NIGHTMARE = "nightmare"


class CaptureAction(str, Enum):
    """What to do with the cards of a beaten combo."""
    DISCARD_ALL = "discard_all"
    INSERT_ONE = "insert_one"
    INSERT_ALL = "insert_all"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_SELECTION = "INVALID_SELECTION"
    ILLEGAL_BEAT = "ILLEGAL_BEAT"
    WRONG_PHASE = "WRONG_PHASE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    NOT_CAPTURE_OWNER = "NOT_CAPTURE_OWNER"
    OPPORTUNITY_EXPIRED = "OPPORTUNITY_EXPIRED"
    ROOM_FULL = "ROOM_FULL"
    NOT_FOUND = "NOT_FOUND"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class CardInfo(BaseModel):
    """A card as shown to a seat."""
    card_id: int
    label: str
    value: Optional[int] = None
    split_values: Optional[list[int]] = Field(None, description="Both values of a split card")
    special: Optional[str] = Field(None, description="Effect of a special card")


class SeatInfo(BaseModel):
    """Public information about a seat."""
    player_id: str
    name: str
    is_bot: bool
    hand_count: int = 0
    wins: int = 0
    difficulty: Optional[DifficultyLevel] = None


class ComboInfo(BaseModel):
    """The combo on the table."""
    cards: list[CardInfo]
    value: int
    size: int
    owner_id: str
    split_resolutions: dict[int, int] = Field(default_factory=dict)


class PendingCaptureInfo(BaseModel):
    """Cards of a beaten combo waiting for the new owner's decision."""
    owner_id: str
    cards: list[CardInfo]


class RingoOpportunityInfo(BaseModel):
    """A RINGO the drawer may call."""
    insert_position: int
    combo_indices: list[int] = Field(description="Indices in the hand after the drawn card is spliced in")
    value: int
    size: int
    split_resolutions: dict[int, int] = Field(default_factory=dict)


class SettingsInfo(BaseModel):
    """Round settings."""
    hand_size: Optional[int] = Field(None, description="Cards per hand; default 10 for 2-3 players, else 8")
    special_cards: bool = Field(False, description="Shuffle special cards into the draw pile")
    turn_timer: Optional[float] = Field(None, description="Seconds per decision; none = untimed")


# =============================================================================
# Request Models
# =============================================================================

class CreateRoomRequest(BaseModel):
    """Request to create a room."""
    host_name: str = Field("Player 1", description="Display name of the host", max_length=40)


class JoinRoomRequest(BaseModel):
    """Request to join a room."""
    name: Optional[str] = Field(None, description="Display name", max_length=40)


class AddBotRequest(BaseModel):
    """Request to add a bot seat."""
    difficulty: DifficultyLevel = Field(DifficultyLevel.MEDIUM, description="Bot tier")


class StartRoundRequest(BaseModel):
    """Request to deal a new round."""
    settings: SettingsInfo = Field(default_factory=SettingsInfo)
    seed: Optional[int] = Field(None, description="Shuffle seed, for reproducible rounds")


class SeatRequest(BaseModel):
    """Any intent: identifies the acting seat."""
    seat_id: str = Field(..., description="Seat sending the intent")


class PlayRequest(SeatRequest):
    """Play a run of cards from the hand."""
    indices: list[int] = Field(..., description="Ordered, contiguous hand indices")
    split_resolutions: dict[int, int] = Field(
        default_factory=dict, description="Hand index -> chosen value for split cards"
    )


class RingoRequest(SeatRequest):
    """Call RINGO with the drawn card."""
    insert_position: int = Field(..., ge=0, description="Where the drawn card is spliced in")
    indices: list[int] = Field(..., description="Run indices after the splice, including insert_position")
    split_resolutions: dict[int, int] = Field(default_factory=dict)


class InsertDrawnRequest(SeatRequest):
    """Keep the drawn card."""
    position: int = Field(..., ge=0, description="Insert position in the hand")


class UseSpecialRequest(SeatRequest):
    """Use a drawn special card."""
    target_player_id: Optional[str] = Field(None, description="Target seat for targeted effects")


class CaptureRequest(SeatRequest):
    """Decide on captured cards."""
    action: CaptureAction
    card_id: Optional[int] = Field(None, description="Card to take, for insert_one")
    position: Optional[int] = Field(None, ge=0, description="Insert position in the hand")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class RoomResponse(BaseModel):
    """Room information."""
    code: str
    status: RoomStatus
    host_id: str
    seats: list[SeatInfo] = Field(default_factory=list)
    round_number: int = 0
    previous_winner: Optional[str] = None
    created_at: float = 0.0
    api_version: str = "v1"


class JoinResponse(BaseModel):
    """A seat was added to a room."""
    seat_id: str
    room: RoomResponse


class GameStateResponse(BaseModel):
    """The game as one seat sees it."""
    code: str
    status: RoomStatus
    game_id: str
    viewer_id: str
    version: int
    turn_phase: str
    current_player_id: str
    is_your_turn: bool = False
    players: list[SeatInfo] = Field(default_factory=list)
    hand: list[CardInfo] = Field(default_factory=list)
    current_combo: Optional[ComboInfo] = None
    pending_capture: Optional[PendingCaptureInfo] = None
    draw_pile_count: int = 0
    discard_pile: list[CardInfo] = Field(default_factory=list)
    drawn_card: Optional[CardInfo] = None
    ringo_opportunity: Optional[RingoOpportunityInfo] = None
    skip_next: bool = False
    winner: Optional[str] = None
    settings: SettingsInfo = Field(default_factory=SettingsInfo)
    last_changes: list[str] = Field(default_factory=list)
    bot_actions: list[str] = Field(default_factory=list)
    private_payload: Optional[dict[str, Any]] = Field(
        None, description="Result only the acting seat sees, e.g. a peeked hand"
    )
    api_version: str = "v1"


class RoomListResponse(BaseModel):
    """Response listing active rooms."""
    rooms: list[str]
    count: int


class EndRoomResponse(BaseModel):
    """Response after ending a room."""
    success: bool
    code: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
