"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine intents
2. Manages rooms and their game loops
3. Runs bot seats after every human intent
4. Formats per-seat responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Rejected requests raise the engine's typed Rejection; the web layer maps
them to status codes.
"""

from __future__ import annotations
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any
import logging

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
    # Shared
    CardInfo,
    SeatInfo,
    ComboInfo,
    PendingCaptureInfo,
    RingoOpportunityInfo,
    SettingsInfo,
    # Enums
    RoomStatus,
    DifficultyLevel,
)
from ..engine_core.action import Action, ActionResult, CaptureChoice
from ..engine_core.cards import Card
from ..engine_core.errors import NotFound, rejection_for
from ..engine_core.state import RoundSettings
from ..session import SessionManager, Session, SessionState, GameLoop

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        joined = service.create_room(CreateRoomRequest(host_name="Ana"))
        service.add_bot(joined.room.code, AddBotRequest(difficulty="hard"))
        await service.start_round(joined.room.code, StartRoundRequest())
        state = await service.draw(joined.room.code, joined.seat_id)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    bot_delay: float = 0.0
    executor: Executor | None = None

    # Game loops per room
    _game_loops: dict[str, GameLoop] = field(default_factory=dict)

    # =========================================================================
    # Rooms
    # =========================================================================

    def create_room(self, request: CreateRoomRequest) -> JoinResponse:
        session, seat_id = self.session_manager.create_room(request.host_name)
        return JoinResponse(seat_id=seat_id, room=self._room_response(session))

    def join_room(self, code: str, request: JoinRoomRequest) -> JoinResponse:
        seat_id = self.session_manager.join_room(code, request.name)
        return JoinResponse(seat_id=seat_id, room=self._room_response(self.session_manager.get(code)))

    def add_bot(self, code: str, request: AddBotRequest) -> JoinResponse:
        seat_id = self.session_manager.add_bot(code, request.difficulty.value)
        return JoinResponse(seat_id=seat_id, room=self._room_response(self.session_manager.get(code)))

    async def leave_room(self, code: str, seat_id: str) -> RoomResponse | None:
        """Leave a room; mid-round the bot taking the seat plays on at once."""
        session = self.session_manager.leave_room(code, seat_id)
        if session is None:
            loop = self._game_loops.pop(code.upper(), None)
            if loop is not None:
                loop.cancel()
            return None
        loop = self._game_loops.get(session.code)
        if loop is not None and session.state == SessionState.PLAYING:
            await loop.run_bots()
        return self._room_response(session)

    def get_room(self, code: str) -> RoomResponse:
        return self._room_response(self.session_manager.get(code))

    async def start_round(self, code: str, request: StartRoundRequest) -> RoomResponse:
        """Deal a round and let bots act until a human is up."""
        settings = RoundSettings(
            hand_size=request.settings.hand_size,
            special_cards=request.settings.special_cards,
            turn_timer=request.settings.turn_timer,
        )
        self.session_manager.start_round(code, settings=settings, seed=request.seed)
        session = self.session_manager.get(code)
        loop = GameLoop(
            self.session_manager,
            session,
            bot_delay=self.bot_delay,
            executor=self.executor,
        )
        self._game_loops[session.code] = loop
        await loop.run_bots()
        return self._room_response(session)

    def end_room(self, code: str, reason: str = "user_ended") -> bool:
        loop = self._game_loops.pop(code.upper(), None)
        if loop is not None:
            loop.cancel()
        self.session_manager.end_session(code, reason)
        return True

    def list_rooms(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # State
    # =========================================================================

    def get_state(self, code: str, seat_id: str) -> GameStateResponse:
        loop = self._loop(code)
        return self._state_response(loop, seat_id)

    # =========================================================================
    # Intents
    # =========================================================================

    async def play(self, code: str, request: PlayRequest) -> GameStateResponse:
        return await self._submit(
            code,
            Action.play(request.seat_id, request.indices, request.split_resolutions),
        )

    async def draw(self, code: str, seat_id: str) -> GameStateResponse:
        return await self._submit(code, Action.draw(seat_id))

    async def ringo(self, code: str, request: RingoRequest) -> GameStateResponse:
        return await self._submit(
            code,
            Action.ringo(
                request.seat_id,
                request.insert_position,
                request.indices,
                request.split_resolutions,
            ),
        )

    async def insert_drawn(self, code: str, request: InsertDrawnRequest) -> GameStateResponse:
        return await self._submit(code, Action.insert_drawn(request.seat_id, request.position))

    async def discard_drawn(self, code: str, seat_id: str) -> GameStateResponse:
        return await self._submit(code, Action.discard_drawn(seat_id))

    async def use_special(self, code: str, request: UseSpecialRequest) -> GameStateResponse:
        return await self._submit(code, Action.use_special(request.seat_id, request.target_player_id))

    async def capture(self, code: str, request: CaptureRequest) -> GameStateResponse:
        return await self._submit(
            code,
            Action.capture(
                request.seat_id,
                CaptureChoice(request.action.value),
                card_id=request.card_id,
                position=request.position,
            ),
        )

    async def expire_turn(self, code: str, seat_id: str) -> GameStateResponse:
        loop = self._loop(code)
        result = await loop.expire_turn(seat_id)
        return await self._after_submit(loop, seat_id, result)

    async def _submit(self, code: str, action: Action) -> GameStateResponse:
        loop = self._loop(code)
        result = await loop.submit(action)
        if not result.success:
            raise rejection_for(result.error_code, result.error, result.error_details)
        return await self._after_submit(loop, action.player_id, result)

    async def _after_submit(self, loop: GameLoop, seat_id: str, result: ActionResult) -> GameStateResponse:
        changes = list(result.state_changes)
        bots = await loop.run_bots()
        response = self._state_response(loop, seat_id)
        response.last_changes = changes + bots.changes
        response.bot_actions = bots.bot_actions
        response.private_payload = result.private_payload
        return response

    def _loop(self, code: str) -> GameLoop:
        session = self.session_manager.get(code)
        loop = self._game_loops.get(session.code)
        if loop is None:
            raise NotFound(f"Room {session.code} has no round", details={"code": session.code})
        return loop

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _room_response(self, session: Session) -> RoomResponse:
        """Convert Session to RoomResponse."""
        counts: dict[str, int] = {}
        if session.game_state:
            counts = {p.player_id: len(p.hand) for p in session.game_state.players}
        return RoomResponse(
            code=session.code,
            status=RoomStatus(session.state.value),
            host_id=session.host_id,
            seats=[
                SeatInfo(
                    player_id=seat.seat_id,
                    name=seat.name,
                    is_bot=seat.is_bot,
                    hand_count=counts.get(seat.seat_id, 0),
                    wins=session.wins.get(seat.seat_id, 0),
                    difficulty=DifficultyLevel(seat.difficulty.value) if seat.difficulty else None,
                )
                for seat in session.seats
            ],
            round_number=session.round_number,
            previous_winner=session.previous_winner,
            created_at=session.created_at,
        )

    def _state_response(self, loop: GameLoop, seat_id: str) -> GameStateResponse:
        """Build the seat's projection as a response."""
        session = loop.session
        view = loop.view_for(seat_id)
        return GameStateResponse(
            code=session.code,
            status=RoomStatus(session.state.value),
            game_id=view.game_id,
            viewer_id=view.viewer_id,
            version=view.version,
            turn_phase=view.turn_phase.value,
            current_player_id=view.current_player_id,
            is_your_turn=loop.acting_seat_id() == seat_id,
            players=[
                SeatInfo(
                    player_id=s.player_id,
                    name=s.name,
                    is_bot=s.is_bot,
                    hand_count=s.hand_count,
                    wins=session.wins.get(s.player_id, 0),
                )
                for s in view.seats
            ],
            hand=[_card_info(c) for c in view.hand],
            current_combo=ComboInfo(
                cards=[_card_info(c) for c in view.current_combo.cards],
                value=view.current_combo.value,
                size=view.current_combo.size,
                owner_id=view.current_combo.owner_id,
                split_resolutions=dict(view.current_combo.resolutions),
            ) if view.current_combo else None,
            pending_capture=PendingCaptureInfo(
                owner_id=view.pending_capture.owner_id,
                cards=[_card_info(c) for c in view.pending_capture.cards],
            ) if view.pending_capture else None,
            draw_pile_count=view.draw_pile_count,
            discard_pile=[_card_info(c) for c in view.discard_pile],
            drawn_card=_card_info(view.drawn_card) if view.drawn_card else None,
            ringo_opportunity=RingoOpportunityInfo(
                insert_position=view.ringo_opportunity.insert_position,
                combo_indices=list(view.ringo_opportunity.combo_indices),
                value=view.ringo_opportunity.value,
                size=view.ringo_opportunity.size,
                split_resolutions=dict(view.ringo_opportunity.resolutions),
            ) if view.ringo_opportunity else None,
            skip_next=view.skip_next,
            winner=view.winner,
            settings=SettingsInfo(**view.settings.to_dict()),
            last_changes=list(session.last_changes),
        )


def _card_info(card: Card) -> CardInfo:
    data: dict[str, Any] = card.to_dict()
    return CardInfo(label=card.label(), **data)
