"""
Session Manager - Creates and manages Ringo rooms.

LIFECYCLE:
1. A host creates a room and gets a short room code
2. Players join by code; the host adds bots (2-5 seats in total)
3. The host starts a round -> a GameState is dealt
4. Intents flow through the GameLoop until someone empties their hand
5. Wins are tallied; the winner starts the next round
6. The room ends when the last human leaves or it goes stale

PERSISTENCE RULES:
- NO database: rooms live in memory only
- Ending a room drops its state and every bot's belief state
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
import logging
import random
import string
import threading
import time
import uuid

from ..bots import BotPolicy, Difficulty, create_policy
from ..bots.search import SearchConfig
from ..engine_core.errors import NotFound, RoomFull, WrongPhase, InvalidSelection
from ..engine_core.projection import project_state
from ..engine_core.state import GameState, RoundSettings, MAX_PLAYERS, MIN_PLAYERS, create_game_state

logger = logging.getLogger(__name__)


ROOM_CODE_CHARS = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6


class SessionState(Enum):
    """State of a room."""
    LOBBY = "lobby"  # Seats filling, no round yet
    PLAYING = "playing"  # Round in progress
    ROUND_OVER = "round_over"  # Winner decided, waiting for the next round
    ABORTED = "aborted"  # Invariant violation; the round cannot continue
    ENDED = "ended"  # Room closed


@dataclass
class Seat:
    """One seat in a room, human or bot."""
    seat_id: str
    name: str
    is_bot: bool = False
    difficulty: Difficulty | None = None
    policy: BotPolicy | None = None


@dataclass
class Session:
    """
    An in-memory room.

    Holds the seats, the current round's GameState and the running
    tally. Intents reach the GameState only through the GameLoop.
    """
    code: str
    host_id: str
    created_at: float

    seats: list[Seat] = field(default_factory=list)
    state: SessionState = SessionState.LOBBY
    game_state: GameState | None = None
    settings: RoundSettings = field(default_factory=RoundSettings)

    # Tally across rounds
    wins: dict[str, int] = field(default_factory=dict)
    previous_winner: str | None = None
    round_number: int = 0

    # Set when the round ends; aborts in-flight searches
    cancel_event: threading.Event = field(default_factory=threading.Event)

    last_changes: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        return self.state != SessionState.ENDED

    def seat(self, seat_id: str) -> Seat | None:
        for seat in self.seats:
            if seat.seat_id == seat_id:
                return seat
        return None

    def bot_seats(self) -> list[Seat]:
        return [s for s in self.seats if s.is_bot]

    def human_seats(self) -> list[Seat]:
        return [s for s in self.seats if not s.is_bot]


class SessionManager:
    """
    Manages rooms.

    Responsibilities:
    - Create rooms, seat players and bots
    - Deal rounds and keep the win tally
    - Clean up ended and stale rooms

    No persistence - rooms are in-memory only.
    """

    def __init__(self, search_config: SearchConfig | None = None, seed: int | None = None):
        self._sessions: dict[str, Session] = {}
        self.search_config = search_config
        self._rng = random.Random(seed)

    def _new_code(self) -> str:
        while True:
            code = "".join(self._rng.choice(ROOM_CODE_CHARS) for _ in range(ROOM_CODE_LENGTH))
            if code not in self._sessions:
                return code

    def _new_seat_id(self) -> str:
        return uuid.UUID(int=self._rng.getrandbits(128)).hex[:8]

    def create_room(self, host_name: str | None = "Player 1") -> tuple[Session, str | None]:
        """
        Create a room with its host seated. Returns (session, host seat id).

        With host_name=None the room has no human seat; used for bot-only
        simulations.
        """
        session = Session(code=self._new_code(), host_id="", created_at=time.time())
        seat_id = None
        if host_name is not None:
            seat_id = self._new_seat_id()
            session.host_id = seat_id
            session.seats.append(Seat(seat_id=seat_id, name=host_name or "Player 1"))
            session.wins[seat_id] = 0
        self._sessions[session.code] = session
        logger.info("Room %s created", session.code)
        return session, seat_id

    def get(self, code: str) -> Session:
        session = self._sessions.get(code.upper())
        if session is None:
            raise NotFound(f"Room {code} not found", details={"code": code})
        return session

    def _add_seat(self, session: Session, seat: Seat) -> str:
        if len(session.seats) >= MAX_PLAYERS:
            raise RoomFull(f"Room is full (max {MAX_PLAYERS} players)", details={"code": session.code})
        if session.state == SessionState.PLAYING:
            raise WrongPhase("Cannot join while a round is in progress")
        session.seats.append(seat)
        session.wins.setdefault(seat.seat_id, 0)
        return seat.seat_id

    def join_room(self, code: str, name: str | None = None) -> str:
        """Seat a human in the room. Returns the new seat id."""
        session = self.get(code)
        seat = Seat(seat_id=self._new_seat_id(), name=name or f"Player {len(session.seats) + 1}")
        seat_id = self._add_seat(session, seat)
        logger.info("%s joined room %s", seat.name, session.code)
        return seat_id

    def add_bot(self, code: str, difficulty: Difficulty | str = Difficulty.MEDIUM) -> str:
        """Seat a bot of the given tier. Returns the new seat id."""
        session = self.get(code)
        difficulty = Difficulty.parse(difficulty)
        number = len(session.bot_seats()) + 1
        seat = Seat(
            seat_id=self._new_seat_id(),
            name=f"{difficulty.display_name} Bot {number}",
            is_bot=True,
            difficulty=difficulty,
        )
        seat_id = self._add_seat(session, seat)
        logger.info("Added %s bot to room %s", difficulty.value, session.code)
        return seat_id

    def leave_room(self, code: str, seat_id: str) -> Session | None:
        """
        Remove a seat.

        During a round the seat is handed to a Tier-2 bot instead, and the
        round's player record is marked as a bot. The caller drives that bot
        if it owes the next decision (GameLoop.run_bots). The room ends once
        no human is left.
        """
        session = self.get(code)
        seat = session.seat(seat_id)
        if seat is None:
            raise NotFound(f"Seat {seat_id} is not in room {session.code}", details={"seat_id": seat_id})

        if session.state == SessionState.PLAYING:
            seat.is_bot = True
            seat.difficulty = Difficulty.MEDIUM
            seat.policy = create_policy(Difficulty.MEDIUM, seat_id=seat_id)
            state = session.game_state
            player = state.get_player(seat_id) if state else None
            if player is not None:
                session.game_state = state.with_player(replace(player, is_bot=True))
                seat.policy.observe(project_state(session.game_state, seat_id))
            logger.info("%s left room %s; a bot takes over", seat.name, session.code)
        else:
            session.seats.remove(seat)
            logger.info("%s left room %s", seat.name, session.code)

        if not session.human_seats():
            self.end_session(session.code, reason="empty")
            return None
        if session.host_id == seat_id:
            session.host_id = session.human_seats()[0].seat_id
        return session

    def start_round(
        self,
        code: str,
        settings: RoundSettings | None = None,
        seed: int | None = None,
    ) -> GameState:
        """Deal a new round. The previous winner, if still seated, goes first."""
        session = self.get(code)
        if session.state == SessionState.PLAYING:
            raise WrongPhase("A round is already in progress")
        if not session.is_active():
            raise WrongPhase(f"Room {session.code} is {session.state.value}")
        if len(session.seats) < MIN_PLAYERS:
            raise InvalidSelection(f"Need at least {MIN_PLAYERS} players to start")

        settings = settings or session.settings
        try:
            game_state = create_game_state(
                [(s.seat_id, s.name, s.is_bot) for s in session.seats],
                settings=settings,
                seed=seed,
                first_player_id=session.previous_winner,
                game_id=f"{session.code}-{session.round_number + 1}",
            )
        except ValueError as e:
            raise InvalidSelection(str(e))

        session.cancel_event = threading.Event()
        for seat in session.bot_seats():
            seat.policy = create_policy(
                seat.difficulty or Difficulty.MEDIUM,
                seat_id=seat.seat_id,
                seed=None if seed is None else seed + session.seats.index(seat),
                search_config=self.search_config,
            )

        session.settings = settings
        session.game_state = game_state
        session.state = SessionState.PLAYING
        session.round_number += 1
        session.last_changes = []
        logger.info(
            "Round %d started in room %s with %d players",
            session.round_number, session.code, len(session.seats),
        )
        return game_state

    def record_result(self, session: Session) -> None:
        """Close the round after a win: tally, remember the winner, stop searches."""
        winner = session.game_state.winner if session.game_state else None
        if winner is None or session.state != SessionState.PLAYING:
            return
        session.wins[winner] = session.wins.get(winner, 0) + 1
        session.previous_winner = winner
        session.state = SessionState.ROUND_OVER
        self._release_bots(session)
        logger.info("Round %d in room %s won by %s", session.round_number, session.code, winner)

    def abort(self, session: Session, reason: str) -> None:
        session.state = SessionState.ABORTED
        session.metadata["abort_reason"] = reason
        self._release_bots(session)

    def _release_bots(self, session: Session) -> None:
        session.cancel_event.set()
        for seat in session.bot_seats():
            forget = getattr(seat.policy, "forget", None)
            if forget is not None:
                forget()

    def end_session(self, code: str, reason: str = "completed") -> None:
        """
        End a room and clean up.

        The room is removed from memory. No persistence.
        """
        session = self._sessions.pop(code.upper(), None)
        if session:
            self._release_bots(session)
            session.state = SessionState.ENDED
            session.game_state = None
            session.last_changes.clear()
            logger.info("Room %s ended (%s)", session.code, reason)

    def list_active_sessions(self) -> list[str]:
        return [code for code, session in self._sessions.items() if session.is_active()]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Remove rooms older than max_age_seconds.

        Returns the number of rooms removed.
        """
        current_time = time.time()
        stale = [
            code for code, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds
        ]
        for code in stale:
            self.end_session(code, reason="stale")
        return len(stale)
