"""
Game Loop - The single writer for one room's GameState.

The loop:
1. A seat submits an intent (human via the API, bot via its policy)
2. Under the room's lock the reducer applies it and the new state is stored
3. Bot seats observe their new projection
4. Bot seats that owe a decision are driven until a human owes one

Bots use the same projection and submit path as humans. Tier-4 searches
run in a worker thread; their result is re-checked against the live state
before it is applied.
"""

from __future__ import annotations
from concurrent.futures import Executor
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING
import asyncio
import logging

from ..bots import BotDecision, HeuristicPolicy, PhaseContext, context_for
from ..bots.search import SearchPolicy, SearchCancelled
from ..engine_core.action import Action, ActionResult, CaptureChoice
from ..engine_core.errors import InvariantViolation, NotFound, NotYourTurn, WrongPhase
from ..engine_core.hand import best_insert_position
from ..engine_core.projection import GameView, project_state
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameState, TurnPhase
from .manager import SessionState

if TYPE_CHECKING:
    from .manager import Session, SessionManager, Seat

logger = logging.getLogger(__name__)


MAX_DECISION_ATTEMPTS = 3
MAX_BOT_STEPS = 2000


@dataclass
class TurnResult:
    """
    Result of running bot seats.

    Contains the intents applied and the round's outcome, if decided.
    """
    success: bool
    version: int
    bot_actions: list[str] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)
    winner: str | None = None
    cancelled: bool = False


def fallback_action(view: GameView, seat_id: str) -> Action:
    """Intent submitted for a seat whose turn timer ran out."""
    context = context_for(view, seat_id)
    if context == PhaseContext.TURN:
        return Action.draw(seat_id)
    if context in (PhaseContext.RINGO_OFFER, PhaseContext.INSERT_PLACEMENT):
        if view.drawn_card.is_special:
            return Action.discard_drawn(seat_id)
        return Action.insert_drawn(seat_id, best_insert_position(view.hand, view.drawn_card))
    if context == PhaseContext.CAPTURE:
        return Action.capture(seat_id, CaptureChoice.DISCARD_ALL)
    raise NotYourTurn(f"Seat {seat_id} has no decision pending")


class GameLoop:
    """
    Drives one room.

    Usage:
        loop = GameLoop(manager, session)

        # A human intent comes in
        result = await loop.submit(Action.draw(seat_id))

        # Let the bots answer
        await loop.run_bots()
    """

    def __init__(
        self,
        manager: SessionManager,
        session: Session,
        bot_delay: float = 0.0,
        executor: Executor | None = None,
        reducer: Reducer | None = None,
    ):
        self.manager = manager
        self.session = session
        self.bot_delay = bot_delay
        self.executor = executor
        self.reducer = reducer or Reducer()
        self.lock = asyncio.Lock()
        self._fallback = HeuristicPolicy()

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def state(self) -> GameState:
        if self.session.game_state is None:
            raise WrongPhase("Round has not started")
        return self.session.game_state

    def view_for(self, seat_id: str) -> GameView:
        if self.session.seat(seat_id) is None:
            raise NotFound(f"Seat {seat_id} is not in room {self.session.code}", details={"seat_id": seat_id})
        return project_state(self.state, seat_id)

    def acting_seat_id(self) -> str | None:
        """The seat that owes the next decision, if any."""
        state = self.session.game_state
        if state is None or state.is_over:
            return None
        if state.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            return state.pending_capture.owner_id
        return state.current_player.player_id

    def pending_bot(self) -> Seat | None:
        if self.session.state != SessionState.PLAYING:
            return None
        seat_id = self.acting_seat_id()
        seat = self.session.seat(seat_id) if seat_id else None
        if seat is not None and seat.is_bot and seat.policy is not None:
            return seat
        return None

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(self, action: Action) -> ActionResult:
        """Apply one intent under the room's lock."""
        async with self.lock:
            return self._apply(action)

    def _apply(self, action: Action) -> ActionResult:
        session = self.session
        if session.state == SessionState.ABORTED:
            raise WrongPhase("Round was aborted")
        state = self.state

        try:
            result = self.reducer.apply(state, action)
        except InvariantViolation as e:
            logger.error(
                "Room %s aborted after %s from %s: %s",
                session.code, action.action_type.value, action.player_id, e,
            )
            self.manager.abort(session, str(e))
            raise

        if not result.success:
            return result

        session.game_state = result.new_state
        session.last_changes = list(result.state_changes)
        self._notify_bots(result.new_state)
        if result.new_state.is_over:
            self.manager.record_result(session)
        return result

    def _notify_bots(self, state: GameState) -> None:
        for seat in self.session.bot_seats():
            if seat.policy is not None:
                seat.policy.observe(project_state(state, seat.seat_id))

    async def expire_turn(self, seat_id: str) -> ActionResult:
        """Submit the timeout fallback for seat_id."""
        async with self.lock:
            if self.acting_seat_id() != seat_id:
                raise NotYourTurn(f"Seat {seat_id} has no decision pending")
            action = fallback_action(self.view_for(seat_id), seat_id)
            logger.info("Turn timer expired for %s in room %s", seat_id, self.session.code)
            return self._apply(action)

    def cancel(self) -> None:
        """Abort any search running for this room."""
        self.session.cancel_event.set()

    # =========================================================================
    # Bots
    # =========================================================================

    async def _decide(self, seat: Seat, view: GameView, context: PhaseContext) -> BotDecision | None:
        policy = seat.policy
        if isinstance(policy, SearchPolicy):
            loop = asyncio.get_running_loop()
            call = partial(policy.decide, view, seat.seat_id, context, self.session.cancel_event)
            try:
                return await loop.run_in_executor(self.executor, call)
            except SearchCancelled:
                logger.debug("Search for %s cancelled", seat.seat_id)
                return None
        return policy.decide(view, seat.seat_id, context)

    async def _bot_turn(self, seat: Seat) -> ActionResult | None:
        """
        Decide and submit for one bot seat.

        A decision made against an older version of the state, or rejected
        by the reducer, is recomputed; after MAX_DECISION_ATTEMPTS the
        Tier-2 choice is submitted instead.
        """
        for attempt in range(MAX_DECISION_ATTEMPTS):
            view = self.view_for(seat.seat_id)
            context = context_for(view, seat.seat_id)
            if context is None:
                return None
            decision = await self._decide(seat, view, context)
            if decision is None:
                return None

            async with self.lock:
                live = self.session.game_state
                if live is None or live.action_count != view.version:
                    logger.warning(
                        "Stale decision for %s (v%d, live v%s); recomputing",
                        seat.seat_id, view.version, live.action_count if live else None,
                    )
                    continue
                result = self._apply(decision.action)
            if result.success:
                return result
            logger.warning(
                "Bot %s intent rejected (%s): %s; recomputing",
                seat.seat_id, result.error_code, result.error,
            )

        async with self.lock:
            view = self.view_for(seat.seat_id)
            context = context_for(view, seat.seat_id)
            if context is None:
                return None
            decision = self._fallback.decide(view, seat.seat_id, context)
            result = self._apply(decision.action)
            if not result.success:
                result = self._apply(fallback_action(view, seat.seat_id))
            return result

    async def run_bots(self, max_steps: int = MAX_BOT_STEPS) -> TurnResult:
        """Drive bot seats until a human owes a decision or the round ends."""
        actions: list[str] = []
        changes: list[str] = []
        cancelled = False
        for _ in range(max_steps):
            seat = self.pending_bot()
            if seat is None:
                break
            if self.bot_delay:
                await asyncio.sleep(self.bot_delay)
            result = await self._bot_turn(seat)
            if result is None:
                cancelled = self.session.cancel_event.is_set()
                break
            if result.success:
                actions.append(f"{seat.name}: {result.state_changes[0] if result.state_changes else 'acted'}")
                changes.extend(result.state_changes)

        state = self.session.game_state
        return TurnResult(
            success=True,
            version=state.action_count if state else 0,
            bot_actions=actions,
            changes=changes,
            winner=state.winner if state else None,
            cancelled=cancelled,
        )

    def play_out(self, max_steps: int = MAX_BOT_STEPS * 5) -> GameState:
        """
        Synchronously play a round where every seat is a bot.

        Used by the simulate command and tests; searches run inline.
        """
        for _ in range(max_steps):
            seat = self.pending_bot()
            if seat is None:
                break
            view = self.view_for(seat.seat_id)
            context = context_for(view, seat.seat_id)
            decision = seat.policy.decide(view, seat.seat_id, context)
            result = self._apply(decision.action)
            if not result.success:
                logger.warning(
                    "Bot %s intent rejected (%s): %s; using fallback",
                    seat.seat_id, result.error_code, result.error,
                )
                fallback = self._fallback.decide(view, seat.seat_id, context).action
                result = self._apply(fallback)
                if not result.success:
                    self._apply(fallback_action(view, seat.seat_id))
        return self.state

