"""
Bot Policy - Interface for bot decision-making.

A BotPolicy takes the same redacted GameView a client receives and
returns an intent of the same shape a client would send. Every tier
implements this one interface; the session layer picks the class once
per bot seat and never branches on difficulty again.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..engine_core.state import TurnPhase

if TYPE_CHECKING:
    from ..engine_core.action import Action
    from ..engine_core.projection import GameView
    from .search import SearchConfig


class Difficulty(Enum):
    """Bot tiers, weakest first."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    NIGHTMARE = "nightmare"

    @property
    def tier(self) -> int:
        return list(Difficulty).index(self) + 1

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str | Difficulty) -> Difficulty:
        if isinstance(value, Difficulty):
            return value
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(
                f"Unknown difficulty {value!r}; expected one of "
                + ", ".join(d.value for d in cls)
            )


DISPLAY_NAMES = {
    Difficulty.EASY: "Rookie",
    Difficulty.MEDIUM: "Pro",
    Difficulty.HARD: "Master",
    Difficulty.NIGHTMARE: "Nightmare",
}


class PhaseContext(Enum):
    """Which kind of decision a bot is being asked for."""
    TURN = "turn"
    RINGO_OFFER = "ringo_offer"
    CAPTURE = "capture"
    INSERT_PLACEMENT = "insert_placement"


def context_for(view: GameView, seat_id: str) -> PhaseContext | None:
    """The decision seat_id owes in this view, or None if it owes nothing."""
    if view.winner is not None:
        return None
    if view.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
        if view.pending_capture and view.pending_capture.owner_id == seat_id:
            return PhaseContext.CAPTURE
        return None
    if view.current_player_id != seat_id:
        return None
    if view.turn_phase == TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
        return PhaseContext.TURN
    if view.turn_phase == TurnPhase.RINGO_CHECK:
        return PhaseContext.RINGO_OFFER
    if view.turn_phase == TurnPhase.PROCESSING_DRAW:
        return PhaseContext.INSERT_PLACEMENT
    return None


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The intent to submit
    - Explanation (for logs/debugging)
    - How many options were weighed and the winning score
    """
    action: Action
    explanation: str = ""
    confidence: float = 1.0

    # Evaluation details (for debugging)
    evaluated_actions: int = 0
    best_score: float = 0.0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a bot selects intents.
    Implementations range from reflexive rules to determinized search.
    """

    difficulty: Difficulty

    @abstractmethod
    def decide(
        self,
        view: GameView,
        seat_id: str,
        context: PhaseContext,
    ) -> BotDecision:
        """
        Choose an intent.

        Args:
            view: The seat's projection of the game
            seat_id: The seat being played
            context: Which decision is owed

        Returns:
            BotDecision with the intent to submit
        """
        pass

    def observe(self, view: GameView) -> None:
        """Called with the seat's view after every applied intent."""

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


def create_policy(
    difficulty: Difficulty | str,
    seat_id: str | None = None,
    seed: int | None = None,
    search_config: SearchConfig | None = None,
) -> BotPolicy:
    """Build the strategy for one bot seat."""
    from .heuristic import ReflexivePolicy, HeuristicPolicy, StrategicPolicy
    from .search import SearchPolicy

    difficulty = Difficulty.parse(difficulty)
    if difficulty == Difficulty.EASY:
        return ReflexivePolicy(seed=seed)
    if difficulty == Difficulty.MEDIUM:
        return HeuristicPolicy()
    if difficulty == Difficulty.HARD:
        return StrategicPolicy(seed=seed)
    return SearchPolicy(seat_id=seat_id, seed=seed, config=search_config)


def decide(
    view: GameView,
    seat_id: str,
    difficulty: Difficulty | str,
    context: PhaseContext | None = None,
    seed: int | None = None,
) -> Action:
    """
    One-shot decision for a seat.

    Builds a fresh policy each call; the search tier therefore starts
    from a belief formed from this view alone.
    """
    context = context or context_for(view, seat_id)
    if context is None:
        raise ValueError(f"Seat {seat_id} has no decision to make")
    policy = create_policy(difficulty, seat_id=seat_id, seed=seed)
    policy.observe(view)
    return policy.decide(view, seat_id, context).action
