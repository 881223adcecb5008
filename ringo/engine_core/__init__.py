"""
Engine Core - Deterministic game state management for Ringo.

The engine is the runtime that:
1. Builds the deck and deals a round
2. Manages GameState
3. Validates plays and detects RINGO opportunities
4. Applies intents via the reducer
5. Projects per-viewer views of the state
"""

from .cards import Card, SpecialEffect, candidate_values, build_deck, create_deck
from .hand import Hand, adjacent_groups, messiness, best_insert_position
from .errors import (
    RingoError,
    Rejection,
    InvalidSelection,
    IllegalBeat,
    WrongPhase,
    NotYourTurn,
    NotCaptureOwner,
    OpportunityExpired,
    RoomFull,
    NotFound,
    InvariantViolation,
)
from .validation import ValidatedPlay, RingoOpportunity, validate_selection, find_valid_plays, find_ringo_opportunity
from .state import GameState, GameStatus, TurnPhase, PlayerState, Combo, PendingCapture, RoundSettings, create_game_state
from .action import Action, ActionType, ActionPayload, ActionResult, CaptureChoice
from .reducer import Reducer, apply_action
from .action_generator import ActionGenerator, legal_actions
from .projection import GameView, SeatView, project_state

__all__ = [
    "Card",
    "SpecialEffect",
    "candidate_values",
    "build_deck",
    "create_deck",
    "Hand",
    "adjacent_groups",
    "messiness",
    "best_insert_position",
    "RingoError",
    "Rejection",
    "InvalidSelection",
    "IllegalBeat",
    "WrongPhase",
    "NotYourTurn",
    "NotCaptureOwner",
    "OpportunityExpired",
    "RoomFull",
    "NotFound",
    "InvariantViolation",
    "ValidatedPlay",
    "RingoOpportunity",
    "validate_selection",
    "find_valid_plays",
    "find_ringo_opportunity",
    "GameState",
    "GameStatus",
    "TurnPhase",
    "PlayerState",
    "Combo",
    "PendingCapture",
    "RoundSettings",
    "create_game_state",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "CaptureChoice",
    "Reducer",
    "apply_action",
    "ActionGenerator",
    "legal_actions",
    "GameView",
    "SeatView",
    "project_state",
]
