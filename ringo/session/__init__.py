"""
Session Module - Manages in-memory Ringo rooms.

A session is one room:
- Created when a host opens it
- Holds the seats, the current round and the win tally
- Drives bot seats through the same submit path as humans
- Destroyed when the last human leaves or it goes stale

Sessions are EPHEMERAL:
- No persistence to database
- Ending a room drops its state and every bot's beliefs
"""

from .manager import SessionManager, Session, SessionState, Seat
from .game_loop import GameLoop, TurnResult, fallback_action

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "Seat",
    "GameLoop",
    "TurnResult",
    "fallback_action",
]
