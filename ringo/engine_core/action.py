"""
Action System - Intents, payloads, and results.

An Action is one intent from one seat: the same shape whether it comes
from a human client or a bot. All state changes flow through the reducer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Kinds of intent a seat can submit."""
    PLAY = "play"
    DRAW = "draw"
    RINGO = "ringo"
    INSERT_DRAWN = "insert_drawn"
    DISCARD_DRAWN = "discard_drawn"
    USE_SPECIAL = "use_special"
    CAPTURE = "capture"


class CaptureChoice(Enum):
    """What the new combo owner does with the beaten combo."""
    DISCARD_ALL = "discard_all"
    INSERT_ONE = "insert_one"
    INSERT_ALL = "insert_all"


@dataclass(frozen=True)
class ActionPayload:
    """
    Parameters of an intent.

    Different action types use different fields; the reducer checks that
    the ones it needs are present.
    """
    player_id: str
    indices: tuple[int, ...] = ()
    split_resolutions: dict[int, int] = field(default_factory=dict)
    auto_resolve: bool = True
    position: int | None = None
    card_id: int | None = None
    capture_choice: CaptureChoice | None = None
    target_player_id: str | None = None


@dataclass(frozen=True)
class Action:
    """A complete intent to be applied to the game state."""
    action_type: ActionType
    payload: ActionPayload

    @property
    def player_id(self) -> str:
        return self.payload.player_id

    @classmethod
    def play(
        cls,
        player_id: str,
        indices,
        split_resolutions: dict[int, int] | None = None,
        auto_resolve: bool = True,
    ) -> Action:
        """Factory for play action."""
        return cls(
            action_type=ActionType.PLAY,
            payload=ActionPayload(
                player_id=player_id,
                indices=tuple(indices),
                split_resolutions=dict(split_resolutions or {}),
                auto_resolve=auto_resolve,
            ),
        )

    @classmethod
    def draw(cls, player_id: str) -> Action:
        """Factory for draw action."""
        return cls(action_type=ActionType.DRAW, payload=ActionPayload(player_id=player_id))

    @classmethod
    def ringo(
        cls,
        player_id: str,
        insert_position: int,
        indices,
        split_resolutions: dict[int, int] | None = None,
    ) -> Action:
        """Factory for RINGO; indices are post-splice."""
        return cls(
            action_type=ActionType.RINGO,
            payload=ActionPayload(
                player_id=player_id,
                indices=tuple(indices),
                position=insert_position,
                split_resolutions=dict(split_resolutions or {}),
            ),
        )

    @classmethod
    def insert_drawn(cls, player_id: str, position: int) -> Action:
        return cls(
            action_type=ActionType.INSERT_DRAWN,
            payload=ActionPayload(player_id=player_id, position=position),
        )

    @classmethod
    def discard_drawn(cls, player_id: str) -> Action:
        return cls(action_type=ActionType.DISCARD_DRAWN, payload=ActionPayload(player_id=player_id))

    @classmethod
    def use_special(cls, player_id: str, target_player_id: str | None = None) -> Action:
        return cls(
            action_type=ActionType.USE_SPECIAL,
            payload=ActionPayload(player_id=player_id, target_player_id=target_player_id),
        )

    @classmethod
    def capture(
        cls,
        player_id: str,
        choice: CaptureChoice,
        card_id: int | None = None,
        position: int | None = None,
    ) -> Action:
        """Factory for a capture decision."""
        return cls(
            action_type=ActionType.CAPTURE,
            payload=ActionPayload(
                player_id=player_id,
                capture_choice=choice,
                card_id=card_id,
                position=position,
            ),
        )

    def describe(self) -> str:
        p = self.payload
        if self.action_type == ActionType.PLAY:
            return f"play {list(p.indices)}"
        if self.action_type == ActionType.RINGO:
            return f"ringo at {p.position} {list(p.indices)}"
        if self.action_type == ActionType.INSERT_DRAWN:
            return f"insert drawn at {p.position}"
        if self.action_type == ActionType.CAPTURE:
            extra = f" card={p.card_id}" if p.card_id is not None else ""
            pos = f" at {p.position}" if p.position is not None else ""
            return f"capture {p.capture_choice.value}{extra}{pos}"
        if self.action_type == ActionType.USE_SPECIAL and p.target_player_id:
            return f"use special on {p.target_player_id}"
        return self.action_type.value


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Error and error code (if failed)
    - Human-readable changes, and a payload only the actor may see
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None
    error_details: dict[str, Any] = field(default_factory=dict)

    state_changes: list[str] = field(default_factory=list)
    private_payload: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code, error_details=details or {})

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        private_payload: dict[str, Any] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            private_payload=private_payload,
        )
