"""
Projection - The read-only, per-viewer view of a game.

A viewer sees the public table and their own hand. Other hands, the
contents of the draw pile and another seat's drawn card are never
included. Bots decide from this same view.
"""

from __future__ import annotations
from dataclasses import dataclass

from .cards import Card
from .hand import Hand
from .state import GameState, GameStatus, TurnPhase, Combo, PendingCapture, RoundSettings
from .validation import RingoOpportunity


@dataclass(frozen=True)
class SeatView:
    player_id: str
    name: str
    is_bot: bool
    hand_count: int


@dataclass(frozen=True)
class GameView:
    """What one seat is allowed to know about a game."""
    game_id: str
    viewer_id: str
    status: GameStatus
    turn_phase: TurnPhase
    current_player_id: str
    seats: tuple[SeatView, ...]
    hand: Hand
    current_combo: Combo | None
    pending_capture: PendingCapture | None
    draw_pile_count: int
    discard_pile: tuple[Card, ...]
    drawn_card: Card | None
    ringo_opportunity: RingoOpportunity | None
    winner: str | None
    version: int
    settings: RoundSettings
    skip_next: bool = False

    @property
    def is_my_turn(self) -> bool:
        return self.current_player_id == self.viewer_id

    def seat(self, player_id: str) -> SeatView | None:
        for seat in self.seats:
            if seat.player_id == player_id:
                return seat
        return None

    def opponents(self) -> list[SeatView]:
        return [s for s in self.seats if s.player_id != self.viewer_id]

    def next_seat(self, player_id: str | None = None) -> SeatView:
        """Seat that acts after player_id (default: the viewer)."""
        player_id = player_id or self.viewer_id
        ids = [s.player_id for s in self.seats]
        return self.seats[(ids.index(player_id) + 1) % len(self.seats)]

    def min_opponent_count(self) -> int:
        counts = [s.hand_count for s in self.opponents()]
        return min(counts) if counts else 0

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "viewer_id": self.viewer_id,
            "status": self.status.value,
            "turn_phase": self.turn_phase.value,
            "current_player_id": self.current_player_id,
            "players": [
                {
                    "player_id": s.player_id,
                    "name": s.name,
                    "is_bot": s.is_bot,
                    "hand_count": s.hand_count,
                }
                for s in self.seats
            ],
            "hand": [c.to_dict() for c in self.hand],
            "current_combo": self.current_combo.to_dict() if self.current_combo else None,
            "pending_capture": {
                "owner_id": self.pending_capture.owner_id,
                "cards": [c.to_dict() for c in self.pending_capture.cards],
            } if self.pending_capture else None,
            "draw_pile_count": self.draw_pile_count,
            "discard_pile": [c.to_dict() for c in self.discard_pile],
            "drawn_card": self.drawn_card.to_dict() if self.drawn_card else None,
            "ringo_opportunity": (
                self.ringo_opportunity.to_dict() if self.ringo_opportunity else None
            ),
            "winner": self.winner,
            "version": self.version,
            "settings": self.settings.to_dict(),
            "skip_next": self.skip_next,
        }


def project_state(state: GameState, viewer_id: str) -> GameView:
    """Build the view of state that viewer_id is entitled to."""
    viewer = state.get_player(viewer_id)
    is_drawer = (
        state.drawn_card is not None
        and state.current_player.player_id == viewer_id
    )
    return GameView(
        game_id=state.game_id,
        viewer_id=viewer_id,
        status=state.status,
        turn_phase=state.turn_phase,
        current_player_id=state.current_player.player_id,
        seats=tuple(
            SeatView(
                player_id=p.player_id,
                name=p.name,
                is_bot=p.is_bot,
                hand_count=len(p.hand),
            )
            for p in state.players
        ),
        hand=viewer.hand if viewer else Hand(),
        current_combo=state.current_combo,
        pending_capture=state.pending_capture,
        draw_pile_count=len(state.draw_pile),
        discard_pile=state.discard_pile,
        drawn_card=state.drawn_card if is_drawer else None,
        ringo_opportunity=state.ringo_opportunity if is_drawer else None,
        winner=state.winner,
        version=state.action_count,
        settings=state.settings,
        skip_next=state.skip_next,
    )
