"""
Action Generator - Generates all legal intents for a seat.

The action generator is used by:
1. Clients, through the engine_core exports, to show available actions
2. Tests (every generated intent must be accepted by the reducer)

Bots build their candidates from the seat projection instead.

Design: Generates Action objects, not just action types.
This ensures all generated actions are fully specified.
"""

from __future__ import annotations
from dataclasses import dataclass

from .action import Action, CaptureChoice
from .state import GameState, GameStatus, TurnPhase
from .validation import find_valid_plays


@dataclass
class ActionGenerator:
    """
    Generates legal intents for a seat in a game state.

    With include_all_positions=False, drawn-card and capture insertions are
    offered at the hand's ends only, which keeps the list short for callers
    that pick positions themselves.
    """
    include_all_positions: bool = True

    def generate(self, state: GameState, player_id: str | None = None) -> list[Action]:
        """Generate every intent the seat may send right now."""
        if state.status != GameStatus.PLAYING:
            return []

        if state.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            owner = state.pending_capture.owner_id
            if player_id is not None and player_id != owner:
                return []
            return self._generate_capture(state, owner)

        current = state.current_player
        if player_id is not None and player_id != current.player_id:
            return []

        if state.turn_phase == TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
            actions = [
                Action.play(current.player_id, play.indices)
                for play in find_valid_plays(current.hand, state.current_combo)
            ]
            actions.append(Action.draw(current.player_id))
            return actions

        return self._generate_drawn(state, current.player_id)

    def _positions(self, hand_size: int) -> list[int]:
        if self.include_all_positions:
            return list(range(hand_size + 1))
        return sorted({0, hand_size})

    def _generate_drawn(self, state: GameState, player_id: str) -> list[Action]:
        player = state.get_player(player_id)
        card = state.drawn_card
        actions = []
        if card.is_special:
            if card.special.needs_target:
                for opponent in state.opponents_of(player_id):
                    actions.append(Action.use_special(player_id, opponent.player_id))
            else:
                actions.append(Action.use_special(player_id))
            actions.append(Action.discard_drawn(player_id))
            return actions

        opportunity = state.ringo_opportunity
        if state.turn_phase == TurnPhase.RINGO_CHECK and opportunity is not None:
            actions.append(Action.ringo(
                player_id,
                opportunity.insert_position,
                opportunity.combo_indices,
                opportunity.resolutions,
            ))
        for pos in self._positions(len(player.hand)):
            actions.append(Action.insert_drawn(player_id, pos))
        actions.append(Action.discard_drawn(player_id))
        return actions

    def _generate_capture(self, state: GameState, owner_id: str) -> list[Action]:
        player = state.get_player(owner_id)
        actions = [Action.capture(owner_id, CaptureChoice.DISCARD_ALL)]
        for pos in self._positions(len(player.hand)):
            actions.append(Action.capture(owner_id, CaptureChoice.INSERT_ALL, position=pos))
        for card in state.pending_capture.cards:
            for pos in self._positions(len(player.hand)):
                actions.append(Action.capture(
                    owner_id, CaptureChoice.INSERT_ONE, card_id=card.card_id, position=pos,
                ))
        return actions


def legal_actions(state: GameState, player_id: str | None = None) -> list[Action]:
    """Convenience function to generate legal intents."""
    return ActionGenerator().generate(state, player_id)
