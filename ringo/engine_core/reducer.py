"""
Reducer - The turn state machine.

The reducer is the single point of state mutation.
All state changes must go through apply().

Design principles:
- Pure function: (state, action) -> new_state
- Validates seat and phase before dispatching
- Returns ActionResult with success/failure; a rejected intent never
  touches the state it was given
- Invariant violations are not caught here; they abort the game
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .action import Action, ActionType, ActionResult, CaptureChoice
from .errors import Rejection, InvalidSelection, WrongPhase, NotYourTurn, NotCaptureOwner, OpportunityExpired
from .special_effects import apply_special_effect
from .state import (
    GameState, GameStatus, TurnPhase, Combo, PendingCapture, RingoOffer,
    DRAWN_CARD_PHASES, check_invariants,
)
from .validation import ValidatedPlay, validate_selection, find_ringo_opportunity

logger = logging.getLogger(__name__)


TURN_ACTIONS = frozenset({ActionType.PLAY, ActionType.DRAW})
DRAWN_CARD_ACTIONS = frozenset({
    ActionType.INSERT_DRAWN,
    ActionType.DISCARD_DRAWN,
    ActionType.USE_SPECIAL,
})


@dataclass
class Reducer:
    """
    Reducer applies intents to game state.

    Stateless - all state is in GameState.
    """
    verify_invariants: bool = True

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an intent to the game state.

        Returns ActionResult with new state or a typed rejection.
        """
        try:
            self._validate_action(state, action)
            handler = self._get_handler(action.action_type)
            result = handler(state, action)
        except Rejection as e:
            logger.debug(
                "Rejected %s from %s: %s (%s)",
                action.action_type.value, action.player_id, e.message, e.code,
            )
            return ActionResult.failure(e.message, error_code=e.code, details=e.details)

        new_state = result.new_state._copy_with(action_count=state.action_count + 1)
        if self.verify_invariants:
            check_invariants(new_state)
        result.new_state = new_state
        return result

    def _validate_action(self, state: GameState, action: Action) -> None:
        """Raise a Rejection unless the seat may send this intent now."""
        if state.status == GameStatus.GAME_OVER:
            raise WrongPhase("Game is over - no actions allowed")
        if state.status != GameStatus.PLAYING:
            raise WrongPhase("Round has not started")

        player_id = action.player_id
        if state.get_player(player_id) is None:
            raise NotYourTurn(f"Player {player_id} is not seated")

        if action.action_type == ActionType.RINGO and state.turn_phase != TurnPhase.RINGO_CHECK:
            offer = state.last_ringo_offer
            if offer is not None and offer.player_id == player_id:
                raise OpportunityExpired("The RINGO window has closed")

        if action.action_type == ActionType.CAPTURE:
            if state.turn_phase != TurnPhase.WAITING_FOR_CAPTURE_DECISION:
                raise WrongPhase("No captured cards awaiting a decision")
            if state.pending_capture.owner_id != player_id:
                raise NotCaptureOwner("Only the new combo owner decides on the captured cards")
            return

        if state.current_player.player_id != player_id:
            raise NotYourTurn(f"Not {player_id}'s turn")

        phase = state.turn_phase
        if action.action_type in TURN_ACTIONS:
            if phase != TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
                raise WrongPhase(f"Cannot {action.action_type.value} during {phase.value}")
        elif action.action_type == ActionType.RINGO:
            if phase != TurnPhase.RINGO_CHECK:
                raise WrongPhase("No RINGO opportunity")
        elif action.action_type in DRAWN_CARD_ACTIONS:
            if phase not in DRAWN_CARD_PHASES:
                raise WrongPhase("No drawn card to resolve")

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.PLAY: self._handle_play,
            ActionType.DRAW: self._handle_draw,
            ActionType.RINGO: self._handle_ringo,
            ActionType.INSERT_DRAWN: self._handle_insert_drawn,
            ActionType.DISCARD_DRAWN: self._handle_discard_drawn,
            ActionType.USE_SPECIAL: self._handle_use_special,
            ActionType.CAPTURE: self._handle_capture,
        }
        return handlers[action_type]

    # =========================================================================
    # Handlers
    # =========================================================================

    def _handle_play(self, state: GameState, action: Action) -> ActionResult:
        """Handle play action."""
        player = state.current_player
        payload = action.payload
        play = validate_selection(
            player.hand,
            payload.indices,
            state.current_combo,
            payload.split_resolutions,
            payload.auto_resolve,
        )
        new_hand, _ = player.hand.remove_run(play.indices)
        new_state = state.with_player(player.with_hand(new_hand))
        changes = [f"{player.name} played {_describe_play(play)}"]
        return self._finish_play(new_state, player.player_id, play, changes)

    def _handle_draw(self, state: GameState, action: Action) -> ActionResult:
        """Handle draw action."""
        player = state.current_player
        new_state = state.with_refilled_draw_pile()
        changes = []
        if new_state.draw_pile is not state.draw_pile and new_state.draw_pile:
            changes.append("Discard pile shuffled into the draw pile")

        if not new_state.draw_pile:
            changes.append(f"{player.name} could not draw: draw pile exhausted")
            return self._advance_turn(new_state, changes)

        card = new_state.draw_pile[-1]
        opportunity = find_ringo_opportunity(player.hand, card, new_state.current_combo)
        new_state = new_state._copy_with(
            draw_pile=new_state.draw_pile[:-1],
            drawn_card=card,
            ringo_opportunity=opportunity,
            turn_phase=TurnPhase.RINGO_CHECK if opportunity else TurnPhase.PROCESSING_DRAW,
        )
        if opportunity:
            new_state = new_state._copy_with(
                last_ringo_offer=RingoOffer(player.player_id, state.action_count + 1),
            )
        changes.append(f"{player.name} drew a card")
        return ActionResult.success_with_state(new_state, changes=changes)

    def _handle_ringo(self, state: GameState, action: Action) -> ActionResult:
        """Handle RINGO: splice the drawn card in, then play through it."""
        player = state.current_player
        payload = action.payload
        if payload.position is None:
            raise InvalidSelection("RINGO needs an insert position")
        position = max(0, min(payload.position, len(player.hand)))
        if position not in payload.indices:
            raise InvalidSelection(
                "RINGO must include the drawn card",
                details={"insert_position": position, "indices": list(payload.indices)},
            )

        spliced = player.hand.insert(position, state.drawn_card)
        play = validate_selection(
            spliced,
            payload.indices,
            state.current_combo,
            payload.split_resolutions,
            payload.auto_resolve,
        )
        new_hand, _ = spliced.remove_run(play.indices)
        new_state = state.with_player(player.with_hand(new_hand))._copy_with(
            drawn_card=None,
            ringo_opportunity=None,
        )
        changes = [f"{player.name} called RINGO with {_describe_play(play)}"]
        return self._finish_play(new_state, player.player_id, play, changes)

    def _handle_insert_drawn(self, state: GameState, action: Action) -> ActionResult:
        player = state.current_player
        card = state.drawn_card
        if card.is_special:
            raise InvalidSelection("Special cards cannot be added to a hand")
        position = action.payload.position
        if position is None:
            position = len(player.hand)
        new_state = state.with_player(player.with_hand(player.hand.insert(position, card)))
        new_state = new_state._copy_with(drawn_card=None, ringo_opportunity=None)
        return self._advance_turn(new_state, [f"{player.name} kept the drawn card"])

    def _handle_discard_drawn(self, state: GameState, action: Action) -> ActionResult:
        player = state.current_player
        new_state = state._copy_with(
            discard_pile=state.discard_pile + (state.drawn_card,),
            drawn_card=None,
            ringo_opportunity=None,
        )
        return self._advance_turn(
            new_state, [f"{player.name} discarded {state.drawn_card.label()}"]
        )

    def _handle_use_special(self, state: GameState, action: Action) -> ActionResult:
        player = state.current_player
        card = state.drawn_card
        if not card.is_special:
            raise InvalidSelection("The drawn card is not a special card")

        outcome = apply_special_effect(
            state, player.player_id, card.special, action.payload.target_player_id
        )
        new_state = outcome.state._copy_with(
            discard_pile=outcome.state.discard_pile + (card,),
            drawn_card=None,
            ringo_opportunity=None,
        )
        result = self._advance_turn(new_state, outcome.changes)
        result.private_payload = outcome.private_payload
        return result

    def _handle_capture(self, state: GameState, action: Action) -> ActionResult:
        """Handle the keep/discard decision on a beaten combo."""
        payload = action.payload
        pending = state.pending_capture
        player = state.get_player(pending.owner_id)
        choice = payload.capture_choice

        if choice == CaptureChoice.DISCARD_ALL:
            new_state = state._copy_with(
                discard_pile=state.discard_pile + pending.cards,
                pending_capture=None,
            )
            return self._advance_turn(
                new_state, [f"{player.name} discarded {len(pending.cards)} captured cards"]
            )

        if choice == CaptureChoice.INSERT_ONE:
            if payload.card_id is None:
                raise InvalidSelection("insert_one needs a card id")
            card = pending.find(payload.card_id)
            if card is None:
                raise InvalidSelection(
                    f"Card {payload.card_id} is not among the captured cards",
                    details={"card_id": payload.card_id},
                )
            position = payload.position if payload.position is not None else len(player.hand)
            remaining = pending.without(card.card_id)
            new_state = state.with_player(player.with_hand(player.hand.insert(position, card)))
            changes = [f"{player.name} took a captured {card.label()}"]
            if remaining.cards:
                new_state = new_state._copy_with(pending_capture=remaining)
                return ActionResult.success_with_state(new_state, changes=changes)
            return self._advance_turn(new_state._copy_with(pending_capture=None), changes)

        if choice == CaptureChoice.INSERT_ALL:
            position = payload.position if payload.position is not None else len(player.hand)
            new_hand = player.hand.insert_many(position, pending.cards)
            new_state = state.with_player(player.with_hand(new_hand))._copy_with(pending_capture=None)
            return self._advance_turn(
                new_state, [f"{player.name} took {len(pending.cards)} captured cards"]
            )

        raise InvalidSelection("Capture decision must be discard_all, insert_one or insert_all")

    # =========================================================================
    # Transitions
    # =========================================================================

    def _finish_play(
        self,
        state: GameState,
        player_id: str,
        play: ValidatedPlay,
        changes: list[str],
    ) -> ActionResult:
        """Post-conditions shared by play and RINGO."""
        previous = state.current_combo
        combo = Combo(
            cards=play.cards,
            value=play.value,
            owner_id=player_id,
            resolutions=dict(play.resolutions),
        )
        new_state = state._copy_with(current_combo=combo)

        if new_state.get_player(player_id).hand.is_empty:
            if previous is not None:
                new_state = new_state._copy_with(
                    discard_pile=new_state.discard_pile + previous.cards,
                )
            return ActionResult.success_with_state(
                self._game_over(new_state, player_id, changes), changes=changes
            )

        if previous is not None:
            new_state = new_state._copy_with(
                pending_capture=PendingCapture(owner_id=player_id, cards=previous.cards),
                turn_phase=TurnPhase.WAITING_FOR_CAPTURE_DECISION,
            )
            return ActionResult.success_with_state(new_state, changes=changes)

        return self._advance_turn(new_state, changes)

    def _advance_turn(self, state: GameState, changes: list[str]) -> ActionResult:
        """
        Hand control to the next seat.

        Re-checks the win condition first, then applies any pending skip and
        pile closing.
        """
        mover = state.current_player
        if mover.hand.is_empty:
            return ActionResult.success_with_state(
                self._game_over(state, mover.player_id, changes), changes=changes
            )
        for player in state.players:
            if player.hand.is_empty:
                return ActionResult.success_with_state(
                    self._game_over(state, player.player_id, changes), changes=changes
                )

        passed = [state.next_index()]
        if state.skip_next:
            changes.append(f"{state.players[passed[0]].name} is skipped")
            passed.append(state.next_index(passed[0]))
        next_index = passed[-1]

        new_state = state._copy_with(
            current_player_index=next_index,
            turn_phase=TurnPhase.WAITING_FOR_PLAY_OR_DRAW,
            skip_next=False,
            drawn_card=None,
            ringo_opportunity=None,
        )

        combo = new_state.current_combo
        if combo is not None and any(
            state.players[idx].player_id == combo.owner_id for idx in passed
        ):
            new_state = new_state._copy_with(
                current_combo=None,
                discard_pile=new_state.discard_pile + combo.cards,
            )
            changes.append("Pile closed: the combo went round unbeaten")

        return ActionResult.success_with_state(new_state, changes=changes)

    def _game_over(self, state: GameState, winner_id: str, changes: list[str]) -> GameState:
        winner = state.get_player(winner_id)
        changes.append(f"{winner.name} emptied their hand and wins")
        logger.debug("Game %s won by %s", state.game_id, winner_id)
        return state._copy_with(
            status=GameStatus.GAME_OVER,
            turn_phase=TurnPhase.GAME_OVER,
            winner=winner_id,
            skip_next=False,
        )


def _describe_play(play: ValidatedPlay) -> str:
    noun = "card" if play.size == 1 else "cards"
    return f"{play.size} {noun} of value {play.value}"


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    return Reducer().apply(state, action)
