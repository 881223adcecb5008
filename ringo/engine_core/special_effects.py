"""
Special card effects (optional rule).

apply_special_effect() performs the effect only. The reducer removes the
special card from play and advances the turn afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .cards import SpecialEffect
from .errors import InvalidSelection
from .hand import Hand
from .state import GameState


PEEK_DRAW_COUNT = 3


@dataclass
class EffectOutcome:
    state: GameState
    changes: list[str] = field(default_factory=list)
    private_payload: dict[str, Any] | None = None


def apply_special_effect(
    state: GameState,
    actor_id: str,
    effect: SpecialEffect,
    target_id: str | None = None,
) -> EffectOutcome:
    """Apply effect for actor_id; raises InvalidSelection on a bad target."""
    actor = state.get_player(actor_id)
    target = None
    if effect.needs_target:
        if not target_id:
            raise InvalidSelection("This effect requires a target player")
        target = state.get_player(target_id)
        if target is None:
            raise InvalidSelection(f"Target player {target_id} not found")
        if target.player_id == actor_id:
            raise InvalidSelection("You cannot target yourself")

    rng = state.rng(effect.value)
    payload: dict[str, Any] = {"effect": effect.value}

    if effect == SpecialEffect.PEEK_HAND:
        payload.update(target_id=target.player_id, hand=[c.to_dict() for c in target.hand])
        return EffectOutcome(state, [f"{actor.name} peeked at {target.name}'s hand"], payload)

    if effect == SpecialEffect.GIVE_RANDOM:
        if actor.hand.is_empty:
            raise InvalidSelection("You have no cards to give")
        card = actor.hand[rng.randrange(len(actor.hand))]
        new_state = state.with_player(actor.with_hand(actor.hand.remove_card(card.card_id)))
        new_state = new_state.with_player(target.with_hand(target.hand.append(card)))
        payload.update(target_id=target.player_id, card=card.to_dict())
        return EffectOutcome(new_state, [f"{actor.name} gave a card to {target.name}"], payload)

    if effect == SpecialEffect.STEAL_RANDOM:
        if target.hand.is_empty:
            raise InvalidSelection("Target has no cards to steal")
        card = target.hand[rng.randrange(len(target.hand))]
        new_state = state.with_player(target.with_hand(target.hand.remove_card(card.card_id)))
        new_state = new_state.with_player(actor.with_hand(actor.hand.append(card)))
        payload.update(target_id=target.player_id, card=card.to_dict())
        return EffectOutcome(new_state, [f"{actor.name} stole a card from {target.name}"], payload)

    if effect == SpecialEffect.DRAW_TWO:
        new_state, drawn = state.draw_into_hand(actor_id, 2)
        payload.update(cards=[c.to_dict() for c in drawn])
        return EffectOutcome(new_state, [f"{actor.name} drew {len(drawn)} cards"], payload)

    if effect == SpecialEffect.PEEK_DRAW:
        new_state = state.with_refilled_draw_pile()
        top = list(reversed(new_state.draw_pile[-PEEK_DRAW_COUNT:]))
        payload.update(cards=[c.to_dict() for c in top])
        return EffectOutcome(new_state, [f"{actor.name} peeked at the draw pile"], payload)

    if effect == SpecialEffect.SKIP_NEXT:
        skipped = state.players[state.next_index()]
        payload.update(skipped_id=skipped.player_id)
        return EffectOutcome(
            state._copy_with(skip_next=True),
            [f"{skipped.name} will be skipped"],
            payload,
        )

    if effect == SpecialEffect.SWAP_HAND:
        new_state = state.with_player(actor.with_hand(target.hand))
        new_state = new_state.with_player(target.with_hand(actor.hand))
        payload.update(target_id=target.player_id)
        return EffectOutcome(new_state, [f"{actor.name} swapped hands with {target.name}"], payload)

    if effect == SpecialEffect.DISCARD_DRAW:
        count = len(actor.hand)
        new_state = state._copy_with(discard_pile=state.discard_pile + actor.hand.cards)
        new_state = new_state.with_player(actor.with_hand(Hand()))
        new_state, drawn = new_state.draw_into_hand(actor_id, count)
        payload.update(cards=[c.to_dict() for c in drawn])
        return EffectOutcome(new_state, [f"{actor.name} discarded and redrew {len(drawn)} cards"], payload)

    raise InvalidSelection(f"Effect {effect.value} not implemented")
