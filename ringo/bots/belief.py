"""
Belief State - What one seat believes about the cards it cannot see.

The belief belongs to a single bot seat in a single game and is dropped
with that game. It keeps:
- the set of cards not yet visible to the seat
- cards an opponent is known to hold (taken publicly from a capture)
- per-opponent value weights, lowered for values an opponent seemed
  unable to play

sample_world() turns the belief into one concrete GameState (a
determinization) that the search can play forward with the real reducer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence
import logging
import random

from ..engine_core.cards import Card, candidate_values, full_card_set, MIN_VALUE, MAX_VALUE
from ..engine_core.hand import Hand
from ..engine_core.projection import GameView
from ..engine_core.state import (
    GameState, PlayerState, TurnPhase, DRAWN_CARD_PHASES,
)
from ..engine_core.validation import find_ringo_opportunity

logger = logging.getLogger(__name__)


DRAW_EVIDENCE_DECAY = 0.85
MIN_VALUE_WEIGHT = 0.2


def weighted_sample_without_replacement(
    items: Sequence[Card],
    weights: Sequence[float],
    sample_size: int,
    rng: random.Random,
) -> list[Card]:
    if sample_size <= 0 or not items:
        return []
    if sample_size >= len(items):
        result = list(items)
        rng.shuffle(result)
        return result

    remaining_items = list(items)
    remaining_weights = list(weights)
    selected: list[Card] = []

    for _ in range(sample_size):
        total_weight = float(sum(remaining_weights))
        if total_weight <= 1e-12:
            idx = rng.randrange(len(remaining_items))
        else:
            r = rng.random() * total_weight
            acc = 0.0
            idx = len(remaining_weights) - 1
            for i, w in enumerate(remaining_weights):
                acc += w
                if r <= acc:
                    idx = i
                    break
        selected.append(remaining_items.pop(idx))
        remaining_weights.pop(idx)

    return selected


def _default_weights() -> dict[int, float]:
    return {value: 1.0 for value in range(MIN_VALUE, MAX_VALUE + 1)}


@dataclass
class BeliefState:
    """Card-counting memory for one seat."""
    seat_id: str
    special_cards: bool = False
    known_holdings: dict[str, set[int]] = field(default_factory=dict)
    value_weights: dict[str, dict[int, float]] = field(default_factory=dict)
    game_id: str | None = None
    last_view: GameView | None = None

    def snapshot(self) -> BeliefState:
        """Independent copy, safe to sample from while this one keeps observing."""
        return BeliefState(
            seat_id=self.seat_id,
            special_cards=self.special_cards,
            known_holdings={k: set(v) for k, v in self.known_holdings.items()},
            value_weights={k: dict(v) for k, v in self.value_weights.items()},
            game_id=self.game_id,
            last_view=self.last_view,
        )

    def reset(self, view: GameView) -> None:
        self.special_cards = view.settings.special_cards
        self.game_id = view.game_id
        self.known_holdings = {s.player_id: set() for s in view.opponents()}
        self.value_weights = {s.player_id: _default_weights() for s in view.opponents()}
        self.last_view = None

    def observe(self, view: GameView) -> None:
        """Update the belief from the seat's latest view."""
        if view.game_id != self.game_id:
            self.reset(view)
        prev = self.last_view
        if prev is not None and view.version > prev.version:
            self._track_captures(prev, view)
            self._track_plays(view)
            self._track_draws(prev, view)
        self._drop_visible_holdings(view)
        self.last_view = view

    def _track_captures(self, prev: GameView, view: GameView) -> None:
        """Cards that left a pending capture without being discarded went to its owner."""
        pending = prev.pending_capture
        if pending is None or pending.owner_id == self.seat_id:
            return
        still_pending = {c.card_id for c in view.pending_capture.cards} if view.pending_capture else set()
        discarded = {c.card_id for c in view.discard_pile}
        for card in pending.cards:
            if card.card_id not in still_pending and card.card_id not in discarded:
                self.known_holdings.setdefault(pending.owner_id, set()).add(card.card_id)

    def _track_plays(self, view: GameView) -> None:
        combo = view.current_combo
        if combo is None or combo.owner_id == self.seat_id:
            return
        played = {c.card_id for c in combo.cards}
        self.known_holdings.get(combo.owner_id, set()).difference_update(played)

    def _track_draws(self, prev: GameView, view: GameView) -> None:
        """An opponent who drew instead of beating probably lacks higher values."""
        mover = prev.current_player_id
        if mover == self.seat_id or prev.current_combo is None:
            return
        if prev.turn_phase != TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
            return
        if view.turn_phase not in DRAWN_CARD_PHASES and view.draw_pile_count >= prev.draw_pile_count:
            return
        weights = self.value_weights.setdefault(mover, _default_weights())
        for value in weights:
            if value > prev.current_combo.value:
                weights[value] = max(MIN_VALUE_WEIGHT, weights[value] * DRAW_EVIDENCE_DECAY)

    def _drop_visible_holdings(self, view: GameView) -> None:
        visible = self._visible_ids(view)
        for seat in view.opponents():
            held = self.known_holdings.setdefault(seat.player_id, set())
            held.difference_update(visible)
            if len(held) > seat.hand_count:
                # cards moved privately (special effects); the memory is stale
                logger.debug("Dropping stale holdings for %s", seat.player_id)
                held.clear()

    def _visible_ids(self, view: GameView) -> set[int]:
        visible = {c.card_id for c in view.hand}
        visible.update(c.card_id for c in view.discard_pile)
        if view.current_combo:
            visible.update(c.card_id for c in view.current_combo.cards)
        if view.pending_capture:
            visible.update(c.card_id for c in view.pending_capture.cards)
        if view.drawn_card:
            visible.add(view.drawn_card.card_id)
        return visible

    def unseen_cards(self, view: GameView) -> list[Card]:
        """Cards whose location this seat cannot see, in id order."""
        visible = self._visible_ids(view)
        return [c for c in full_card_set(view.settings.special_cards) if c.card_id not in visible]

    def card_weight(self, seat_id: str, card: Card) -> float:
        weights = self.value_weights.get(seat_id)
        values = candidate_values(card)
        if not weights or not values:
            return 1.0
        return max(weights.get(v, 1.0) for v in values)

    # =========================================================================
    # Determinization
    # =========================================================================

    def sample_world(self, view: GameView, rng: random.Random) -> GameState:
        """
        Build one fully specified GameState consistent with the view.

        Opponent hands get their known holdings first, then weighted samples
        of the unseen plain cards; another seat's drawn card and the draw
        pile take what is left.
        """
        pool = self.unseen_cards(view)
        pool_ids = {c.card_id for c in pool}
        other_drawer = (
            view.turn_phase in DRAWN_CARD_PHASES and view.current_player_id != self.seat_id
        )
        needed = sum(s.hand_count for s in view.opponents()) + view.draw_pile_count + int(other_drawer)
        if needed != len(pool):
            raise ValueError(
                f"Belief for {self.seat_id} is inconsistent: {len(pool)} unseen cards "
                f"for {needed} hidden slots"
            )

        by_id = {c.card_id: c for c in pool}
        hands: dict[str, list[Card]] = {}
        taken: set[int] = set()
        for seat in view.opponents():
            known = sorted(
                cid for cid in self.known_holdings.get(seat.player_id, ())
                if cid in pool_ids and cid not in taken
            )
            hands[seat.player_id] = [by_id[cid] for cid in known[:seat.hand_count]]
            taken.update(c.card_id for c in hands[seat.player_id])

        for seat in view.opponents():
            need = seat.hand_count - len(hands[seat.player_id])
            candidates = [c for c in pool if c.card_id not in taken and not c.is_special]
            weights = [self.card_weight(seat.player_id, c) for c in candidates]
            chosen = weighted_sample_without_replacement(candidates, weights, need, rng)
            hands[seat.player_id].extend(chosen)
            taken.update(c.card_id for c in chosen)
            rng.shuffle(hands[seat.player_id])

        rest = [c for c in pool if c.card_id not in taken]
        rng.shuffle(rest)
        drawn_card = view.drawn_card
        opportunity = view.ringo_opportunity
        if other_drawer:
            drawn_card = rest.pop()
            drawer_hand = hands[view.current_player_id]
            opportunity = None
            if view.turn_phase == TurnPhase.RINGO_CHECK:
                opportunity = find_ringo_opportunity(drawer_hand, drawn_card, view.current_combo)

        players = tuple(
            PlayerState(
                player_id=seat.player_id,
                name=seat.name,
                is_bot=seat.is_bot,
                hand=view.hand if seat.player_id == self.seat_id else Hand.of(hands[seat.player_id]),
            )
            for seat in view.seats
        )
        ids = [s.player_id for s in view.seats]
        turn_phase = view.turn_phase
        if turn_phase == TurnPhase.RINGO_CHECK and opportunity is None:
            turn_phase = TurnPhase.PROCESSING_DRAW

        return GameState(
            game_id=view.game_id,
            players=players,
            settings=view.settings,
            status=view.status,
            turn_phase=turn_phase,
            current_player_index=ids.index(view.current_player_id),
            current_combo=view.current_combo,
            drawn_card=drawn_card,
            ringo_opportunity=opportunity,
            pending_capture=view.pending_capture,
            draw_pile=tuple(rest),
            discard_pile=view.discard_pile,
            winner=view.winner,
            skip_next=view.skip_next,
            action_count=view.version,
            random_seed=rng.randrange(2**32),
        )
