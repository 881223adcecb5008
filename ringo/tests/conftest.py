"""
Pytest fixtures for Ringo tests.
"""

import pytest

from ..engine_core.cards import Card, SpecialEffect, full_card_set
from ..engine_core.hand import Hand
from ..engine_core.reducer import Reducer
from ..engine_core.state import (
    GameState, GameStatus, PlayerState, TurnPhase, Combo, RoundSettings, create_game_state,
)
from ..engine_core.validation import resolve_run


def _matches(card: Card, spec) -> bool:
    if isinstance(spec, int):
        return card.value == spec
    if isinstance(spec, tuple):
        return card.split_values == spec
    return card.special is not None and card.special.value == spec


class CardPool:
    """Hands out concrete cards of the round's card set by value, split pair or effect name."""

    def __init__(self, special_cards: bool = False):
        self.cards = list(full_card_set(special_cards))

    def take(self, spec) -> Card:
        for card in self.cards:
            if _matches(card, spec):
                self.cards.remove(card)
                return card
        raise LookupError(f"No card left for {spec!r}")

    def take_all(self, specs) -> list[Card]:
        return [self.take(spec) for spec in specs]


def build_state(
    hands,
    current: int = 0,
    combo=None,
    draw=(),
    rest="draw",
    special_cards: bool = False,
    seed: int = 7,
    names=None,
) -> GameState:
    """
    Build a PLAYING state with chosen cards.

    Card specs are an int value, a split pair tuple such as (1, 2), or a
    special effect name. `combo` is (owner index, specs); `draw` lists the
    next cards to be drawn, first drawn first. The cards left over go to
    `rest`: "draw", "discard", or a seat index.
    """
    pool = CardPool(special_cards)
    hand_cards = [pool.take_all(specs) for specs in hands]

    table = None
    if combo is not None:
        owner, specs = combo
        cards = tuple(pool.take_all(specs))
        value, resolutions = resolve_run(cards)
        table = Combo(cards=cards, value=value, owner_id=f"p{owner}", resolutions=resolutions)

    top = pool.take_all(draw)
    leftover = list(pool.cards)
    draw_pile = list(reversed(top))
    discard_pile = []
    if rest == "draw":
        draw_pile = leftover + draw_pile
    elif rest == "discard":
        discard_pile = leftover
    else:
        hand_cards[rest].extend(leftover)

    names = names or [f"P{i}" for i in range(len(hands))]
    players = tuple(
        PlayerState(player_id=f"p{i}", name=names[i], is_bot=False, hand=Hand.of(cards))
        for i, cards in enumerate(hand_cards)
    )
    return GameState(
        game_id="test_game",
        players=players,
        settings=RoundSettings(special_cards=special_cards),
        status=GameStatus.PLAYING,
        turn_phase=TurnPhase.WAITING_FOR_PLAY_OR_DRAW,
        current_player_index=current,
        current_combo=table,
        draw_pile=tuple(draw_pile),
        discard_pile=tuple(discard_pile),
        random_seed=seed,
    )


def values(hand) -> list:
    """Labels of a hand, for compact assertions."""
    return [card.label() for card in hand]


@pytest.fixture
def reducer() -> Reducer:
    return Reducer()


@pytest.fixture
def dealt_state() -> GameState:
    """A freshly dealt two-player round."""
    return create_game_state(
        [("p0", "Ana", False), ("p1", "Bot", True)],
        seed=11,
        first_player_id="p0",
        game_id="dealt",
    )


@pytest.fixture
def three_player_state() -> GameState:
    """Three seats with short hands, p0 to act on an empty table."""
    return build_state([[5, 1, 2], [3, 3, 7], [4, 6, 8]])


@pytest.fixture
def special_state() -> GameState:
    """Special cards enabled, p0 about to draw skip_next."""
    return build_state(
        [[2, 2, 6], [3, 4], [5, 7, 8]],
        draw=[SpecialEffect.SKIP_NEXT.value],
        special_cards=True,
    )
