"""
Card Model - Card identity, candidate values and deck construction.

Three kinds of card exist:
- Plain cards with a single value (1-8)
- Split cards with two candidate values, resolved when played
- Special cards (optional rule) that carry an effect instead of a value

Card ids are assigned before shuffling, so the full card set of a round
can be rebuilt by anyone who knows the round settings.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
import random


MIN_VALUE = 1
MAX_VALUE = 8
COPIES_PER_VALUE = 8
SPLIT_PAIRS = ((1, 2), (3, 4), (5, 6), (7, 8))
COPIES_PER_SPLIT = 2


class SpecialEffect(Enum):
    """Effects carried by special cards."""
    PEEK_HAND = "peek_hand"
    GIVE_RANDOM = "give_random"
    STEAL_RANDOM = "steal_random"
    DRAW_TWO = "draw_two"
    PEEK_DRAW = "peek_draw"
    SKIP_NEXT = "skip_next"
    SWAP_HAND = "swap_hand"
    DISCARD_DRAW = "discard_draw"

    @property
    def needs_target(self) -> bool:
        return self in TARGETED_EFFECTS


TARGETED_EFFECTS = frozenset({
    SpecialEffect.PEEK_HAND,
    SpecialEffect.GIVE_RANDOM,
    SpecialEffect.STEAL_RANDOM,
    SpecialEffect.SWAP_HAND,
})


@dataclass(frozen=True)
class Card:
    """
    An immutable card instance.

    Exactly one of `value`, `split_values` or `special` is set.
    """
    card_id: int
    value: int | None = None
    split_values: tuple[int, int] | None = None
    special: SpecialEffect | None = None

    @property
    def is_split(self) -> bool:
        return self.split_values is not None

    @property
    def is_special(self) -> bool:
        return self.special is not None

    @property
    def candidates(self) -> frozenset[int]:
        return candidate_values(self)

    def label(self) -> str:
        """Short display form: '5', '3/4' or '*swap_hand'."""
        if self.special is not None:
            return f"*{self.special.value}"
        if self.split_values is not None:
            return f"{self.split_values[0]}/{self.split_values[1]}"
        return str(self.value)

    def to_dict(self) -> dict:
        return {
            "card_id": self.card_id,
            "value": self.value,
            "split_values": list(self.split_values) if self.split_values else None,
            "special": self.special.value if self.special else None,
        }


def candidate_values(card: Card) -> frozenset[int]:
    """The set of values a card may take: {value}, {v1, v2}, or empty for specials."""
    if card.split_values is not None:
        return frozenset(card.split_values)
    if card.value is not None:
        return frozenset((card.value,))
    return frozenset()


def shares_value(a: Card, b: Card) -> bool:
    """True if two cards have at least one candidate value in common."""
    return bool(candidate_values(a) & candidate_values(b))


def build_deck(special_cards: bool = False) -> list[Card]:
    """
    Build the unshuffled card set for a round.

    64 plain cards, 8 split cards, and one card per special effect when
    the special-cards rule is enabled.
    """
    cards: list[Card] = []
    next_id = 0
    for value in range(MIN_VALUE, MAX_VALUE + 1):
        for _ in range(COPIES_PER_VALUE):
            cards.append(Card(card_id=next_id, value=value))
            next_id += 1
    for pair in SPLIT_PAIRS:
        for _ in range(COPIES_PER_SPLIT):
            cards.append(Card(card_id=next_id, split_values=pair))
            next_id += 1
    if special_cards:
        for effect in SpecialEffect:
            cards.append(Card(card_id=next_id, special=effect))
            next_id += 1
    return cards


def create_deck(special_cards: bool = False, rng: random.Random | None = None) -> list[Card]:
    """Build and shuffle the deck."""
    deck = build_deck(special_cards)
    (rng or random.Random()).shuffle(deck)
    return deck


def card_index(cards) -> dict[int, Card]:
    """Map card ids to cards."""
    return {card.card_id: card for card in cards}


@lru_cache(maxsize=None)
def full_card_set(special_cards: bool = False) -> tuple[Card, ...]:
    """The unshuffled card set, cached per rule variant."""
    return tuple(build_deck(special_cards))
