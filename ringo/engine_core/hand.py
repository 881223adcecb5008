"""
Hand Analysis - The ordered hand value type and pure scoring helpers.

A Hand is immutable: insertion, run removal and append all return a new
Hand. Bots rely on this to splice hypothetical cards in and out cheaply.

The scoring helpers (messiness, insertion scores, hand cost) are used by
the AI tiers only. Legality is decided by the validator.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from .cards import Card, candidate_values


@dataclass(frozen=True)
class Hand:
    """An ordered sequence of cards."""
    cards: tuple[Card, ...] = ()

    @classmethod
    def of(cls, cards: Iterable[Card]) -> Hand:
        return cls(cards=tuple(cards))

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __getitem__(self, index: int) -> Card:
        return self.cards[index]

    @property
    def count(self) -> int:
        return len(self.cards)

    @property
    def is_empty(self) -> bool:
        return len(self.cards) == 0

    def insert(self, index: int, card: Card) -> Hand:
        """Return new hand with card inserted at index (clamped to [0, len])."""
        index = max(0, min(index, len(self.cards)))
        return Hand(cards=self.cards[:index] + (card,) + self.cards[index:])

    def insert_many(self, index: int, cards: Sequence[Card]) -> Hand:
        """Return new hand with cards inserted as a contiguous block."""
        index = max(0, min(index, len(self.cards)))
        return Hand(cards=self.cards[:index] + tuple(cards) + self.cards[index:])

    def append(self, card: Card) -> Hand:
        return Hand(cards=self.cards + (card,))

    def remove_run(self, indices: Sequence[int]) -> tuple[Hand, tuple[Card, ...]]:
        """
        Remove a contiguous run of positions.

        Returns the new hand and the removed cards in hand order.
        Callers validate contiguity first.
        """
        start, end = min(indices), max(indices)
        removed = self.cards[start:end + 1]
        return Hand(cards=self.cards[:start] + self.cards[end + 1:]), removed

    def remove_card(self, card_id: int) -> Hand:
        return Hand(cards=tuple(c for c in self.cards if c.card_id != card_id))

    def find(self, card_id: int) -> int | None:
        for idx, card in enumerate(self.cards):
            if card.card_id == card_id:
                return idx
        return None

    def labels(self) -> list[str]:
        return [card.label() for card in self.cards]


@dataclass(frozen=True)
class Group:
    """A maximal run of neighbouring cards that pairwise share a value."""
    indices: tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.indices)

    @property
    def start(self) -> int:
        return self.indices[0]

    @property
    def end(self) -> int:
        return self.indices[-1]


def adjacent_groups(hand: Sequence[Card]) -> list[Group]:
    """
    Partition the hand into maximal contiguous runs where each consecutive
    pair shares at least one candidate value.
    """
    if len(hand) == 0:
        return []

    groups = []
    current = [0]
    for i in range(1, len(hand)):
        if candidate_values(hand[i - 1]) & candidate_values(hand[i]):
            current.append(i)
        else:
            groups.append(Group(indices=tuple(current)))
            current = [i]
    groups.append(Group(indices=tuple(current)))
    return groups


def group_value(hand: Sequence[Card], indices: Sequence[int]) -> int:
    """Highest value shared by every card at the given positions (0 if none)."""
    shared = None
    for idx in indices:
        values = candidate_values(hand[idx])
        shared = values if shared is None else shared & values
    return max(shared) if shared else 0


def _value_positions(hand: Sequence[Card]) -> dict[int, list[int]]:
    positions: dict[int, list[int]] = {}
    for idx, card in enumerate(hand):
        for value in candidate_values(card):
            positions.setdefault(value, []).append(idx)
    return positions


def _gap_total(hand: Sequence[Card]) -> int:
    """Total number of cards sitting between occurrences of the same value."""
    total = 0
    for positions in _value_positions(hand).values():
        for prev, cur in zip(positions, positions[1:]):
            total += cur - prev - 1
    return total


def messiness(hand: Sequence[Card]) -> float:
    """
    Fragmentation score: (groups - 1) + 0.5 per card separating two
    occurrences of the same value. Lower is better.
    """
    if len(hand) == 0:
        return 0.0
    return (len(adjacent_groups(hand)) - 1) + 0.5 * _gap_total(hand)


def estimate_turns_to_empty(hand: Sequence[Card]) -> float:
    """Rough number of plays needed to shed the hand."""
    if len(hand) == 0:
        return 0.0
    return len(adjacent_groups(hand)) + 0.5 * messiness(hand)


def insertion_scores(
    hand: Sequence[Card],
    card: Card,
    use_messiness: bool = True,
) -> list[float]:
    """
    Score each of the len(hand)+1 insertion points for a card.

    +10 per value-adjacent neighbour; with use_messiness, plus five times
    the messiness reduction the insertion causes.
    """
    values = candidate_values(card)
    cards = tuple(hand)
    base_mess = messiness(cards) if use_messiness else 0.0
    scores = []
    for pos in range(len(cards) + 1):
        score = 0.0
        if pos > 0 and values & candidate_values(cards[pos - 1]):
            score += 10
        if pos < len(cards) and values & candidate_values(cards[pos]):
            score += 10
        if use_messiness:
            trial = cards[:pos] + (card,) + cards[pos:]
            score += (base_mess - messiness(trial)) * 5
        scores.append(score)
    return scores


def best_insert_position(
    hand: Sequence[Card],
    card: Card,
    use_messiness: bool = True,
) -> int:
    """Highest-scoring insertion point; ties go to the lowest index."""
    scores = insertion_scores(hand, card, use_messiness)
    best_pos = 0
    for pos, score in enumerate(scores):
        if score > scores[best_pos]:
            best_pos = pos
    return best_pos


def hand_cost(hand: Sequence[Card]) -> float:
    """
    Structural cost of a hand (lower is better).

    Three points per card sitting between two occurrences of a value, minus
    the sum of squared group sizes, minus two per split card bridging into
    a neighbouring group, plus one per high (7+) singleton stranded at an
    end of the hand.
    """
    if len(hand) == 0:
        return 0.0

    groups = adjacent_groups(hand)
    group_of = {}
    for group in groups:
        for idx in group.indices:
            group_of[idx] = group

    groups_score = sum(group.size * group.size for group in groups)
    blockers_penalty = 3 * _gap_total(hand)

    edge_penalty = 0
    for idx in {0, len(hand) - 1}:
        values = candidate_values(hand[idx])
        if values and max(values) >= 7 and group_of[idx].size == 1:
            edge_penalty += 1

    flex_bonus = 0
    for idx, card in enumerate(hand):
        if not card.is_split:
            continue
        if group_of[idx].size > 1:
            flex_bonus += 2

    return blockers_penalty - groups_score - flex_bonus + edge_penalty


def lowest_cost_position(hand: Sequence[Card], card: Card) -> int:
    """Insertion point minimising hand_cost; ties go to the lowest index."""
    cards = tuple(hand)
    best_pos, best_cost = len(cards), float("inf")
    for pos in range(len(cards) + 1):
        cost = hand_cost(cards[:pos] + (card,) + cards[pos:])
        if cost < best_cost:
            best_cost, best_pos = cost, pos
    return best_pos
