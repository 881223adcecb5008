"""
Move Validator - Legality of plays, the beat rule and RINGO detection.

All functions here are pure. They never mutate the hand they are given
and are safe to call from any game or thread.

validate_selection() raises a Rejection subclass on failure; the
reducer converts it into a failed ActionResult.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Sequence, TYPE_CHECKING

from .cards import Card, candidate_values
from .errors import InvalidSelection, IllegalBeat

if TYPE_CHECKING:
    from .state import Combo


MAX_RINGO_RUN = 5


@dataclass(frozen=True)
class ValidatedPlay:
    """A legal run together with the value it resolves to."""
    indices: tuple[int, ...]
    cards: tuple[Card, ...]
    value: int
    resolutions: dict[int, int] = field(default_factory=dict, compare=False)

    @property
    def size(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class RingoOpportunity:
    """Where to splice the drawn card and which post-splice run to play."""
    insert_position: int
    combo_indices: tuple[int, ...]
    value: int
    resolutions: dict[int, int] = field(default_factory=dict, compare=False)

    @property
    def size(self) -> int:
        return len(self.combo_indices)

    def to_dict(self) -> dict:
        return {
            "insert_position": self.insert_position,
            "combo_indices": list(self.combo_indices),
            "value": self.value,
            "split_resolutions": dict(self.resolutions),
        }


def check_contiguous(hand: Sequence[Card], indices: Sequence[int]) -> tuple[int, ...]:
    """Sort the selection and make sure it is a contiguous in-bounds run."""
    if not indices:
        raise InvalidSelection("Must play at least one card")
    ordered = tuple(sorted(indices))
    if len(set(ordered)) != len(ordered):
        raise InvalidSelection("Selection contains a repeated index")
    if ordered[0] < 0 or ordered[-1] >= len(hand):
        raise InvalidSelection(
            f"Selection out of range for a hand of {len(hand)} cards",
            details={"indices": list(ordered)},
        )
    for prev, cur in zip(ordered, ordered[1:]):
        if cur != prev + 1:
            raise InvalidSelection(
                "Cards must be adjacent", details={"indices": list(ordered)}
            )
    return ordered


def resolve_run(
    cards: Sequence[Card],
    split_resolutions: Mapping[int, int] | None = None,
    auto_resolve: bool = True,
) -> tuple[int, dict[int, int]]:
    """
    Find the single value a run of cards resolves to.

    Returns (value, resolutions) where resolutions names the value chosen
    for every split card in the run.
    """
    shared = None
    for card in cards:
        values = candidate_values(card)
        shared = values if shared is None else shared & values
    if not shared:
        raise InvalidSelection("Cards cannot resolve to a common value")

    named = {}
    for card in cards:
        if card.is_split and split_resolutions and card.card_id in split_resolutions:
            choice = split_resolutions[card.card_id]
            if choice not in shared:
                raise InvalidSelection(
                    f"Split card {card.label()} cannot be {choice} in this run",
                    details={"card_id": card.card_id, "allowed": sorted(shared)},
                )
            named[card.card_id] = choice

    if len(set(named.values())) > 1:
        raise InvalidSelection("All cards must resolve to the same value")

    if named:
        target = next(iter(named.values()))
    elif len(shared) == 1:
        target = next(iter(shared))
    else:
        target = max(shared)

    if len(shared) > 1 and not auto_resolve:
        unresolved = [c.card_id for c in cards if c.is_split and c.card_id not in named]
        if unresolved:
            raise InvalidSelection(
                "Unresolved split ambiguity", details={"card_ids": unresolved}
            )

    resolutions = {card.card_id: target for card in cards if card.is_split}
    return target, resolutions


def beats(size: int, value: int, combo: Combo | None) -> bool:
    """Bigger runs beat smaller ones; equal sizes need a strictly higher value."""
    if combo is None:
        return True
    if size > combo.size:
        return True
    return size == combo.size and value > combo.value


def check_beat(size: int, value: int, combo: Combo | None) -> None:
    if beats(size, value, combo):
        return
    if size == combo.size:
        raise IllegalBeat(
            "Same size combo must be strictly higher value "
            f"(current: {combo.value}, played: {value})"
        )
    raise IllegalBeat(
        "Cannot play fewer cards than current combo "
        f"(current: {combo.size}, played: {size})"
    )


def validate_selection(
    hand: Sequence[Card],
    indices: Sequence[int],
    current_combo: Combo | None = None,
    split_resolutions: Mapping[int, int] | None = None,
    auto_resolve: bool = True,
) -> ValidatedPlay:
    """
    Validate a play of hand[indices] against the combo on the table.

    Raises InvalidSelection or IllegalBeat.
    """
    ordered = check_contiguous(hand, indices)
    cards = tuple(hand[i] for i in ordered)
    value, resolutions = resolve_run(cards, split_resolutions, auto_resolve)
    check_beat(len(cards), value, current_combo)
    return ValidatedPlay(indices=ordered, cards=cards, value=value, resolutions=resolutions)


def is_legal(
    hand: Sequence[Card],
    indices: Sequence[int],
    current_combo: Combo | None = None,
) -> bool:
    try:
        validate_selection(hand, indices, current_combo)
    except (InvalidSelection, IllegalBeat):
        return False
    return True


def _try_run(cards: Sequence[Card], start: int, end: int, combo: Combo | None):
    run = cards[start:end]
    shared = None
    for card in run:
        values = candidate_values(card)
        shared = values if shared is None else shared & values
        if not shared:
            return None
    value = max(shared)
    if not beats(len(run), value, combo):
        return None
    resolutions = {card.card_id: value for card in run if card.is_split}
    return value, resolutions


def find_valid_plays(hand: Sequence[Card], current_combo: Combo | None = None) -> list[ValidatedPlay]:
    """Every contiguous run of the hand that resolves and beats the table."""
    cards = tuple(hand)
    plays = []
    for start in range(len(cards)):
        for end in range(start + 1, len(cards) + 1):
            # longer runs from this start cannot share a value either
            if end - start > 1 and not (
                candidate_values(cards[end - 2]) & candidate_values(cards[end - 1])
            ):
                break
            found = _try_run(cards, start, end, current_combo)
            if found is None:
                continue
            value, resolutions = found
            plays.append(ValidatedPlay(
                indices=tuple(range(start, end)),
                cards=cards[start:end],
                value=value,
                resolutions=resolutions,
            ))
    return plays


def find_ringo_opportunity(
    hand: Sequence[Card],
    drawn_card: Card | None,
    current_combo: Combo | None = None,
) -> RingoOpportunity | None:
    """
    Search for a play that uses the drawn card before it joins the hand.

    Tries every insertion point in order and every run of length 1..5
    through it; the first legal run wins. Indices are post-splice.
    """
    if drawn_card is None or drawn_card.is_special:
        return None

    cards = tuple(hand)
    for insert_pos in range(len(cards) + 1):
        spliced = cards[:insert_pos] + (drawn_card,) + cards[insert_pos:]
        for start in range(max(0, insert_pos - (MAX_RINGO_RUN - 1)), insert_pos + 1):
            for length in range(1, MAX_RINGO_RUN + 1):
                end = start + length
                if end > len(spliced):
                    break
                if end <= insert_pos:
                    continue
                found = _try_run(spliced, start, end, current_combo)
                if found is None:
                    continue
                value, resolutions = found
                return RingoOpportunity(
                    insert_position=insert_pos,
                    combo_indices=tuple(range(start, end)),
                    value=value,
                    resolutions=resolutions,
                )
    return None


def cheapest_play(plays: Sequence[ValidatedPlay]) -> ValidatedPlay | None:
    """Smallest run, lowest value first."""
    if not plays:
        return None
    return min(plays, key=lambda p: (p.size, p.value, p.indices))


def largest_play(plays: Sequence[ValidatedPlay]) -> ValidatedPlay | None:
    """Largest run, highest value first."""
    if not plays:
        return None
    return min(plays, key=lambda p: (-p.size, -p.value, p.indices))
