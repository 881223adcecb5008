"""
Tests for the move validator.

Tests:
- Contiguity and value resolution
- The beat rule
- Split card resolution
- RINGO detection
- Exhaustive agreement with the rules over small hands
"""

from itertools import combinations, product

import pytest

from ..engine_core.cards import Card, SpecialEffect, candidate_values
from ..engine_core.errors import InvalidSelection, IllegalBeat
from ..engine_core.state import Combo
from ..engine_core.validation import (
    validate_selection,
    is_legal,
    find_valid_plays,
    find_ringo_opportunity,
    cheapest_play,
    largest_play,
)


_next_id = iter(range(1000, 100000))


def card(spec) -> Card:
    if isinstance(spec, tuple):
        return Card(card_id=next(_next_id), split_values=spec)
    return Card(card_id=next(_next_id), value=spec)


def hand_of(*specs):
    return [card(spec) for spec in specs]


def combo(size: int, value: int) -> Combo:
    return Combo(cards=tuple(card(value) for _ in range(size)), value=value, owner_id="p1")


class TestSelection:
    """Tests for selection shape."""

    def test_single_card(self):
        play = validate_selection(hand_of(3, 4), [1])
        assert play.value == 4
        assert play.size == 1

    def test_indices_are_sorted(self):
        """Order of the submitted indices does not matter."""
        play = validate_selection(hand_of(6, 6, 6), [2, 0, 1])
        assert play.indices == (0, 1, 2)

    def test_non_contiguous_rejected(self):
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(5, 2, 5), [0, 2])

    def test_empty_rejected(self):
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(5), [])

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(5), [1])

    def test_repeated_index_rejected(self):
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(5, 5), [0, 0])

    def test_mixed_values_rejected(self):
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(5, 6), [0, 1])


class TestBeatRule:
    """Tests for beating the table combo, around a single 5."""

    def test_equal_value_does_not_beat(self):
        with pytest.raises(IllegalBeat):
            validate_selection(hand_of(5), [0], combo(1, 5))

    def test_higher_value_beats(self):
        assert validate_selection(hand_of(6), [0], combo(1, 5)).value == 6

    def test_bigger_run_beats_any_value(self):
        assert validate_selection(hand_of(1, 1), [0, 1], combo(1, 5)).size == 2

    def test_smaller_run_never_beats(self):
        with pytest.raises(IllegalBeat):
            validate_selection(hand_of(8), [0], combo(2, 1))


class TestSplitCards:
    """Tests for split card resolution."""

    def test_split_between_ones(self):
        hand = hand_of(1, (1, 2), 1)
        play = validate_selection(hand, [0, 1, 2])
        assert play.value == 1
        assert play.resolutions == {hand[1].card_id: 1}

    def test_split_between_twos(self):
        hand = hand_of(2, (1, 2), 2)
        play = validate_selection(hand, [0, 1, 2])
        assert play.value == 2
        assert play.resolutions == {hand[1].card_id: 2}

    def test_split_cannot_bridge_two_values(self):
        """1, 1/2, 2 has no single value in common."""
        with pytest.raises(InvalidSelection):
            validate_selection(hand_of(1, (1, 2), 2), [0, 1, 2])

    def test_lone_split_takes_higher_value(self):
        hand = hand_of((3, 4))
        assert validate_selection(hand, [0]).value == 4

    def test_named_resolution(self):
        hand = hand_of((3, 4))
        play = validate_selection(hand, [0], split_resolutions={hand[0].card_id: 3})
        assert play.value == 3

    def test_named_resolution_outside_run_value(self):
        hand = hand_of(4, (3, 4))
        with pytest.raises(InvalidSelection):
            validate_selection(hand, [0, 1], split_resolutions={hand[1].card_id: 3})

    def test_strict_mode_requires_resolution(self):
        """Without auto resolution an ambiguous split is rejected."""
        hand = hand_of((3, 4))
        with pytest.raises(InvalidSelection) as exc_info:
            validate_selection(hand, [0], auto_resolve=False)
        assert exc_info.value.details["card_ids"] == [hand[0].card_id]

    def test_strict_mode_unambiguous_run(self):
        """A run that pins the value needs no explicit resolution."""
        hand = hand_of(3, (3, 4))
        assert validate_selection(hand, [0, 1], auto_resolve=False).value == 3

    def test_resolution_can_choose_lower_value_to_beat(self):
        """Picking 3 for a 3/4 still beats a 2."""
        hand = hand_of((3, 4))
        play = validate_selection(hand, [0], combo(1, 2), {hand[0].card_id: 3})
        assert play.value == 3


class TestValidPlays:
    """Tests for play enumeration."""

    def test_all_runs_on_empty_table(self):
        plays = find_valid_plays(hand_of(4, 4, 2))
        assert {p.indices for p in plays} == {(0,), (1,), (2,), (0, 1)}

    def test_only_beats_listed(self):
        plays = find_valid_plays(hand_of(4, 4, 2), combo(1, 4))
        assert {p.indices for p in plays} == {(0, 1)}

    def test_cheapest_and_largest(self):
        plays = find_valid_plays(hand_of(6, 6, 7))
        assert cheapest_play(plays).indices == (0,)
        assert largest_play(plays).indices == (0, 1)
        assert cheapest_play([]) is None


class TestRingoDetection:
    """Tests for find_ringo_opportunity."""

    def test_pair_through_drawn_card(self):
        """A drawn 5 next to a held 5 beats a pair of 4s."""
        opportunity = find_ringo_opportunity(hand_of(5, 2), card(5), combo(2, 4))
        assert opportunity.insert_position == 0
        assert opportunity.combo_indices == (0, 1)
        assert opportunity.value == 5

    def test_drawn_card_alone(self):
        opportunity = find_ringo_opportunity(hand_of(1, 2), card(7), combo(1, 5))
        assert opportunity is not None
        assert opportunity.size == 1
        assert opportunity.value == 7

    def test_no_opportunity(self):
        assert find_ringo_opportunity(hand_of(1, 2), card(3), combo(1, 5)) is None

    def test_special_card_never_offers(self):
        special = Card(card_id=1, special=SpecialEffect.DRAW_TWO)
        assert find_ringo_opportunity(hand_of(1, 2), special) is None

    def test_run_always_includes_drawn_card(self):
        """A legal run made of hand cards alone is not a RINGO."""
        opportunity = find_ringo_opportunity(hand_of(6, 6, 1), card(2), combo(2, 5))
        assert opportunity is None


def _expected_legal(hand, indices, table) -> bool:
    ordered = sorted(indices)
    if any(b != a + 1 for a, b in zip(ordered, ordered[1:])):
        return False
    shared = set(candidate_values(hand[ordered[0]]))
    for idx in ordered[1:]:
        shared &= candidate_values(hand[idx])
    if not shared:
        return False
    if table is None:
        return True
    size = len(ordered)
    return size > table.size or (size == table.size and max(shared) > table.value)


class TestExhaustive:
    """Every selection of every small hand agrees with the rules."""

    KINDS = (1, 2, (1, 2), 3)
    TABLES = (None, (1, 2), (1, 3), (2, 1), (2, 2), (3, 1))

    @pytest.mark.parametrize("table_shape", TABLES)
    def test_validator_matches_rules(self, table_shape):
        """Legal iff contiguous, sharing a value, and beating the table."""
        table = combo(*table_shape) if table_shape else None
        for length in range(1, 5):
            for specs in product(self.KINDS, repeat=length):
                hand = hand_of(*specs)
                legal_runs = {p.indices for p in find_valid_plays(hand, table)}
                for size in range(1, length + 1):
                    for indices in combinations(range(length), size):
                        expected = _expected_legal(hand, indices, table)
                        assert is_legal(hand, indices, table) == expected, (specs, indices)
                        assert (indices in legal_runs) == expected, (specs, indices)
