"""
Tests for per-seat projection.
"""

from ..engine_core.action import Action
from ..engine_core.projection import project_state
from .conftest import build_state


def _ids(cards) -> set[int]:
    return {card.card_id for card in cards}


class TestProjection:
    """Tests for what a seat may see."""

    def test_own_hand_only(self, dealt_state):
        view = project_state(dealt_state, "p0")
        assert view.hand == dealt_state.players[0].hand
        assert [s.hand_count for s in view.seats] == [10, 10]

    def test_other_hands_never_serialized(self, dealt_state):
        data = project_state(dealt_state, "p0").to_dict()
        hidden = _ids(dealt_state.players[1].hand) | _ids(dealt_state.draw_pile)
        shown = {c["card_id"] for c in data["hand"]}
        assert not hidden & shown
        assert "draw_pile" not in data
        assert data["draw_pile_count"] == len(dealt_state.draw_pile)

    def test_drawn_card_only_for_drawer(self, reducer):
        state = build_state([[5, 2], [1, 1]], combo=(1, [4, 4]), draw=[5])
        state = reducer.apply(state, Action.draw("p0")).new_state

        drawer = project_state(state, "p0")
        other = project_state(state, "p1")

        assert drawer.drawn_card == state.drawn_card
        assert drawer.ringo_opportunity is not None
        assert other.drawn_card is None
        assert other.ringo_opportunity is None
        assert other.to_dict()["drawn_card"] is None

    def test_public_table(self, reducer):
        state = build_state([[6, 2], [1, 1]], combo=(1, [4]))
        state = reducer.apply(state, Action.play("p0", [0])).new_state
        view = project_state(state, "p1")
        assert view.current_combo.value == 6
        assert view.pending_capture.owner_id == "p0"
        assert view.to_dict()["pending_capture"]["cards"][0]["value"] == 4

    def test_version_tracks_action_count(self, reducer, dealt_state):
        state = reducer.apply(dealt_state, Action.draw("p0")).new_state
        assert project_state(state, "p1").version == state.action_count == 1

    def test_turn_helpers(self, three_player_state):
        view = project_state(three_player_state, "p0")
        assert view.is_my_turn
        assert view.next_seat().player_id == "p1"
        assert view.next_seat("p2").player_id == "p0"
        assert view.min_opponent_count() == 3
        assert [s.player_id for s in view.opponents()] == ["p1", "p2"]
