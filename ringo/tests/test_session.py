"""
Tests for rooms and the game loop.

Tests:
- Room lifecycle: seating, rounds, leaving, cleanup
- Bot-only rounds reach a winner for every tier
- Intents, bot answers and turn timers through the loop
- Invariant violations abort the round
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
import asyncio

import pytest

from ..bots import Difficulty, HeuristicPolicy
from ..bots.search import SearchConfig
from ..engine_core.action import Action, ActionType, CaptureChoice
from ..engine_core.errors import (
    InvalidSelection,
    InvariantViolation,
    NotFound,
    NotYourTurn,
    RoomFull,
    WrongPhase,
)
from ..engine_core.projection import project_state
from ..engine_core.state import DRAWN_CARD_PHASES, RoundSettings
from ..session import GameLoop, SessionManager, SessionState, fallback_action
from .conftest import build_state


TINY_SEARCH = SearchConfig(time_budget_s=0.01, max_determinizations=2, horizon=2)


@pytest.fixture
def manager() -> SessionManager:
    return SessionManager(search_config=TINY_SEARCH, seed=3)


@pytest.fixture
def human_vs_bot(manager):
    """A started room where the human host moves first against a Tier-2 bot."""
    session, host = manager.create_room("Ana")
    bot = manager.add_bot(session.code, "medium")
    session.previous_winner = host
    manager.start_round(session.code, seed=4)
    return session, host, bot


class TestRooms:
    """Tests for SessionManager."""

    def test_create_room(self, manager):
        session, host = manager.create_room("Ana")
        assert len(session.code) == 6
        assert session.host_id == host
        assert session.state == SessionState.LOBBY
        assert manager.get(session.code.lower()) is session

    def test_bot_only_room(self, manager):
        session, host = manager.create_room(None)
        assert host is None
        assert session.seats == []

    def test_room_holds_five(self, manager):
        session, _ = manager.create_room("Ana")
        for name in ("B", "C", "D"):
            manager.join_room(session.code, name)
        manager.add_bot(session.code, "hard")
        with pytest.raises(RoomFull):
            manager.join_room(session.code, "F")
        assert len(session.seats) == 5

    def test_bot_names(self, manager):
        session, _ = manager.create_room("Ana")
        seat_id = manager.add_bot(session.code, Difficulty.HARD)
        seat = session.seat(seat_id)
        assert seat.is_bot
        assert seat.name == "Master Bot 1"

    def test_unknown_room(self, manager):
        with pytest.raises(NotFound):
            manager.get("NOROOM")

    def test_start_needs_two_seats(self, manager):
        session, _ = manager.create_room("Ana")
        with pytest.raises(InvalidSelection):
            manager.start_round(session.code)

    def test_start_round(self, manager):
        session, host = manager.create_room("Ana")
        manager.add_bot(session.code, "easy")
        state = manager.start_round(session.code, settings=RoundSettings(hand_size=8), seed=1)

        assert session.state == SessionState.PLAYING
        assert state.game_id == f"{session.code}-1"
        assert all(len(p.hand) == 8 for p in state.players)
        assert all(seat.policy is not None for seat in session.bot_seats())

    def test_no_double_start_or_late_join(self, manager, human_vs_bot):
        session, _, _ = human_vs_bot
        with pytest.raises(WrongPhase):
            manager.start_round(session.code)
        with pytest.raises(WrongPhase):
            manager.join_room(session.code, "Late")

    def test_leave_mid_round_hands_seat_to_bot(self, manager):
        session, host = manager.create_room("Ana")
        second = manager.join_room(session.code, "Bo")
        manager.add_bot(session.code, "easy")
        manager.start_round(session.code, seed=2)

        assert manager.leave_room(session.code, second) is session
        seat = session.seat(second)
        assert seat.is_bot
        assert seat.difficulty == Difficulty.MEDIUM
        assert isinstance(seat.policy, HeuristicPolicy)
        assert session.host_id == host
        assert session.game_state.get_player(second).is_bot
        assert project_state(session.game_state, host).seat(second).is_bot

    def test_last_human_leaving_ends_room(self, manager, human_vs_bot):
        session, host, _ = human_vs_bot
        assert manager.leave_room(session.code, host) is None
        assert session.state == SessionState.ENDED
        assert session.cancel_event.is_set()
        with pytest.raises(NotFound):
            manager.get(session.code)

    def test_host_moves_on_when_host_leaves_lobby(self, manager):
        session, host = manager.create_room("Ana")
        guest = manager.join_room(session.code, "Bo")
        manager.leave_room(session.code, host)
        assert session.host_id == guest
        assert [s.seat_id for s in session.seats] == [guest]

    def test_aborted_room_can_deal_again(self, manager, human_vs_bot):
        session, _, _ = human_vs_bot
        manager.abort(session, "test")
        assert session.is_active()
        manager.start_round(session.code, seed=5)
        assert session.state == SessionState.PLAYING
        assert session.round_number == 2

    def test_cleanup_stale_sessions(self, manager):
        first, _ = manager.create_room("Ana")
        manager.create_room("Bo")
        assert first.code in manager.list_active_sessions()
        assert manager.cleanup_stale_sessions(max_age_seconds=-1) == 2
        assert manager.list_active_sessions() == []


class TestPlayOut:
    """Bot-only rounds through the synchronous loop."""

    def test_every_tier_finishes_a_round(self, manager):
        session, _ = manager.create_room(None)
        for difficulty in Difficulty:
            manager.add_bot(session.code, difficulty)
        manager.start_round(session.code, settings=RoundSettings(special_cards=True), seed=21)

        state = GameLoop(manager, session).play_out()

        assert state.winner is not None
        assert session.state == SessionState.ROUND_OVER
        assert sum(session.wins.values()) == 1
        assert session.wins[state.winner] == 1
        assert session.previous_winner == state.winner

    def test_winner_starts_next_round(self, manager):
        session, _ = manager.create_room(None)
        manager.add_bot(session.code, "easy")
        manager.add_bot(session.code, "medium")
        manager.start_round(session.code, seed=8)
        winner = GameLoop(manager, session).play_out().winner

        state = manager.start_round(session.code, seed=9)
        assert state.current_player.player_id == winner
        assert session.round_number == 2


class TestGameLoop:
    """Tests for submitting intents and driving bots."""

    def test_human_then_bots(self, manager, human_vs_bot):
        session, host, bot = human_vs_bot
        loop = GameLoop(manager, session)

        async def scenario():
            assert loop.acting_seat_id() == host
            result = await loop.submit(Action.draw(host))
            assert result.success
            assert loop.state.turn_phase in DRAWN_CARD_PHASES
            await loop.expire_turn(host)
            return await loop.run_bots()

        turn = asyncio.run(scenario())

        assert turn.bot_actions
        assert turn.version == loop.state.action_count
        assert loop.acting_seat_id() in (host, None)

    def test_out_of_turn_intent_is_rejected(self, manager, human_vs_bot):
        session, _, bot = human_vs_bot
        loop = GameLoop(manager, session)
        result = asyncio.run(loop.submit(Action.draw(bot)))
        assert not result.success
        assert result.error_code == NotYourTurn.code

    def test_expire_turn_draws(self, manager, human_vs_bot):
        session, host, bot = human_vs_bot
        loop = GameLoop(manager, session)

        result = asyncio.run(loop.expire_turn(host))

        assert result.success
        assert result.new_state.turn_phase in DRAWN_CARD_PHASES
        with pytest.raises(NotYourTurn):
            asyncio.run(loop.expire_turn(bot))

    def test_search_bot_runs_in_executor(self, manager):
        session, host = manager.create_room("Ana")
        bot = manager.add_bot(session.code, "nightmare")
        session.previous_winner = bot
        manager.start_round(session.code, seed=6)

        with ThreadPoolExecutor(max_workers=1) as executor:
            loop = GameLoop(manager, session, executor=executor)
            turn = asyncio.run(loop.run_bots())

        assert turn.bot_actions
        assert loop.acting_seat_id() == host

    def test_cancel_stops_search(self, manager):
        session, host = manager.create_room("Ana")
        bot = manager.add_bot(session.code, "nightmare")
        session.previous_winner = bot
        manager.start_round(session.code, seed=6)
        loop = GameLoop(manager, session)
        loop.cancel()

        turn = asyncio.run(loop.run_bots())

        assert turn.cancelled
        assert turn.bot_actions == []
        assert loop.acting_seat_id() == bot

    def test_invariant_violation_aborts_round(self, manager, human_vs_bot):
        session, host, _ = human_vs_bot
        state = session.game_state
        # a card goes missing from the bottom of the pile
        session.game_state = replace(state, draw_pile=state.draw_pile[1:])
        loop = GameLoop(manager, session)

        with pytest.raises(InvariantViolation):
            asyncio.run(loop.submit(Action.draw(host)))

        assert session.state == SessionState.ABORTED
        assert session.cancel_event.is_set()
        assert "abort_reason" in session.metadata
        with pytest.raises(WrongPhase):
            asyncio.run(loop.submit(Action.draw(host)))

    def test_view_for_unknown_seat(self, manager, human_vs_bot):
        session, _, _ = human_vs_bot
        with pytest.raises(NotFound):
            GameLoop(manager, session).view_for("nobody")


class TestFallbackAction:
    """Tests for the turn-timer fallback."""

    def test_turn_draws(self, three_player_state):
        view = project_state(three_player_state, "p0")
        assert fallback_action(view, "p0") == Action.draw("p0")

    def test_drawn_card_is_kept(self, reducer):
        state = build_state([[5, 2], [1, 1]], combo=(1, [4, 4]), draw=[3])
        state = reducer.apply(state, Action.draw("p0")).new_state
        action = fallback_action(project_state(state, "p0"), "p0")
        assert action.action_type == ActionType.INSERT_DRAWN
        assert reducer.apply(state, action).success

    def test_drawn_special_is_discarded(self, reducer, special_state):
        state = reducer.apply(special_state, Action.draw("p0")).new_state
        assert fallback_action(project_state(state, "p0"), "p0") == Action.discard_drawn("p0")

    def test_capture_discards(self, reducer):
        state = build_state([[6, 2], [1, 1]], combo=(1, [4]))
        state = reducer.apply(state, Action.play("p0", [0])).new_state
        action = fallback_action(project_state(state, "p0"), "p0")
        assert action == Action.capture("p0", CaptureChoice.DISCARD_ALL)

    def test_no_decision_pending(self, three_player_state):
        with pytest.raises(NotYourTurn):
            fallback_action(project_state(three_player_state, "p1"), "p1")

