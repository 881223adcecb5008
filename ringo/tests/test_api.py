"""
Tests for API layer.

Tests:
- API service methods
- Room lifecycle via HTTP
- A human turn answered by bots
- Error codes and status mapping
"""

import asyncio

import pytest

from ..api.schemas import (
    AddBotRequest,
    CreateRoomRequest,
    InsertDrawnRequest,
    JoinRoomRequest,
    PlayRequest,
    RoomStatus,
    StartRoundRequest,
)
from ..api.service import APIService
from ..engine_core.errors import InvalidSelection, NotFound, NotYourTurn


def _started_room(service, seed=5, difficulty="medium"):
    joined = service.create_room(CreateRoomRequest(host_name="Ana"))
    code = joined.room.code
    service.add_bot(code, AddBotRequest(difficulty=difficulty))
    asyncio.run(service.start_round(code, StartRoundRequest(seed=seed)))
    return code, joined.seat_id


class TestAPIService:
    """Tests for APIService."""

    @pytest.fixture
    def service(self):
        """Create a fresh API service."""
        return APIService()

    def test_create_room(self, service):
        response = service.create_room(CreateRoomRequest(host_name="Ana"))

        assert response.seat_id
        assert response.room.status == RoomStatus.LOBBY
        assert response.room.host_id == response.seat_id
        assert [s.name for s in response.room.seats] == ["Ana"]

    def test_join_and_add_bot(self, service):
        code = service.create_room(CreateRoomRequest()).room.code
        service.join_room(code, JoinRoomRequest(name="Bo"))
        response = service.add_bot(code, AddBotRequest(difficulty="hard"))

        seats = response.room.seats
        assert len(seats) == 3
        assert seats[-1].is_bot
        assert seats[-1].difficulty.value == "hard"

    def test_get_nonexistent_room(self, service):
        with pytest.raises(NotFound):
            service.get_room("NOROOM")

    def test_state_before_round(self, service):
        joined = service.create_room(CreateRoomRequest())
        with pytest.raises(NotFound):
            service.get_state(joined.room.code, joined.seat_id)

    def test_start_round_lets_bots_move(self, service):
        code, host = _started_room(service)

        state = service.get_state(code, host)
        assert state.status == RoomStatus.PLAYING
        assert state.is_your_turn
        assert len(state.hand) == 10

    def test_state_hides_other_hands(self, service):
        code, host = _started_room(service)
        state = service.get_state(code, host)
        assert all(p.hand_count > 0 for p in state.players)
        assert "hand" not in state.players[0].model_dump()

    def test_draw_then_keep(self, service):
        code, host = _started_room(service)

        drawn = asyncio.run(service.draw(code, host))
        assert drawn.drawn_card is not None
        assert drawn.is_your_turn

        after = asyncio.run(service.insert_drawn(code, InsertDrawnRequest(seat_id=host, position=0)))
        assert after.bot_actions
        assert after.drawn_card is None
        assert after.version > drawn.version

    def test_rejection_is_typed(self, service):
        code, host = _started_room(service)
        with pytest.raises(InvalidSelection):
            asyncio.run(service.play(code, PlayRequest(seat_id=host, indices=[0, 2])))

    def test_bot_seat_cannot_act_out_of_turn(self, service):
        code, _ = _started_room(service)
        bot = [s for s in service.get_room(code).seats if s.is_bot][0]
        with pytest.raises(NotYourTurn):
            asyncio.run(service.draw(code, bot.player_id))

    def test_end_room(self, service):
        code, _ = _started_room(service)
        assert service.end_room(code)
        assert code not in service.list_rooms()
        with pytest.raises(NotFound):
            service.get_room(code)

    def test_leave_room(self, service):
        code, host = _started_room(service)
        assert asyncio.run(service.leave_room(code, host)) is None
        assert service.list_rooms() == []

    def test_acting_human_leaves_and_round_goes_on(self, service):
        """The bot taking over a departed seat plays its turn at once."""
        joined = service.create_room(CreateRoomRequest(host_name="Ana"))
        code = joined.room.code
        service.join_room(code, JoinRoomRequest(name="Bo"))
        asyncio.run(service.start_round(code, StartRoundRequest(seed=7)))
        seats = [s.player_id for s in service.get_room(code).seats]
        acting = service.get_state(code, seats[0]).current_player_id
        other = seats[1] if acting == seats[0] else seats[0]

        room = asyncio.run(service.leave_room(code, acting))

        assert room.status == RoomStatus.PLAYING
        assert [s.is_bot for s in room.seats if s.player_id == acting] == [True]
        state = service.get_state(code, other)
        assert state.is_your_turn
        assert state.version > 0
        assert [p.is_bot for p in state.players if p.player_id == acting] == [True]
        drawn = asyncio.run(service.draw(code, other))
        assert drawn.drawn_card is not None


class TestHTTP:
    """Tests for the FastAPI application."""

    @pytest.fixture
    def client(self):
        from fastapi.testclient import TestClient
        from ..api.app import create_app

        return TestClient(create_app(APIService(bot_delay=0.0)))

    def _start(self, client):
        created = client.post("/api/v1/rooms", json={"host_name": "Ana"}).json()
        code = created["room"]["code"]
        client.post(f"/api/v1/rooms/{code}/bots", json={"difficulty": "medium"})
        response = client.post(f"/api/v1/rooms/{code}/start", json={"seed": 5})
        assert response.status_code == 200
        return code, created["seat_id"]

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["service"] == "ringo-engine"

    def test_room_lifecycle(self, client):
        created = client.post("/api/v1/rooms", json={"host_name": "Ana"})
        assert created.status_code == 200
        code = created.json()["room"]["code"]

        assert code in client.get("/api/v1/rooms").json()["rooms"]
        assert client.get(f"/api/v1/rooms/{code}").json()["status"] == "lobby"

        ended = client.delete(f"/api/v1/rooms/{code}")
        assert ended.json() == {"success": True, "code": code}
        assert client.get(f"/api/v1/rooms/{code}").status_code == 404

    def test_unknown_room(self, client):
        response = client.get("/api/v1/rooms/NOROOM")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_start_needs_two_seats(self, client):
        code = client.post("/api/v1/rooms", json={}).json()["room"]["code"]
        response = client.post(f"/api/v1/rooms/{code}/start", json={})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_SELECTION"

    def test_room_full(self, client):
        code = client.post("/api/v1/rooms", json={}).json()["room"]["code"]
        for _ in range(4):
            client.post(f"/api/v1/rooms/{code}/bots", json={})
        response = client.post(f"/api/v1/rooms/{code}/join", json={"name": "Late"})
        assert response.status_code == 409
        assert response.json()["error_code"] == "ROOM_FULL"

    def test_human_turn(self, client):
        code, seat = self._start(client)

        state = client.get(f"/api/v1/rooms/{code}/state", params={"seat_id": seat}).json()
        assert state["is_your_turn"]
        assert state["viewer_id"] == seat

        drawn = client.post(f"/api/v1/rooms/{code}/draw", json={"seat_id": seat}).json()
        assert drawn["drawn_card"] is not None

        kept = client.post(f"/api/v1/rooms/{code}/insert-drawn", json={"seat_id": seat, "position": 0})
        assert kept.status_code == 200
        assert kept.json()["bot_actions"]

    def test_wrong_turn(self, client):
        code, _ = self._start(client)
        bot = [s for s in client.get(f"/api/v1/rooms/{code}").json()["seats"] if s["is_bot"]][0]
        response = client.post(f"/api/v1/rooms/{code}/draw", json={"seat_id": bot["player_id"]})
        assert response.status_code == 409
        assert response.json()["error_code"] == "NOT_YOUR_TURN"

    def test_invalid_selection(self, client):
        code, seat = self._start(client)
        response = client.post(f"/api/v1/rooms/{code}/play", json={"seat_id": seat, "indices": [0, 2]})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_SELECTION"

    def test_malformed_request(self, client):
        code, seat = self._start(client)
        response = client.post(f"/api/v1/rooms/{code}/play", json={"seat_id": seat})
        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"]

    def test_ringo_without_offer(self, client):
        code, seat = self._start(client)
        response = client.post(
            f"/api/v1/rooms/{code}/ringo",
            json={"seat_id": seat, "insert_position": 0, "indices": [0]},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "WRONG_PHASE"

    def test_expire_turn(self, client):
        code, seat = self._start(client)
        response = client.post(f"/api/v1/rooms/{code}/expire", json={"seat_id": seat})
        assert response.status_code == 200
        assert response.json()["drawn_card"] is not None
