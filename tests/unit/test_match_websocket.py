"""Tests for the match WebSocket endpoint."""

import json
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from chessroyale.main import app
from chessroyale.ws.handler import ConnectionManager


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create a test client with the app lifespan running."""
    with TestClient(app) as client:
        yield client


def join(websocket, piece_type: str) -> tuple[str, dict]:
    """Register and confirm a piece, returning its id and assignment."""
    connected = websocket.receive_json()
    assert connected["type"] == "connected"

    websocket.send_text(json.dumps({"type": "register", "piece_type": piece_type}))
    assigned = websocket.receive_json()
    assert assigned["type"] == "assigned"
    assert assigned["id"] == connected["id"]

    websocket.send_text(
        json.dumps(
            {
                "type": "confirm_registration",
                "id": assigned["id"],
                "piece_type": assigned["piece_type"],
                "team": assigned["team"],
                "position": assigned["position"],
                "hp": assigned["hp"],
            }
        )
    )
    state = websocket.receive_json()
    assert state["type"] == "game_state"
    update = websocket.receive_json()
    assert update["type"] == "update"
    return connected["id"], assigned


class TestConnectionManager:
    """Tests for ConnectionManager."""

    def test_starts_empty(self) -> None:
        """A new manager has no connections."""
        manager = ConnectionManager()
        assert not manager.has_connections()

    async def test_send_to_unknown_is_noop(self) -> None:
        """Sending to an unknown id does nothing."""
        manager = ConnectionManager()
        await manager.send_to("ghost", {"type": "pong"})
        await manager.broadcast({"type": "pong"})


class TestMatchWebSocket:
    """Tests for the /ws/match endpoint."""

    def test_connect_and_ping(self, client: TestClient) -> None:
        """The first message carries the piece id; pings are answered."""
        with client.websocket_connect("/ws/match") as websocket:
            connected = websocket.receive_json()
            assert connected["type"] == "connected"
            assert connected["id"]
            assert connected["tick_interval"] > 0

            websocket.send_text(json.dumps({"type": "ping"}))
            assert websocket.receive_json() == {"type": "pong"}

    def test_invalid_json(self, client: TestClient) -> None:
        """Malformed JSON is answered with an error and the socket stays open."""
        with client.websocket_connect("/ws/match") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            msg = websocket.receive_json()
            assert msg["type"] == "error"
            assert msg["message"] == "Invalid JSON"

            websocket.send_text(json.dumps({"type": "ping"}))
            assert websocket.receive_json()["type"] == "pong"

    def test_unknown_message_type(self, client: TestClient) -> None:
        """Unknown message types are answered with an error."""
        with client.websocket_connect("/ws/match") as websocket:
            websocket.receive_json()

            websocket.send_text(json.dumps({"type": "teleport"}))
            msg = websocket.receive_json()
            assert msg["type"] == "error"
            assert msg["message"] == "Unknown message type"

    def test_register_and_join(self, client: TestClient) -> None:
        """A player registers, confirms and appears in the match."""
        with client.websocket_connect("/ws/match") as websocket:
            piece_id, assigned = join(websocket, "rook")

            assert assigned["team"] == "white"
            assert assigned["position"] == {"x": 0, "z": 7}

            response = client.get("/api/match")
            assert piece_id in response.json()["players"]

    def test_rejected_move(self, client: TestClient) -> None:
        """An illegal move is corrected for the sender."""
        with client.websocket_connect("/ws/match") as websocket:
            piece_id, assigned = join(websocket, "pawn")

            websocket.send_text(json.dumps({"type": "move", "position": {"x": 0, "z": 3}}))
            msg = websocket.receive_json()

            assert msg["type"] == "move_rejected"
            assert msg["id"] == piece_id
            assert msg["correct_position"] == assigned["position"]

    def test_accepted_move(self, client: TestClient) -> None:
        """A legal move is broadcast as an update."""
        with client.websocket_connect("/ws/match") as websocket:
            piece_id, _ = join(websocket, "pawn")

            websocket.send_text(json.dumps({"type": "move", "position": {"x": 0, "z": 4}}))
            msg = websocket.receive_json()

            assert msg["type"] == "update"
            assert msg["players"][piece_id]["position"] == {"x": 0, "z": 4}

    def test_other_players_see_join_and_leave(self, client: TestClient) -> None:
        """Updates reach every connection; leaving removes the piece."""
        with client.websocket_connect("/ws/match") as first:
            first_id, _ = join(first, "king")

            with client.websocket_connect("/ws/match") as second:
                second_id, assigned = join(second, "king")
                assert assigned["team"] == "black"

                update = first.receive_json()
                assert update["type"] == "update"
                assert set(update["players"]) == {first_id, second_id}

            update = first.receive_json()
            assert update["type"] == "update"
            assert set(update["players"]) == {first_id}
