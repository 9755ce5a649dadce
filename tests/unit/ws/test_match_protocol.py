"""Tests for WebSocket protocol message parsing and serialization."""

from chessroyale.game.board import Position
from chessroyale.ws.protocol import (
    AbilityMessage,
    ConfirmRegistrationMessage,
    ConnectedMessage,
    LegalMovesMessage,
    MoveMessage,
    MoveRejectedMessage,
    PingMessage,
    PositionModel,
    RegisterMessage,
    VineTrapMessage,
    parse_client_message,
)


class TestParseClientMessage:
    """Tests for parsing inbound messages."""

    def test_parse_register(self):
        """Register may omit the piece type."""
        msg = parse_client_message({"type": "register"})
        assert isinstance(msg, RegisterMessage)
        assert msg.piece_type is None

        msg = parse_client_message({"type": "register", "piece_type": "knight"})
        assert msg.piece_type == "knight"

    def test_parse_confirm_registration(self):
        """Confirm carries the echoed placement."""
        data = {
            "type": "confirm_registration",
            "id": "abc",
            "piece_type": "rook",
            "team": "white",
            "position": {"x": 0, "z": 7},
            "hp": 7,
        }
        msg = parse_client_message(data)
        assert isinstance(msg, ConfirmRegistrationMessage)
        assert msg.position.to_position() == Position(0, 7)
        assert msg.team == "white"

    def test_parse_move(self):
        """Move requires a position; a client-sent id is ignored."""
        msg = parse_client_message({"type": "move", "id": "someone-else", "position": {"x": 4, "z": 4}})
        assert isinstance(msg, MoveMessage)
        assert msg.position.to_position() == Position(4, 4)

    def test_parse_ability(self):
        """Ability damage is optional."""
        msg = parse_client_message({"type": "ability", "target": {"x": 1, "z": 2}})
        assert isinstance(msg, AbilityMessage)
        assert msg.damage is None

        msg = parse_client_message({"type": "ability", "target": {"x": 1, "z": 2}, "damage": 3})
        assert msg.damage == 3

    def test_parse_vine_trap_legal_moves_and_ping(self):
        """The remaining message types parse to their models."""
        assert isinstance(
            parse_client_message({"type": "vine_trap", "target": {"x": 0, "z": 0}}),
            VineTrapMessage,
        )
        assert isinstance(parse_client_message({"type": "legal_moves"}), LegalMovesMessage)
        assert isinstance(parse_client_message({"type": "ping"}), PingMessage)

    def test_parse_unknown_type(self):
        """Unknown types yield None."""
        assert parse_client_message({"type": "teleport"}) is None

    def test_parse_missing_or_bad_type(self):
        """A missing or non-string type yields None."""
        assert parse_client_message({}) is None
        assert parse_client_message({"type": ["move"]}) is None
        assert parse_client_message({"type": 3}) is None

    def test_parse_non_object(self):
        """Payloads that are not JSON objects yield None."""
        assert parse_client_message([1, 2, 3]) is None
        assert parse_client_message("move") is None

    def test_parse_malformed_position(self):
        """Positions must be integer pairs."""
        assert parse_client_message({"type": "move", "position": {"x": 4}}) is None
        assert parse_client_message({"type": "move", "position": {"x": "left", "z": 1}}) is None
        assert parse_client_message({"type": "move"}) is None


class TestServerMessages:
    """Tests for outbound message serialization."""

    def test_connected(self):
        """Connected messages carry the id and tick interval."""
        data = ConnectedMessage(id="abc", tick_interval=0.1).model_dump()
        assert data == {"type": "connected", "id": "abc", "tick_interval": 0.1}

    def test_move_rejected(self):
        """Move rejections carry the authoritative square."""
        msg = MoveRejectedMessage(
            id="abc",
            correct_position=PositionModel.from_position(Position(2, 6)),
            reason="invalid_move",
        )
        assert msg.model_dump() == {
            "type": "move_rejected",
            "id": "abc",
            "correct_position": {"x": 2, "z": 6},
            "reason": "invalid_move",
        }
