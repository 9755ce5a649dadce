"""Test health check and match snapshot endpoints."""

import pytest
from httpx import AsyncClient

from chessroyale.game.board import Position
from chessroyale.game.pieces import PieceType, Team
from chessroyale.services.match_service import get_match_service


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test that health check returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_root(client: AsyncClient) -> None:
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Chess Royale API"
    assert "version" in data


@pytest.mark.asyncio
async def test_match_snapshot(client: AsyncClient) -> None:
    """Test that the match endpoint returns the current snapshot."""
    engine = get_match_service().engine
    engine.confirm_registration("p1", PieceType.ROOK, Team.WHITE, Position(0, 7))

    response = await client.get("/api/match")
    assert response.status_code == 200
    data = response.json()
    assert set(data["players"]) == {"p1"}
    assert data["players"]["p1"]["type"] == "rook"
    assert data["settings"]["max_players"] == 32
    assert data["loot"] == []
    assert data["entities"] == []


@pytest.mark.asyncio
async def test_piece_moves(client: AsyncClient) -> None:
    """Test the legal moves endpoint for a known and an unknown piece."""
    engine = get_match_service().engine
    engine.confirm_registration("p1", PieceType.KNIGHT, Team.WHITE, Position(0, 0))

    response = await client.get("/api/match/pieces/p1/moves")
    assert response.status_code == 200
    assert response.json()["targets"] == [{"x": 1, "z": 2}, {"x": 2, "z": 1}]

    response = await client.get("/api/match/pieces/nobody/moves")
    assert response.status_code == 404
