"""Pytest configuration and fixtures."""

import os
from collections.abc import Iterator

# Deterministic match randomness for all tests
os.environ["RANDOM_SEED"] = "7"

# Clear the settings cache to pick up the new environment variable
from chessroyale.settings import get_settings

get_settings.cache_clear()

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from chessroyale.main import app  # noqa: E402
from chessroyale.services.match_service import reset_match_service  # noqa: E402
from chessroyale.ws import handler  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_match(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Give every test a new match and an empty connection manager."""
    reset_match_service()
    monkeypatch.setattr(handler, "connection_manager", handler.ConnectionManager())
    yield
    reset_match_service()


@pytest.fixture
async def client() -> AsyncClient:
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
