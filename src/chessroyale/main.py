"""FastAPI application entry point."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from chessroyale.services.match_service import get_match_service
from chessroyale.settings import get_settings
from chessroyale.ws.handler import handle_websocket, publish_outbound


def setup_logging() -> None:
    """Configure logging for the application."""
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("chessroyale").setLevel(logging.DEBUG)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)


# Set up logging on import
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info(
        f"Starting Chess Royale server (dev_mode={settings.dev_mode}, "
        f"tick_interval={settings.tick_interval_seconds}s)"
    )
    await get_match_service().start(publish_outbound)

    yield

    logger.info("Shutting down Chess Royale server")
    await get_match_service().stop()


app = FastAPI(
    title="Chess Royale",
    description="Real-time multiplayer variant-chess arena",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
# In dev mode, allow localhost. In production, allow the configured frontend URL.
settings = get_settings()
cors_origins = (
    ["http://localhost:3000", "http://127.0.0.1:3000"]
    if settings.dev_mode
    else [settings.frontend_url]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Chess Royale API", "version": "0.1.0"}


@app.get("/api/match")
async def get_match() -> dict[str, Any]:
    """Current match snapshot."""
    return get_match_service().engine.snapshot()


@app.get("/api/match/pieces/{piece_id}/moves")
async def get_piece_moves(piece_id: str) -> dict[str, Any]:
    """Squares a piece may currently move to."""
    engine = get_match_service().engine
    if engine.get_piece(piece_id) is None:
        raise HTTPException(status_code=404, detail="Piece not found")
    return {
        "id": piece_id,
        "targets": [p.to_dict() for p in engine.get_legal_moves(piece_id)],
    }


# WebSocket endpoint for the live match
@app.websocket("/ws/match")
async def match_websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time match communication."""
    await handle_websocket(websocket)
