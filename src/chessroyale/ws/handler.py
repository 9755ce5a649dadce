"""WebSocket handler for real-time match communication."""

import asyncio
import json
import logging
import secrets
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from chessroyale.ws.protocol import (
    ConnectedMessage,
    ErrorMessage,
    PingMessage,
    PongMessage,
    parse_client_message,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections for the match.

    Each connection is keyed by the piece ID handed out when it opened.
    """

    def __init__(self) -> None:
        self.connections: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, piece_id: str, websocket: WebSocket) -> None:
        """Accept a WebSocket connection and track it under piece_id."""
        await websocket.accept()
        async with self._lock:
            self.connections[piece_id] = websocket
        logger.info(f"Client connected as {piece_id}")

    async def disconnect(self, piece_id: str) -> None:
        async with self._lock:
            if self.connections.pop(piece_id, None) is not None:
                logger.info(f"Client {piece_id} disconnected")

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send a message to every connection.

        Connections that fail to send are dropped; their handler will submit
        the disconnect when its receive loop ends.
        """
        async with self._lock:
            connections = dict(self.connections)

        if not connections:
            return

        data = json.dumps(message)
        disconnected: list[str] = []

        for piece_id, websocket in connections.items():
            try:
                await websocket.send_text(data)
            except Exception:
                disconnected.append(piece_id)

        if disconnected:
            async with self._lock:
                for piece_id in disconnected:
                    self.connections.pop(piece_id, None)

    async def send_to(self, piece_id: str, message: dict[str, Any]) -> None:
        """Send a message to a single connection, if it is still open."""
        async with self._lock:
            websocket = self.connections.get(piece_id)

        if websocket is None:
            return

        try:
            await websocket.send_text(json.dumps(message))
        except Exception:
            logger.debug(f"Dropping message for {piece_id}: send failed")

    async def dispatch(self, outbound: list[Any]) -> None:
        """Deliver rendered match messages in order."""
        for item in outbound:
            if item.recipient is None:
                await self.broadcast(item.message)
            else:
                await self.send_to(item.recipient, item.message)

    def has_connections(self) -> bool:
        return len(self.connections) > 0


# Global connection manager instance
connection_manager = ConnectionManager()


async def publish_outbound(outbound: list[Any]) -> None:
    """Publisher handed to the match service."""
    await connection_manager.dispatch(outbound)


async def handle_websocket(websocket: WebSocket) -> None:
    """Handle a WebSocket connection to the match.

    The connection is given a piece ID up front. Everything the client sends
    after that is queued on the match service, which applies intents one at a
    time and publishes the results through the connection manager.
    """
    # Import here to avoid circular imports
    from chessroyale.services.match_service import ClientIntent, DisconnectIntent, get_match_service

    service = get_match_service()
    piece_id = secrets.token_urlsafe(8)

    await connection_manager.connect(piece_id, websocket)
    await service.start(publish_outbound)

    await websocket.send_text(
        ConnectedMessage(id=piece_id, tick_interval=service.tick_interval).model_dump_json()
    )

    try:
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                msg_data = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(ErrorMessage(message="Invalid JSON").model_dump_json())
                continue

            message = parse_client_message(msg_data)
            if message is None:
                await websocket.send_text(
                    ErrorMessage(message="Unknown message type").model_dump_json()
                )
                continue

            # Pings never touch match state
            if isinstance(message, PingMessage):
                await websocket.send_text(PongMessage().model_dump_json())
                continue

            await service.submit(ClientIntent(sender_id=piece_id, message=message))
    except Exception as e:
        logger.exception(f"Error in WebSocket handler for {piece_id}: {e}")
    finally:
        await connection_manager.disconnect(piece_id)
        if service.is_running:
            await service.submit(DisconnectIntent(sender_id=piece_id))
        else:
            service.process(DisconnectIntent(sender_id=piece_id))
