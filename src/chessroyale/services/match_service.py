"""Match service: the serialized intent stream in front of the engine.

Every inbound request (register, move, ability, disconnect) and every tick
is queued as an intent and handled by a single consumer task, so the engine
only ever sees one intent at a time, in arrival order. Results are turned
into outbound protocol messages and handed to a publisher.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from chessroyale.game.engine import MatchEngine, MatchEvent, MatchEventType
from chessroyale.game.pieces import PieceType, Team
from chessroyale.settings import get_settings
from chessroyale.ws.protocol import (
    AbilityMessage,
    AssignedMessage,
    ClientMessage,
    ConfirmRegistrationMessage,
    ErrorMessage,
    GameEventMessage,
    GameStateMessage,
    LegalMovesMessage,
    LegalMovesResponse,
    LootCollectMessage,
    LootSpawnMessage,
    MoveMessage,
    MoveRejectedMessage,
    PlayerDefeatedMessage,
    PlayerRespawnMessage,
    PositionModel,
    RegisterMessage,
    UpdateMessage,
    VineTrapMessage,
)

logger = logging.getLogger(__name__)


@dataclass
class Outbound:
    """A message ready to send.

    Attributes:
        message: JSON-serializable message body
        recipient: Piece ID to send to, or None to broadcast
    """

    message: dict[str, Any]
    recipient: str | None = None


@dataclass
class TickIntent:
    """Advance the match clock."""

    dt: float


@dataclass
class DisconnectIntent:
    """A player's connection closed."""

    sender_id: str


@dataclass
class ClientIntent:
    """A parsed message from a connected player."""

    sender_id: str
    message: ClientMessage


Intent = TickIntent | DisconnectIntent | ClientIntent
Publisher = Callable[[list[Outbound]], Awaitable[None]]


def _out(message: BaseModel, recipient: str | None = None) -> Outbound:
    return Outbound(message=message.model_dump(), recipient=recipient)


def _parse_piece_type(value: str | None) -> PieceType | None:
    if value is None:
        return None
    try:
        return PieceType(value)
    except ValueError:
        return None


def _parse_team(value: str | None) -> Team | None:
    if value is None:
        return None
    try:
        return Team(value)
    except ValueError:
        return None


def _resolve(future: asyncio.Future[list[Outbound]], outbound: list[Outbound]) -> bool:
    if future.done():
        return False
    future.set_result(outbound)
    return True


@dataclass
class MatchService:
    """Owns the match engine and the intent queue feeding it.

    Attributes:
        engine: The authoritative match engine
        tick_interval: Seconds between ticks of the match loop
    """

    engine: MatchEngine
    tick_interval: float = 0.1
    _queue: asyncio.Queue[tuple[Intent, asyncio.Future[list[Outbound]]]] | None = None
    _tasks: list[asyncio.Task[Any]] = field(default_factory=list)
    _loop: asyncio.AbstractEventLoop | None = None
    _publisher: Publisher | None = None

    # Intent handling

    def process(self, intent: Intent) -> list[Outbound]:
        """Handle one intent to completion and render the outbound messages."""
        match intent:
            case TickIntent(dt=dt):
                return self.render(self.engine.tick(dt))
            case DisconnectIntent(sender_id=sender_id):
                return self.render(self.engine.disconnect(sender_id))
            case ClientIntent(sender_id=sender_id, message=message):
                return self._handle_message(sender_id, message)
        return []

    def _handle_message(self, sender_id: str, message: ClientMessage) -> list[Outbound]:
        engine = self.engine

        if isinstance(message, RegisterMessage):
            piece_type = _parse_piece_type(message.piece_type)
            if message.piece_type is not None and piece_type is None:
                return [_out(ErrorMessage(message=f"Unknown piece type {message.piece_type}"), sender_id)]
            return self.render(engine.assign(sender_id, piece_type))

        if isinstance(message, ConfirmRegistrationMessage):
            return self.render(
                engine.confirm_registration(
                    sender_id,
                    piece_type=_parse_piece_type(message.piece_type),
                    team=_parse_team(message.team),
                    position=message.position.to_position() if message.position else None,
                )
            )

        if isinstance(message, MoveMessage):
            return self.render(engine.move(sender_id, message.position.to_position()))

        if isinstance(message, AbilityMessage):
            return self.render(
                engine.use_ability(sender_id, message.target.to_position(), message.damage)
            )

        if isinstance(message, VineTrapMessage):
            return self.render(engine.use_vine_trap(sender_id, message.target.to_position()))

        if isinstance(message, LegalMovesMessage):
            targets = [PositionModel.from_position(p) for p in engine.get_legal_moves(sender_id)]
            return [_out(LegalMovesResponse(id=sender_id, targets=targets), sender_id)]

        logger.warning(f"Unhandled message from {sender_id}: {message!r}")
        return []

    def render(self, events: list[MatchEvent]) -> list[Outbound]:
        """Turn engine events into protocol messages.

        A single update snapshot follows whenever any event changed state.
        """
        outbound: list[Outbound] = []

        for event in events:
            data = event.data
            match event.type:
                case MatchEventType.PIECE_ASSIGNED:
                    outbound.append(
                        _out(
                            AssignedMessage(
                                id=data["id"],
                                piece_type=data["type"],
                                team=data["team"],
                                position=PositionModel(**data["position"]),
                                hp=data["hp"],
                            ),
                            event.recipient,
                        )
                    )
                case MatchEventType.REGISTRATION_REJECTED:
                    outbound.append(_out(ErrorMessage(message=data["message"]), event.recipient))
                case MatchEventType.GAME_STATE:
                    outbound.append(_out(GameStateMessage(**data), event.recipient))
                case MatchEventType.MOVE_REJECTED:
                    outbound.append(
                        _out(
                            MoveRejectedMessage(
                                id=data["id"],
                                correct_position=PositionModel(**data["correct_position"]),
                                reason=data.get("reason"),
                            ),
                            event.recipient,
                        )
                    )
                case MatchEventType.GAME_EVENT:
                    outbound.append(_out(GameEventMessage(event_type=data["event_type"], time=data["time"])))
                case MatchEventType.PLAYER_RESPAWN:
                    outbound.append(
                        _out(
                            PlayerRespawnMessage(
                                id=data["id"],
                                position=PositionModel(**data["position"]),
                                hp=data["hp"],
                            )
                        )
                    )
                case MatchEventType.PIECE_DEFEATED:
                    outbound.append(
                        _out(
                            PlayerDefeatedMessage(
                                id=data["id"],
                                attacker=data["attacker"],
                                status=data["status"],
                            )
                        )
                    )
                case MatchEventType.LOOT_SPAWN:
                    outbound.append(
                        _out(
                            LootSpawnMessage(
                                id=data["id"],
                                loot_type=data["loot_type"],
                                position=PositionModel(**data["position"]),
                            )
                        )
                    )
                case MatchEventType.LOOT_COLLECT:
                    outbound.append(
                        _out(
                            LootCollectMessage(
                                id=data["id"],
                                loot_id=data["loot_id"],
                                loot_type=data["loot_type"],
                            )
                        )
                    )

        if any(event.changes_state for event in events):
            outbound.append(_out(self.update_message()))

        return outbound

    def update_message(self) -> UpdateMessage:
        snapshot = self.engine.snapshot()
        return UpdateMessage(
            players=snapshot["players"],
            loot=snapshot["loot"],
            entities=snapshot["entities"],
            time=snapshot["time"],
        )

    # Serialized stream

    @property
    def is_running(self) -> bool:
        return bool(self._tasks) and not any(task.done() for task in self._tasks)

    async def start(self, publisher: Publisher) -> None:
        """Start the intent consumer and the tick loop on the running event loop.

        Calling start again on the same loop while running is a no-op; a
        service left behind by a closed loop is restarted with a fresh queue.
        """
        loop = asyncio.get_running_loop()
        if self.is_running and self._loop is loop:
            return

        await self.stop()
        self._loop = loop
        self._publisher = publisher
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._consume()),
            asyncio.create_task(self._run_ticks()),
        ]
        logger.info(f"Match loop started (tick interval {self.tick_interval}s)")

    async def stop(self) -> None:
        """Cancel the consumer and tick loop.

        Intents still waiting in the queue are answered with no messages, so
        no caller stays blocked in submit. Later submits raise RuntimeError.
        """
        queue, self._queue = self._queue, None
        tasks, self._tasks = self._tasks, []
        current_loop = asyncio.get_running_loop()
        for task in tasks:
            if task.get_loop() is not current_loop:
                continue
            task.cancel()
        for task in tasks:
            if task.get_loop() is not current_loop:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass

        dropped = 0
        while queue is not None and not queue.empty():
            _, future = queue.get_nowait()
            queue.task_done()
            if future.get_loop() is current_loop and _resolve(future, []):
                dropped += 1
        if dropped:
            logger.warning(f"Dropped {dropped} queued intents on shutdown")
        if tasks:
            logger.info("Match loop stopped")

    async def submit(self, intent: Intent) -> list[Outbound]:
        """Queue an intent and wait until it has been handled and published.

        Raises:
            RuntimeError: If the service has not been started or was stopped
        """
        if self._queue is None:
            raise RuntimeError("Match service is not running")
        future: asyncio.Future[list[Outbound]] = asyncio.get_running_loop().create_future()
        await self._queue.put((intent, future))
        return await future

    async def _consume(self) -> None:
        queue = self._queue
        assert queue is not None
        while True:
            intent, future = await queue.get()
            outbound: list[Outbound] = []
            try:
                outbound = self.process(intent)
                if outbound and self._publisher is not None:
                    await self._publisher(outbound)
            except asyncio.CancelledError:
                # The intent was applied; release its caller before shutting down
                _resolve(future, outbound)
                raise
            except Exception as e:
                logger.exception(f"Error handling intent {intent!r}: {e}")
                outbound = []
            finally:
                queue.task_done()
            _resolve(future, outbound)

    async def _run_ticks(self) -> None:
        """Queue a tick at a fixed wall-clock interval."""
        last = time.monotonic()
        try:
            while True:
                start_time = time.monotonic()
                dt = start_time - last
                last = start_time
                if dt > 0:
                    await self.submit(TickIntent(dt=dt))

                elapsed = time.monotonic() - start_time
                if elapsed < self.tick_interval:
                    await asyncio.sleep(self.tick_interval - elapsed)
        except asyncio.CancelledError:
            logger.info("Tick loop cancelled")
            raise


def create_match_service() -> MatchService:
    """Build a match service from application settings."""
    settings = get_settings()
    rng = random.Random(settings.random_seed)
    engine = MatchEngine(config=settings.match_config(), rng=rng)
    return MatchService(engine=engine, tick_interval=settings.tick_interval_seconds)


# Global singleton instance
_match_service: MatchService | None = None


def get_match_service() -> MatchService:
    """Get the global match service instance."""
    global _match_service
    if _match_service is None:
        _match_service = create_match_service()
    return _match_service


def reset_match_service() -> None:
    """Drop the global instance so the next access builds a fresh match."""
    global _match_service
    _match_service = None
