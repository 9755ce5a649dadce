"""Tests for the match service intent stream."""

import asyncio
import random

import pytest

from chessroyale.game.board import Position
from chessroyale.game.engine import MatchEngine
from chessroyale.game.pieces import PieceType, Team
from chessroyale.services.match_service import (
    ClientIntent,
    DisconnectIntent,
    MatchService,
    Outbound,
    TickIntent,
    get_match_service,
    reset_match_service,
)
from chessroyale.ws.protocol import (
    AbilityMessage,
    ConfirmRegistrationMessage,
    LegalMovesMessage,
    MoveMessage,
    PositionModel,
    RegisterMessage,
)


@pytest.fixture
def service() -> MatchService:
    """Create a service around a seeded engine with a slow tick."""
    return MatchService(engine=MatchEngine(rng=random.Random(5)), tick_interval=10.0)


def types(outbound: list[Outbound]) -> list[str]:
    return [o.message["type"] for o in outbound]


def move_to(x: int, z: int) -> MoveMessage:
    return MoveMessage(position=PositionModel(x=x, z=z))


def ability_at(x: int, z: int, damage: int | None = None) -> AbilityMessage:
    return AbilityMessage(target=PositionModel(x=x, z=z), damage=damage)


class TestProcess:
    """Tests for handling single intents."""

    def test_register_reply_goes_to_sender(self, service: MatchService) -> None:
        """Register produces an assignment for the sender and no broadcast."""
        outbound = service.process(ClientIntent("a", RegisterMessage(piece_type="queen")))

        assert types(outbound) == ["assigned"]
        assert outbound[0].recipient == "a"
        assert outbound[0].message["piece_type"] == "queen"
        assert outbound[0].message["position"] == {"x": 3, "z": 7}

    def test_register_unknown_type(self, service: MatchService) -> None:
        """An unknown piece type is answered with an error."""
        outbound = service.process(ClientIntent("a", RegisterMessage(piece_type="dragon")))

        assert types(outbound) == ["error"]
        assert outbound[0].recipient == "a"

    def test_confirm_sends_state_then_update(self, service: MatchService) -> None:
        """Joining sends the full state to the sender and an update to all."""
        service.process(ClientIntent("a", RegisterMessage(piece_type="rook")))

        outbound = service.process(ClientIntent("a", ConfirmRegistrationMessage()))

        assert types(outbound) == ["game_state", "update"]
        assert outbound[0].recipient == "a"
        assert outbound[1].recipient is None
        assert "a" in outbound[1].message["players"]

    def test_rejected_move_is_targeted(self, service: MatchService) -> None:
        """A rejected move only answers the mover."""
        service.engine.confirm_registration("p", PieceType.PAWN, Team.WHITE, Position(4, 6))

        outbound = service.process(ClientIntent("p", move_to(4, 3)))

        assert types(outbound) == ["move_rejected"]
        assert outbound[0].recipient == "p"
        assert outbound[0].message["correct_position"] == {"x": 4, "z": 6}

    def test_accepted_move_broadcasts_update(self, service: MatchService) -> None:
        """An accepted move broadcasts the new positions."""
        service.engine.confirm_registration("p", PieceType.PAWN, Team.WHITE, Position(4, 6))

        outbound = service.process(ClientIntent("p", move_to(4, 4)))

        assert types(outbound) == ["update"]
        assert outbound[0].message["players"]["p"]["position"] == {"x": 4, "z": 4}

    def test_legal_moves(self, service: MatchService) -> None:
        """Legal move queries are answered to the sender."""
        service.engine.confirm_registration("n", PieceType.KNIGHT, Team.BLACK, Position(0, 0))

        outbound = service.process(ClientIntent("n", LegalMovesMessage()))

        assert types(outbound) == ["legal_moves"]
        assert outbound[0].message["targets"] == [{"x": 1, "z": 2}, {"x": 2, "z": 1}]

    def test_defeat_is_announced(self, service: MatchService) -> None:
        """Defeats are broadcast before the update."""
        engine = service.engine
        engine.confirm_registration("q", PieceType.QUEEN, Team.WHITE, Position(3, 7))
        engine.confirm_registration("p", PieceType.PAWN, Team.BLACK, Position(3, 1))

        outbound = service.process(ClientIntent("q", ability_at(3, 1, damage=5)))

        assert types(outbound) == ["player_defeated", "update"]
        assert outbound[0].message == {
            "type": "player_defeated",
            "id": "p",
            "attacker": "q",
            "status": "respawning",
        }

    def test_idle_tick_is_silent(self, service: MatchService) -> None:
        """A tick that changes nothing sends nothing."""
        assert service.process(TickIntent(dt=0.1)) == []
        assert service.process(TickIntent(dt=0)) == []

    def test_disconnect_broadcasts_update(self, service: MatchService) -> None:
        """Leaving removes the player from the next update."""
        service.engine.confirm_registration("p", PieceType.PAWN, Team.WHITE, Position(4, 6))

        outbound = service.process(DisconnectIntent("p"))

        assert types(outbound) == ["update"]
        assert outbound[0].message["players"] == {}


class TestStream:
    """Tests for the queued intent stream."""

    async def test_submit_publishes_results(self, service: MatchService) -> None:
        """Submitted intents are handled and published."""
        published: list[Outbound] = []

        async def publish(outbound: list[Outbound]) -> None:
            published.extend(outbound)

        await service.start(publish)
        try:
            result = await service.submit(ClientIntent("a", RegisterMessage(piece_type="king")))
        finally:
            await service.stop()

        assert types(result) == ["assigned"]
        assert published == result
        assert not service.is_running

    async def test_intents_run_in_arrival_order(self, service: MatchService) -> None:
        """Concurrent submissions are applied one at a time, in order."""

        async def publish(outbound: list[Outbound]) -> None:
            await asyncio.sleep(0)

        await service.start(publish)
        try:
            first, second = await asyncio.gather(
                service.submit(ClientIntent("a", RegisterMessage(piece_type="pawn"))),
                service.submit(ClientIntent("b", RegisterMessage(piece_type="pawn"))),
            )
        finally:
            await service.stop()

        assert first[0].message["team"] == "white"
        assert second[0].message["team"] == "black"

    async def test_publisher_failure_keeps_stream_alive(self, service: MatchService) -> None:
        """An error while publishing does not stop later intents."""
        calls = 0

        async def publish(outbound: list[Outbound]) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("socket gone")

        await service.start(publish)
        try:
            assert await service.submit(ClientIntent("a", RegisterMessage())) == []
            result = await service.submit(ClientIntent("b", RegisterMessage()))
        finally:
            await service.stop()

        assert types(result) == ["assigned"]

    async def test_start_is_idempotent(self, service: MatchService) -> None:
        """Starting a running service keeps its tasks."""

        async def publish(outbound: list[Outbound]) -> None:
            pass

        await service.start(publish)
        tasks = list(service._tasks)
        await service.start(publish)

        assert service._tasks == tasks
        await service.stop()

    async def test_submit_requires_running_service(self, service: MatchService) -> None:
        """Submitting before start is an error."""
        with pytest.raises(RuntimeError):
            await service.submit(TickIntent(dt=0.1))

    async def test_submit_after_stop_raises(self, service: MatchService) -> None:
        """A stopped service refuses new intents instead of queueing them."""

        async def publish(outbound: list[Outbound]) -> None:
            pass

        await service.start(publish)
        await service.stop()

        with pytest.raises(RuntimeError):
            await asyncio.wait_for(service.submit(TickIntent(dt=0.1)), timeout=1.0)

    async def test_stop_releases_waiting_submitters(self, service: MatchService) -> None:
        """Stopping answers the in-flight intent and drops the queued ones."""
        release = asyncio.Event()

        async def publish(outbound: list[Outbound]) -> None:
            await release.wait()

        await service.start(publish)
        first = asyncio.create_task(service.submit(ClientIntent("a", RegisterMessage(piece_type="pawn"))))
        second = asyncio.create_task(service.submit(ClientIntent("b", RegisterMessage(piece_type="pawn"))))
        await asyncio.sleep(0.05)
        assert not first.done()

        await service.stop()
        in_flight, queued = await asyncio.wait_for(asyncio.gather(first, second), timeout=1.0)

        assert types(in_flight) == ["assigned"]
        assert queued == []
        assert "b" not in service.engine._assignments


class TestSingleton:
    """Tests for the global service accessor."""

    def test_get_match_service_is_cached(self) -> None:
        """The accessor returns the same instance until reset."""
        first = get_match_service()
        assert get_match_service() is first

        reset_match_service()

        assert get_match_service() is not first
