"""Core match engine for Chess Royale.

The engine owns the authoritative match state: the piece registry, loot on
the board, neutral entities, running auras and the match clock. Each public
method handles one intent to completion and returns the events it produced.
Requests that cannot be honoured are rejected or ignored; no intent handler
raises.
"""

import itertools
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from chessroyale.game.board import Board, Position, all_positions
from chessroyale.game.errors import (
    DuplicateError,
    MatchError,
    MatchFullError,
    NotFoundError,
    ResourceExhaustedError,
    ValidationError,
)
from chessroyale.game.moves import legal_destinations
from chessroyale.game.pieces import BASE_HP, Piece, PieceStatus, PieceType, Team
from chessroyale.game.registry import PieceRegistry, SlotPool, starting_layout
from chessroyale.game.state import (
    DEFAULT_CONFIG,
    RANDOM_EVENTS,
    LootItem,
    LootType,
    MatchClock,
    MatchConfig,
    NeutralEntity,
    RandomEvent,
    RoyalAura,
)

logger = logging.getLogger(__name__)

# Tolerance for accumulated float timers
TIME_EPSILON = 1e-6

AURA_PULSE_SECONDS = 1.0


class MatchEventType(Enum):
    """Types of events produced by the engine."""

    PIECE_ASSIGNED = "piece_assigned"
    REGISTRATION_REJECTED = "registration_rejected"
    PIECE_JOINED = "piece_joined"
    GAME_STATE = "game_state"
    PIECE_LEFT = "piece_left"
    MOVE_ACCEPTED = "move_accepted"
    MOVE_REJECTED = "move_rejected"
    ABILITY_USED = "ability_used"
    DAMAGE = "damage"
    HEAL = "heal"
    PIECE_DEFEATED = "piece_defeated"
    PLAYER_RESPAWN = "player_respawn"
    VINE_TRAP = "vine_trap"
    LOOT_SPAWN = "loot_spawn"
    LOOT_COLLECT = "loot_collect"
    GAME_EVENT = "game_event"
    NEUTRAL_SPAWNED = "neutral_spawned"
    NEUTRAL_MOVED = "neutral_moved"
    NEUTRAL_DEFEATED = "neutral_defeated"


# Events that leave the piece feed unchanged
NON_MUTATING_EVENTS = frozenset(
    {
        MatchEventType.PIECE_ASSIGNED,
        MatchEventType.REGISTRATION_REJECTED,
        MatchEventType.GAME_STATE,
        MatchEventType.MOVE_REJECTED,
    }
)


@dataclass
class MatchEvent:
    """An event that occurred while handling an intent.

    Attributes:
        type: Type of event
        time: Match time when the event occurred
        data: Event-specific data
        recipient: Piece ID the event is addressed to, or None for everyone
    """

    type: MatchEventType
    time: float
    data: dict[str, Any] = field(default_factory=dict)
    recipient: str | None = None

    @property
    def changes_state(self) -> bool:
        return self.type not in NON_MUTATING_EVENTS


@dataclass(frozen=True)
class Assignment:
    """Type, team and square handed to a joining player before confirmation."""

    piece_type: PieceType
    team: Team
    position: Position

    def to_dict(self, piece_id: str) -> dict[str, Any]:
        return {
            "id": piece_id,
            "type": self.piece_type.value,
            "team": self.team.value,
            "position": self.position.to_dict(),
            "hp": BASE_HP[self.piece_type],
        }


class MatchEngine:
    """Authoritative state for one match.

    Attributes:
        config: Static match constants
        registry: Live pieces and the occupancy index
        loot: Loot items on the board by ID
        entities: Neutral entities by ID
        auras: Running king auras
        clock: Match time and scheduler accumulators
        event_log: Recent log entries, oldest first
    """

    def __init__(self, config: MatchConfig = DEFAULT_CONFIG, rng: random.Random | None = None) -> None:
        self.config = config
        self.rng = rng if rng is not None else random.Random()
        self.registry = PieceRegistry(
            board=Board(size=config.board_size),
            slots=SlotPool(starting_layout(config.board_size)),
        )
        self.loot: dict[str, LootItem] = {}
        self.entities: dict[str, NeutralEntity] = {}
        self.auras: list[RoyalAura] = []
        self.clock = MatchClock()
        self.event_log: deque[dict[str, Any]] = deque(maxlen=config.event_log_size)
        self._assignments: dict[str, Assignment] = {}
        self._respawn_due: dict[str, float] = {}
        self._stalled_respawns: set[str] = set()
        self._ids = itertools.count(1)

    @property
    def board(self) -> Board:
        return self.registry.board

    @property
    def elapsed(self) -> float:
        return self.clock.elapsed

    def pending_respawn(self, piece_id: str) -> float | None:
        """Get the match time a piece is due to respawn, if one is pending."""
        return self._respawn_due.get(piece_id)

    def _event(
        self,
        event_type: MatchEventType,
        data: dict[str, Any] | None = None,
        recipient: str | None = None,
    ) -> MatchEvent:
        return MatchEvent(type=event_type, time=self.elapsed, data=data or {}, recipient=recipient)

    def _log(self, entry_type: str, **data: Any) -> None:
        self.event_log.append({"type": entry_type, "time": round(self.elapsed, 3), **data})

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # Registration

    def _team_counts(self) -> dict[Team, int]:
        counts = {team: 0 for team in Team}
        for piece in self.registry.pieces.values():
            counts[piece.team] += 1
        for assignment in self._assignments.values():
            counts[assignment.team] += 1
        return counts

    def _next_team(self) -> Team:
        """Pick the team with fewer players, white on a tie."""
        counts = self._team_counts()
        return min(Team, key=lambda team: counts[team])

    def random_position(self) -> Position:
        """A uniformly random on-board square."""
        size = self.config.board_size
        return Position(self.rng.randrange(size), self.rng.randrange(size))

    def assign(self, piece_id: str, piece_type: PieceType | None = None) -> list[MatchEvent]:
        """Hand a joining player a type, team and starting square.

        Teams are balanced round-robin. The square comes from the traditional
        starting layout for the team and type, or a random square once that
        layout is used up.

        Args:
            piece_id: Connection ID of the joining player
            piece_type: Requested type, random if None

        Returns:
            A PIECE_ASSIGNED event for the sender, or REGISTRATION_REJECTED
        """
        try:
            if piece_id in self.registry:
                raise DuplicateError(f"Piece {piece_id} is already registered")
            if piece_id not in self._assignments and self._player_count() >= self.config.max_players:
                raise MatchFullError(f"Match is full ({self.config.max_players} players)")
        except MatchError as e:
            logger.warning(f"Registration rejected for {piece_id}: {e.message}")
            return [
                self._event(
                    MatchEventType.REGISTRATION_REJECTED,
                    {"id": piece_id, "reason": e.code, "message": e.message},
                    recipient=piece_id,
                )
            ]

        # A repeated register replaces the earlier assignment
        self._assignments.pop(piece_id, None)
        self.registry.slots.release(piece_id)

        team = self._next_team()
        if piece_type is None:
            piece_type = self.rng.choice(list(PieceType))

        position = self.registry.slots.reserve(piece_id, team, piece_type)
        if position is None:
            position = self.random_position()

        assignment = Assignment(piece_type=piece_type, team=team, position=position)
        self._assignments[piece_id] = assignment
        logger.info(
            f"Assigned {piece_id} as {team} {piece_type} at ({position.x}, {position.z})"
        )

        return [
            self._event(
                MatchEventType.PIECE_ASSIGNED,
                assignment.to_dict(piece_id),
                recipient=piece_id,
            )
        ]

    def _player_count(self) -> int:
        return len(self.registry) + len(self._assignments)

    def confirm_registration(
        self,
        piece_id: str,
        piece_type: PieceType | None = None,
        team: Team | None = None,
        position: Position | None = None,
    ) -> list[MatchEvent]:
        """Finalize a player's piece and send them the full match state.

        When the player went through assign(), the server's assignment wins
        over whatever the client echoes back. Otherwise the client's values
        are validated and used.

        Returns:
            PIECE_JOINED for everyone and GAME_STATE for the sender, or
            REGISTRATION_REJECTED for the sender
        """
        assignment = self._assignments.get(piece_id)

        try:
            if piece_id in self.registry:
                raise DuplicateError(f"Piece {piece_id} is already registered")
            if assignment is None:
                if self._player_count() >= self.config.max_players:
                    raise MatchFullError(f"Match is full ({self.config.max_players} players)")
                if piece_type is None or team is None or position is None:
                    raise ValidationError("Registration requires type, team and position")
                assignment = Assignment(piece_type=piece_type, team=team, position=position)
            elif (piece_type, team, position) != (None, None, None) and (
                piece_type != assignment.piece_type
                or team != assignment.team
                or position != assignment.position
            ):
                logger.debug(f"Ignoring client-declared placement for {piece_id}")

            piece = self.registry.register(
                piece_id, assignment.piece_type, assignment.team, assignment.position
            )
        except MatchError as e:
            logger.warning(f"Registration rejected for {piece_id}: {e.message}")
            return [
                self._event(
                    MatchEventType.REGISTRATION_REJECTED,
                    {"id": piece_id, "reason": e.code, "message": e.message},
                    recipient=piece_id,
                )
            ]

        self._assignments.pop(piece_id, None)
        logger.info(f"Player {piece_id} joined as {piece.team} {piece.type}")

        return [
            self._event(MatchEventType.PIECE_JOINED, piece.to_dict()),
            self._event(MatchEventType.GAME_STATE, self.snapshot(), recipient=piece_id),
        ]

    def disconnect(self, piece_id: str) -> list[MatchEvent]:
        """Remove a player's piece, free its slot and cancel its respawn."""
        had_assignment = self._assignments.pop(piece_id, None) is not None
        self._respawn_due.pop(piece_id, None)
        self._stalled_respawns.discard(piece_id)
        self.auras = [a for a in self.auras if a.source_id != piece_id]

        piece = self.registry.remove(piece_id)
        if piece is None:
            if not had_assignment:
                logger.debug(f"Disconnect for unknown piece {piece_id} ignored")
            return []

        logger.info(f"Player {piece_id} left the match")
        return [self._event(MatchEventType.PIECE_LEFT, {"id": piece_id})]

    # Movement

    def move(self, piece_id: str, destination: Position) -> list[MatchEvent]:
        """Handle a move request.

        Returns:
            MOVE_ACCEPTED for everyone, or MOVE_REJECTED carrying the
            authoritative square for the sender only
        """
        try:
            result = self.registry.move(piece_id, destination, now=self.elapsed)
        except NotFoundError as e:
            logger.debug(f"Move ignored: {e.message}")
            return []

        if not result.success:
            logger.debug(
                f"Move rejected for {piece_id} to ({destination.x}, {destination.z}): "
                f"{result.reason}"
            )
            return [
                self._event(
                    MatchEventType.MOVE_REJECTED,
                    {
                        "id": piece_id,
                        "correct_position": result.position.to_dict(),
                        "reason": result.reason,
                    },
                    recipient=piece_id,
                )
            ]

        return [
            self._event(
                MatchEventType.MOVE_ACCEPTED,
                {"id": piece_id, "position": result.position.to_dict()},
            )
        ]

    def get_legal_moves(self, piece_id: str) -> list[Position]:
        """Get the squares a piece may move to, sorted for display."""
        piece = self.registry.get(piece_id)
        if piece is None or not piece.is_active or piece.is_immobilized:
            return []
        return sorted(legal_destinations(piece, self.board), key=lambda p: (p.x, p.z))

    # Abilities and damage

    def use_ability(
        self,
        piece_id: str,
        target: Position,
        declared_damage: int | None = None,
    ) -> list[MatchEvent]:
        """Handle an ability request.

        Damage abilities hit every piece and neutral entity on the target
        square; teammates are skipped unless friendly fire is on and the
        attacker never hits itself. The king's ability starts a Royal Aura
        instead.

        Args:
            piece_id: Attacker
            target: Target square
            declared_damage: Damage the client declared, table value if None

        Returns:
            Events produced, empty if the request was rejected
        """
        attacker = self.registry.get(piece_id)
        if attacker is None:
            logger.debug(f"Ability ignored: unknown piece {piece_id}")
            return []
        if not attacker.is_active:
            logger.debug(f"Ability ignored: piece {piece_id} is {attacker.status.value}")
            return []
        if attacker.cooldown > 0:
            logger.debug(f"Ability ignored: piece {piece_id} on cooldown ({attacker.cooldown:.1f}s)")
            return []
        if not self.board.is_valid_position(target):
            logger.debug(f"Ability ignored: target ({target.x}, {target.z}) is off the board")
            return []

        ability = attacker.ability
        damage = ability.damage if declared_damage is None else declared_damage
        if damage < 0:
            logger.debug(f"Ability ignored: negative damage {damage} from {piece_id}")
            return []

        attacker.cooldown = ability.cooldown
        logger.info(f"Piece {piece_id} used {ability.name} at ({target.x}, {target.z})")

        events = [
            self._event(
                MatchEventType.ABILITY_USED,
                {"id": piece_id, "ability": ability.name, "target": target.to_dict()},
            )
        ]

        if ability.is_heal:
            self.auras.append(
                RoyalAura(
                    source_id=piece_id,
                    team=attacker.team,
                    healing=ability.healing,
                    remaining=self.config.aura_duration,
                )
            )
            self._log("aura", caster=piece_id, team=attacker.team.value)
            return events

        for target_piece in self.board.pieces_at(target):
            if target_piece is attacker:
                continue
            if target_piece.team == attacker.team and not self.config.friendly_fire:
                continue
            events.extend(self._damage_piece(target_piece.id, damage, source_id=piece_id, kind="ability"))

        for entity in [e for e in self.entities.values() if e.position == target]:
            events.extend(self._damage_entity(entity, damage, source_id=piece_id))

        return events

    def _damage_piece(self, piece_id: str, amount: int, source_id: str, kind: str) -> list[MatchEvent]:
        """Apply damage through the registry and run defeat handling."""
        try:
            result = self.registry.apply_damage(piece_id, amount)
        except MatchError as e:
            logger.debug(f"Damage ignored: {e.message}")
            return []

        self._log(kind, attacker=source_id, target=piece_id, damage=result.damage, absorbed=result.absorbed)
        events = [
            self._event(
                MatchEventType.DAMAGE,
                {
                    "id": piece_id,
                    "source": source_id,
                    "damage": result.damage,
                    "hp": result.hp,
                    "absorbed": result.absorbed,
                },
            )
        ]

        if result.defeated:
            events.extend(self._handle_defeat(piece_id, source_id))

        return events

    def _damage_entity(self, entity: NeutralEntity, amount: int, source_id: str) -> list[MatchEvent]:
        entity.hp = max(0, entity.hp - amount)
        self._log("ability", attacker=source_id, target=entity.id, damage=amount)
        if entity.hp > 0:
            return [
                self._event(
                    MatchEventType.DAMAGE,
                    {"id": entity.id, "source": source_id, "damage": amount, "hp": entity.hp},
                )
            ]

        del self.entities[entity.id]
        logger.info(f"Neutral entity {entity.id} defeated by {source_id}")
        self._log("neutral_defeat", entity=entity.id, attacker=source_id)
        return [self._event(MatchEventType.NEUTRAL_DEFEATED, {"id": entity.id, "attacker": source_id})]

    def _handle_defeat(self, piece_id: str, attacker_id: str) -> list[MatchEvent]:
        """Log a defeat and schedule the respawn, or retire the piece."""
        self._log("defeat", defeated_id=piece_id, attacker_id=attacker_id)
        status = self.registry.begin_respawn(piece_id, self.config.respawn_enabled)

        events = [
            self._event(
                MatchEventType.PIECE_DEFEATED,
                {"id": piece_id, "attacker": attacker_id, "status": status.value},
            )
        ]

        if status == PieceStatus.RESPAWNING and piece_id not in self._respawn_due:
            self._respawn_due[piece_id] = self.elapsed + self.config.respawn_delay
            logger.info(f"Piece {piece_id} respawns in {self.config.respawn_delay}s")

        return events

    def complete_respawn(self, piece_id: str) -> list[MatchEvent]:
        """Bring a respawning piece back at a free square with full health.

        The piece may have left since the respawn was scheduled; in that case
        nothing happens. If the board has no free square the respawn stays
        pending and is retried on the next tick.
        """
        piece = self.registry.get(piece_id)
        if piece is None or not piece.respawning:
            self._respawn_due.pop(piece_id, None)
            self._stalled_respawns.discard(piece_id)
            logger.debug(f"Respawn for {piece_id} dropped: piece is gone or not respawning")
            return []

        try:
            position = self.require_empty_position()
        except ResourceExhaustedError as e:
            if piece_id in self._stalled_respawns:
                logger.debug(f"Respawn for {piece_id} still waiting: {e.message}")
            else:
                self._stalled_respawns.add(piece_id)
                logger.warning(f"Cannot respawn {piece_id} yet, retrying every tick: {e.message}")
            return []

        self._respawn_due.pop(piece_id, None)
        self._stalled_respawns.discard(piece_id)
        self.registry.respawn(piece_id, position)
        self._log("respawn", id=piece_id)
        logger.info(f"Piece {piece_id} respawned at ({position.x}, {position.z})")

        return [
            self._event(
                MatchEventType.PLAYER_RESPAWN,
                {"id": piece_id, "position": position.to_dict(), "hp": piece.hp},
            )
        ]

    # Vine traps

    def use_vine_trap(self, piece_id: str, target: Position) -> list[MatchEvent]:
        """Spring a held vine trap, immobilizing opponents on the target square."""
        piece = self.registry.get(piece_id)
        if piece is None or not piece.is_active or not piece.has_vine_trap:
            logger.debug(f"Vine trap ignored for {piece_id}")
            return []
        if not self.board.is_valid_position(target):
            logger.debug(f"Vine trap ignored: target ({target.x}, {target.z}) is off the board")
            return []

        piece.has_vine_trap = False
        trapped = []
        for victim in self.board.pieces_at(target):
            if victim.team == piece.team:
                continue
            victim.immobilized_remaining = self.config.vine_trap_duration
            trapped.append(victim.id)

        self._log("vine_trap", attacker=piece_id, trapped=trapped)
        return [
            self._event(
                MatchEventType.VINE_TRAP,
                {"id": piece_id, "target": target.to_dict(), "trapped": trapped},
            )
        ]

    # Spawning

    def is_square_empty(self, position: Position) -> bool:
        """No active piece, neutral entity or loot on the square."""
        if self.board.is_occupied(position):
            return False
        if any(e.position == position for e in self.entities.values()):
            return False
        return not any(item.position == position for item in self.loot.values())

    def find_empty_position(self) -> Position | None:
        """Find a free square: random probes first, then a full scan.

        Returns:
            A free square, or None if the board is completely full
        """
        for _ in range(self.config.spawn_probes):
            position = self.random_position()
            if self.is_square_empty(position):
                return position

        for position in all_positions(self.config.board_size):
            if self.is_square_empty(position):
                return position

        return None

    def require_empty_position(self) -> Position:
        """Like find_empty_position, but raise ResourceExhaustedError on a full board."""
        position = self.find_empty_position()
        if position is None:
            raise ResourceExhaustedError("No free square on the board")
        return position

    def spawn_loot(self, event_loot: bool = False) -> list[MatchEvent]:
        """Drop one random loot item on a free square, if there is one."""
        try:
            position = self.require_empty_position()
        except ResourceExhaustedError as e:
            logger.debug(f"Skipping loot drop: {e.message}")
            return []

        loot_type = self.rng.choice(list(LootType))
        item = LootItem(
            id=self._next_id("loot"),
            type=loot_type,
            position=position,
            duration=loot_type.duration,
            event_loot=event_loot,
        )
        self.loot[item.id] = item
        logger.info(f"Spawned {loot_type.value} loot at ({position.x}, {position.z})")

        return [
            self._event(
                MatchEventType.LOOT_SPAWN,
                {"id": item.id, "loot_type": loot_type.value, "position": position.to_dict()},
            )
        ]

    def spawn_neutral(self) -> list[MatchEvent]:
        """Spawn a Vine Beast on a free square, if there is one."""
        try:
            position = self.require_empty_position()
        except ResourceExhaustedError as e:
            logger.debug(f"Skipping Vine Beast spawn: {e.message}")
            return []

        entity = NeutralEntity(id=self._next_id("vine"), position=position, hp=self.config.neutral_hp)
        self.entities[entity.id] = entity
        logger.info(f"Vine Beast {entity.id} spawned at ({position.x}, {position.z})")
        return [self._event(MatchEventType.NEUTRAL_SPAWNED, entity.to_dict())]

    # Tick

    def tick(self, dt: float) -> list[MatchEvent]:
        """Advance the match by dt seconds.

        This processes:
        1. Cooldown and status effect timers
        2. Royal Aura pulses
        3. Due respawns
        4. Neutral entity movement
        5. Loot collection
        6. Loot drops
        7. The late-game transition and scheduled events

        Args:
            dt: Seconds since the previous tick

        Returns:
            Events that occurred
        """
        if dt <= 0:
            return []

        events: list[MatchEvent] = []
        self.clock.advance(dt)

        # 1. Timers
        for piece in self.registry.pieces.values():
            piece.advance_timers(dt)

        # 2. Auras
        events.extend(self._pulse_auras(dt))

        # 3. Respawns
        for piece_id, due in list(self._respawn_due.items()):
            if self.elapsed + TIME_EPSILON >= due:
                events.extend(self.complete_respawn(piece_id))

        # 4. Neutral entities
        for entity in list(self.entities.values()):
            entity.move_timer += dt
            if entity.move_timer + TIME_EPSILON >= self.config.neutral_move_interval:
                entity.move_timer -= self.config.neutral_move_interval
                events.extend(self._step_neutral(entity))

        # 5. Loot collection
        events.extend(self._collect_loot())

        # 6. Loot scheduler
        if self.clock.loot_timer + TIME_EPSILON >= self.config.loot_interval:
            self.clock.loot_timer -= self.config.loot_interval
            events.extend(self.spawn_loot())

        # 7. Late game and event scheduler
        if not self.clock.late_game and self.elapsed > self.config.late_game_time:
            self.clock.late_game = True
            logger.info("Late game reached, random events replaced by surges")
            events.extend(self.trigger_event(RandomEvent.LATE_GAME_SURGE))

        if self.clock.event_timer + TIME_EPSILON >= self.config.event_interval:
            self.clock.event_timer -= self.config.event_interval
            if self.clock.late_game:
                events.extend(self.trigger_event(RandomEvent.LATE_GAME_SURGE))
            else:
                events.extend(self.trigger_event(self.rng.choice(RANDOM_EVENTS)))

        return events

    def _pulse_auras(self, dt: float) -> list[MatchEvent]:
        events: list[MatchEvent] = []
        for aura in self.auras:
            aura.pulse_timer += min(dt, aura.remaining)
            aura.remaining -= dt
            while aura.pulse_timer + TIME_EPSILON >= AURA_PULSE_SECONDS:
                aura.pulse_timer -= AURA_PULSE_SECONDS
                healed = {}
                for ally in self.registry.pieces_for_team(aura.team):
                    gained = self.registry.heal(ally.id, aura.healing)
                    if gained:
                        healed[ally.id] = ally.hp
                if healed:
                    events.append(
                        self._event(MatchEventType.HEAL, {"source": aura.source_id, "healed": healed})
                    )
        self.auras = [a for a in self.auras if a.remaining > TIME_EPSILON]
        return events

    def _step_neutral(self, entity: NeutralEntity) -> list[MatchEvent]:
        """Move an entity to a random orthogonal neighbour and hit whoever is there."""
        options = [
            entity.position.offset(dx, dz)
            for dx, dz in ((1, 0), (-1, 0), (0, 1), (0, -1))
            if self.board.is_valid_position(entity.position.offset(dx, dz))
        ]
        if not options:
            return []

        entity.position = self.rng.choice(options)
        events = [
            self._event(
                MatchEventType.NEUTRAL_MOVED,
                {"id": entity.id, "position": entity.position.to_dict()},
            )
        ]

        for victim in self.board.pieces_at(entity.position):
            events.extend(
                self._damage_piece(victim.id, self.config.collision_damage, source_id=entity.id, kind="collision")
            )

        return events

    def _collect_loot(self) -> list[MatchEvent]:
        """Give each loot item to the first active piece standing on it."""
        events: list[MatchEvent] = []
        for item in list(self.loot.values()):
            collector = next((p for p in self.board.pieces_at(item.position) if p.is_active), None)
            if collector is None:
                continue

            match item.type:
                case LootType.DOUBLE_MOVE:
                    collector.double_move_remaining = item.duration
                case LootType.PETAL_SHIELD:
                    collector.shield_remaining = item.duration
                case LootType.VINE_TRAP:
                    collector.has_vine_trap = True

            del self.loot[item.id]
            self._log("loot", id=collector.id, loot_type=item.type.value)
            logger.info(f"Piece {collector.id} collected {item.type.value} loot")
            events.append(
                self._event(
                    MatchEventType.LOOT_COLLECT,
                    {"id": collector.id, "loot_id": item.id, "loot_type": item.type.value},
                )
            )
        return events

    def trigger_event(self, event: RandomEvent) -> list[MatchEvent]:
        """Fire a scheduled event and apply its effect."""
        logger.info(f"Event triggered: {event.value}")
        self._log("game_event", event_type=event.value)
        events = [
            self._event(MatchEventType.GAME_EVENT, {"event_type": event.value, "time": self.elapsed})
        ]

        match event:
            case RandomEvent.PETAL_RAIN:
                for _ in range(self.config.petal_rain_drops):
                    events.extend(self.spawn_loot(event_loot=True))
            case RandomEvent.KINGS_CALL:
                for piece in self.registry.active_pieces():
                    if piece.type == PieceType.KING:
                        piece.hp = max(
                            piece.hp,
                            min(piece.hp + self.config.kings_call_bonus, self.config.kings_call_cap),
                        )
            case RandomEvent.WILD_SPROUT:
                events.extend(self.spawn_neutral())
            case RandomEvent.LATE_GAME_SURGE:
                for piece in self.registry.pieces.values():
                    piece.cooldown /= 2

        return events

    # Snapshots

    def players_dict(self) -> dict[str, dict[str, Any]]:
        """All registered pieces keyed by ID."""
        return {piece_id: piece.to_dict() for piece_id, piece in self.registry.pieces.items()}

    def snapshot(self) -> dict[str, Any]:
        """Full match state for a newly joined player."""
        tail = list(self.event_log)[-self.config.event_log_tail :] if self.config.event_log_tail else []
        return {
            "players": self.players_dict(),
            "events": tail,
            "settings": self.config.settings_dict(),
            "time": round(self.elapsed, 3),
            "late_game": self.clock.late_game,
            "loot": [item.to_dict() for item in self.loot.values()],
            "entities": [entity.to_dict() for entity in self.entities.values()],
        }

    def get_piece(self, piece_id: str) -> Piece | None:
        return self.registry.get(piece_id)
