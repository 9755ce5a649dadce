"""Match state for Chess Royale: configuration, clock, loot and neutral entities."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from chessroyale.game.board import BOARD_SIZE, Position
from chessroyale.game.pieces import Team


@dataclass(frozen=True)
class MatchConfig:
    """Static constants a match is parameterized over.

    All durations are in seconds of match time.

    Attributes:
        board_size: Board width and height in squares
        event_interval: Time between random events
        loot_interval: Time between regular loot drops
        late_game_time: Match time after which random events become surges
        respawn_enabled: Whether defeated pieces come back
        respawn_delay: Time between defeat and respawn
        friendly_fire: Whether abilities hurt teammates
        max_players: Maximum number of registered pieces
        neutral_move_interval: Time between Vine Beast steps
        neutral_hp: Vine Beast health
        collision_damage: Damage a Vine Beast deals on stepping onto a piece
        petal_rain_drops: Loot items dropped by the Petal Rain event
        kings_call_bonus: HP granted to every king by King's Call
        kings_call_cap: HP ceiling for King's Call
        aura_duration: How long a king's Royal Aura heals allies
        vine_trap_duration: How long a sprung vine trap immobilizes
        spawn_probes: Random squares tried before scanning the whole board
        event_log_size: Number of log entries kept in memory
        event_log_tail: Number of log entries sent to a new player
    """

    board_size: int = BOARD_SIZE
    event_interval: float = 180.0
    loot_interval: float = 120.0
    late_game_time: float = 480.0
    respawn_enabled: bool = True
    respawn_delay: float = 5.0
    friendly_fire: bool = False
    max_players: int = 32
    neutral_move_interval: float = 3.0
    neutral_hp: int = 10
    collision_damage: int = 2
    petal_rain_drops: int = 3
    kings_call_bonus: int = 5
    kings_call_cap: int = 20
    aura_duration: float = 5.0
    vine_trap_duration: float = 5.0
    spawn_probes: int = 20
    event_log_size: int = 100
    event_log_tail: int = 10

    def settings_dict(self) -> dict[str, Any]:
        """The subset of settings clients are told about."""
        return {
            "respawn_enabled": self.respawn_enabled,
            "respawn_time": self.respawn_delay,
            "max_players": self.max_players,
            "friendly_fire": self.friendly_fire,
            "event_interval": self.event_interval,
            "loot_interval": self.loot_interval,
            "late_game_time": self.late_game_time,
        }


DEFAULT_CONFIG = MatchConfig()


class LootType(Enum):
    """Collectible loot kinds."""

    DOUBLE_MOVE = "doubleMove"  # Chain two moves into one
    PETAL_SHIELD = "petalShield"  # Absorbs one hit
    VINE_TRAP = "vineTrap"  # Immobilizes opponents on a tile

    @property
    def duration(self) -> float:
        return 10.0 if self == LootType.PETAL_SHIELD else 5.0


class RandomEvent(Enum):
    """Scheduled match events."""

    PETAL_RAIN = "petal_rain"  # Extra loot drops
    KINGS_CALL = "kings_call"  # Kings gain HP
    WILD_SPROUT = "wild_sprout"  # Spawn a Vine Beast
    LATE_GAME_SURGE = "late_game_surge"  # Halve cooldowns


# Events the scheduler picks from before the late game
RANDOM_EVENTS = [RandomEvent.PETAL_RAIN, RandomEvent.KINGS_CALL, RandomEvent.WILD_SPROUT]


@dataclass
class LootItem:
    """A loot item lying on the board.

    Attributes:
        id: Unique loot ID
        type: Loot kind
        position: Square the loot lies on
        duration: Effect duration once collected
        event_loot: Whether the item was dropped by an event
    """

    id: str
    type: LootType
    position: Position
    duration: float
    event_loot: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "position": self.position.to_dict(),
            "duration": self.duration,
            "event_loot": self.event_loot,
        }


@dataclass
class NeutralEntity:
    """A Vine Beast: a mobile hazard belonging to no team.

    Attributes:
        id: Unique entity ID
        position: Current square
        hp: Current health
        move_timer: Seconds accumulated since the last step
    """

    id: str
    position: Position
    hp: int
    move_timer: float = 0.0
    type: str = "vineBeast"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "hp": self.hp,
        }


@dataclass
class RoyalAura:
    """A king's heal-over-time effect on its team.

    Attributes:
        source_id: ID of the king that cast the aura
        team: Team healed by the aura
        healing: HP restored to each ally per pulse
        remaining: Seconds until the aura ends
        pulse_timer: Seconds accumulated toward the next pulse
    """

    source_id: str
    team: Team
    healing: int
    remaining: float
    pulse_timer: float = 0.0


@dataclass
class MatchClock:
    """Elapsed match time and scheduler accumulators.

    Attributes:
        elapsed: Seconds since match start
        event_timer: Seconds since the last event trigger
        loot_timer: Seconds since the last loot drop
        late_game: Whether the late-game threshold has been crossed
    """

    elapsed: float = 0.0
    event_timer: float = 0.0
    loot_timer: float = 0.0
    late_game: bool = False

    def advance(self, dt: float) -> None:
        self.elapsed += dt
        self.event_timer += dt
        self.loot_timer += dt
