"""Piece definitions for Chess Royale."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from chessroyale.game.board import Position


class PieceType(Enum):
    """Chess piece types."""

    PAWN = "pawn"
    ROOK = "rook"
    KNIGHT = "knight"
    BISHOP = "bishop"
    QUEEN = "queen"
    KING = "king"

    def __str__(self) -> str:
        return self.value


class Team(Enum):
    """Teams. Fixed for a piece's lifetime."""

    WHITE = "white"
    BLACK = "black"

    def __str__(self) -> str:
        return self.value


class PieceStatus(Enum):
    """Piece lifecycle status.

    ACTIVE -> DEFEATED -> RESPAWNING -> ACTIVE when respawn is enabled,
    ACTIVE -> DEFEATED -> SPECTATOR otherwise.
    """

    ACTIVE = "active"
    DEFEATED = "defeated"
    RESPAWNING = "respawning"
    SPECTATOR = "spectator"


BASE_HP: dict[PieceType, int] = {
    PieceType.PAWN: 5,
    PieceType.ROOK: 7,
    PieceType.KNIGHT: 7,
    PieceType.BISHOP: 7,
    PieceType.QUEEN: 10,
    PieceType.KING: 15,
}


@dataclass(frozen=True)
class Ability:
    """A piece type's special ability.

    Attributes:
        name: Display name
        damage: Damage dealt to each target on the tile
        cooldown: Seconds before the ability can be used again
        healing: HP restored per second to allies (king only)
    """

    name: str
    damage: int
    cooldown: float
    healing: int = 0

    @property
    def is_heal(self) -> bool:
        return self.healing > 0


ABILITIES: dict[PieceType, Ability] = {
    PieceType.PAWN: Ability(name="Hop Attack", damage=2, cooldown=5.0),
    PieceType.ROOK: Ability(name="Rock Smash", damage=3, cooldown=10.0),
    PieceType.KNIGHT: Ability(name="Tail Whip", damage=1, cooldown=8.0),
    PieceType.BISHOP: Ability(name="Leaf Gust", damage=2, cooldown=7.0),
    PieceType.QUEEN: Ability(name="Petal Storm", damage=3, cooldown=12.0),
    PieceType.KING: Ability(name="Royal Aura", damage=0, cooldown=15.0, healing=1),
}


@dataclass(eq=False)
class Piece:
    """A player-controlled piece.

    Attributes:
        id: Connection/session identifier
        type: The piece type (immutable)
        team: The piece's team (immutable)
        position: Current square
        hp: Current health, never negative
        cooldown: Seconds until the ability can be used again
        status: Lifecycle status
        shield_remaining: Seconds left on an active petal shield (0 = none)
        double_move_remaining: Seconds left to use a pending double move (0 = none)
        has_vine_trap: Whether the piece holds an unused vine trap
        immobilized_remaining: Seconds left immobilized by a vine trap
        last_move_time: Match time of the last accepted move
    """

    id: str
    type: PieceType
    team: Team
    position: Position
    hp: int
    cooldown: float = 0.0
    status: PieceStatus = PieceStatus.ACTIVE
    shield_remaining: float = 0.0
    double_move_remaining: float = 0.0
    has_vine_trap: bool = False
    immobilized_remaining: float = 0.0
    last_move_time: float = 0.0

    @classmethod
    def create(cls, piece_id: str, piece_type: PieceType, team: Team, position: Position) -> "Piece":
        """Create a new piece at full health for its type."""
        return cls(
            id=piece_id,
            type=piece_type,
            team=team,
            position=position,
            hp=BASE_HP[piece_type],
        )

    @property
    def base_hp(self) -> int:
        return BASE_HP[self.type]

    @property
    def ability(self) -> Ability:
        return ABILITIES[self.type]

    @property
    def is_active(self) -> bool:
        return self.status == PieceStatus.ACTIVE

    @property
    def respawning(self) -> bool:
        return self.status == PieceStatus.RESPAWNING

    @property
    def has_shield(self) -> bool:
        return self.shield_remaining > 0

    @property
    def has_double_move(self) -> bool:
        return self.double_move_remaining > 0

    @property
    def is_immobilized(self) -> bool:
        return self.immobilized_remaining > 0

    def advance_timers(self, dt: float) -> None:
        """Count down the cooldown and every status effect, flooring at zero."""
        self.cooldown = max(0.0, self.cooldown - dt)
        self.shield_remaining = max(0.0, self.shield_remaining - dt)
        self.double_move_remaining = max(0.0, self.double_move_remaining - dt)
        self.immobilized_remaining = max(0.0, self.immobilized_remaining - dt)

    def clear_effects(self) -> None:
        self.cooldown = 0.0
        self.shield_remaining = 0.0
        self.double_move_remaining = 0.0
        self.has_vine_trap = False
        self.immobilized_remaining = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the client feed."""
        return {
            "id": self.id,
            "type": self.type.value,
            "team": self.team.value,
            "position": self.position.to_dict(),
            "hp": self.hp,
            "cooldown": round(self.cooldown, 3),
            "status": self.status.value,
            "respawning": self.respawning,
            "effects": {
                "shield": round(self.shield_remaining, 3),
                "double_move": round(self.double_move_remaining, 3),
                "vine_trap": self.has_vine_trap,
                "immobilized": round(self.immobilized_remaining, 3),
            },
            "last_move_time": self.last_move_time,
        }
