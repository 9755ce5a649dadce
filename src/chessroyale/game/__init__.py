"""Match engine module for Chess Royale."""

from chessroyale.game.board import BOARD_SIZE, Board, Position, is_valid_position
from chessroyale.game.engine import MatchEngine, MatchEvent, MatchEventType
from chessroyale.game.errors import (
    DuplicateError,
    MatchError,
    MatchFullError,
    NotFoundError,
    ResourceExhaustedError,
    ValidationError,
)
from chessroyale.game.moves import is_legal_move, legal_destinations
from chessroyale.game.pieces import ABILITIES, BASE_HP, Ability, Piece, PieceStatus, PieceType, Team
from chessroyale.game.registry import DamageResult, MoveResult, PieceRegistry, SlotPool
from chessroyale.game.state import (
    DEFAULT_CONFIG,
    LootItem,
    LootType,
    MatchClock,
    MatchConfig,
    NeutralEntity,
    RandomEvent,
)

__all__ = [
    # Board
    "BOARD_SIZE",
    "Board",
    "Position",
    "is_valid_position",
    # Pieces
    "ABILITIES",
    "BASE_HP",
    "Ability",
    "Piece",
    "PieceStatus",
    "PieceType",
    "Team",
    # Moves
    "is_legal_move",
    "legal_destinations",
    # Registry
    "DamageResult",
    "MoveResult",
    "PieceRegistry",
    "SlotPool",
    # State
    "DEFAULT_CONFIG",
    "LootItem",
    "LootType",
    "MatchClock",
    "MatchConfig",
    "NeutralEntity",
    "RandomEvent",
    # Errors
    "DuplicateError",
    "MatchError",
    "MatchFullError",
    "NotFoundError",
    "ResourceExhaustedError",
    "ValidationError",
    # Engine
    "MatchEngine",
    "MatchEvent",
    "MatchEventType",
]
