"""Piece registry for Chess Royale.

The registry is the only owner of live pieces. It keeps the board's
occupancy index in step with piece positions and drives each piece through
its lifecycle (active, defeated, respawning or spectator).
"""

import logging
from dataclasses import dataclass, field

from chessroyale.game.board import BOARD_SIZE, Board, Position
from chessroyale.game.errors import DuplicateError, NotFoundError, ValidationError
from chessroyale.game.moves import is_legal_move
from chessroyale.game.pieces import Piece, PieceStatus, PieceType, Team

logger = logging.getLogger(__name__)

# Traditional back row, file 0 to 7
STANDARD_BACK_ROW = [
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
]

# Row 0: Black back row
# Row 1: Black pawns
# Row 6: White pawns
# Row 7: White back row
BACK_ROWS: dict[Team, int] = {Team.WHITE: 7, Team.BLACK: 0}
PAWN_ROWS: dict[Team, int] = {Team.WHITE: 6, Team.BLACK: 1}


def starting_layout(size: int = BOARD_SIZE) -> dict[tuple[Team, PieceType], list[Position]]:
    """Build the traditional starting squares for every team and piece type.

    Squares are listed in file order so slot reservation is deterministic.
    """
    layout: dict[tuple[Team, PieceType], list[Position]] = {}
    for team in Team:
        for x, piece_type in enumerate(STANDARD_BACK_ROW):
            layout.setdefault((team, piece_type), []).append(Position(x, BACK_ROWS[team]))
        for x in range(size):
            layout.setdefault((team, PieceType.PAWN), []).append(Position(x, PAWN_ROWS[team]))
    return layout


class SlotPool:
    """Pool of starting squares handed out to joining players.

    Each team and piece type has its own list of traditional squares. A
    reserved square returns to the pool when its holder leaves.
    """

    def __init__(self, layout: dict[tuple[Team, PieceType], list[Position]] | None = None) -> None:
        self._layout = layout if layout is not None else starting_layout()
        self._reserved: dict[str, tuple[Team, PieceType, Position]] = {}

    def _taken(self, team: Team, piece_type: PieceType) -> set[Position]:
        return {
            pos
            for slot_team, slot_type, pos in self._reserved.values()
            if slot_team == team and slot_type == piece_type
        }

    def available(self, team: Team, piece_type: PieceType) -> list[Position]:
        """Get the free starting squares for a team and type, in file order."""
        taken = self._taken(team, piece_type)
        return [pos for pos in self._layout.get((team, piece_type), []) if pos not in taken]

    def reserve(self, piece_id: str, team: Team, piece_type: PieceType) -> Position | None:
        """Reserve the first free starting square, or None if the pool is exhausted.

        A second reservation for the same id replaces the first.
        """
        self.release(piece_id)
        free = self.available(team, piece_type)
        if not free:
            return None
        self._reserved[piece_id] = (team, piece_type, free[0])
        return free[0]

    def release(self, piece_id: str) -> bool:
        """Release a reservation. Returns True if one was held."""
        return self._reserved.pop(piece_id, None) is not None

    def __len__(self) -> int:
        return len(self._reserved)


@dataclass
class MoveResult:
    """Result of a move request.

    Attributes:
        success: Whether the move was applied
        position: The piece's new square on success, its last known good
                  square on rejection
        reason: Rejection reason code
    """

    success: bool
    position: Position
    reason: str | None = None


@dataclass
class DamageResult:
    """Result of applying damage to a piece.

    Attributes:
        piece_id: Damaged piece
        damage: Damage actually subtracted from health
        hp: Health after the hit
        absorbed: Whether a shield swallowed the hit
        defeated: Whether this hit defeated the piece
    """

    piece_id: str
    damage: int
    hp: int
    absorbed: bool = False
    defeated: bool = False


@dataclass
class PieceRegistry:
    """Canonical set of live pieces and their occupancy index.

    Attributes:
        board: Occupancy index, updated on every position change
        pieces: Map of piece ID to piece, in registration order
        slots: Starting-square reservations
    """

    board: Board = field(default_factory=Board)
    pieces: dict[str, Piece] = field(default_factory=dict)
    slots: SlotPool = field(default_factory=SlotPool)

    def __len__(self) -> int:
        return len(self.pieces)

    def __contains__(self, piece_id: object) -> bool:
        return piece_id in self.pieces

    def get(self, piece_id: str) -> Piece | None:
        return self.pieces.get(piece_id)

    def require(self, piece_id: str) -> Piece:
        """Get a piece or raise NotFoundError."""
        piece = self.pieces.get(piece_id)
        if piece is None:
            raise NotFoundError(f"Unknown piece {piece_id}")
        return piece

    def active_pieces(self) -> list[Piece]:
        return [p for p in self.pieces.values() if p.is_active]

    def pieces_for_team(self, team: Team) -> list[Piece]:
        """Get all active pieces on a team."""
        return [p for p in self.pieces.values() if p.team == team and p.is_active]

    def register(self, piece_id: str, piece_type: PieceType, team: Team, position: Position) -> Piece:
        """Create and index a piece at full health.

        Raises:
            DuplicateError: If the ID is already registered
            ValidationError: If the position is off the board
        """
        if piece_id in self.pieces:
            raise DuplicateError(f"Piece {piece_id} is already registered")
        if not self.board.is_valid_position(position):
            raise ValidationError(f"Position ({position.x}, {position.z}) is off the board")

        piece = Piece.create(piece_id, piece_type, team, position)
        self.pieces[piece_id] = piece
        self.board.place(piece, position)
        return piece

    def move(self, piece_id: str, destination: Position, now: float = 0.0) -> MoveResult:
        """Move a piece if the move is legal.

        Args:
            piece_id: ID of the piece to move
            destination: Requested square
            now: Match time, recorded as the piece's last move time

        Returns:
            MoveResult; on rejection it carries the piece's current square so
            the caller can correct the client

        Raises:
            NotFoundError: If the piece is not registered
        """
        piece = self.require(piece_id)

        if not piece.is_active:
            return MoveResult(success=False, position=piece.position, reason="not_active")
        if piece.is_immobilized:
            return MoveResult(success=False, position=piece.position, reason="immobilized")
        if not self.board.is_valid_position(destination):
            return MoveResult(success=False, position=piece.position, reason="off_board")
        if not is_legal_move(piece, self.board, destination):
            return MoveResult(success=False, position=piece.position, reason="invalid_move")

        self.board.relocate(piece, piece.position, destination)
        piece.position = destination
        piece.last_move_time = now
        piece.double_move_remaining = 0.0
        return MoveResult(success=True, position=destination)

    def apply_damage(self, piece_id: str, amount: int) -> DamageResult:
        """Damage a piece, honouring its shield.

        An active shield swallows the whole hit and is used up. A hit that
        brings health to 0 defeats the piece; health never goes negative.
        Pieces that are not active take no damage, so defeat fires once.

        Raises:
            NotFoundError: If the piece is not registered
            ValidationError: If the amount is negative
        """
        if amount < 0:
            raise ValidationError(f"Damage must not be negative, got {amount}")

        piece = self.require(piece_id)

        if not piece.is_active:
            return DamageResult(piece_id=piece_id, damage=0, hp=piece.hp)

        if piece.has_shield:
            piece.shield_remaining = 0.0
            return DamageResult(piece_id=piece_id, damage=0, hp=piece.hp, absorbed=True)

        damage = min(amount, piece.hp)
        piece.hp -= damage

        if piece.hp <= 0:
            piece.hp = 0
            self._defeat(piece)
            return DamageResult(piece_id=piece_id, damage=damage, hp=0, defeated=True)

        return DamageResult(piece_id=piece_id, damage=damage, hp=piece.hp)

    def heal(self, piece_id: str, amount: int, cap: int | None = None) -> int:
        """Restore health to an active piece, never above cap.

        Health already above the cap is left alone. Returns the HP gained.
        """
        piece = self.require(piece_id)
        if not piece.is_active:
            return 0
        ceiling = piece.base_hp if cap is None else cap
        if piece.hp >= ceiling:
            return 0
        gained = min(amount, ceiling - piece.hp)
        piece.hp += gained
        return gained

    def _defeat(self, piece: Piece) -> None:
        """Active -> Defeated. The piece leaves the occupancy index."""
        piece.status = PieceStatus.DEFEATED
        piece.clear_effects()
        self.board.vacate(piece, piece.position)
        logger.info(f"Piece {piece.id} ({piece.team} {piece.type}) defeated")

    def begin_respawn(self, piece_id: str, respawn_enabled: bool) -> PieceStatus:
        """Move a defeated piece on to Respawning, or Spectator if respawn is off."""
        piece = self.require(piece_id)
        if piece.status != PieceStatus.DEFEATED:
            return piece.status
        piece.status = PieceStatus.RESPAWNING if respawn_enabled else PieceStatus.SPECTATOR
        return piece.status

    def respawn(self, piece_id: str, position: Position) -> Piece:
        """Respawning -> Active at a new square with full health.

        Raises:
            NotFoundError: If the piece is not registered
            ValidationError: If the piece is not respawning or the square is off the board
        """
        piece = self.require(piece_id)
        if piece.status != PieceStatus.RESPAWNING:
            raise ValidationError(f"Piece {piece_id} is not respawning")
        if not self.board.is_valid_position(position):
            raise ValidationError(f"Position ({position.x}, {position.z}) is off the board")

        piece.hp = piece.base_hp
        piece.clear_effects()
        piece.position = position
        piece.status = PieceStatus.ACTIVE
        self.board.place(piece, position)
        return piece

    def remove(self, piece_id: str) -> Piece | None:
        """Delete a piece and release its starting-square reservation."""
        self.slots.release(piece_id)
        piece = self.pieces.pop(piece_id, None)
        if piece is None:
            return None
        self.board.vacate(piece, piece.position)
        return piece
