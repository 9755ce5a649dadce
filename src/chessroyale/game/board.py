"""Board representation for Chess Royale.

The board is an 8x8 grid addressed by (x, z). It does not own pieces; it is
the occupancy index the piece registry keeps up to date. More than one piece
may stand on a tile, so each tile maps to an ordered list of occupants.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chessroyale.game.pieces import Piece, Team

BOARD_SIZE = 8


@dataclass(frozen=True)
class Position:
    """A square on the board.

    Attributes:
        x: File index, 0-7
        z: Rank index, 0-7 (row 0 is black's back row, row 7 is white's)
    """

    x: int
    z: int

    def offset(self, dx: int, dz: int) -> "Position":
        """Return the position shifted by (dx, dz). May be off-board."""
        return Position(self.x + dx, self.z + dz)

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "z": self.z}


def is_valid_position(position: Position, size: int = BOARD_SIZE) -> bool:
    """Check if a position lies on the board."""
    return 0 <= position.x < size and 0 <= position.z < size


def all_positions(size: int = BOARD_SIZE) -> list[Position]:
    """All board squares in scan order (x-major, like the spawn fallback scan)."""
    return [Position(x, z) for x in range(size) for z in range(size)]


@dataclass
class Board:
    """Occupancy index for the board.

    Attributes:
        size: Board width and height in squares
        tiles: Map of position to the pieces standing on it, in arrival order
    """

    size: int = BOARD_SIZE
    tiles: dict[Position, list["Piece"]] = field(default_factory=dict)

    def is_valid_position(self, position: Position) -> bool:
        return is_valid_position(position, self.size)

    def pieces_at(self, position: Position) -> list["Piece"]:
        """Get all pieces standing on a square."""
        return list(self.tiles.get(position, []))

    def piece_at(self, position: Position) -> "Piece | None":
        """Get the first piece that arrived on a square, if any."""
        occupants = self.tiles.get(position)
        if not occupants:
            return None
        return occupants[0]

    def is_occupied(self, position: Position) -> bool:
        return bool(self.tiles.get(position))

    def is_opponent_at(self, position: Position, team: "Team") -> bool:
        """Check if any piece of the other team stands on a square."""
        return any(p.team != team for p in self.tiles.get(position, []))

    def is_teammate_at(self, position: Position, team: "Team") -> bool:
        """Check if any piece of the same team stands on a square."""
        return any(p.team == team for p in self.tiles.get(position, []))

    def place(self, piece: "Piece", position: Position) -> None:
        """Index a piece at a position."""
        occupants = self.tiles.setdefault(position, [])
        if piece not in occupants:
            occupants.append(piece)

    def vacate(self, piece: "Piece", position: Position) -> None:
        """Remove a piece from a position's occupants, if present."""
        occupants = self.tiles.get(position)
        if not occupants:
            return
        if piece in occupants:
            occupants.remove(piece)
        if not occupants:
            del self.tiles[position]

    def relocate(self, piece: "Piece", old: Position, new: Position) -> None:
        """Move a piece between two positions in one step."""
        self.vacate(piece, old)
        self.place(piece, new)
