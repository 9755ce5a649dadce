"""Movement rules for Chess Royale.

Every piece type maps to a pure function computing the squares reachable
from an origin. There is no turn order, check or castling: a move is legal
when its destination is in the piece's destination set.

Rules:
- A square holding a piece of the mover's team is never a destination
- Sliding pieces stop at the first occupied square, which they may only
  take if an opponent stands on it
- Pawns move straight onto empty squares and diagonally only to capture
"""

from collections.abc import Callable
from typing import Protocol

from chessroyale.game.board import Board, Position
from chessroyale.game.pieces import Piece, PieceType, Team

ORTHOGONAL_DIRECTIONS: list[tuple[int, int]] = [(0, 1), (0, -1), (1, 0), (-1, 0)]
DIAGONAL_DIRECTIONS: list[tuple[int, int]] = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
KNIGHT_OFFSETS: list[tuple[int, int]] = [
    (1, 2),
    (2, 1),
    (2, -1),
    (1, -2),
    (-1, -2),
    (-2, -1),
    (-2, 1),
    (-1, 2),
]
KING_OFFSETS: list[tuple[int, int]] = ORTHOGONAL_DIRECTIONS + DIAGONAL_DIRECTIONS

# White pawns move toward row 0, black pawns toward row 7
PAWN_FORWARD: dict[Team, int] = {Team.WHITE: -1, Team.BLACK: 1}
PAWN_HOME_ROW: dict[Team, int] = {Team.WHITE: 6, Team.BLACK: 1}


class OccupancyView(Protocol):
    """The board queries movement rules depend on."""

    def is_valid_position(self, position: Position) -> bool: ...

    def is_occupied(self, position: Position) -> bool: ...

    def is_opponent_at(self, position: Position, team: Team) -> bool: ...

    def is_teammate_at(self, position: Position, team: Team) -> bool: ...


class _BoardWithout:
    """A board view that ignores one piece.

    Used for the second leg of a double move, where the mover has already
    left its original square.
    """

    def __init__(self, board: Board, piece: Piece) -> None:
        self._board = board
        self._piece = piece

    def _others(self, position: Position) -> list[Piece]:
        return [p for p in self._board.pieces_at(position) if p is not self._piece]

    def is_valid_position(self, position: Position) -> bool:
        return self._board.is_valid_position(position)

    def is_occupied(self, position: Position) -> bool:
        return bool(self._others(position))

    def is_opponent_at(self, position: Position, team: Team) -> bool:
        return any(p.team != team for p in self._others(position))

    def is_teammate_at(self, position: Position, team: Team) -> bool:
        return any(p.team == team for p in self._others(position))


RuleFn = Callable[[Position, Team, OccupancyView], set[Position]]


def _can_land(view: OccupancyView, position: Position, team: Team) -> bool:
    """On-board and either empty or held only by opponents."""
    if not view.is_valid_position(position):
        return False
    return not view.is_teammate_at(position, team)


def _can_capture(view: OccupancyView, position: Position, team: Team) -> bool:
    """On-board, opponent-occupied and free of teammates."""
    return _can_land(view, position, team) and view.is_opponent_at(position, team)


def _ray_destinations(
    origin: Position,
    team: Team,
    view: OccupancyView,
    directions: list[tuple[int, int]],
) -> set[Position]:
    """Cast rays from origin, stopping at the first occupied square."""
    destinations: set[Position] = set()
    for dx, dz in directions:
        target = origin.offset(dx, dz)
        while view.is_valid_position(target):
            if not view.is_occupied(target):
                destinations.add(target)
            else:
                if _can_capture(view, target, team):
                    destinations.add(target)
                break
            target = target.offset(dx, dz)
    return destinations


def _offset_destinations(
    origin: Position,
    team: Team,
    view: OccupancyView,
    offsets: list[tuple[int, int]],
) -> set[Position]:
    """Fixed-offset jumps onto empty or opponent squares."""
    return {
        origin.offset(dx, dz)
        for dx, dz in offsets
        if _can_land(view, origin.offset(dx, dz), team)
    }


def _pawn_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    """Compute pawn destinations.

    Pawns can:
    - Move forward 1 square onto an empty square
    - Move forward 2 squares from their home row if both squares are empty
    - Move diagonally forward only onto an opponent
    """
    destinations: set[Position] = set()
    direction = PAWN_FORWARD[team]

    forward = origin.offset(0, direction)
    if view.is_valid_position(forward) and not view.is_occupied(forward):
        destinations.add(forward)

        if origin.z == PAWN_HOME_ROW[team]:
            double_forward = origin.offset(0, 2 * direction)
            if view.is_valid_position(double_forward) and not view.is_occupied(double_forward):
                destinations.add(double_forward)

    for dx in (-1, 1):
        diagonal = origin.offset(dx, direction)
        if _can_capture(view, diagonal, team):
            destinations.add(diagonal)

    return destinations


def _rook_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    return _ray_destinations(origin, team, view, ORTHOGONAL_DIRECTIONS)


def _bishop_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    return _ray_destinations(origin, team, view, DIAGONAL_DIRECTIONS)


def _queen_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    return _rook_destinations(origin, team, view) | _bishop_destinations(origin, team, view)


def _knight_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    return _offset_destinations(origin, team, view, KNIGHT_OFFSETS)


def _king_destinations(origin: Position, team: Team, view: OccupancyView) -> set[Position]:
    return _offset_destinations(origin, team, view, KING_OFFSETS)


MOVE_RULES: dict[PieceType, RuleFn] = {
    PieceType.PAWN: _pawn_destinations,
    PieceType.ROOK: _rook_destinations,
    PieceType.KNIGHT: _knight_destinations,
    PieceType.BISHOP: _bishop_destinations,
    PieceType.QUEEN: _queen_destinations,
    PieceType.KING: _king_destinations,
}


def destinations_from(
    piece_type: PieceType,
    team: Team,
    origin: Position,
    view: OccupancyView,
) -> set[Position]:
    """Get the single-move destinations for a piece type standing at origin."""
    return MOVE_RULES[piece_type](origin, team, view)


def legal_destinations(piece: Piece, board: Board) -> set[Position]:
    """Get every square the piece may move to right now.

    A piece holding a double move may also chain a second move from any
    single-move destination.
    """
    destinations = destinations_from(piece.type, piece.team, piece.position, board)

    if piece.has_double_move:
        view = _BoardWithout(board, piece)
        for first_step in list(destinations):
            destinations |= destinations_from(piece.type, piece.team, first_step, view)
        destinations.discard(piece.position)

    return destinations


def is_legal_move(piece: Piece, board: Board, destination: Position) -> bool:
    """Check if moving the piece to destination is legal."""
    if not board.is_valid_position(destination):
        return False
    return destination in legal_destinations(piece, board)
