"""
Capturing rules / attacking rules.

Key idea: same strategy pattern as the movement rules (see moves.py), one geometric attack check per piece type.
All checks answer _"could the piece standing on `from_square` take on `to_square`?"_ on a read-only board.

Invalid input never raises here: an invalid coordinate, an unknown piece type or `from == to` is simply "no attack".
"""

from typing import Any, Callable, Optional, Protocol

from src.core.shared_types import COLOR_NAMES, Color, PieceType
from src.rules.pieces import Piece
from src.rules.square import Square, is_valid_coordinate


class Board(Protocol):
    """Just the parts the attack strategies need"""

    def piece(self, square: Square) -> Optional[Piece]: ...
    def is_empty(self, square: Square) -> bool: ...
    def locate_color(self, color: Color) -> list[Square]: ...


Vector = tuple[int, int]

KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
KING_DELTAS: list[Vector] = [
    (0, 1),
    (0, -1),
    (1, 0),
    (-1, 0),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]


def pawn_direction(color: Color) -> int:
    """White moves UP the board (towards row 0), black moves DOWN (towards row 7)"""
    return -1 if color == Color.WHITE else 1


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def squares_between(from_square: Square, to_square: Square) -> list[Square]:
    """
    The squares strictly in between two squares on the same row, column or diagonal.
    Any other pair of squares has nothing "in between" and gives an empty list.
    """
    d_row = to_square.row - from_square.row
    d_col = to_square.col - from_square.col
    is_line = d_row == 0 or d_col == 0 or abs(d_row) == abs(d_col)
    if not is_line or from_square == to_square:
        return []

    step_row, step_col = _sign(d_row), _sign(d_col)
    squares: list[Square] = []
    square = from_square.offset(step_row, step_col)
    while square != to_square:
        squares.append(square)
        square = square.offset(step_row, step_col)
    return squares


def is_path_clear(board: Board, from_square: Square, to_square: Square) -> bool:
    """No piece in any intermediate square (end points are not looked at)."""
    return all(board.is_empty(square) for square in squares_between(from_square, to_square))


# --- GEOMETRY PER PIECE TYPE ---
def can_pawn_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """
    Pawns take diagonally, one square towards the opponent's side.
    NOTE: differs from the forward movement pattern, a pawn never attacks the square in front of it.
    """
    d_row = to_square.row - from_square.row
    d_col = to_square.col - from_square.col
    return d_row == pawn_direction(piece.color) and abs(d_col) == 1


def can_knight_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """Knights always move such that |delta_row| + |delta_col| = 3 (and neither is 0)"""
    d_row = abs(to_square.row - from_square.row)
    d_col = abs(to_square.col - from_square.col)
    return (d_row, d_col) in {(1, 2), (2, 1)}


def can_bishop_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """Bishops move diagonally: |delta_row| = |delta_col|, with nothing in between"""
    d_row = abs(to_square.row - from_square.row)
    d_col = abs(to_square.col - from_square.col)
    if d_row != d_col or d_row == 0:
        return False
    return is_path_clear(board, from_square, to_square)


def can_rook_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """Rooks move either horizontally or vertically, with nothing in between"""
    same_row = from_square.row == to_square.row
    same_col = from_square.col == to_square.col
    if same_row == same_col:
        return False
    return is_path_clear(board, from_square, to_square)


def can_queen_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return can_rook_attack_square(
        board, from_square, to_square, piece
    ) or can_bishop_attack_square(board, from_square, to_square, piece)


def can_king_attack_square(
    board: Board, from_square: Square, to_square: Square, piece: Piece
) -> bool:
    """The king attacks the 8 adjacent squares."""
    d_row = abs(to_square.row - from_square.row)
    d_col = abs(to_square.col - from_square.col)
    return max(d_row, d_col) == 1


# --- STRATEGY PATTERN: ATTACKING RULES ---
CanAttackFn = Callable[[Board, Square, Square, Piece], bool]
ATTACK_RULES: dict[PieceType, CanAttackFn] = {
    PieceType.PAWN: can_pawn_attack_square,
    PieceType.KNIGHT: can_knight_attack_square,
    PieceType.BISHOP: can_bishop_attack_square,
    PieceType.ROOK: can_rook_attack_square,
    PieceType.QUEEN: can_queen_attack_square,
    PieceType.KING: can_king_attack_square,
}


def _as_piece(piece: Any) -> Optional[Piece]:
    if isinstance(piece, Piece):
        return piece
    return Piece.from_raw(piece)


def can_piece_attack_square(
    board: Board, from_square: Any, to_square: Any, piece: Any = None
) -> bool:
    """
    Entry point of the attack validator.
    ---

    Accepts Squares or raw {row, col} coordinates. Without a piece, the piece standing on `from_square` is used.
    Returns False (never raises) for invalid coordinates, identical squares, a missing or unknown piece.
    """
    if not (is_valid_coordinate(from_square) and is_valid_coordinate(to_square)):
        return False
    from_sq, to_sq = Square.from_raw(from_square), Square.from_raw(to_square)
    if from_sq == to_sq:
        return False

    attacker = _as_piece(piece) if piece is not None else board.piece(from_sq)
    if attacker is None:
        return False
    rule = ATTACK_RULES.get(attacker.type)
    if rule is None:
        return False
    return rule(board, from_sq, to_sq, attacker)


def attackers_of(
    board: Board, square: Square, by_color: Color
) -> list[tuple[Square, Piece]]:
    """All pieces of `by_color` that currently attack the square"""
    found: list[tuple[Square, Piece]] = []
    for attacker_square in board.locate_color(by_color):
        attacker = board.piece(attacker_square)
        assert attacker is not None
        if ATTACK_RULES[attacker.type](board, attacker_square, square, attacker):
            found.append((attacker_square, attacker))
    return found


def is_square_under_attack(
    board: Board, row: Any, col: Any, defending_color: Any
) -> bool:
    """
    Scans all pieces of the defending color's opponent.
    False for an invalid square or a missing/unknown defending color.
    """
    if not is_valid_coordinate({"row": row, "col": col}):
        return False
    if not isinstance(defending_color, str) or defending_color not in COLOR_NAMES:
        return False
    attacking_color = Color(defending_color).opponent
    return bool(attackers_of(board, Square(row, col), attacking_color))


def is_any_under_attack(board: Board, squares: list[Square], defending_color: Color) -> bool:
    return any(
        is_square_under_attack(board, square.row, square.col, defending_color)
        for square in squares
    )


def classify_attack(piece_type: Any, from_square: Square, to_square: Square) -> str:
    """Label used in check details. Sliding pieces are labelled by the line they attack along."""
    if piece_type == PieceType.KNIGHT:
        return "knight_attack"
    if piece_type == PieceType.KING:
        return "adjacent_attack"
    if piece_type == PieceType.PAWN:
        return "diagonal_attack"
    if piece_type in (PieceType.BISHOP, PieceType.ROOK, PieceType.QUEEN):
        if from_square.row == to_square.row:
            return "horizontal_attack"
        if from_square.col == to_square.col:
            return "vertical_attack"
        return "diagonal_attack"
    return "unknown_attack"
