"""
Geometry/Base movement rules

Key idea: Use strategy pattern to define the move sets for each piece type.
* MOVEMENT_RULES generate candidate moves (used to enumerate legal moves)
* MOVE_VALIDATORS check a single requested move, and report *why* it is not possible

Legality (king safety, castling, en passant, promotion) is checked later by Game
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Self

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import CastlingSide, Color, PieceType
from src.rules.attacks import (
    DIAGONALS,
    KING_DELTAS,
    KNIGHT_DELTAS,
    STRAIGHTS,
    Vector,
    is_path_clear,
    pawn_direction,
)
from src.rules.pieces import FEN_TO_PIECE, PIECE_TO_FEN, PROMOTION_OPTIONS, Piece
from src.rules.square import BOARD_DIMENSIONS, Square


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece(self, square: Square) -> Optional[Piece]: ...
    def is_empty(self, square: Square) -> bool: ...


@dataclass
class Move:
    """basic definition of a move to be made"""

    from_square: Square
    to_square: Square
    promote_to: Optional[PieceType] = None
    castling_side: Optional[CastlingSide] = None
    is_en_passant: bool = False

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---
        One of the standard chess notations for moves

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)

        NOTE: Castling / En Passant will be set later by Game class
        """
        from_sq = Square.from_algebraic(uci[:2])
        to_sq = Square.from_algebraic(uci[2:4])
        move = cls(from_sq, to_sq)
        if len(uci) == 5:
            move.promote_to = FEN_TO_PIECE[uci[4].lower()]
        return move

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        piece_char = PIECE_TO_FEN[self.promote_to] if self.promote_to else ""
        return f"{self.from_square.to_algebraic()}{self.to_square.to_algebraic()}{piece_char}"

    def to_request(self) -> dict:
        """The {from, to, promotion?} mapping accepted by Game.make_move"""
        request: dict = {"from": self.from_square.to_raw(), "to": self.to_square.to_raw()}
        if self.promote_to:
            request["promotion"] = self.promote_to.value
        return request


def pawn_start_row(color: Color) -> int:
    return BOARD_DIMENSIONS[0] - 2 if color == Color.WHITE else 1


def promotion_row(color: Color) -> int:
    """The farthest rank from the pawn's own side"""
    return 0 if color == Color.WHITE else BOARD_DIMENSIONS[0] - 1


def _is_opponent(board: Board, square: Square, color: Color) -> bool:
    piece = board.piece(square)
    return piece is not None and piece.color != color


# --- MOVEMENT RULES ---
def raycasting_move(square: Square, board: Board, directions: list[Vector]) -> list[Move]:
    """
    Raycasting algorithm
    -----

    ---
    The main trick we use to check the 'line of sight of a piece'.
    We define move directions and move along them until we hit another piece or
    the edge of the board.
    """
    piece = board.piece(square)
    assert piece is not None

    moves: list[Move] = []
    for d_row, d_col in directions:
        target_square = square.offset(d_row, d_col)
        while target_square.is_within_bounds():
            if not board.is_empty(target_square):
                # only need to add the first occupied square found if it is the opponent's: then it can be captured.
                if _is_opponent(board, target_square, piece.color):
                    moves.append(Move(square, target_square))
                break
            moves.append(Move(square, target_square))
            target_square = target_square.offset(d_row, d_col)
    return moves


def single_step_move(square: Square, board: Board, deltas: list[Vector]) -> list[Move]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just can move a single step along a direction"""
    piece = board.piece(square)
    assert piece is not None

    moves: list[Move] = []
    for d_row, d_col in deltas:
        target_square = square.offset(d_row, d_col)
        if not target_square.is_within_bounds():
            continue
        if board.is_empty(target_square) or _is_opponent(board, target_square, piece.color):
            moves.append(Move(square, target_square))
    return moves


def candidate_pawn_moves(square: Square, board: Board) -> list[Move]:
    """
    A pawn:
    - moves by a single square forward.
    - It can move by two in their first move (so when on their starting rank), if both squares are empty
    - takes diagonally

    NOTE: En passant will be taken care of in the Game class
    """
    piece = board.piece(square)
    assert piece is not None
    direction = pawn_direction(piece.color)

    moves: list[Move] = []
    one_step = square.offset(direction, 0)
    if one_step.is_within_bounds() and board.is_empty(one_step):
        moves.append(Move(square, one_step))
        two_steps = square.offset(2 * direction, 0)
        if square.row == pawn_start_row(piece.color) and board.is_empty(two_steps):
            moves.append(Move(square, two_steps))

    # pawns take diagonally:
    for d_col in (-1, 1):
        target_square = square.offset(direction, d_col)
        if target_square.is_within_bounds() and _is_opponent(board, target_square, piece.color):
            moves.append(Move(square, target_square))
    return moves


def candidate_knight_moves(square: Square, board: Board) -> list[Move]:
    return single_step_move(square, board, KNIGHT_DELTAS)


def candidate_bishop_moves(square: Square, board: Board) -> list[Move]:
    return raycasting_move(square, board, DIAGONALS)


def candidate_rook_moves(square: Square, board: Board) -> list[Move]:
    return raycasting_move(square, board, STRAIGHTS)


def candidate_queen_moves(square: Square, board: Board) -> list[Move]:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return candidate_bishop_moves(square, board) + candidate_rook_moves(square, board)


def candidate_king_moves(square: Square, board: Board) -> list[Move]:
    """
    The king can move by a single square at the time.

    Castling is modelled as a special king move (handled separately).
    """
    return single_step_move(square, board, KING_DELTAS)


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Square, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.PAWN: candidate_pawn_moves,
    PieceType.KNIGHT: candidate_knight_moves,
    PieceType.BISHOP: candidate_bishop_moves,
    PieceType.ROOK: candidate_rook_moves,
    PieceType.QUEEN: candidate_queen_moves,
    PieceType.KING: candidate_king_moves,
}


# --- VALIDATING A SINGLE MOVE ---
def _blocked(piece: Piece) -> IllegalMoveError:
    return IllegalMoveError(
        f"The path of the {piece.type.value} is blocked by other pieces.",
        code=ErrorCode.PATH_BLOCKED,
    )


def _wrong_pattern(piece: Piece) -> IllegalMoveError:
    return IllegalMoveError(
        f"A {piece.type.value} cannot move in that pattern.",
        code=ErrorCode.INVALID_MOVEMENT,
    )


def validate_pawn_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    """Forward onto empty squares only, diagonally only when taking (which includes en passant)"""
    direction = pawn_direction(piece.color)
    d_row = to_sq.row - from_sq.row
    d_col = to_sq.col - from_sq.col

    if d_col == 0 and d_row == direction:
        if not board.is_empty(to_sq):
            raise _blocked(piece)
        return

    if d_col == 0 and d_row == 2 * direction and from_sq.row == pawn_start_row(piece.color):
        if not board.is_empty(from_sq.offset(direction, 0)) or not board.is_empty(to_sq):
            raise _blocked(piece)
        return

    if abs(d_col) == 1 and d_row == direction:
        if _is_opponent(board, to_sq, piece.color) or to_sq == en_passant_target:
            return
        raise IllegalMoveError(
            "A pawn can only move diagonally when capturing.",
            code=ErrorCode.INVALID_MOVEMENT,
        )

    raise _wrong_pattern(piece)


def validate_knight_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    d_row, d_col = abs(to_sq.row - from_sq.row), abs(to_sq.col - from_sq.col)
    if (d_row, d_col) not in {(1, 2), (2, 1)}:
        raise _wrong_pattern(piece)


def validate_bishop_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    if abs(to_sq.row - from_sq.row) != abs(to_sq.col - from_sq.col):
        raise _wrong_pattern(piece)
    if not is_path_clear(board, from_sq, to_sq):
        raise _blocked(piece)


def validate_rook_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    if from_sq.row != to_sq.row and from_sq.col != to_sq.col:
        raise _wrong_pattern(piece)
    if not is_path_clear(board, from_sq, to_sq):
        raise _blocked(piece)


def validate_queen_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    d_row, d_col = abs(to_sq.row - from_sq.row), abs(to_sq.col - from_sq.col)
    if d_row != 0 and d_col != 0 and d_row != d_col:
        raise _wrong_pattern(piece)
    if not is_path_clear(board, from_sq, to_sq):
        raise _blocked(piece)


def validate_king_move(
    board: Board, from_sq: Square, to_sq: Square, piece: Piece, en_passant_target: Optional[Square]
) -> None:
    """Single steps only. The two-square castling move is validated by the castling rules."""
    if max(abs(to_sq.row - from_sq.row), abs(to_sq.col - from_sq.col)) != 1:
        raise _wrong_pattern(piece)


ValidateMoveFn = Callable[[Board, Square, Square, Piece, Optional[Square]], None]
MOVE_VALIDATORS: dict[PieceType, ValidateMoveFn] = {
    PieceType.PAWN: validate_pawn_move,
    PieceType.KNIGHT: validate_knight_move,
    PieceType.BISHOP: validate_bishop_move,
    PieceType.ROOK: validate_rook_move,
    PieceType.QUEEN: validate_queen_move,
    PieceType.KING: validate_king_move,
}


def validate_piece_movement(
    board: Board,
    from_sq: Square,
    to_sq: Square,
    piece: Piece,
    en_passant_target: Optional[Square] = None,
) -> None:
    """Raise IllegalMoveError (INVALID_MOVEMENT / PATH_BLOCKED) if the piece cannot make the move geometrically."""
    MOVE_VALIDATORS[piece.type](board, from_sq, to_sq, piece, en_passant_target)


# -- PAWN PROMOTION MOVES --
def is_pawn_push_to_promotion_square(move: Move, board: Board) -> bool:
    """check if the move is a pawn move reaching the farthest rank"""
    moving_piece = board.piece(move.from_square)
    if moving_piece is None or moving_piece.type != PieceType.PAWN:
        return False
    return move.to_square.row == promotion_row(moving_piece.color)


def pawn_pushes_w_promotion(pawn_push: Move) -> list[Move]:
    """Return multiple copies of the pawn push with the piece type to promote into filled in."""
    return [
        Move(
            from_square=pawn_push.from_square,
            to_square=pawn_push.to_square,
            promote_to=piece_type,
        )
        for piece_type in PROMOTION_OPTIONS
    ]
