"""
En passant and promotion.

Castling lives in castling.py (it needs its own rights bookkeeping).
"""

from typing import Optional

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, PieceType
from src.rules.attacks import pawn_direction
from src.rules.board import Board
from src.rules.moves import Move, promotion_row
from src.rules.pieces import PROMOTION_OPTIONS, Piece
from src.rules.square import Square


# --- EN PASSANT ---
def is_en_passant_capture(
    piece: Piece, from_sq: Square, to_sq: Square, en_passant_target: Optional[Square], board: Board
) -> bool:
    """A pawn moving diagonally onto the (empty) en passant target square"""
    return (
        piece.type == PieceType.PAWN
        and en_passant_target is not None
        and to_sq == en_passant_target
        and from_sq.col != to_sq.col
        and board.is_empty(to_sq)
    )


def en_passant_victim_square(from_sq: Square, to_sq: Square) -> Square:
    """The pawn taken en passant stands in the row the capturing pawn left, in the column it moved to."""
    return Square(from_sq.row, to_sq.col)


def next_en_passant_target(piece: Piece, from_sq: Square, to_sq: Square) -> Optional[Square]:
    """
    The possible en passant square for the next turn.
    Only a two-square pawn advance creates one: the square the pawn skipped over.
    """
    if piece.type != PieceType.PAWN or abs(to_sq.row - from_sq.row) != 2:
        return None
    return Square((from_sq.row + to_sq.row) // 2, from_sq.col)


def en_passant_moves(en_passant_square: Square, color: Color, board: Board) -> list[Move]:
    """Given a target en passant square, check the adjacent columns (in the row behind the target) for pawns of the correct color."""
    # the capturing pawn stands one row "before" the target, seen from its own moving direction
    pawn_row = en_passant_square.row - pawn_direction(color)
    own_pawn = Piece(PieceType.PAWN, color)

    moves: list[Move] = []
    for d_col in (-1, 1):
        maybe_pawn_square = Square(pawn_row, en_passant_square.col + d_col)
        if maybe_pawn_square.is_within_bounds() and board.piece(maybe_pawn_square) == own_pawn:
            moves.append(Move(maybe_pawn_square, en_passant_square, is_en_passant=True))
    return moves


# --- PROMOTION ---
def is_promotion_move(piece: Piece, to_sq: Square) -> bool:
    return piece.type == PieceType.PAWN and to_sq.row == promotion_row(piece.color)


def validate_promotion(piece: Piece, to_sq: Square, promotion: Optional[PieceType]) -> Optional[PieceType]:
    """
    The piece type the pawn turns into, or None for a move that does not promote.

    A pawn reaching the last rank requires an explicit choice among queen, rook, bishop and knight.
    A promotion choice sent along with a move that does not promote is ignored.
    """
    if not is_promotion_move(piece, to_sq):
        return None
    if promotion is None:
        raise IllegalMoveError(
            "A pawn reaching the last rank must be promoted: choose queen, rook, bishop or knight.",
            code=ErrorCode.INVALID_PROMOTION,
        )
    if promotion not in PROMOTION_OPTIONS:
        raise IllegalMoveError(
            f"Cannot promote a pawn to a {promotion.value}.",
            code=ErrorCode.INVALID_PROMOTION,
        )
    return promotion


def promote_pawn(board: Board, square: Square, promote_to: PieceType) -> None:
    """Replace the pawn in place by the chosen piece, same color"""
    pawn = board.piece(square)
    assert pawn is not None
    board.place_piece(pawn.promote_to(promote_to), square)
