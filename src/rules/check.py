"""
Check analysis: is a king attacked right now, and would it be attacked after a hypothetical move?

Simulations always run on a deep copy of the board. The live board is never touched here.
"""

from typing import Any, Optional

from src.core.models import AttackingPiece, CheckDetails, Coordinate, PieceModel
from src.core.shared_types import Color, PieceType
from src.rules.attacks import attackers_of, classify_attack, is_square_under_attack
from src.rules.board import Board
from src.rules.pieces import Piece
from src.rules.square import BOARD_DIMENSIONS, Square, is_valid_coordinate

CASTLING_ROOK_FILES: dict[int, tuple[int, int]] = {
    # king target col -> (rook from col, rook to col)
    6: (BOARD_DIMENSIONS[1] - 1, 5),
    2: (0, 3),
}


def is_in_check(board: Board, color: Color) -> bool:
    """A color is in check if its king is attacked. No king on the board means no check."""
    king_square = board.find_king(color)
    if king_square is None:
        return False
    return is_square_under_attack(board, king_square.row, king_square.col, color)


def simulate_move(
    board: Board,
    from_sq: Square,
    to_sq: Square,
    piece: Optional[Piece] = None,
    en_passant_target: Optional[Square] = None,
) -> Board:
    """
    Play the move on a scratch copy of the board and return that copy.
    ---

    Covers the side effects that matter for king safety:
    * en passant removes the pawn standing next to the moving pawn (same row as `from`, column of `to`)
    * a two-file king move also relocates the castling rook
    Promotion does not change which squares are attacked on the mover's side, so it is not simulated.
    """
    scratch = board.copy()
    moving_piece = piece or scratch.piece(from_sq)

    if (
        moving_piece is not None
        and moving_piece.type == PieceType.PAWN
        and to_sq == en_passant_target
        and from_sq.col != to_sq.col
        and scratch.is_empty(to_sq)
    ):
        scratch.remove_piece(Square(from_sq.row, to_sq.col))

    if (
        moving_piece is not None
        and moving_piece.type == PieceType.KING
        and from_sq.row == to_sq.row
        and abs(to_sq.col - from_sq.col) == 2
        and to_sq.col in CASTLING_ROOK_FILES
    ):
        rook_from_col, rook_to_col = CASTLING_ROOK_FILES[to_sq.col]
        scratch.move_piece(Square(from_sq.row, rook_from_col), Square(from_sq.row, rook_to_col))

    scratch.remove_piece(from_sq)
    scratch.place_piece(moving_piece, to_sq)
    return scratch


def would_be_in_check(
    board: Board,
    from_square: Any,
    to_square: Any,
    color: Color,
    piece: Optional[Piece] = None,
    en_passant_target: Optional[Square] = None,
) -> bool:
    """
    Would the mover's own king be attacked after the move?

    NOTE: if there is nothing to move (empty origin square, no piece given) or the coordinates are invalid,
    the answer is True: the move is treated as leaving the king in check.
    """
    if not (is_valid_coordinate(from_square) and is_valid_coordinate(to_square)):
        return True
    from_sq, to_sq = Square.from_raw(from_square), Square.from_raw(to_square)
    moving_piece = piece or board.piece(from_sq)
    if moving_piece is None:
        return True

    scratch = simulate_move(board, from_sq, to_sq, moving_piece, en_passant_target)
    return is_in_check(scratch, color)


def get_check_details(board: Board, color: Color) -> Optional[CheckDetails]:
    """
    Who is giving check, from where, and along which line.
    None when the color is not in check.
    """
    king_square = board.find_king(color)
    if king_square is None:
        return None

    attackers = attackers_of(board, king_square, color.opponent)
    if not attackers:
        return None

    attacking_pieces = [
        AttackingPiece(
            piece=PieceModel(type=attacker.type, color=attacker.color),
            position=Coordinate(row=square.row, col=square.col),
            attack_type=classify_attack(attacker.type, square, king_square),
        )
        for square, attacker in attackers
    ]
    is_double_check = len(attacking_pieces) > 1
    check_type = (
        "double_check" if is_double_check else f"{attacking_pieces[0].piece.type.value}_check"
    )
    return CheckDetails(
        king_position=Coordinate(row=king_square.row, col=king_square.col),
        attacking_pieces=attacking_pieces,
        check_type=check_type,
        is_double_check=is_double_check,
    )
