"""Unit tests for /src/rules/special_moves.py"""

import pytest

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, PieceType
from src.rules.pieces import Piece
from src.rules.special_moves import (
    en_passant_moves,
    en_passant_victim_square,
    is_en_passant_capture,
    is_promotion_move,
    next_en_passant_target,
    promote_pawn,
    validate_promotion,
)
from src.rules.square import Square
from tests.helpers import board_with

WHITE_PAWN = Piece(PieceType.PAWN, Color.WHITE)
BLACK_PAWN = Piece(PieceType.PAWN, Color.BLACK)


def sq(algebraic: str) -> Square:
    return Square.from_algebraic(algebraic)


# --- EN PASSANT ---
@pytest.mark.parametrize(
    "piece, from_alg, to_alg, expected",
    [
        (WHITE_PAWN, "e2", "e4", "e3"),
        (BLACK_PAWN, "d7", "d5", "d6"),
        (WHITE_PAWN, "e2", "e3", None),
        (WHITE_PAWN, "e4", "d5", None),
        (Piece(PieceType.ROOK, Color.WHITE), "a1", "a3", None),
    ],
)
def test_next_en_passant_target(piece: Piece, from_alg: str, to_alg: str, expected: str | None) -> None:
    """Only a two-square pawn advance creates a target: the square the pawn skipped over"""
    target = next_en_passant_target(piece, sq(from_alg), sq(to_alg))
    assert (target.to_algebraic() if target else None) == expected


def test_en_passant_capture_detection() -> None:
    board = board_with(e5="P", d5="p")
    assert is_en_passant_capture(WHITE_PAWN, sq("e5"), sq("d6"), sq("d6"), board)
    assert not is_en_passant_capture(WHITE_PAWN, sq("e5"), sq("d6"), None, board)
    assert not is_en_passant_capture(WHITE_PAWN, sq("e5"), sq("e6"), sq("e6"), board)


def test_victim_stands_next_to_the_capturing_pawn() -> None:
    """same row as `from`, column of `to`: not on the destination square"""
    assert en_passant_victim_square(sq("e5"), sq("d6")) == sq("d5")
    assert en_passant_victim_square(sq("d4"), sq("e3")) == sq("e4")


def test_en_passant_moves() -> None:
    board = board_with(c5="P", e5="P", h5="P", d5="p")
    moves = en_passant_moves(sq("d6"), Color.WHITE, board)
    assert {move.from_square.to_algebraic() for move in moves} == {"c5", "e5"}
    assert all(move.is_en_passant and move.to_square == sq("d6") for move in moves)


def test_en_passant_moves_for_black() -> None:
    board = board_with(e4="P", d4="p", f4="p")
    moves = en_passant_moves(sq("e3"), Color.BLACK, board)
    assert {move.from_square.to_algebraic() for move in moves} == {"d4", "f4"}


def test_en_passant_moves_at_board_edge() -> None:
    board = board_with(b5="P", a5="p")
    moves = en_passant_moves(sq("a6"), Color.WHITE, board)
    assert [move.from_square.to_algebraic() for move in moves] == ["b5"]


# --- PROMOTION ---
def test_is_promotion_move() -> None:
    assert is_promotion_move(WHITE_PAWN, sq("e8"))
    assert is_promotion_move(BLACK_PAWN, sq("e1"))
    assert not is_promotion_move(WHITE_PAWN, sq("e1"))
    assert not is_promotion_move(Piece(PieceType.ROOK, Color.WHITE), sq("e8"))


@pytest.mark.parametrize(
    "promotion", [PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT]
)
def test_valid_promotion(promotion: PieceType) -> None:
    assert validate_promotion(WHITE_PAWN, sq("a8"), promotion) == promotion


@pytest.mark.parametrize("promotion", [None, PieceType.KING, PieceType.PAWN])
def test_invalid_promotion(promotion: PieceType | None) -> None:
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_promotion(BLACK_PAWN, sq("h1"), promotion)
    assert exc_info.value.code == ErrorCode.INVALID_PROMOTION


def test_promotion_choice_ignored_for_other_moves() -> None:
    assert validate_promotion(WHITE_PAWN, sq("e4"), PieceType.QUEEN) is None


def test_promote_pawn_in_place() -> None:
    board = board_with(e8="P")
    promote_pawn(board, sq("e8"), PieceType.KNIGHT)
    assert board.piece(sq("e8")) == Piece(PieceType.KNIGHT, Color.WHITE)
