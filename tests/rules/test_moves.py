"""Unit tests for /src/rules/moves.py"""

import pytest

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, PieceType
from src.rules.board import Board
from src.rules.moves import (
    Move,
    candidate_bishop_moves,
    candidate_king_moves,
    candidate_knight_moves,
    candidate_pawn_moves,
    candidate_queen_moves,
    candidate_rook_moves,
    is_pawn_push_to_promotion_square,
    pawn_pushes_w_promotion,
    promotion_row,
    validate_piece_movement,
)
from src.rules.pieces import Piece
from src.rules.square import Square
from tests.helpers import board_with


def sq(algebraic: str) -> Square:
    return Square.from_algebraic(algebraic)


def targets(moves: list[Move]) -> set[str]:
    return {move.to_square.to_algebraic() for move in moves}


# -- MOVE CREATION, ENCODING/DECODING UCI NOTATION ---
@pytest.mark.parametrize("uci", ["e2e4", "a1a5", "g3a7", "e7e8q", "b2b1n"])
def test_uci_roundtrip(uci: str) -> None:
    assert Move.from_uci(uci).to_uci() == uci


def test_move_to_request() -> None:
    assert Move.from_uci("e2e4").to_request() == {"from": {"row": 6, "col": 4}, "to": {"row": 4, "col": 4}}
    assert Move.from_uci("e7e8q").to_request()["promotion"] == "queen"


def test_promotion_row() -> None:
    assert promotion_row(Color.WHITE) == 0
    assert promotion_row(Color.BLACK) == 7


# --- CANDIDATE MOVES ---
def test_pawn_candidates_from_start(starting_board: Board) -> None:
    assert targets(candidate_pawn_moves(sq("e2"), starting_board)) == {"e3", "e4"}
    assert targets(candidate_pawn_moves(sq("d7"), starting_board)) == {"d6", "d5"}


def test_pawn_double_push_needs_both_squares_empty() -> None:
    blocked_far = board_with(e2="P", e4="n")
    assert targets(candidate_pawn_moves(sq("e2"), blocked_far)) == {"e3"}
    blocked_near = board_with(e2="P", e3="n")
    assert targets(candidate_pawn_moves(sq("e2"), blocked_near)) == set()


def test_pawn_captures_only_opponents() -> None:
    board = board_with(e4="P", d5="p", f5="N")
    assert targets(candidate_pawn_moves(sq("e4"), board)) == {"e5", "d5"}


def test_knight_candidates(starting_board: Board) -> None:
    assert targets(candidate_knight_moves(sq("g1"), starting_board)) == {"f3", "h3"}


def test_sliding_candidates() -> None:
    board = board_with(d4="Q", d6="p", f4="P")
    queen_targets = targets(candidate_queen_moves(sq("d4"), board))
    assert "d6" in queen_targets and "d7" not in queen_targets
    assert "e4" in queen_targets and "f4" not in queen_targets
    assert len(candidate_rook_moves(sq("a1"), board_with(a1="R"))) == 14
    assert len(candidate_bishop_moves(sq("a1"), board_with(a1="B"))) == 7


def test_king_candidates_in_corner() -> None:
    assert targets(candidate_king_moves(sq("h1"), board_with(h1="K"))) == {"g1", "g2", "h2"}


# --- VALIDATING A SINGLE MOVE ---
@pytest.mark.parametrize(
    "placements, from_alg, to_alg",
    [
        ({"e2": "P"}, "e2", "e3"),
        ({"e2": "P"}, "e2", "e4"),
        ({"e4": "P", "d5": "p"}, "e4", "d5"),
        ({"d7": "p"}, "d7", "d5"),
        ({"g1": "N", "f3": "p"}, "g1", "f3"),
        ({"c1": "B"}, "c1", "h6"),
        ({"a1": "R"}, "a1", "a8"),
        ({"d1": "Q"}, "d1", "h5"),
        ({"e1": "K"}, "e1", "f2"),
    ],
)
def test_valid_piece_movement(placements: dict[str, str], from_alg: str, to_alg: str) -> None:
    board = board_with(**placements)
    piece = board.piece(sq(from_alg))
    assert piece is not None
    validate_piece_movement(board, sq(from_alg), sq(to_alg), piece)


@pytest.mark.parametrize(
    "placements, from_alg, to_alg, code",
    [
        ({"e2": "P"}, "e2", "e5", ErrorCode.INVALID_MOVEMENT),
        ({"e3": "P"}, "e3", "e5", ErrorCode.INVALID_MOVEMENT),
        ({"e2": "P"}, "e2", "e1", ErrorCode.INVALID_MOVEMENT),
        ({"e2": "P"}, "e2", "d3", ErrorCode.INVALID_MOVEMENT),
        ({"e2": "P", "e3": "p"}, "e2", "e3", ErrorCode.PATH_BLOCKED),
        ({"e2": "P", "e3": "p"}, "e2", "e4", ErrorCode.PATH_BLOCKED),
        ({"g1": "N"}, "g1", "g3", ErrorCode.INVALID_MOVEMENT),
        ({"c1": "B"}, "c1", "c3", ErrorCode.INVALID_MOVEMENT),
        ({"c1": "B", "d2": "P"}, "c1", "e3", ErrorCode.PATH_BLOCKED),
        ({"a1": "R"}, "a1", "b2", ErrorCode.INVALID_MOVEMENT),
        ({"a1": "R", "a2": "P"}, "a1", "a3", ErrorCode.PATH_BLOCKED),
        ({"d1": "Q"}, "d1", "e3", ErrorCode.INVALID_MOVEMENT),
        ({"d1": "Q", "d2": "P"}, "d1", "d4", ErrorCode.PATH_BLOCKED),
        ({"e1": "K"}, "e1", "e3", ErrorCode.INVALID_MOVEMENT),
    ],
)
def test_invalid_piece_movement(
    placements: dict[str, str], from_alg: str, to_alg: str, code: ErrorCode
) -> None:
    board = board_with(**placements)
    piece = board.piece(sq(from_alg))
    assert piece is not None
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_piece_movement(board, sq(from_alg), sq(to_alg), piece)
    assert exc_info.value.code == code


def test_pawn_may_move_diagonally_onto_en_passant_target() -> None:
    board = board_with(e5="P", d5="p")
    pawn = Piece(PieceType.PAWN, Color.WHITE)
    validate_piece_movement(board, sq("e5"), sq("d6"), pawn, en_passant_target=sq("d6"))
    with pytest.raises(IllegalMoveError):
        validate_piece_movement(board, sq("e5"), sq("d6"), pawn, en_passant_target=None)


# -- PAWN PROMOTION MOVES --
def test_pawn_push_to_promotion_square() -> None:
    board = board_with(e7="P", a2="p", c3="P")
    assert is_pawn_push_to_promotion_square(Move(sq("e7"), sq("e8")), board)
    assert is_pawn_push_to_promotion_square(Move(sq("a2"), sq("a1")), board)
    assert not is_pawn_push_to_promotion_square(Move(sq("c3"), sq("c4")), board)


def test_promotion_expands_into_four_moves() -> None:
    moves = pawn_pushes_w_promotion(Move(sq("e7"), sq("e8")))
    assert {move.to_uci() for move in moves} == {"e7e8q", "e7e8r", "e7e8b", "e7e8n"}
