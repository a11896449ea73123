"""Unit tests for /src/rules/board.py"""

import pytest

from src.core.exceptions import CorruptionError
from src.core.shared_types import Color, PieceType
from src.rules.board import STARTING_PLACEMENT, Board
from src.rules.pieces import Piece
from src.rules.square import Square
from tests.helpers import EMPTY_FEN, board_with


def test_fen_roundtrip(starting_board: Board) -> None:
    assert starting_board.to_fen() == STARTING_PLACEMENT
    fen = "r3k2r/pppq1ppp/2npbn2/4p3/2B1P3/2NP1N2/PPP2PPP/R1BQ1RK1"
    assert Board.from_fen(fen).to_fen() == fen


def test_starting_position_layout(starting_board: Board) -> None:
    """Row 0 holds black's back rank, row 7 white's"""
    assert starting_board.piece(Square(0, 4)) == Piece(PieceType.KING, Color.BLACK)
    assert starting_board.piece(Square(7, 4)) == Piece(PieceType.KING, Color.WHITE)
    assert starting_board.piece(Square(6, 0)) == Piece(PieceType.PAWN, Color.WHITE)
    assert starting_board.piece(Square(1, 7)) == Piece(PieceType.PAWN, Color.BLACK)
    assert len(list(starting_board.pieces())) == 32


def test_out_of_bounds_lookup_is_empty(starting_board: Board) -> None:
    assert starting_board.piece(Square(8, 0)) is None
    assert starting_board.piece(Square(0, -1)) is None


def test_find_king(starting_board: Board, empty_board: Board) -> None:
    assert starting_board.find_king(Color.WHITE) == Square.from_algebraic("e1")
    assert starting_board.find_king(Color.BLACK) == Square.from_algebraic("e8")
    assert empty_board.find_king(Color.WHITE) is None


def test_locate_pieces(starting_board: Board) -> None:
    rooks = starting_board.locate_pieces(PieceType.ROOK, Color.WHITE)
    assert set(rooks) == {Square.from_algebraic("a1"), Square.from_algebraic("h1")}
    assert len(starting_board.locate_pieces(PieceType.PAWN)) == 16
    assert len(starting_board.locate_color(Color.BLACK)) == 16


def test_move_piece_returns_capture() -> None:
    board = board_with(e4="P", d5="p")
    captured = board.move_piece(Square.from_algebraic("e4"), Square.from_algebraic("d5"))
    assert captured == Piece(PieceType.PAWN, Color.BLACK)
    assert board.is_empty(Square.from_algebraic("e4"))
    assert board.piece(Square.from_algebraic("d5")) == Piece(PieceType.PAWN, Color.WHITE)


def test_copy_never_aliases(starting_board: Board) -> None:
    scratch = starting_board.copy()
    scratch.move_piece(Square.from_algebraic("e2"), Square.from_algebraic("e4"))
    assert starting_board.to_fen() == STARTING_PLACEMENT
    assert scratch.to_fen() != STARTING_PLACEMENT


def test_raw_roundtrip(starting_board: Board) -> None:
    raw = starting_board.to_raw()
    assert raw[7][4] == {"type": "king", "color": "white"}
    assert raw[4][4] is None
    assert Board.from_raw(raw) == starting_board


@pytest.mark.parametrize(
    "rows, message",
    [
        (None, "Invalid board structure"),
        ([[None] * 8] * 7, "Invalid board structure"),
        ([[None] * 8] * 7 + [[None] * 7], "Invalid row 7 structure"),
        ([[{"type": "dragon", "color": "white"}] + [None] * 7] + [[None] * 8] * 7, "Invalid piece at (0,0)"),
        ([[None] * 8] * 3 + [[None, {"type": "rook"}] + [None] * 6] + [[None] * 8] * 4, "Invalid piece at (3,1)"),
    ],
)
def test_raw_form_rejects_corrupt_boards(rows: object, message: str) -> None:
    with pytest.raises(CorruptionError) as exc_info:
        Board.from_raw(rows)
    assert exc_info.value.message == message


def test_candidate_moves_from_starting_position(starting_board: Board) -> None:
    """16 pawn moves + 4 knight moves, nothing else can move yet"""
    moves = starting_board.generate_candidate_moves(Color.WHITE)
    assert len(moves) == 20
    assert {move.to_uci() for move in moves} >= {"e2e4", "e2e3", "g1f3", "b1c3"}


def test_count_material(starting_board: Board) -> None:
    assert starting_board.count_material() == {Color.WHITE: 39, Color.BLACK: 39}
    board = board_with(e1="K", e8="k", d1="Q")
    assert board.count_material() == {Color.WHITE: 9, Color.BLACK: 0}


def test_empty_board(empty_board: Board) -> None:
    assert empty_board.to_fen() == EMPTY_FEN
    assert list(empty_board.pieces()) == []
