"""Unit tests for /src/rules/castling.py"""

import pytest

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import CastlingSide, Color, PieceType
from src.rules.board import Board
from src.rules.castling import (
    CASTLING_RULES,
    CastlingRights,
    can_castle,
    castling_side_of_move,
    move_castling_pieces,
    revoke_castling_rights_if_needed,
    rights_supported_by_board,
    stale_castling_rights,
    validate_castling,
)
from src.rules.pieces import Piece
from src.rules.square import Square
from tests.helpers import board_with


def sq(algebraic: str) -> Square:
    return Square.from_algebraic(algebraic)


@pytest.fixture
def castling_board() -> Board:
    """Only the Kings and the Rooks. Ready to perform any castling move (if allowed)."""
    return board_with(e1="K", a1="R", h1="R", e8="k", a8="r", h8="r")


# --- RIGHTS BOOKKEEPING ---
@pytest.mark.parametrize("fen", ["KQkq", "KQ", "Kq", "k", "-"])
def test_rights_fen_roundtrip(fen: str) -> None:
    assert CastlingRights.from_fen(fen).to_fen() == fen


def test_fen_letters_are_written_in_fixed_order() -> None:
    rights = CastlingRights.none()
    rights.rights[Color.BLACK][CastlingSide.QUEENSIDE] = True
    rights.rights[Color.WHITE][CastlingSide.KINGSIDE] = True
    assert rights.to_fen() == "Kq"


def test_raw_form() -> None:
    rights = CastlingRights()
    rights.revoke(Color.BLACK, CastlingSide.KINGSIDE)
    raw = rights.to_raw()
    assert raw == {
        "white": {"kingside": True, "queenside": True},
        "black": {"kingside": False, "queenside": True},
    }
    assert CastlingRights.from_raw(raw) == rights
    # a missing flag counts as revoked
    assert CastlingRights.from_raw({"white": {"kingside": True}}).to_fen() == "K"
    assert CastlingRights.from_raw(None).to_fen() == "-"


def test_revoke_all() -> None:
    rights = CastlingRights()
    rights.revoke_all(Color.WHITE)
    assert not rights.has_any(Color.WHITE)
    assert rights.has_any(Color.BLACK)


@pytest.mark.parametrize(
    "from_alg, to_alg, color, side",
    [
        ("e1", "g1", Color.WHITE, CastlingSide.KINGSIDE),
        ("e1", "c1", Color.WHITE, CastlingSide.QUEENSIDE),
        ("e8", "g8", Color.BLACK, CastlingSide.KINGSIDE),
        ("e8", "c8", Color.BLACK, CastlingSide.QUEENSIDE),
        ("e1", "f1", Color.WHITE, None),
        ("e8", "g8", Color.WHITE, None),
    ],
)
def test_castling_side_of_move(from_alg: str, to_alg: str, color: Color, side: CastlingSide | None) -> None:
    assert castling_side_of_move(sq(from_alg), sq(to_alg), color) == side


# --- LEGALITY ---
@pytest.mark.parametrize("color", [Color.WHITE, Color.BLACK])
@pytest.mark.parametrize("side", [CastlingSide.KINGSIDE, CastlingSide.QUEENSIDE])
def test_castling_allowed(castling_board: Board, color: Color, side: CastlingSide) -> None:
    validate_castling(castling_board, color, side, CastlingRights())
    assert can_castle(castling_board, color, side, CastlingRights())


def test_castling_not_allowed_without_rights(castling_board: Board) -> None:
    rights = CastlingRights()
    rights.revoke(Color.WHITE, CastlingSide.KINGSIDE)
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_castling(castling_board, Color.WHITE, CastlingSide.KINGSIDE, rights)
    assert exc_info.value.code == ErrorCode.INVALID_CASTLING
    assert can_castle(castling_board, Color.WHITE, CastlingSide.QUEENSIDE, rights)


def test_castling_needs_rook_on_its_square() -> None:
    board = board_with(e1="K", a1="R", e8="k")
    assert not can_castle(board, Color.WHITE, CastlingSide.KINGSIDE, CastlingRights())


@pytest.mark.parametrize(
    "blocker, side",
    [
        ("f1", CastlingSide.KINGSIDE),
        ("g1", CastlingSide.KINGSIDE),
        ("b1", CastlingSide.QUEENSIDE),
        ("c1", CastlingSide.QUEENSIDE),
        ("d1", CastlingSide.QUEENSIDE),
    ],
)
def test_castling_path_must_be_empty(castling_board: Board, blocker: str, side: CastlingSide) -> None:
    castling_board.place_piece(Piece(PieceType.KNIGHT, Color.WHITE), sq(blocker))
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_castling(castling_board, Color.WHITE, side, CastlingRights())
    assert "path" in exc_info.value.message


def test_cannot_castle_out_of_check(castling_board: Board) -> None:
    castling_board.place_piece(Piece(PieceType.ROOK, Color.BLACK), sq("e5"))
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_castling(castling_board, Color.WHITE, CastlingSide.KINGSIDE, CastlingRights())
    assert exc_info.value.message == "Cannot castle out of check."


@pytest.mark.parametrize(
    "attacked_square, side",
    [("f1", CastlingSide.KINGSIDE), ("g1", CastlingSide.KINGSIDE), ("d1", CastlingSide.QUEENSIDE), ("c1", CastlingSide.QUEENSIDE)],
)
def test_cannot_castle_through_or_into_check(castling_board: Board, attacked_square: str, side: CastlingSide) -> None:
    file = attacked_square[0]
    castling_board.place_piece(Piece(PieceType.ROOK, Color.BLACK), sq(f"{file}5"))
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_castling(castling_board, Color.WHITE, side, CastlingRights())
    assert exc_info.value.message == "Cannot castle through or into check."


def test_attacked_b_file_does_not_prevent_queenside_castling(castling_board: Board) -> None:
    """The king never crosses b1: only the rook does"""
    castling_board.place_piece(Piece(PieceType.ROOK, Color.BLACK), sq("b5"))
    validate_castling(castling_board, Color.WHITE, CastlingSide.QUEENSIDE, CastlingRights())


# --- SIDE EFFECTS ---
@pytest.mark.parametrize("color", [Color.WHITE, Color.BLACK])
@pytest.mark.parametrize("side", [CastlingSide.KINGSIDE, CastlingSide.QUEENSIDE])
def test_move_castling_pieces(castling_board: Board, color: Color, side: CastlingSide) -> None:
    rule = CASTLING_RULES[(color, side)]
    move_castling_pieces(castling_board, color, side)
    assert castling_board.piece(rule.king_to) == Piece(PieceType.KING, color)
    assert castling_board.piece(rule.rook_to) == Piece(PieceType.ROOK, color)
    assert castling_board.is_empty(rule.king_from)
    assert castling_board.is_empty(rule.rook_from)


def test_king_move_revokes_both_rights() -> None:
    rights = CastlingRights()
    king = Piece(PieceType.KING, Color.WHITE)
    revoke_castling_rights_if_needed(rights, king, sq("e1"), sq("e2"), None)
    assert rights.to_fen() == "kq"


def test_rook_move_revokes_one_right() -> None:
    rights = CastlingRights()
    rook = Piece(PieceType.ROOK, Color.BLACK)
    revoke_castling_rights_if_needed(rights, rook, sq("h8"), sq("h5"), None)
    assert rights.to_fen() == "KQq"


def test_capturing_a_rook_on_its_square_revokes_opponent_right() -> None:
    rights = CastlingRights()
    bishop = Piece(PieceType.BISHOP, Color.BLACK)
    revoke_castling_rights_if_needed(rights, bishop, sq("g7"), sq("a1"), Piece(PieceType.ROOK, Color.WHITE))
    assert rights.to_fen() == "Kkq"


def test_rights_supported_by_board(castling_board: Board, starting_board: Board) -> None:
    assert rights_supported_by_board(castling_board).to_fen() == "KQkq"
    assert rights_supported_by_board(starting_board).to_fen() == "KQkq"
    assert rights_supported_by_board(board_with(e1="K", h1="R", d8="k", a8="r")).to_fen() == "K"


def test_stale_castling_rights() -> None:
    board = board_with(e1="K", h1="R", e8="k", a8="r", h8="r")
    warnings = stale_castling_rights(board, CastlingRights())
    assert warnings == ["white queenside castling right held but king or rook has moved"]
    assert stale_castling_rights(board, CastlingRights.from_fen("Kkq")) == []
