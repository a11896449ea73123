"""Helpers shared by the test modules (setting up positions, playing move sequences)"""

from typing import Any

from src.rules.board import Board
from src.rules.game import Game
from src.rules.pieces import Piece
from src.rules.square import Square

EMPTY_FEN = "/".join(["8"] * 8)
STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
PROMOTION_LETTERS = {"q": "queen", "r": "rook", "b": "bishop", "n": "knight"}


def uci_to_request(uci: str) -> dict[str, Any]:
    """'e2e4' --> {from: {row: 6, col: 4}, to: {row: 4, col: 4}} (with promotion for 'e7e8q')"""
    from_sq = Square.from_algebraic(uci[:2])
    to_sq = Square.from_algebraic(uci[2:4])
    request: dict[str, Any] = {"from": from_sq.to_raw(), "to": to_sq.to_raw()}
    if len(uci) == 5:
        request["promotion"] = PROMOTION_LETTERS[uci[4]]
    return request


def play(game: Game, *moves: str) -> None:
    """Play a sequence of UCI moves, failing loudly on the first rejected one"""
    for uci in moves:
        result = game.make_move(uci_to_request(uci))
        assert result.success, f"{uci} rejected: {result.error_code} {result.message}"


def board_with(**placements: str) -> Board:
    """board_with(e1="K", e8="k", a1="R") --> board with just those pieces"""
    board = Board.from_fen(EMPTY_FEN)
    for square, symbol in placements.items():
        board.place_piece(Piece.from_fen(symbol), Square.from_algebraic(square))
    return board
