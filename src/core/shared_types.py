"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class GameStatus(StrEnum):
    ACTIVE = "active"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


class DrawReason(StrEnum):
    INSUFFICIENT_MATERIAL = "insufficient_material"
    THREEFOLD_REPETITION = "threefold_repetition"
    FIFTY_MOVE_RULE = "fifty_move_rule"


class CastlingSide(StrEnum):
    KINGSIDE = "kingside"
    QUEENSIDE = "queenside"


COLOR_NAMES: frozenset[str] = frozenset(color.value for color in Color)
PIECE_TYPE_NAMES: frozenset[str] = frozenset(piece.value for piece in PieceType)
STATUS_NAMES: frozenset[str] = frozenset(status.value for status in GameStatus)
