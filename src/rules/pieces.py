"""Defines the types of chess pieces"""

from dataclasses import dataclass
from typing import Any, Optional, Self

from src.core.shared_types import COLOR_NAMES, PIECE_TYPE_NAMES, Color, PieceType

FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}


PIECE_POINTS: dict[PieceType, int] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
}

PROMOTION_OPTIONS: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
)


def piece_symbol(piece_type: str, color: str) -> str:
    """
    FEN letter for a piece. Uppercase for white, lowercase for black.

    NOTE: an unknown type degrades to its own first character instead of failing the encoding.
    """
    try:
        symbol = PIECE_TO_FEN[PieceType(piece_type)]
    except ValueError:
        symbol = str(piece_type)[:1].lower() or "?"
    return symbol.upper() if color == Color.WHITE else symbol.lower()


@dataclass(frozen=True)
class Piece:
    type: PieceType
    color: Color

    @property
    def points(self) -> int:
        # NOTE: The King's worth is undefined (does not count towards total points)
        return PIECE_POINTS.get(self.type, 0)

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # lower case: Black pieces, upper case: White pieces
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional[Self]:
        """{type, color} mapping -> Piece. Returns None when either field is missing or unknown."""
        if not isinstance(raw, dict):
            return None
        piece_type, color = raw.get("type"), raw.get("color")
        if not (isinstance(piece_type, str) and isinstance(color, str)):
            return None
        if piece_type not in PIECE_TYPE_NAMES or color not in COLOR_NAMES:
            return None
        return cls(PieceType(piece_type), Color(color))

    def to_fen(self) -> str:
        return piece_symbol(self.type, self.color)

    def to_raw(self) -> dict[str, str]:
        return {"type": self.type.value, "color": self.color.value}

    def promote_to(self, new_type: PieceType) -> Self:
        """Pieces are immutable: promotion hands back a new piece of the same color."""
        return type(self)(new_type, self.color)
