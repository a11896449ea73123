"""Helpers for implementing Castling rules. Need to be imported by multiple sources"""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.core.error_codes import ErrorCode
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import CastlingSide, Color, PieceType
from src.rules.attacks import is_any_under_attack, squares_between
from src.rules.board import Board
from src.rules.check import is_in_check
from src.rules.pieces import Piece
from src.rules.square import Square

# FEN letter of every castling right, in the order they are written: KQkq
FEN_CASTLING_ORDER: tuple[tuple[Color, CastlingSide, str], ...] = (
    (Color.WHITE, CastlingSide.KINGSIDE, "K"),
    (Color.WHITE, CastlingSide.QUEENSIDE, "Q"),
    (Color.BLACK, CastlingSide.KINGSIDE, "k"),
    (Color.BLACK, CastlingSide.QUEENSIDE, "q"),
)


@dataclass(frozen=True)
class CastlingSquares:
    """
    Store the squares where king/rook start from/end up in by castling.
    NOTE: If castling rights have not been revoked, the king / rook should still be at their starting squares.
    """

    king_from: Square
    king_to: Square
    rook_from: Square
    rook_to: Square

    @classmethod
    def from_algebraic(cls, k_from: str, k_to: str, r_from: str, r_to: str) -> Self:
        """Convenience method: to make mapping shown below more readable"""
        return cls(
            Square.from_algebraic(k_from),
            Square.from_algebraic(k_to),
            Square.from_algebraic(r_from),
            Square.from_algebraic(r_to),
        )

    def path(self) -> list[Square]:
        """Squares in between king and rook: all of them must be empty"""
        return squares_between(self.king_from, self.rook_from)

    def king_path(self) -> list[Square]:
        """Squares the king passes through or lands on: none of them may be attacked"""
        return squares_between(self.king_from, self.king_to) + [self.king_to]


# The moves (in classical chess) made when castling
CASTLING_RULES: dict[tuple[Color, CastlingSide], CastlingSquares] = {
    (Color.WHITE, CastlingSide.KINGSIDE): CastlingSquares.from_algebraic("e1", "g1", "h1", "f1"),
    (Color.WHITE, CastlingSide.QUEENSIDE): CastlingSquares.from_algebraic("e1", "c1", "a1", "d1"),
    (Color.BLACK, CastlingSide.KINGSIDE): CastlingSquares.from_algebraic("e8", "g8", "h8", "f8"),
    (Color.BLACK, CastlingSide.QUEENSIDE): CastlingSquares.from_algebraic("e8", "c8", "a8", "d8"),
}


def _all_rights() -> dict[Color, dict[CastlingSide, bool]]:
    return {color: {side: True for side in CastlingSide} for color in Color}


@dataclass
class CastlingRights:
    """
    Rights will be revoked during the game, never granted back.
    The only way to change a right is `revoke()` (and `revoke_all()`).
    """

    rights: dict[Color, dict[CastlingSide, bool]] = field(default_factory=_all_rights)

    @classmethod
    def none(cls) -> Self:
        return cls({color: {side: False for side in CastlingSide} for color in Color})

    @classmethod
    def from_fen(cls, castle_fen: str) -> Self:
        """parse the part of the FEN string that encodes castling rights"""
        rights = cls.none()
        for color, side, letter in FEN_CASTLING_ORDER:
            rights.rights[color][side] = letter in castle_fen
        return rights

    @classmethod
    def from_raw(cls, raw: Any) -> Self:
        """{white: {kingside, queenside}, black: {...}}. A missing flag counts as revoked."""
        rights = cls.none()
        if not isinstance(raw, dict):
            return rights
        for color in Color:
            sides = raw.get(color.value)
            if not isinstance(sides, dict):
                continue
            for side in CastlingSide:
                rights.rights[color][side] = sides.get(side.value) is True
        return rights

    def to_fen(self) -> str:
        """create the part of the FEN string that encodes castling rights"""
        castling_chars = "".join(
            letter for color, side, letter in FEN_CASTLING_ORDER if self.rights[color][side]
        )
        return castling_chars or "-"

    def to_raw(self) -> dict[str, dict[str, bool]]:
        return {
            color.value: {side.value: self.rights[color][side] for side in CastlingSide}
            for color in Color
        }

    def has(self, color: Color, side: CastlingSide) -> bool:
        return self.rights[color][side]

    def has_any(self, color: Color) -> bool:
        return any(self.rights[color].values())

    def revoke(self, color: Color, side: CastlingSide) -> None:
        self.rights[color][side] = False

    def revoke_all(self, color: Color) -> None:
        for side in CastlingSide:
            self.revoke(color, side)

    def restrict_to(self, other: "CastlingRights") -> None:
        """Keep a right only if the other set also holds it."""
        for color in Color:
            for side in CastlingSide:
                if not other.has(color, side):
                    self.revoke(color, side)


def castling_side_of_move(from_sq: Square, to_sq: Square, color: Color) -> Optional[CastlingSide]:
    """Is this the two-file king move from its home square that encodes castling?"""
    for side in CastlingSide:
        rule = CASTLING_RULES[(color, side)]
        if from_sq == rule.king_from and to_sq == rule.king_to:
            return side
    return None


def validate_castling(board: Board, color: Color, side: CastlingSide, rights: CastlingRights) -> None:
    """
    Castling is allowed if
    ---

    * Castling rights are not yet revoked (and the rook is still there).
    * Every square in between king and rook is empty.
    * You are not currently in check (you cannot castle out of check).
    * The king does not pass through, or land on, an attacked square.

    Raises IllegalMoveError(INVALID_CASTLING) otherwise.
    """
    rule = CASTLING_RULES[(color, side)]

    if not rights.has(color, side):
        raise IllegalMoveError(
            f"Castling {side.value} is not allowed: rights have been revoked.",
            code=ErrorCode.INVALID_CASTLING,
        )

    if board.piece(rule.king_from) != Piece(PieceType.KING, color) or board.piece(
        rule.rook_from
    ) != Piece(PieceType.ROOK, color):
        raise IllegalMoveError(
            f"Castling {side.value} is not allowed: king or rook is not on its starting square.",
            code=ErrorCode.INVALID_CASTLING,
        )

    if board.is_any_occupied(rule.path()):
        raise IllegalMoveError(
            f"Castling {side.value} is not allowed: the path is not clear.",
            code=ErrorCode.INVALID_CASTLING,
        )

    if is_in_check(board, color):
        raise IllegalMoveError(
            "Cannot castle out of check.", code=ErrorCode.INVALID_CASTLING
        )

    if is_any_under_attack(board, rule.king_path(), color):
        raise IllegalMoveError(
            "Cannot castle through or into check.", code=ErrorCode.INVALID_CASTLING
        )


def can_castle(board: Board, color: Color, side: CastlingSide, rights: CastlingRights) -> bool:
    try:
        validate_castling(board, color, side, rights)
    except IllegalMoveError:
        return False
    return True


def move_castling_pieces(board: Board, color: Color, side: CastlingSide) -> None:
    """Move both the King and the Rook"""
    rule = CASTLING_RULES[(color, side)]
    board.move_piece(rule.king_from, rule.king_to)
    board.move_piece(rule.rook_from, rule.rook_to)


def revoke_castling_rights_if_needed(
    rights: CastlingRights,
    moving_piece: Piece,
    from_sq: Square,
    to_sq: Square,
    captured: Optional[Piece],
) -> None:
    """
    Checks which rights should get revoked
    ----

    1. If you are moving your king (castling included) --> revoke both
    2. If you are moving a rook away from its starting square --> revoke the right of that side
    3. If you are taking your opponent's rook on its starting square --> revoke that right of your opponent
    """
    if moving_piece.type == PieceType.KING:
        rights.revoke_all(moving_piece.color)

    if moving_piece.type == PieceType.ROOK:
        for side in CastlingSide:
            if from_sq == CASTLING_RULES[(moving_piece.color, side)].rook_from:
                rights.revoke(moving_piece.color, side)

    if captured is not None and captured.type == PieceType.ROOK:
        for side in CastlingSide:
            if to_sq == CASTLING_RULES[(captured.color, side)].rook_from:
                rights.revoke(captured.color, side)


def rights_supported_by_board(board: Board) -> CastlingRights:
    """A right can only still be held while both the king and that rook stand on their starting squares."""
    rights = CastlingRights()
    for (color, side), rule in CASTLING_RULES.items():
        king_home = board.piece(rule.king_from) == Piece(PieceType.KING, color)
        rook_home = board.piece(rule.rook_from) == Piece(PieceType.ROOK, color)
        if not (king_home and rook_home):
            rights.revoke(color, side)
    return rights


def stale_castling_rights(board: Board, rights: CastlingRights) -> list[str]:
    """Rights still held although the king or rook left its starting square"""
    supported = rights_supported_by_board(board)
    return [
        f"{color.value} {side.value} castling right held but king or rook has moved"
        for color in Color
        for side in CastlingSide
        if rights.has(color, side) and not supported.has(color, side)
    ]
