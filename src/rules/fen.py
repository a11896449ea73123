"""
FEN (Forsyth-Edwards Notation) helpers.

Two flavours are used in the engine:
* the full six-field FEN, accepted by `Game.from_fen()` and produced by `FENState.to_fen()`
* the four-field position string (placement, side to move, castling, en passant) used for the position history
  and repetition detection. Move counters are left out so identical positions compare equal.
"""

from dataclasses import dataclass
from string import ascii_lowercase
from typing import Any, Optional, Self

from src.core.exceptions import InvalidFENError
from src.core.shared_types import Color
from src.rules.pieces import FEN_TO_PIECE, piece_symbol
from src.rules.square import BOARD_DIMENSIONS, Square

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
VALID_CASTLING_ENCODINGS = [
    "-",
    "K",
    "Q",
    "k",
    "q",
    "KQ",
    "Kk",
    "Kq",
    "Qk",
    "Qq",
    "kq",
    "KQk",
    "KQq",
    "Kkq",
    "Qkq",
    "KQkq",
]
COLOR_TO_FEN: dict[Color, str] = {Color.WHITE: "w", Color.BLACK: "b"}


def _cell_symbol(cell: Any) -> Optional[str]:
    """Board cells come as Piece, pydantic model or plain {type, color} mapping"""
    if cell is None:
        return None
    if isinstance(cell, dict):
        return piece_symbol(cell.get("type", ""), cell.get("color", ""))
    return piece_symbol(getattr(cell, "type", ""), getattr(cell, "color", ""))


def _rank_to_fen(row: list[Any]) -> str:
    """Consecutive empty squares are written as a single digit"""
    fen = ""
    empty_run = 0
    for cell in row:
        symbol = _cell_symbol(cell)
        if symbol is None:
            empty_run += 1
            continue
        if empty_run:
            fen += str(empty_run)
            empty_run = 0
        fen += symbol
    if empty_run:
        fen += str(empty_run)
    return fen


def encode_placement(rows: list[list[Any]]) -> str:
    """Ranks from row 0 (black's back rank) to row 7, separated by slashes in FEN string."""
    return "/".join(_rank_to_fen(row) for row in rows)


def en_passant_to_fen(square: Optional[Square]) -> str:
    return square.to_algebraic() if square is not None else "-"


def encode_position(
    placement: str, color_to_move: Color, castling_fen: str, en_passant: Optional[Square]
) -> str:
    """The four-field position string: e.g. `rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -`"""
    return f"{placement} {COLOR_TO_FEN[color_to_move]} {castling_fen} {en_passant_to_fen(en_passant)}"


# --- VALIDATION ---
def is_valid_fen(fen: Any) -> bool:
    """
    Check if given string follows proper FEN notation.
    """
    if not isinstance(fen, str):
        return False

    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_counter, full_move_counter = parts
    return (
        is_valid_position(position)
        and is_valid_color_code(color)
        and is_valid_castling_rights(castling)
        and is_valid_en_passant(en_passant)
        and is_valid_move_counter(half_move_counter)
        and is_valid_move_counter(full_move_counter)
        and int(full_move_counter) >= 1
    )


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position."""
    num_rows, num_cols = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    if len(rank_fens) != num_rows:
        return False

    for rank_fen in rank_fens:
        col_count = 0
        for character in rank_fen:
            # make sure every character is valid
            if character.isdigit():
                col_count += int(character)
            elif character.lower() in FEN_TO_PIECE:
                col_count += 1
            else:
                # immediately invalidate if the character is anything else
                return False

        # make sure you are creating a correctly sized board
        if col_count != num_cols:
            return False
    return True


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """A valid castling encoding has either KQkq, KQk, etc. or a '-' if all rights have been revoked."""
    return castling in VALID_CASTLING_ENCODINGS


def is_valid_en_passant(en_passant: str) -> bool:
    """Valid en passant square encoding should be a square that exists on the board or a '-'"""
    return (en_passant == "-") or is_valid_square(en_passant)


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a number for the rank"""
    num_rows, num_cols = BOARD_DIMENSIONS
    if len(square) < 2:
        return False

    file_char, rank_char = square[0], square[1:]
    if file_char not in ascii_lowercase[:num_cols]:
        return False
    if not rank_char.isdigit():
        return False
    return 1 <= int(rank_char) <= num_rows


def is_valid_move_counter(counter: str) -> bool:
    return counter.isdigit()


@dataclass
class FENState:
    """
    Data that can be constructed from a FEN string.
    ----

    <board position string> <active color> <castling rights> <en passant square> <# half move clock> <full move number>

    * The active color is either "w" or "b"
    * Castling rights are "K" / "Q" for white king-side / queen-side, "k" / "q" for black, or "-" if all are revoked.
    * The en passant square is the square a pawn just skipped over. If not available a "-" is used.
    * The half move clock counts the number of half moves since the last pawn move or capture (fifty-move rule).
    * The full move number starts at 1 and increments after every move black makes.

    ex) The standard starting position has a FEN
    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
    """

    position: str
    color_to_move: Color
    castling: str
    en_passant_square: Optional[Square]
    half_move_clock: int
    full_move_number: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen!r}")

        position, active_color, castling, en_passant, half_move_clock, full_move_number = fen.split(" ")
        return cls(
            position=position,
            color_to_move=Color.WHITE if active_color == "w" else Color.BLACK,
            castling=castling,
            en_passant_square=Square.from_algebraic(en_passant) if en_passant != "-" else None,
            half_move_clock=int(half_move_clock),
            full_move_number=int(full_move_number),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        position = encode_position(
            self.position, self.color_to_move, self.castling, self.en_passant_square
        )
        return f"{position} {self.half_move_clock} {self.full_move_number}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)
