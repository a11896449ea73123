"""
A square on the board

(placed in its own module as multiple other modules need to import it)

Rows run from 0 (black's back rank, the 8th rank) to 7 (white's back rank, the 1st rank).
Columns run from 0 (a-file) to 7 (h-file).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Chess board is always 8x8: (rows, columns)
BOARD_DIMENSIONS = (8, 8)


def is_valid_index(value: Any, size: int) -> bool:
    """Only real integers are accepted (no bools, floats, NaN/Infinity or numeric strings)."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value < size


def is_valid_coordinate(value: Any) -> bool:
    """
    Check a raw coordinate before it gets interpreted.

    Accepts a Square, a mapping with `row` and `col`, or any object exposing those attributes.
    """
    if isinstance(value, Square):
        return value.is_within_bounds()
    if isinstance(value, dict):
        row, col = value.get("row"), value.get("col")
    else:
        row, col = getattr(value, "row", None), getattr(value, "col", None)
    return is_valid_index(row, BOARD_DIMENSIONS[0]) and is_valid_index(
        col, BOARD_DIMENSIONS[1]
    )


@dataclass(frozen=True)
class Square:
    row: int
    col: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a8' - 'h1' get converted to (0,0) - (7,7)"""
        col = ord(sq[0]) - ord("a")
        row = BOARD_DIMENSIONS[0] - int(sq[1])
        return cls(row, col)

    @classmethod
    def from_raw(cls, raw: Any) -> Square:
        """From a {row, col} mapping or anything with row/col attributes. Caller validates first."""
        if isinstance(raw, dict):
            return cls(raw["row"], raw["col"])
        return cls(raw.row, raw.col)

    def to_algebraic(self) -> str:
        return f"{chr(self.col + ord('a'))}{BOARD_DIMENSIONS[0] - self.row}"

    def to_raw(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}

    def is_within_bounds(self) -> bool:
        return is_valid_index(self.row, BOARD_DIMENSIONS[0]) and is_valid_index(
            self.col, BOARD_DIMENSIONS[1]
        )

    def offset(self, d_row: int, d_col: int) -> Square:
        return Square(self.row + d_row, self.col + d_col)

    def is_light(self) -> bool:
        """a8 (0, 0) is a light square"""
        return (self.row + self.col) % 2 == 0
