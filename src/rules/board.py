"""The Game board: an 8x8 grid of optional pieces. Pure data plus bounds checking and simple lookups."""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Self

from src.core.exceptions import CorruptionError
from src.core.shared_types import Color, PieceType
from src.rules.fen import encode_placement
from src.rules.moves import MOVEMENT_RULES, CandidateMovesFn, Move
from src.rules.pieces import Piece
from src.rules.square import BOARD_DIMENSIONS, Square

STARTING_PLACEMENT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

Grid = list[list[Optional[Piece]]]


def _empty_grid() -> Grid:
    return [[None] * BOARD_DIMENSIONS[1] for _ in range(BOARD_DIMENSIONS[0])]


@dataclass
class Board:
    grid: Grid = field(default_factory=_empty_grid)

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_PLACEMENT)

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the first part of a FEN string (the piece placement).

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * the first rank listed is row 0 (black's back rank), the last one row 7 (white's back rank)
        * within a rank, characters read from the a-file (col 0) to the h-file (col 7)
        * a digit denotes that many consecutive empty squares
        * capital letters are white pieces, small letters black pieces
        """
        grid = _empty_grid()
        for row, fen_one_rank in enumerate(fen_str.split("/")):
            col = 0
            for character in fen_one_rank:
                if character.isalpha():
                    grid[row][col] = Piece.from_fen(character)
                    col += 1
                else:
                    col += int(character)
        return cls(grid)

    @classmethod
    def from_raw(cls, rows: Any) -> Self:
        """
        Build a board from its JSON form: 8 rows of 8 cells, each cell None or {type, color}.
        Raises CorruptionError if the structure or any piece is not recognized.
        """
        num_rows, num_cols = BOARD_DIMENSIONS
        if not isinstance(rows, list) or len(rows) != num_rows:
            raise CorruptionError("Invalid board structure")

        grid = _empty_grid()
        for row_idx, row in enumerate(rows):
            if not isinstance(row, list) or len(row) != num_cols:
                raise CorruptionError(f"Invalid row {row_idx} structure")
            for col_idx, cell in enumerate(row):
                if cell is None:
                    continue
                if isinstance(cell, Piece):
                    grid[row_idx][col_idx] = cell
                    continue
                piece = Piece.from_raw(cell)
                if piece is None:
                    raise CorruptionError(f"Invalid piece at ({row_idx},{col_idx})")
                grid[row_idx][col_idx] = piece
        return cls(grid)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return encode_placement(self.grid)

    def to_raw(self) -> list[list[Optional[dict[str, str]]]]:
        return [
            [piece.to_raw() if piece else None for piece in row] for row in self.grid
        ]

    def copy(self) -> Self:
        """Copy used for simulations: never aliases the live grid (pieces themselves are immutable)."""
        return type(self)([list(row) for row in self.grid])

    # -- LOOKUPS --
    def piece(self, square: Square) -> Optional[Piece]:
        if not square.is_within_bounds():
            return None
        return self.grid[square.row][square.col]

    def is_empty(self, square: Square) -> bool:
        return self.piece(square) is None

    def is_any_occupied(self, squares: list[Square]) -> bool:
        return any(not self.is_empty(square) for square in squares)

    def pieces(self) -> Iterator[tuple[Square, Piece]]:
        """All occupied squares, row by row."""
        for row_idx, row in enumerate(self.grid):
            for col_idx, piece in enumerate(row):
                if piece is not None:
                    yield Square(row_idx, col_idx), piece

    def locate_pieces(
        self, piece_type: PieceType, color: Optional[Color] = None
    ) -> list[Square]:
        return [
            square
            for square, piece in self.pieces()
            if piece.type == piece_type and (color is None or piece.color == color)
        ]

    def locate_color(self, color: Color) -> list[Square]:
        return [square for square, piece in self.pieces() if piece.color == color]

    def find_king(self, color: Color) -> Optional[Square]:
        kings = self.locate_pieces(PieceType.KING, color)
        return kings[0] if kings else None

    # -- UPDATES --
    def place_piece(self, piece: Optional[Piece], square: Square) -> None:
        self.grid[square.row][square.col] = piece

    def remove_piece(self, square: Square) -> Optional[Piece]:
        piece = self.grid[square.row][square.col]
        self.grid[square.row][square.col] = None
        return piece

    def move_piece(self, from_square: Square, to_square: Square) -> Optional[Piece]:
        """Update the position on the board. Returns whatever stood on the target square."""
        piece_that_moved = self.remove_piece(from_square)
        captured = self.piece(to_square)
        self.place_piece(piece_that_moved, to_square)
        return captured

    # -- MOVE GENERATION --
    def generate_candidate_moves(self, color: Color) -> list[Move]:
        """
        Before knowing the set of legal moves, we use raycasting to find candidate moves, which will later be tested for legality
        (making sure it does not put yourself in check.)

        ---
        NOTE: Castling and en passant are added by the Game, which knows the castling rights / en passant target.
        """
        candidate_moves: list[Move] = []
        for starting_square in self.locate_color(color):
            piece = self.piece(starting_square)
            assert piece is not None
            movement_rule: CandidateMovesFn = MOVEMENT_RULES[piece.type]
            candidate_moves.extend(movement_rule(starting_square, self))
        return candidate_moves

    # -- MATERIAL --
    def count_material(self) -> dict[Color, int]:
        """Tally the points of material each player has on the board"""
        return {color: self._count_material_player(color) for color in Color}

    def _count_material_player(self, color: Color) -> int:
        return sum(piece.points for _, piece in self.pieces() if piece.color == color)
