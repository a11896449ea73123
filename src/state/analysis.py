"""
Game analytics: material, game phase, piece activity and position complexity.

None of this affects legality. Everything works on the JSON form of the board and tolerates a malformed one
(it just counts nothing).
"""

from typing import Any, Callable, Iterator

from src.core.shared_types import COLOR_NAMES, PIECE_TYPE_NAMES, Color, PieceType
from src.rules.pieces import PIECE_POINTS
from src.rules.square import BOARD_DIMENSIONS

OPENING_PLIES = 20
ENDGAME_PLIES = 60
ENDGAME_MATERIAL = 20
COMPLEX_POSITION_PIECES = 20


def _occupied_cells(board: Any) -> Iterator[tuple[int, int, str, str]]:
    """(row, col, type, color) for every cell carrying a recognizable piece"""
    if not isinstance(board, list):
        return
    for row_idx, row in enumerate(board[: BOARD_DIMENSIONS[0]]):
        if not isinstance(row, list):
            continue
        for col_idx, cell in enumerate(row[: BOARD_DIMENSIONS[1]]):
            if not isinstance(cell, dict):
                continue
            piece_type, color = cell.get("type"), cell.get("color")
            if isinstance(piece_type, str) and isinstance(color, str) and color in COLOR_NAMES:
                yield row_idx, col_idx, piece_type, color


def calculate_material_balance(board: Any) -> dict[str, Any]:
    """Piece counts and point totals per color (pawn 1, knight/bishop 3, rook 5, queen 9, king excluded)"""
    balance: dict[str, dict[str, int]] = {
        color.value: {**{piece.value: 0 for piece in PieceType}, "total": 0} for color in Color
    }
    for _, _, piece_type, color in _occupied_cells(board):
        if piece_type not in PIECE_TYPE_NAMES:
            continue
        balance[color][piece_type] += 1
        balance[color]["total"] += PIECE_POINTS.get(PieceType(piece_type), 0)

    white, black = balance[Color.WHITE.value], balance[Color.BLACK.value]
    return {"white": white, "black": black, "difference": white["total"] - black["total"]}


def detect_game_phase(game_state: dict[str, Any]) -> str:
    """opening for the first 20 plies, endgame once material gets low (or after 60 plies), middlegame otherwise"""
    move_count = len(game_state.get("move_history") or [])
    material = calculate_material_balance(game_state.get("board"))
    total_material = material["white"]["total"] + material["black"]["total"]

    if move_count < OPENING_PLIES:
        return "opening"
    if total_material < ENDGAME_MATERIAL or move_count > ENDGAME_PLIES:
        return "endgame"
    return "middlegame"


# movement pattern per piece type, given |delta_row| and |delta_col|
BASIC_MOVE_PATTERNS: dict[PieceType, Callable[[int, int], bool]] = {
    PieceType.PAWN: lambda d_row, d_col: d_col <= 1 and d_row <= 2,
    PieceType.ROOK: lambda d_row, d_col: d_row == 0 or d_col == 0,
    PieceType.KNIGHT: lambda d_row, d_col: (d_row, d_col) in {(1, 2), (2, 1)},
    PieceType.BISHOP: lambda d_row, d_col: d_row == d_col,
    PieceType.QUEEN: lambda d_row, d_col: d_row == 0 or d_col == 0 or d_row == d_col,
    PieceType.KING: lambda d_row, d_col: d_row <= 1 and d_col <= 1,
}


def is_basic_move_valid(piece_type: str, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
    """Movement pattern only: no board, no blocking pieces"""
    if piece_type not in PIECE_TYPE_NAMES:
        return False
    pattern = BASIC_MOVE_PATTERNS[PieceType(piece_type)]
    return pattern(abs(to_row - from_row), abs(to_col - from_col))


def calculate_piece_mobility(board: Any, row: int, col: int, piece: dict[str, Any]) -> int:
    """Number of squares matching the piece's movement pattern"""
    num_rows, num_cols = BOARD_DIMENSIONS
    return sum(
        1
        for to_row in range(num_rows)
        for to_col in range(num_cols)
        if (to_row, to_col) != (row, col)
        and is_basic_move_valid(piece.get("type", ""), row, col, to_row, to_col)
    )


def analyze_piece_activity(board: Any, color: str) -> dict[str, Any]:
    active_pieces = [
        {
            "type": piece_type,
            "position": {"row": row, "col": col},
            "mobility": calculate_piece_mobility(board, row, col, {"type": piece_type}),
        }
        for row, col, piece_type, piece_color in _occupied_cells(board)
        if piece_color == color
    ]
    total_mobility = sum(piece["mobility"] for piece in active_pieces)
    return {
        "active_pieces": active_pieces,
        "total_mobility": total_mobility,
        "average_mobility": total_mobility / len(active_pieces) if active_pieces else 0,
    }


def analyze_position_complexity(board: Any) -> bool:
    """A position with more than 20 pieces on the board counts as complex"""
    return sum(1 for _ in _occupied_cells(board)) > COMPLEX_POSITION_PIECES


def analyze_game_progression(game_state: dict[str, Any]) -> dict[str, Any]:
    move_count = len(game_state.get("move_history") or [])
    return {
        "phase": detect_game_phase(game_state),
        "move_count": move_count,
        "characteristics": {
            "is_early_game": move_count < OPENING_PLIES,
            "is_mid_game": OPENING_PLIES <= move_count < ENDGAME_PLIES,
            "is_end_game": move_count >= ENDGAME_PLIES,
            "has_complex_position": analyze_position_complexity(game_state.get("board")),
        },
    }
