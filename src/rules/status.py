"""
Game status state machine.

States: active, check, checkmate, stalemate, draw. The last three are terminal.
The status is recomputed from first principles after every accepted move (see `evaluate_status`), and
any explicit status change goes through `validate_status_change`.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional

from src.core.error_codes import ErrorCode
from src.core.exceptions import GameStateError
from src.core.shared_types import COLOR_NAMES, STATUS_NAMES, Color, DrawReason, GameStatus, PieceType
from src.rules.board import Board
from src.rules.check import is_in_check

FIFTY_MOVE_RULE_PLIES = 100

TERMINAL_STATUSES: frozenset[GameStatus] = frozenset(
    {GameStatus.CHECKMATE, GameStatus.STALEMATE, GameStatus.DRAW}
)

# from-status -> statuses it may change into (staying in the same status is always allowed)
STATUS_TRANSITIONS: dict[GameStatus, frozenset[GameStatus]] = {
    GameStatus.ACTIVE: frozenset(
        {GameStatus.CHECK, GameStatus.CHECKMATE, GameStatus.STALEMATE, GameStatus.DRAW}
    ),
    GameStatus.CHECK: frozenset(
        {GameStatus.ACTIVE, GameStatus.CHECKMATE, GameStatus.STALEMATE, GameStatus.DRAW}
    ),
    GameStatus.CHECKMATE: frozenset(),
    GameStatus.STALEMATE: frozenset(),
    GameStatus.DRAW: frozenset(),
}

MINOR_PIECES: frozenset[PieceType] = frozenset({PieceType.KNIGHT, PieceType.BISHOP})


@dataclass(frozen=True)
class StatusOutcome:
    status: GameStatus
    winner: Optional[Color] = None
    draw_reason: Optional[DrawReason] = None


def parse_status(status: Any) -> GameStatus:
    if not isinstance(status, str) or status not in STATUS_NAMES:
        raise GameStateError(f"Invalid game status: {status!r}", code=ErrorCode.INVALID_STATUS)
    return GameStatus(status)


def is_valid_transition(from_status: GameStatus, to_status: GameStatus) -> bool:
    return from_status == to_status or to_status in STATUS_TRANSITIONS[from_status]


def validate_winner(status: GameStatus, winner: Any) -> None:
    """checkmate requires a winning color, every other status forbids a winner"""
    if status == GameStatus.CHECKMATE:
        if not (isinstance(winner, str) and winner in COLOR_NAMES):
            raise GameStateError(code=ErrorCode.MISSING_WINNER)
        return
    if winner is None:
        return
    if status in (GameStatus.STALEMATE, GameStatus.DRAW):
        raise GameStateError(code=ErrorCode.INVALID_WINNER_FOR_DRAW)
    raise GameStateError(
        f"A winner is only allowed for checkmate, not for {status.value}",
        code=ErrorCode.INVALID_WINNER_FOR_DRAW,
    )


def validate_status_change(current_status: Any, new_status: Any, winner: Any = None) -> GameStatus:
    """
    Checked in order: the new status is known (INVALID_STATUS), the transition exists in the table
    (INVALID_STATUS_TRANSITION), the winner fits the new status (MISSING_WINNER / INVALID_WINNER_FOR_DRAW).
    """
    target = parse_status(new_status)
    if not isinstance(current_status, str) or current_status not in STATUS_NAMES:
        raise GameStateError(
            f"Unknown source status: {current_status!r}",
            code=ErrorCode.INVALID_STATUS_TRANSITION,
        )
    source = GameStatus(current_status)
    if not is_valid_transition(source, target):
        raise GameStateError(
            f"Invalid transition from {source.value} to {target.value}",
            code=ErrorCode.INVALID_STATUS_TRANSITION,
        )
    validate_winner(target, winner)
    return target


# --- DRAW CONDITIONS ---
def is_insufficient_material(board: Board) -> bool:
    """
    Neither side can deliver mate:
    * kings only
    * kings and a single minor piece (knight or bishop)
    * kings and bishops only, all standing on squares of the same color
    """
    others = [(square, piece) for square, piece in board.pieces() if piece.type != PieceType.KING]
    if not others:
        return True
    if len(others) == 1 and others[0][1].type in MINOR_PIECES:
        return True
    if all(piece.type == PieceType.BISHOP for _, piece in others):
        return len({square.is_light() for square, _ in others}) == 1
    return False


def is_threefold_repetition(position_history: list[str], threshold: int = 3) -> bool:
    """Any identical position string occurring `threshold` times or more"""
    if not position_history:
        return False
    return max(Counter(position_history).values()) >= threshold


def is_fifty_move_draw(half_move_clock: int) -> bool:
    """100 half moves (50 by each side) without pawn move or capture"""
    return half_move_clock >= FIFTY_MOVE_RULE_PLIES


def evaluate_status(
    board: Board,
    color_to_move: Color,
    has_legal_moves: bool,
    position_history: list[str],
    half_move_clock: int,
    repetition_threshold: int = 3,
    fifty_move_rule: bool = False,
) -> StatusOutcome:
    """
    Derive the status of the position for the side to move.
    ---

    Order of evaluation: checkmate, stalemate, draw (insufficient material, repetition, fifty-move rule), check, active.
    """
    in_check = is_in_check(board, color_to_move)

    if in_check and not has_legal_moves:
        return StatusOutcome(GameStatus.CHECKMATE, winner=color_to_move.opponent)

    if not in_check and not has_legal_moves:
        return StatusOutcome(GameStatus.STALEMATE)

    if is_insufficient_material(board):
        return StatusOutcome(GameStatus.DRAW, draw_reason=DrawReason.INSUFFICIENT_MATERIAL)

    if is_threefold_repetition(position_history, repetition_threshold):
        return StatusOutcome(GameStatus.DRAW, draw_reason=DrawReason.THREEFOLD_REPETITION)

    if fifty_move_rule and is_fifty_move_draw(half_move_clock):
        return StatusOutcome(GameStatus.DRAW, draw_reason=DrawReason.FIFTY_MOVE_RULE)

    if in_check:
        return StatusOutcome(GameStatus.CHECK)

    return StatusOutcome(GameStatus.ACTIVE)
