"""
Corruption recovery: rebuild a complete game state from a partial / damaged one.

Default-fill policy
---
* board: required. It must be 8x8 with recognizable pieces, otherwise the state is unrecoverable (CorruptionError)
* current_turn: kept if it is a color, else white
* game_status: kept if it is a known status, else active (winner only kept where the status allows one)
* move_history: kept if every record is readable, else empty
* castling_rights: derived from the piece placement; flags that were supplied can only remove rights, never add them
* en_passant_target: kept if it is a valid coordinate, else none
* half_move_clock / full_move_number: kept if they are integers in range, else 0 / 1
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from src.core.exceptions import CorruptionError
from src.core.models import GameStateModel, MoveRecord
from src.core.shared_types import COLOR_NAMES, STATUS_NAMES, CastlingSide, Color, DrawReason, GameStatus
from src.rules.board import Board
from src.rules.castling import CastlingRights, rights_supported_by_board
from src.rules.square import Square, is_valid_coordinate

logger = logging.getLogger(__name__)

UNRECOVERABLE_MESSAGE = "Cannot recover from corruption"
DRAW_REASON_NAMES: frozenset[str] = frozenset(reason.value for reason in DrawReason)


def _recover_color(value: Any) -> Color:
    if isinstance(value, str) and value in COLOR_NAMES:
        return Color(value)
    return Color.WHITE


def _recover_status(value: Any) -> GameStatus:
    if isinstance(value, str) and value in STATUS_NAMES:
        return GameStatus(value)
    return GameStatus.ACTIVE


def _recover_winner(status: GameStatus, value: Any) -> Optional[Color]:
    """Only a checkmate keeps its winner"""
    if status != GameStatus.CHECKMATE:
        return None
    return Color(value) if isinstance(value, str) and value in COLOR_NAMES else None


def _recover_history(value: Any) -> list[MoveRecord]:
    if not isinstance(value, list):
        return []
    try:
        return [MoveRecord.model_validate(record) for record in value]
    except ValidationError:
        logger.warning("Discarding unreadable move history (%d records)", len(value))
        return []


def _recover_counter(value: Any, minimum: int, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        return default
    return value


def _recover_castling_rights(board: Board, value: Any) -> CastlingRights:
    """Placement decides which rights are possible. A flag supplied as False revokes that right."""
    rights = rights_supported_by_board(board)
    supplied = CastlingRights()
    for color in Color:
        sides = value.get(color.value) if isinstance(value, dict) else None
        if not isinstance(sides, dict):
            continue
        for side in CastlingSide:
            if sides.get(side.value) is False:
                supplied.revoke(color, side)
    rights.restrict_to(supplied)
    return rights


def _recover_en_passant(value: Any) -> Optional[dict[str, int]]:
    return Square.from_raw(value).to_raw() if is_valid_coordinate(value) else None


def _recover_draw_reason(status: GameStatus, value: Any) -> Optional[DrawReason]:
    if status != GameStatus.DRAW or not isinstance(value, str):
        return None
    return DrawReason(value) if value in DRAW_REASON_NAMES else None


def _recover_position_history(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [position for position in value if isinstance(position, str)]


def reconstruct(partial_state: Any) -> GameStateModel:
    """
    Rebuild a full, consistent-enough game state from whatever survived.
    Raises CorruptionError when not even a usable board is present.
    """
    if not isinstance(partial_state, dict) or partial_state.get("board") is None:
        raise CorruptionError(UNRECOVERABLE_MESSAGE)

    try:
        board = Board.from_raw(partial_state["board"])
    except CorruptionError as exc:
        logger.warning("Board cannot be recovered: %s", exc.message)
        raise CorruptionError(UNRECOVERABLE_MESSAGE) from exc

    status = _recover_status(partial_state.get("game_status"))
    return GameStateModel(
        board=board.to_raw(),
        current_turn=_recover_color(partial_state.get("current_turn")),
        game_status=status,
        winner=_recover_winner(status, partial_state.get("winner")),
        draw_reason=_recover_draw_reason(status, partial_state.get("draw_reason")),
        move_history=_recover_history(partial_state.get("move_history")),
        castling_rights=_recover_castling_rights(board, partial_state.get("castling_rights")).to_raw(),
        en_passant_target=_recover_en_passant(partial_state.get("en_passant_target")),
        half_move_clock=_recover_counter(partial_state.get("half_move_clock"), 0, 0),
        full_move_number=_recover_counter(partial_state.get("full_move_number"), 1, 1),
        position_history=_recover_position_history(partial_state.get("position_history")),
        state_version=_recover_counter(partial_state.get("state_version"), 1, 1),
    )
