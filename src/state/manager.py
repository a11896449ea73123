"""
The Game State Manager.
---

Bookkeeping around the rules engine: turn sequencing, move-history enrichment, position strings (FEN-like),
consistency validation, snapshots / checkpoints and memory pruning.

It owns the process-local state that is not gameplay relevant (state version, metadata, position history)
and otherwise works on the JSON-compatible game state dictionaries produced by `Game.get_game_state()`.
Everything here reports problems through result objects: nothing is raised to the caller.
"""

import logging
import time
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError

from src.api.models import OperationResult, ValidationReport
from src.core.config import EngineSettings
from src.core.error_codes import ErrorCode
from src.core.exceptions import CorruptionError, GameStateError, InvalidRequestError
from src.core.models import Checkpoint, GameMetadata, MoveRecord, MoveSnapshot, StateSnapshot
from src.core.shared_types import COLOR_NAMES, PIECE_TYPE_NAMES, STATUS_NAMES, Color, GameStatus, PieceType
from src.rules.board import Board
from src.rules.castling import CastlingRights, stale_castling_rights
from src.rules.fen import encode_placement, encode_position
from src.rules.square import BOARD_DIMENSIONS, Square, is_valid_coordinate
from src.rules.status import is_threefold_repetition, is_valid_transition, validate_status_change
from src.state.serialization import deserialize_game_state, serialize_game_state

logger = logging.getLogger(__name__)


def generate_game_id() -> str:
    return f"game_{uuid4().hex}"


def _now() -> float:
    return time.time()


def _as_raw(value: Any) -> Any:
    """Accept domain objects / pydantic models where the JSON form is expected"""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    if hasattr(value, "to_raw"):
        return value.to_raw()
    return value


def _is_board_shaped(board: Any) -> bool:
    num_rows, num_cols = BOARD_DIMENSIONS
    return (
        isinstance(board, list)
        and len(board) == num_rows
        and all(isinstance(row, list) and len(row) == num_cols for row in board)
    )


def _count_kings(board: Any) -> dict[str, int]:
    king_count = {color.value: 0 for color in Color}
    if not isinstance(board, list):
        return king_count
    for row in board:
        if not isinstance(row, list):
            continue
        for cell in row:
            if isinstance(cell, dict) and cell.get("type") == PieceType.KING and cell.get("color") in king_count:
                king_count[cell["color"]] += 1
    return king_count


class GameStateManager:
    """Stateful companion of a single Game"""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        first_to_move: Color = Color.WHITE,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.first_to_move = first_to_move
        self.state_version = 1
        started = _now()
        self.game_metadata = GameMetadata(
            game_id=generate_game_id(),
            start_time=started,
            last_move_time=started,
            total_moves=0,
            version=self.settings.engine_version,
        )
        self.position_history: list[str] = []

    # --- POSITION STRINGS ---
    def get_fen_position(
        self,
        board: Any,
        current_turn: Any,
        castling_rights: Any,
        en_passant_target: Any,
    ) -> str:
        """
        FEN-like position string: placement, side to move, castling availability (KQkq order) and en passant square.
        Unknown piece types are written as their first letter instead of failing.
        """
        rows = _as_raw(board)
        rights = CastlingRights.from_raw(_as_raw(castling_rights))
        target = Square.from_raw(en_passant_target) if is_valid_coordinate(en_passant_target) else None
        color = Color.WHITE if current_turn == Color.WHITE else Color.BLACK
        return encode_position(encode_placement(rows), color, rights.to_fen(), target)

    def _position_of(self, game_state: dict[str, Any]) -> str:
        return self.get_fen_position(
            game_state.get("board"),
            game_state.get("current_turn"),
            game_state.get("castling_rights"),
            game_state.get("en_passant_target"),
        )

    # --- TURN SEQUENCING ---
    def calculate_expected_turn_from_history(self, move_history: list[Any]) -> Color:
        """Turns alternate starting with `first_to_move` (white in a standard game)"""
        return self.first_to_move if len(move_history) % 2 == 0 else self.first_to_move.opponent

    def validate_turn_sequence(
        self, current_turn: Any, expected_color: Any, move_history: list[Any]
    ) -> OperationResult:
        """
        1. The expected color must be a color (INVALID_COLOR)
        2. It must be that color's turn (TURN_SEQUENCE_VIOLATION)
        3. The turn must agree with the move history parity (TURN_HISTORY_MISMATCH)
        """
        if not isinstance(expected_color, str) or expected_color not in COLOR_NAMES:
            return OperationResult(
                success=False,
                message="Invalid color specified for turn validation",
                error_code=ErrorCode.INVALID_COLOR,
                details={"provided_color": expected_color, "valid_colors": sorted(COLOR_NAMES)},
            )

        if current_turn != expected_color:
            return OperationResult(
                success=False,
                message=f"Turn sequence violation: expected {expected_color}, but it's {current_turn}'s turn",
                error_code=ErrorCode.TURN_SEQUENCE_VIOLATION,
                details={
                    "expected_turn": expected_color,
                    "actual_turn": current_turn,
                    "total_moves": self.game_metadata.total_moves,
                },
            )

        expected_from_history = self.calculate_expected_turn_from_history(move_history)
        if current_turn != expected_from_history:
            return OperationResult(
                success=False,
                message="Turn sequence inconsistent with move history",
                error_code=ErrorCode.TURN_HISTORY_MISMATCH,
                details={
                    "current_turn": current_turn,
                    "expected_from_history": expected_from_history.value,
                    "move_history_length": len(move_history),
                },
            )

        return OperationResult(
            success=True,
            message="Turn sequence is valid",
            details={"current_turn": current_turn, "is_consistent": True},
        )

    # --- STATUS MACHINE ---
    def validate_status_transition(self, from_status: Any, to_status: Any) -> OperationResult:
        """Transition table only (winner not considered). Unknown statuses are invalid transitions too."""
        known = all(isinstance(status, str) and status in STATUS_NAMES for status in (from_status, to_status))
        if not known or not is_valid_transition(GameStatus(from_status), GameStatus(to_status)):
            return OperationResult.failed(
                GameStateError(
                    f"Invalid transition from {from_status} to {to_status}",
                    code=ErrorCode.INVALID_STATUS_TRANSITION,
                ),
                from_status=from_status,
                to_status=to_status,
            )
        return OperationResult(
            success=True,
            message=f"Valid transition from {from_status} to {to_status}",
            details={"from_status": from_status, "to_status": to_status},
        )

    def update_game_status(
        self, current_status: Any, new_status: Any, winner: Any = None
    ) -> OperationResult:
        """Validate an explicit status change (table + winner rules). Bumps the state version when accepted."""
        try:
            validate_status_change(current_status, new_status, winner)
        except GameStateError as exc:
            logger.warning("Rejected status change %s -> %s: %s", current_status, new_status, exc.message)
            return OperationResult.failed(
                exc, previous_status=current_status, new_status=new_status, provided_winner=winner
            )

        self.update_game_metadata(last_move_time=_now())
        self.update_state_version()
        return OperationResult(
            success=True,
            message=f"Game status updated from {current_status} to {new_status}",
            details={
                "previous_status": current_status,
                "new_status": new_status,
                "new_winner": winner,
                "state_version": self.state_version,
            },
        )

    # --- HISTORY ---
    def add_move_to_history(
        self,
        move_history: list[MoveRecord],
        move_data: Any,
        full_move_number: int,
        game_state: dict[str, Any],
    ) -> MoveRecord:
        """
        Enrich the accepted move and append it to the history.
        ---

        Adds move/turn numbers, a timestamp, the position after the move and a compact snapshot of the state
        right after the move. The position is also appended to the position history.
        """
        position = self._position_of(game_state)
        snapshot = MoveSnapshot(
            in_check=bool(game_state.get("in_check")),
            check_details=game_state.get("check_details"),
            castling_rights=_as_raw(game_state.get("castling_rights")),
            en_passant_target=game_state.get("en_passant_target"),
            half_move_clock=game_state.get("half_move_clock", 0),
            full_move_number=game_state.get("full_move_number", full_move_number),
        )
        record = MoveRecord.model_validate(move_data).model_copy(
            update={
                "move_number": full_move_number,
                "turn_number": self.game_metadata.total_moves + 1,
                "timestamp": _now(),
                "game_state_snapshot": snapshot,
                "position_after_move": position,
            }
        )

        move_history.append(record)
        self.update_game_metadata(
            total_moves=self.game_metadata.total_moves + 1, last_move_time=record.timestamp
        )
        self.add_position_to_history(position)
        return record

    def add_position_to_history(self, position: str) -> None:
        """Oldest positions get dropped once the configured limit is reached"""
        self.position_history.append(position)
        limit = self.settings.position_history_limit
        if len(self.position_history) > limit:
            self.position_history = self.position_history[-limit:]

    def check_threefold_repetition(self) -> bool:
        return is_threefold_repetition(self.position_history, self.settings.repetition_threshold)

    def update_state_version(self) -> None:
        self.state_version += 1

    def update_game_metadata(self, **updates: Any) -> None:
        self.game_metadata = self.game_metadata.model_copy(update=updates)

    def track_state_change(self, old_state: Any, new_state: Any) -> None:
        """Bump the version, record the new position if it changed, keep metadata current."""
        if not old_state or not new_state:
            return

        self.update_state_version()
        new_position = self._position_of(new_state)
        if not self.position_history or self.position_history[-1] != new_position:
            self.add_position_to_history(new_position)

        updates: dict[str, Any] = {"last_move_time": _now()}
        old_moves = old_state.get("move_history") or []
        new_moves = new_state.get("move_history") or []
        if len(new_moves) > len(old_moves):
            updates["total_moves"] = len(new_moves)
        self.update_game_metadata(**updates)

    # --- CONSISTENCY VALIDATION ---
    def validate_board_consistency(self, board: Any) -> ValidationReport:
        """8x8 structure, recognizable pieces, exactly one king per color"""
        num_rows, num_cols = BOARD_DIMENSIONS
        if not isinstance(board, list) or len(board) != num_rows:
            return ValidationReport.from_findings(
                ["Invalid board structure"],
                expected_rows=num_rows,
                actual_rows=len(board) if isinstance(board, list) else 0,
            )

        errors: list[str] = []
        piece_count = {color.value: 0 for color in Color}
        for row_idx, row in enumerate(board):
            if not isinstance(row, list) or len(row) != num_cols:
                errors.append(f"Row {row_idx} has invalid structure")
                continue
            for col_idx, cell in enumerate(row):
                if cell is None:
                    continue
                if not isinstance(cell, dict) or not cell.get("type") or not cell.get("color"):
                    errors.append(f"Invalid piece at ({row_idx},{col_idx}): missing type or color")
                    continue
                piece_type, color = cell["type"], cell["color"]
                if color not in COLOR_NAMES:
                    errors.append(f"Invalid piece color at ({row_idx},{col_idx}): {color}")
                    continue
                if piece_type not in PIECE_TYPE_NAMES:
                    errors.append(f"Invalid piece type at ({row_idx},{col_idx}): {piece_type}")
                piece_count[color] += 1

        king_count = _count_kings(board)
        for color, count in king_count.items():
            if count != 1:
                errors.append(f"Invalid {color} king count: {count} (expected 1)")

        return ValidationReport.from_findings(errors, king_count=king_count, piece_count=piece_count)

    def validate_king_count(self, board: Any) -> ValidationReport:
        if not isinstance(board, list):
            return ValidationReport.from_findings(
                ["Invalid board structure"], white_kings=0, black_kings=0
            )
        king_count = _count_kings(board)
        white, black = king_count[Color.WHITE], king_count[Color.BLACK]
        errors = (
            []
            if white == 1 and black == 1
            else [f"Expected 1 king per color, found white: {white}, black: {black}"]
        )
        return ValidationReport.from_findings(errors, white_kings=white, black_kings=black)

    def validate_turn_consistency(self, game_state: Any) -> ValidationReport:
        if not isinstance(game_state, dict) or not isinstance(game_state.get("move_history"), list):
            return ValidationReport.from_findings(
                ["Invalid game state or missing move history"],
                expected_turn=self.first_to_move.value,
            )
        expected = self.calculate_expected_turn_from_history(game_state["move_history"])
        actual = game_state.get("current_turn")
        errors = [] if actual == expected else [f"Turn mismatch: expected {expected.value}, got {actual}"]
        return ValidationReport.from_findings(errors, expected_turn=expected.value, actual_turn=actual)

    def validate_en_passant_consistency(self, game_state: Any) -> ValidationReport:
        """The target must be exactly what the most recent move produces: the skipped square of a two-square pawn push, else none"""
        if not isinstance(game_state, dict) or not isinstance(game_state.get("move_history"), list):
            return ValidationReport.from_findings(
                ["Invalid game state or missing move history"], expected_target=None
            )

        history = game_state["move_history"]
        last_move = _as_raw(history[-1]) if history else None
        expected_target: Optional[dict[str, int]] = None
        if isinstance(last_move, dict) and last_move.get("piece") == PieceType.PAWN:
            from_sq, to_sq = last_move.get("from") or {}, last_move.get("to") or {}
            if is_valid_coordinate(from_sq) and is_valid_coordinate(to_sq) and abs(to_sq["row"] - from_sq["row"]) == 2:
                expected_target = {"row": (from_sq["row"] + to_sq["row"]) // 2, "col": to_sq["col"]}

        actual = game_state.get("en_passant_target")
        actual_target = Square.from_raw(actual).to_raw() if is_valid_coordinate(actual) else None
        errors = [] if expected_target == actual_target else ["En passant target mismatch"]
        return ValidationReport.from_findings(
            errors, expected_target=expected_target, actual_target=actual_target
        )

    def validate_castling_rights_consistency(self, board: Any, castling_rights: Any) -> bool:
        """False if a right is still held although the king or that rook left its starting square"""
        try:
            live_board = Board.from_raw(_as_raw(board))
        except CorruptionError:
            return False
        rights = CastlingRights.from_raw(_as_raw(castling_rights))
        return not stale_castling_rights(live_board, rights)

    def validate_game_state_consistency(self, game_state: dict[str, Any]) -> ValidationReport:
        """
        Errors: bad board structure or king count, turn vs history, move counters, status/winner pairing,
        en passant target vs last move, empty position history.
        Warnings: stale castling rights, live position differing from the last recorded one.
        """
        errors: list[str] = []
        warnings: list[str] = []
        board = game_state.get("board")

        board_report = self.validate_board_consistency(board)
        errors.extend(board_report.errors)

        turn_report = self.validate_turn_consistency(game_state)
        errors.extend(turn_report.errors)

        full_move_number = game_state.get("full_move_number", 1)
        if not isinstance(full_move_number, int) or full_move_number < 1:
            errors.append(f"Invalid full move number: {full_move_number}")
        half_move_clock = game_state.get("half_move_clock", 0)
        if not isinstance(half_move_clock, int) or half_move_clock < 0:
            errors.append(f"Invalid half move clock: {half_move_clock}")

        status, winner = game_state.get("game_status"), game_state.get("winner")
        if status == GameStatus.CHECKMATE and not (isinstance(winner, str) and winner in COLOR_NAMES):
            errors.append("Checkmate status requires a winner")
        if status != GameStatus.CHECKMATE and winner is not None:
            errors.append(f"{status} status should not have a winner")

        if game_state.get("move_history"):
            errors.extend(self.validate_en_passant_consistency(game_state).errors)

        if not self.position_history:
            errors.append("Position history is empty")

        if _is_board_shaped(board):
            if not self.validate_castling_rights_consistency(board, game_state.get("castling_rights")):
                warnings.append("Castling rights may be inconsistent with piece positions")
            current_position = self._position_of(game_state)
            if self.position_history and current_position != self.position_history[-1]:
                warnings.append("Current position does not match last recorded position")

        return ValidationReport.from_findings(
            errors,
            warnings,
            state_version=self.state_version,
            validation_timestamp=_now(),
            turn_consistency=not turn_report.errors,
            king_count=_count_kings(board),
            move_history_length=len(game_state.get("move_history") or []),
            position_history_length=len(self.position_history),
        )

    def validate_state_transition(self, from_state: Any, to_state: Any) -> ValidationReport:
        """Move history never shrinks, and a single added move hands the turn to the other side"""
        if not isinstance(from_state, dict) or not isinstance(to_state, dict):
            return ValidationReport.from_findings(["Invalid state objects"])

        errors: list[str] = []
        from_moves = from_state.get("move_history") or []
        to_moves = to_state.get("move_history") or []
        if len(to_moves) < len(from_moves):
            errors.append("Move history cannot decrease")
        if len(to_moves) == len(from_moves) + 1 and from_state.get("current_turn") == to_state.get("current_turn"):
            errors.append("Turn should change after a move")
        return ValidationReport.from_findings(errors)

    # --- COMPARISON ---
    def compare_game_states(self, state1: Any, state2: Any) -> dict[str, Any]:
        if not isinstance(state1, dict) or not isinstance(state2, dict):
            return {"identical": False, "differences": ["One or both states are missing"]}

        differences: list[str] = []
        if state1.get("current_turn") != state2.get("current_turn"):
            differences.append(f"Current turn: {state1.get('current_turn')} vs {state2.get('current_turn')}")
        if state1.get("game_status") != state2.get("game_status"):
            differences.append(f"Game status: {state1.get('game_status')} vs {state2.get('game_status')}")
        moves1 = state1.get("move_history") or []
        moves2 = state2.get("move_history") or []
        if len(moves1) != len(moves2):
            differences.append(f"Move history length: {len(moves1)} vs {len(moves2)}")
        return {"identical": not differences, "differences": differences}

    def detect_state_changes(self, old_state: Any, new_state: Any) -> list[dict[str, Any]]:
        if not isinstance(old_state, dict) or not isinstance(new_state, dict):
            return [{"type": "invalid_comparison"}]

        changes: list[dict[str, Any]] = []
        if old_state.get("current_turn") != new_state.get("current_turn"):
            changes.append(
                {"type": "turn_change", "from": old_state.get("current_turn"), "to": new_state.get("current_turn")}
            )
        old_moves = old_state.get("move_history") or []
        new_moves = new_state.get("move_history") or []
        if len(new_moves) > len(old_moves):
            changes.append({"type": "move_added", "move": new_moves[-1]})
        return changes

    # --- SNAPSHOTS / CHECKPOINTS ---
    def get_state_snapshot(self, game_state: dict[str, Any]) -> dict[str, Any]:
        """Read-only deep copy of the state plus the manager's own bookkeeping"""
        snapshot = StateSnapshot(
            timestamp=_now(),
            state_version=self.state_version,
            game_state=deserialize_game_state(serialize_game_state(game_state)) or {},
            metadata=self.game_metadata,
            position_history=list(self.position_history),
        )
        return snapshot.model_dump(mode="json")

    def validate_state_snapshot(self, snapshot: Any) -> ValidationReport:
        if not isinstance(snapshot, dict):
            return ValidationReport.from_findings(["Snapshot is missing"])

        errors: list[str] = []
        timestamp, version = snapshot.get("timestamp"), snapshot.get("state_version")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)) or not timestamp:
            errors.append("Invalid or missing timestamp")
        if isinstance(version, bool) or not isinstance(version, (int, float)) or not version:
            errors.append("Invalid or missing state version")
        if not snapshot.get("game_state"):
            errors.append("Missing game state")
        return ValidationReport.from_findings(errors)

    def serialize_game_state(self, game_state: Any) -> Optional[str]:
        return serialize_game_state(game_state)

    def deserialize_game_state(self, serialized: Any) -> Optional[dict[str, Any]]:
        return deserialize_game_state(serialized)

    def create_state_checkpoint(self, game_state: dict[str, Any]) -> Checkpoint:
        checkpoint = Checkpoint(
            id=f"checkpoint_{uuid4().hex}",
            timestamp=_now(),
            state=serialize_game_state(game_state),
            metadata=self.game_metadata,
            state_version=self.state_version,
        )
        logger.info("Created checkpoint %s at state version %d", checkpoint.id, checkpoint.state_version)
        return checkpoint

    def restore_from_checkpoint(self, checkpoint: Any) -> OperationResult:
        """Deserialize the checkpoint. The restored state is handed back in `details['game_state']`."""
        if isinstance(checkpoint, dict):
            try:
                checkpoint = Checkpoint.model_validate(checkpoint)
            except ValidationError:
                checkpoint = None
        if not isinstance(checkpoint, Checkpoint) or not checkpoint.state:
            return OperationResult.failed(InvalidRequestError("Invalid checkpoint"))

        game_state = deserialize_game_state(checkpoint.state)
        if game_state is None:
            return OperationResult.failed(CorruptionError("Failed to deserialize checkpoint state"))

        return OperationResult(
            success=True,
            message=f"Restored checkpoint {checkpoint.id}",
            details={
                "game_state": game_state,
                "metadata": checkpoint.metadata.model_dump(mode="json"),
                "state_version": checkpoint.state_version,
            },
        )

    # --- MEMORY ---
    def cleanup_old_states(self, max_states: Optional[int] = None) -> None:
        limit = max_states if max_states is not None else self.settings.state_cleanup_limit
        if len(self.position_history) > limit:
            self.position_history = self.position_history[-limit:] if limit > 0 else []

    def get_memory_usage(self) -> dict[str, int]:
        metadata = self.game_metadata.model_dump(mode="json")
        position_history_size = len(self.position_history)
        return {
            "position_history_size": position_history_size,
            "metadata_size": len(metadata),
            "total_size": position_history_size + len(metadata),
            "estimated_bytes": len(serialize_game_state({"positions": self.position_history}) or "")
            + len(self.game_metadata.model_dump_json()),
        }

    def optimize_state_storage(self) -> None:
        """Drop duplicate positions (first occurrence kept), prune, bump the version."""
        self.position_history = list(dict.fromkeys(self.position_history))
        self.cleanup_old_states()
        self.update_state_version()

