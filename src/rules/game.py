"""
The Game class is the entrypoint into the rules engine.
It is responsible for orchestrating all the business logic required to play a move -->
validate the request, mutate the board, recompute the status and hand the bookkeeping to the GameStateManager.

Every public operation returns a structured result (MoveResult, OperationResult, ValidationReport, ...).
Internally the rules raise GameError subclasses; they are caught at this boundary.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Self

from pydantic import ValidationError

from src.api.models import MoveRequest, MoveResult, NotationResult, OperationResult, ValidationReport
from src.core.config import EngineSettings
from src.core.error_codes import ErrorCode
from src.core.exceptions import (
    CorruptionError,
    GameError,
    GameStateError,
    IllegalMoveError,
    InvalidRequestError,
    NotYourTurnError,
)
from src.core.models import CheckDetails, Checkpoint, GameMetadata, GameStateModel, MoveRecord
from src.core.shared_types import COLOR_NAMES, PIECE_TYPE_NAMES, CastlingSide, Color, DrawReason, GameStatus, PieceType
from src.rules import attacks, check
from src.rules.board import Board
from src.rules.castling import (
    CASTLING_RULES,
    CastlingRights,
    can_castle,
    castling_side_of_move,
    move_castling_pieces,
    revoke_castling_rights_if_needed,
    validate_castling,
)
from src.rules.fen import FENState
from src.rules.moves import Move, is_pawn_push_to_promotion_square, pawn_pushes_w_promotion, validate_piece_movement
from src.rules.pieces import Piece
from src.rules.special_moves import (
    en_passant_moves,
    en_passant_victim_square,
    is_en_passant_capture,
    next_en_passant_target,
    promote_pawn,
    validate_promotion,
)
from src.rules.square import BOARD_DIMENSIONS, Square, is_valid_coordinate
from src.rules.status import TERMINAL_STATUSES, StatusOutcome, evaluate_status, validate_status_change, validate_winner
from src.state.manager import GameStateManager
from src.state.recovery import reconstruct

logger = logging.getLogger(__name__)

# e2e4, e2-e4, e2xd3, e7e8q, e7e8=q, optionally prefixed by the piece name (pawne2-e4)
MOVE_NOTATION_PATTERN = re.compile(
    r"^(pawn|knight|bishop|rook|queen|king)?([a-h][1-8])[-x]?([a-h][1-8])(?:=?([qrbn]))?$"
)
INVALID_NOTATION_MESSAGE = "Invalid move notation"


def _first_to_move(current_turn: Color, history_length: int) -> Color:
    """Turns alternate: with an odd number of recorded moves, the other side started."""
    return current_turn if history_length % 2 == 0 else current_turn.opponent


@dataclass
class Game:
    # --- RULES ENGINE API CALLED BY SERVICE ---

    board: Board = field(default_factory=Board.starting_position)
    current_turn: Color = Color.WHITE
    game_status: GameStatus = GameStatus.ACTIVE
    winner: Optional[Color] = None
    draw_reason: Optional[DrawReason] = None
    move_history: list[MoveRecord] = field(default_factory=list)
    castling_rights: CastlingRights = field(default_factory=CastlingRights)
    en_passant_target: Optional[Square] = None
    half_move_clock: int = 0
    full_move_number: int = 1
    settings: EngineSettings = field(default_factory=EngineSettings)

    in_check: bool = field(default=False, init=False)
    check_details: Optional[CheckDetails] = field(default=None, init=False)
    manager: GameStateManager = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.manager = GameStateManager(
            self.settings, first_to_move=_first_to_move(self.current_turn, len(self.move_history))
        )
        self._refresh_check()
        self.manager.add_position_to_history(self.current_position())

    @classmethod
    def new_game(cls, settings: Optional[EngineSettings] = None) -> Self:
        """Standard starting position, full castling rights, white to move."""
        return cls(settings=settings or EngineSettings())

    @classmethod
    def from_fen(cls, fen: str, settings: Optional[EngineSettings] = None) -> Self:
        """
        Set up a position from a six-field FEN string (raises InvalidFENError on bad input).
        The status is evaluated for the loaded position.
        """
        state = FENState.from_fen(fen)
        game = cls(
            board=Board.from_fen(state.position),
            current_turn=state.color_to_move,
            castling_rights=CastlingRights.from_fen(state.castling),
            en_passant_target=state.en_passant_square,
            half_move_clock=state.half_move_clock,
            full_move_number=state.full_move_number,
            settings=settings or EngineSettings(),
        )
        game._apply_outcome(game._evaluate_status())
        return game

    # --- PROPERTIES OWNED BY THE STATE MANAGER ---
    @property
    def state_version(self) -> int:
        return self.manager.state_version

    @property
    def position_history(self) -> list[str]:
        return self.manager.position_history

    @property
    def game_metadata(self) -> GameMetadata:
        return self.manager.game_metadata

    def is_game_over(self) -> bool:
        return self.game_status in TERMINAL_STATUSES

    # --- MAKING A MOVE ---
    def make_move(self, move: Any) -> MoveResult:
        """
        Attempt to make a move `{from: {row, col}, to: {row, col}, promotion?: piece name}`
        -----

        1. the game must still be going on
        2. the request must be well formed
        3. the move must be legal for the side to move (see `_validate_move`)
        4. update the board (castling moves the rook too, en passant removes the passed pawn, promotion swaps the pawn)
        5. update castling rights, en passant target, move counters and the turn
        6. record the move / position and recompute the game status
        """
        try:
            if self.is_game_over():
                raise GameStateError(
                    f"Game is over. status: {self.game_status.value}", code=ErrorCode.GAME_NOT_ACTIVE
                )
            request = self._parse_request(move)
            from_sq = Square(request.from_square.row, request.from_square.col)
            to_sq = Square(request.to_square.row, request.to_square.col)
            legal_move = self._validate_move(from_sq, to_sq, request.promotion, self.current_turn)
        except GameError as exc:
            logger.warning("Rejected move %r: [%s] %s", move, exc.code, exc.message)
            return MoveResult.rejected(exc)

        record = self._play(legal_move)
        logger.debug(
            "Accepted %s %s (%s). status: %s",
            record.color.value,
            self.get_move_notation(record.from_square, record.to_square, record.piece),
            legal_move.to_uci(),
            self.game_status.value,
        )
        return MoveResult.accepted(record, self.game_status)

    def _parse_request(self, move: Any) -> MoveRequest:
        try:
            return MoveRequest.parse(move)
        except ValidationError as exc:
            raise InvalidRequestError(
                f"Cannot interpret move: {exc.errors()[0]['msg']}", code=ErrorCode.INVALID_FORMAT
            ) from exc

    def _validate_move(
        self, from_sq: Square, to_sq: Square, promotion: Optional[PieceType], color: Color
    ) -> Move:
        """
        The single legality check used by make_move and by legal move enumeration.
        ---

        In order: same square, empty origin, turn, own-piece capture, castling, piece movement / path,
        promotion choice, and finally king safety.
        Returns the fully annotated move (castling side, en passant flag, promotion).
        """
        if from_sq == to_sq:
            raise IllegalMoveError(code=ErrorCode.SAME_SQUARE)

        piece = self.board.piece(from_sq)
        if piece is None:
            raise IllegalMoveError(
                f"No piece at {from_sq.to_algebraic()}", code=ErrorCode.NO_PIECE
            )

        if piece.color != color:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {color.value} to make a move first."
            )

        target = self.board.piece(to_sq)
        if target is not None and target.color == piece.color:
            raise IllegalMoveError(code=ErrorCode.CAPTURE_OWN_PIECE)

        en_passant_target = self._en_passant_target_for(color)
        castling_side = (
            castling_side_of_move(from_sq, to_sq, color) if piece.type == PieceType.KING else None
        )
        if castling_side is not None:
            validate_castling(self.board, color, castling_side, self.castling_rights)
            promote_to = None
        else:
            validate_piece_movement(self.board, from_sq, to_sq, piece, en_passant_target)
            promote_to = validate_promotion(piece, to_sq, promotion)

        if check.would_be_in_check(self.board, from_sq, to_sq, color, piece, en_passant_target):
            raise self._king_safety_error(piece, color)

        return Move(
            from_square=from_sq,
            to_square=to_sq,
            promote_to=promote_to,
            castling_side=castling_side,
            is_en_passant=is_en_passant_capture(piece, from_sq, to_sq, en_passant_target, self.board),
        )

    def _en_passant_target_for(self, color: Color) -> Optional[Square]:
        """The target only exists for the side to move"""
        return self.en_passant_target if color == self.current_turn else None

    def _king_safety_error(self, piece: Piece, color: Color) -> IllegalMoveError:
        if check.is_in_check(self.board, color):
            return IllegalMoveError(code=ErrorCode.CHECK_NOT_RESOLVED)
        if piece.type != PieceType.KING:
            return IllegalMoveError(code=ErrorCode.PINNED_PIECE_INVALID_MOVE)
        return IllegalMoveError(code=ErrorCode.KING_IN_CHECK)

    def _play(self, move: Move) -> MoveRecord:
        """Apply an already validated move and do all the bookkeeping"""
        piece = self.board.piece(move.from_square)
        assert piece is not None
        move_number = self.full_move_number

        captured = self._update_board(move, piece)
        self._update_position_state(move, piece, captured)
        self._refresh_check()

        record = self.manager.add_move_to_history(
            self.move_history,
            {
                "from": move.from_square.to_raw(),
                "to": move.to_square.to_raw(),
                "piece": piece.type,
                "color": piece.color,
                "captured": captured.type if captured else None,
                "promotion": move.promote_to,
                "castling": move.castling_side,
                "en_passant": move.is_en_passant,
            },
            move_number,
            self._live_state(),
        )

        self._apply_outcome(self._evaluate_status())
        self.manager.update_state_version()
        return record

    def _update_board(self, move: Move, piece: Piece) -> Optional[Piece]:
        """Update the board. Returns the captured piece (if any)."""
        if move.castling_side is not None:
            move_castling_pieces(self.board, piece.color, move.castling_side)
            return None

        if move.is_en_passant:
            self.board.move_piece(move.from_square, move.to_square)
            return self.board.remove_piece(en_passant_victim_square(move.from_square, move.to_square))

        captured = self.board.move_piece(move.from_square, move.to_square)
        if move.promote_to is not None:
            promote_pawn(self.board, move.to_square, move.promote_to)
        return captured

    def _update_position_state(self, move: Move, piece: Piece, captured: Optional[Piece]) -> None:
        """
        Castling rights, en passant target, move counters and side to move.
        NOTE: the turn changes last, the other updates depend on who made the move.
        """
        revoke_castling_rights_if_needed(
            self.castling_rights, piece, move.from_square, move.to_square, captured
        )
        self.en_passant_target = next_en_passant_target(piece, move.from_square, move.to_square)

        if piece.type == PieceType.PAWN or captured is not None:
            self.half_move_clock = 0
        else:
            self.half_move_clock += 1

        if piece.color == Color.BLACK:
            self.full_move_number += 1

        self.current_turn = piece.color.opponent

    def _refresh_check(self) -> None:
        self.check_details = check.get_check_details(self.board, self.current_turn)
        self.in_check = self.check_details is not None

    # --- STATUS ---
    def _evaluate_status(self) -> StatusOutcome:
        return evaluate_status(
            self.board,
            self.current_turn,
            self.has_legal_moves(self.current_turn),
            self.position_history,
            self.half_move_clock,
            repetition_threshold=self.settings.repetition_threshold,
            fifty_move_rule=self.settings.fifty_move_rule,
        )

    def _apply_outcome(self, outcome: StatusOutcome) -> None:
        validate_status_change(self.game_status, outcome.status, outcome.winner)
        self.game_status = outcome.status
        self.winner = outcome.winner
        self.draw_reason = outcome.draw_reason
        if outcome.status in TERMINAL_STATUSES:
            logger.info(
                "Game %s ended: %s (winner: %s, reason: %s)",
                self.game_metadata.game_id,
                outcome.status.value,
                outcome.winner,
                outcome.draw_reason,
            )

    def update_game_status(self, new_status: Any, winner: Any = None) -> OperationResult:
        """Explicit status change (ex. agreed draw), validated against the transition table and winner rules."""
        result = self.manager.update_game_status(self.game_status, new_status, winner)
        if result.success:
            self.game_status = GameStatus(new_status)
            self.winner = Color(winner) if winner is not None else None
            self.draw_reason = None
        return result

    # --- LEGAL MOVES ---
    def _candidate_moves(self, color: Color) -> list[Move]:
        """
        1. basic movement rules for all pieces (the board does this calculation)
        2. castling moves that pass the castling checks
        3. en passant moves onto the current target
        4. pawn pushes to the promotion square expand to one move per piece type
        """
        candidate_moves = self.board.generate_candidate_moves(color)
        for side in CastlingSide:
            if can_castle(self.board, color, side, self.castling_rights):
                rule = CASTLING_RULES[(color, side)]
                candidate_moves.append(Move(rule.king_from, rule.king_to))

        en_passant_target = self._en_passant_target_for(color)
        if en_passant_target is not None:
            candidate_moves.extend(en_passant_moves(en_passant_target, color, self.board))

        expanded: list[Move] = []
        for move in candidate_moves:
            if is_pawn_push_to_promotion_square(move, self.board):
                expanded.extend(pawn_pushes_w_promotion(move))
            else:
                expanded.append(move)
        return expanded

    def _iter_legal_moves(self, color: Color) -> Iterator[Move]:
        for candidate in self._candidate_moves(color):
            try:
                yield self._validate_move(
                    candidate.from_square, candidate.to_square, candidate.promote_to, color
                )
            except IllegalMoveError:
                continue

    def get_legal_moves(self, color: Optional[Any] = None) -> list[Move]:
        """All legal moves of a color (default: the side to move). None once the game is over."""
        if self.is_game_over():
            return []
        if color is None:
            color = self.current_turn
        if not isinstance(color, str) or color not in COLOR_NAMES:
            return []
        return list(self._iter_legal_moves(Color(color)))

    def get_valid_moves_for_square(self, square: Any) -> list[Move]:
        """Legal moves of the piece standing on the square, for whichever color it is"""
        if not is_valid_coordinate(square):
            return []
        from_sq = Square.from_raw(square)
        piece = self.board.piece(from_sq)
        if piece is None:
            return []
        return [move for move in self.get_legal_moves(piece.color) if move.from_square == from_sq]

    def has_legal_moves(self, color: Color) -> bool:
        return any(True for _ in self._iter_legal_moves(color))

    # --- CHECK / ATTACK QUERIES ---
    def is_in_check(self, color: Optional[Any] = None) -> bool:
        color = self.current_turn if color is None else color
        if not isinstance(color, str) or color not in COLOR_NAMES:
            return False
        return check.is_in_check(self.board, Color(color))

    def get_check_details(self, color: Optional[Any] = None) -> Optional[CheckDetails]:
        color = self.current_turn if color is None else color
        if not isinstance(color, str) or color not in COLOR_NAMES:
            return None
        return check.get_check_details(self.board, Color(color))

    def would_be_in_check(
        self, from_square: Any, to_square: Any, color: Any = None, piece: Any = None
    ) -> bool:
        """Would the move leave that color's king attacked? True whenever there is nothing (valid) to move."""
        color = self.current_turn if color is None else color
        if not isinstance(color, str) or color not in COLOR_NAMES:
            return True
        moving_piece = piece if piece is None or isinstance(piece, Piece) else Piece.from_raw(piece)
        return check.would_be_in_check(
            self.board,
            from_square,
            to_square,
            Color(color),
            moving_piece,
            self._en_passant_target_for(Color(color)),
        )

    def is_square_under_attack(self, row: Any, col: Any, defending_color: Any) -> bool:
        return attacks.is_square_under_attack(self.board, row, col, defending_color)

    def can_piece_attack_square(self, from_square: Any, to_square: Any, piece: Any = None) -> bool:
        return attacks.can_piece_attack_square(self.board, from_square, to_square, piece)

    # --- GAME STATE ---
    def current_position(self) -> str:
        return self.manager.get_fen_position(
            self.board, self.current_turn, self.castling_rights, self.en_passant_target
        )

    def to_fen(self) -> str:
        """Full six-field FEN of the live position"""
        return FENState(
            position=self.board.to_fen(),
            color_to_move=self.current_turn,
            castling=self.castling_rights.to_fen(),
            en_passant_square=self.en_passant_target,
            half_move_clock=self.half_move_clock,
            full_move_number=self.full_move_number,
        ).to_fen()

    def _live_state(self) -> dict[str, Any]:
        """The gameplay-relevant part of the state, JSON compatible"""
        return {
            "board": self.board.to_raw(),
            "current_turn": self.current_turn.value,
            "game_status": self.game_status.value,
            "winner": self.winner.value if self.winner else None,
            "draw_reason": self.draw_reason.value if self.draw_reason else None,
            "move_history": [
                record.model_dump(mode="json", by_alias=True) for record in self.move_history
            ],
            "castling_rights": self.castling_rights.to_raw(),
            "en_passant_target": self.en_passant_target.to_raw() if self.en_passant_target else None,
            "half_move_clock": self.half_move_clock,
            "full_move_number": self.full_move_number,
            "in_check": self.in_check,
            "check_details": self.check_details.model_dump(mode="json") if self.check_details else None,
        }

    def get_game_state(self) -> dict[str, Any]:
        """Full snapshot, including the manager's bookkeeping and a fresh consistency report"""
        game_state = self._live_state()
        game_state.update(
            {
                "game_metadata": self.game_metadata.model_dump(mode="json"),
                "position_history": list(self.position_history),
                "state_version": self.state_version,
                "current_position": self.current_position(),
            }
        )
        game_state["state_consistency"] = self.manager.validate_game_state_consistency(
            game_state
        ).model_dump(mode="json")
        return game_state

    def validate_game_state_structure(self) -> ValidationReport:
        """Board shape, piece fields and king count of the live board"""
        num_rows, num_cols = BOARD_DIMENSIONS
        grid = self.board.grid
        if not isinstance(grid, list) or len(grid) != num_rows:
            return ValidationReport.from_findings(["Invalid board structure"])

        errors: list[str] = []
        kings = {color: 0 for color in Color}
        for row_idx, row in enumerate(grid):
            if not isinstance(row, list) or len(row) != num_cols:
                errors.append(f"Invalid row {row_idx} structure")
                continue
            for cell in row:
                if cell is None:
                    continue
                raw = cell.to_raw() if isinstance(cell, Piece) else cell
                if not isinstance(raw, dict) or not raw.get("type") or not raw.get("color"):
                    errors.append("Invalid piece: missing type or color")
                    continue
                if raw["type"] not in PIECE_TYPE_NAMES:
                    errors.append(f"Invalid piece type: {raw['type']}")
                if raw["color"] not in COLOR_NAMES:
                    errors.append(f"Invalid piece color: {raw['color']}")
                elif raw["type"] == PieceType.KING:
                    kings[Color(raw["color"])] += 1

        for color, count in kings.items():
            if count == 0:
                errors.append(f"Missing {color.value} king")
            elif count > 1:
                errors.append(f"Multiple {color.value} kings")
        return ValidationReport.from_findings(errors)

    def load_state(self, game_state: Any) -> OperationResult:
        """Replace the live state by a (deserialized) game state. Nothing changes if it does not validate."""
        try:
            model = GameStateModel.model_validate(game_state)
            validate_winner(model.game_status, model.winner)
            data = model.model_dump(mode="json", by_alias=True)
            board = Board.from_raw(data["board"])
        except ValidationError as exc:
            error = InvalidRequestError(f"Invalid game state: {exc.errors()[0]['msg']}")
            return OperationResult.failed(error)
        except GameError as exc:
            return OperationResult.failed(exc)

        self.board = board
        self.current_turn = model.current_turn
        self.game_status = model.game_status
        self.winner = model.winner
        self.draw_reason = model.draw_reason
        self.move_history = list(model.move_history)
        self.castling_rights = CastlingRights.from_raw(data["castling_rights"])
        self.en_passant_target = (
            Square.from_raw(data["en_passant_target"]) if data["en_passant_target"] else None
        )
        self.half_move_clock = model.half_move_clock
        self.full_move_number = model.full_move_number

        self.manager = GameStateManager(
            self.settings, first_to_move=_first_to_move(self.current_turn, len(self.move_history))
        )
        self.manager.state_version = model.state_version
        if model.game_metadata is not None:
            self.manager.game_metadata = model.game_metadata
        self.manager.position_history = list(model.position_history) or [self.current_position()]
        self._refresh_check()
        return OperationResult(success=True, message="Game state loaded")

    # --- NOTATION ---
    def get_move_notation(self, from_square: Any, to_square: Any, piece: Any) -> str:
        """`<piece type><from>-<to>`, e.g. pawne2-e4. Empty string when either square is not a board coordinate."""
        if not (is_valid_coordinate(from_square) and is_valid_coordinate(to_square)):
            return ""
        if isinstance(piece, Piece):
            piece_type = piece.type.value
        elif isinstance(piece, dict):
            piece_type = piece.get("type")
        else:
            piece_type = piece
        from_sq, to_sq = Square.from_raw(from_square), Square.from_raw(to_square)
        return f"{piece_type}{from_sq.to_algebraic()}-{to_sq.to_algebraic()}"

    def parse_move_notation(self, notation: Any) -> NotationResult:
        """
        Coordinate notation: `e2e4`, `e2-e4`, `e7e8q`, `e7e8=Q`, optionally prefixed by the piece name.
        The parsed move is handed back in the `{from, to, promotion?}` form accepted by make_move.
        """
        if not isinstance(notation, str) or not notation.strip():
            return NotationResult(success=False, message=INVALID_NOTATION_MESSAGE)

        match = MOVE_NOTATION_PATTERN.match(notation.strip().lower())
        if match is None:
            return NotationResult(success=False, message=INVALID_NOTATION_MESSAGE)

        piece_name, from_alg, to_alg, promotion = match.groups()
        parsed = Move.from_uci(f"{from_alg}{to_alg}{promotion or ''}").to_request()
        if piece_name:
            parsed["piece"] = piece_name
        return NotationResult(success=True, message="Move notation parsed", move=parsed)

    # --- SERIALIZATION / CHECKPOINTS / RECOVERY ---
    def serialize_game_state(self) -> Optional[str]:
        return self.manager.serialize_game_state(self.get_game_state())

    def deserialize_game_state(self, serialized: Any) -> Optional[dict[str, Any]]:
        """Parse serialized text back into a state dictionary (None when it cannot be read). Does not load it."""
        return self.manager.deserialize_game_state(serialized)

    def create_checkpoint(self) -> Checkpoint:
        return self.manager.create_state_checkpoint(self.get_game_state())

    def restore_from_checkpoint(self, checkpoint: Any) -> OperationResult:
        """The state version keeps increasing across a restore, so stale readers stay stale."""
        previous_version = self.state_version
        restored = self.manager.restore_from_checkpoint(checkpoint)
        if not restored.success:
            logger.warning("Checkpoint restore failed: %s", restored.message)
            return restored

        loaded = self.load_state(restored.details["game_state"])
        if not loaded.success:
            logger.warning("Checkpoint state could not be loaded: %s", loaded.message)
            return loaded

        self.manager.state_version = max(previous_version, self.state_version) + 1
        logger.info("Restored checkpoint. state version: %d", self.state_version)
        return OperationResult(
            success=True,
            message=restored.message,
            details={"state_version": self.state_version},
        )

    def recover_from_corruption(self, partial_state: Any) -> OperationResult:
        """Rebuild the live state from a partial one (see src/state/recovery.py for the default-fill policy)."""
        logger.warning("Attempting recovery from corrupted state")
        previous_version = self.state_version
        try:
            model = reconstruct(partial_state)
        except CorruptionError as exc:
            logger.warning("Recovery failed: %s", exc.message)
            return OperationResult.failed(exc)

        loaded = self.load_state(model.model_dump(mode="json", by_alias=True))
        if not loaded.success:
            logger.warning("Recovered state could not be loaded: %s", loaded.message)
            return OperationResult.failed(CorruptionError(loaded.message))

        self.manager.state_version = max(previous_version, self.state_version) + 1
        return OperationResult(
            success=True,
            message="Game state recovered from corruption",
            details={"state_version": self.state_version},
        )
