"""
Boundary layer data model(s).

These objects are used to communicate game state across layers.
The rules engine (domain), the state manager and the service layer all exchange game state as
JSON-compatible dictionaries produced from / validated by the models defined here
(decouples the internal Board / Square / Piece types from the representation handed to callers).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.shared_types import CastlingSide, Color, DrawReason, GameStatus, PieceType

BOARD_SIZE = 8


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    col: int


class PieceModel(BaseModel):
    type: PieceType
    color: Color


class SideCastlingRights(BaseModel):
    kingside: bool = True
    queenside: bool = True


class CastlingRightsModel(BaseModel):
    white: SideCastlingRights = Field(default_factory=SideCastlingRights)
    black: SideCastlingRights = Field(default_factory=SideCastlingRights)


class AttackingPiece(BaseModel):
    piece: PieceModel
    position: Coordinate
    attack_type: str


class CheckDetails(BaseModel):
    king_position: Coordinate
    attacking_pieces: list[AttackingPiece]
    check_type: str
    is_double_check: bool


class MoveSnapshot(BaseModel):
    """Compact copy of the state right after a move, stored with every move record."""

    in_check: bool
    check_details: Optional[CheckDetails] = None
    castling_rights: CastlingRightsModel
    en_passant_target: Optional[Coordinate] = None
    half_move_clock: int
    full_move_number: int


class MoveRecord(BaseModel):
    """An accepted move. Serialized with the keys `from` and `to`."""

    model_config = ConfigDict(populate_by_name=True)

    from_square: Coordinate = Field(alias="from")
    to_square: Coordinate = Field(alias="to")
    piece: PieceType
    color: Color
    captured: Optional[PieceType] = None
    promotion: Optional[PieceType] = None
    castling: Optional[CastlingSide] = None
    en_passant: bool = False
    timestamp: Optional[float] = None
    move_number: Optional[int] = None
    turn_number: Optional[int] = None
    position_after_move: Optional[str] = None
    game_state_snapshot: Optional[MoveSnapshot] = None


class GameMetadata(BaseModel):
    """Process-local bookkeeping. Not relevant for the rules of the game."""

    game_id: str
    start_time: float
    last_move_time: float
    total_moves: int = 0
    version: str


class GameStateModel(BaseModel):
    """Full, JSON-compatible game state. Output of Game.get_game_state() and input of (de)serialization."""

    board: list[list[Optional[PieceModel]]]
    current_turn: Color = Color.WHITE
    game_status: GameStatus = GameStatus.ACTIVE
    winner: Optional[Color] = None
    draw_reason: Optional[DrawReason] = None
    move_history: list[MoveRecord] = Field(default_factory=list)
    castling_rights: CastlingRightsModel = Field(default_factory=CastlingRightsModel)
    en_passant_target: Optional[Coordinate] = None
    half_move_clock: int = 0
    full_move_number: int = 1
    game_metadata: Optional[GameMetadata] = None
    position_history: list[str] = Field(default_factory=list)
    state_version: int = 1
    current_position: Optional[str] = None
    state_consistency: Optional[dict[str, Any]] = None
    in_check: bool = False
    check_details: Optional[CheckDetails] = None

    @field_validator("board")
    @classmethod
    def validate_board_shape(
        cls, value: list[list[Optional[PieceModel]]]
    ) -> list[list[Optional[PieceModel]]]:
        if len(value) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in value):
            raise ValueError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}")
        return value


class StateSnapshot(BaseModel):
    timestamp: float
    state_version: int
    game_state: dict[str, Any]
    metadata: GameMetadata
    position_history: list[str]


class Checkpoint(BaseModel):
    id: str
    timestamp: float
    state: Optional[str]
    metadata: GameMetadata
    state_version: int
