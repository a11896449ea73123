"""Requests and Response models"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.error_codes import ErrorCode
from src.core.exceptions import GameError, InvalidRequestError
from src.core.models import Coordinate, MoveRecord
from src.core.shared_types import PIECE_TYPE_NAMES, GameStatus, PieceType
from src.rules.pieces import PROMOTION_OPTIONS
from src.rules.square import is_valid_coordinate


# --- REQUEST MODELS ---
class MoveRequest(BaseModel):
    """
    `{from: {row, col}, to: {row, col}, promotion?: piece name}`

    NOTE: the validators raise the engine's own coded exceptions (not ValueError), so pydantic does not wrap them:
    the caller gets the InvalidRequestError with the proper error code.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_square: Coordinate = Field(alias="from")
    to_square: Coordinate = Field(alias="to")
    promotion: Optional[PieceType] = None

    @model_validator(mode="before")
    @classmethod
    def validate_shape(cls, data: Any) -> Any:
        if isinstance(data, MoveRequest):
            return data
        if not isinstance(data, dict):
            raise InvalidRequestError(code=ErrorCode.MALFORMED_MOVE)

        missing = [
            key
            for key, field_name in (("from", "from_square"), ("to", "to_square"))
            if data.get(key) is None and data.get(field_name) is None
        ]
        if missing:
            raise InvalidRequestError(
                f"Move is missing required field(s): {', '.join(missing)}",
                code=ErrorCode.INVALID_FORMAT,
            )
        return data

    @field_validator("from_square", "to_square", mode="before")
    @classmethod
    def validate_coordinate(cls, value: Any) -> Any:
        """Only integers in [0, 7]: no floats, bools, strings or NaN."""
        if isinstance(value, Coordinate):
            return value
        if not isinstance(value, dict) or not is_valid_coordinate(value):
            raise InvalidRequestError(
                f"Invalid coordinates: {value!r}", code=ErrorCode.INVALID_COORDINATES
            )
        return {"row": value["row"], "col": value["col"]}

    @field_validator("promotion", mode="before")
    @classmethod
    def validate_promotion(cls, value: Any) -> Any:
        if value is None:
            return value
        if not isinstance(value, str) or value.lower() not in PIECE_TYPE_NAMES:
            raise InvalidRequestError(
                f"Cannot interpret promotion: {value!r} as a piece type.",
                code=ErrorCode.INVALID_FORMAT,
            )
        if PieceType(value.lower()) not in PROMOTION_OPTIONS:
            raise InvalidRequestError(
                f"Cannot promote a pawn to a {value.lower()}.",
                code=ErrorCode.INVALID_PROMOTION,
            )
        return value.lower()

    @classmethod
    def parse(cls, move: Any) -> "MoveRequest":
        if isinstance(move, cls):
            return move
        return cls.model_validate(move)


# --- RESPONSE MODELS ---
class MoveResult(BaseModel):
    """Outcome of make_move. `success` and `is_valid` always agree."""

    success: bool
    is_valid: bool
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None
    move: Optional[MoveRecord] = None
    game_status: Optional[GameStatus] = None

    @classmethod
    def accepted(cls, move: MoveRecord, game_status: GameStatus) -> "MoveResult":
        return cls(
            success=True,
            is_valid=True,
            message="Move accepted",
            move=move,
            game_status=game_status,
        )

    @classmethod
    def rejected(cls, error: GameError) -> "MoveResult":
        return cls(success=False, is_valid=False, error_code=error.code, message=error.message)


class OperationResult(BaseModel):
    """Generic outcome of a state operation (status change, recovery, checkpoint restore, ...)"""

    success: bool
    message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failed(cls, error: GameError, **details: Any) -> "OperationResult":
        return cls(success=False, message=error.message, error_code=error.code, details=details)


class ValidationReport(BaseModel):
    """Errors make the state invalid, warnings only flag a suspicious but usable state."""

    success: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_findings(
        cls, errors: list[str], warnings: Optional[list[str]] = None, **details: Any
    ) -> "ValidationReport":
        return cls(success=not errors, errors=errors, warnings=warnings or [], details=details)


class NotationResult(BaseModel):
    success: bool
    message: str
    move: Optional[dict[str, Any]] = None
