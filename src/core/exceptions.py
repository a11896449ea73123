"""
Custom exceptions.

Internally the domain raises these; the public operations of Game / GameStateManager catch `GameError`
and turn it into a structured result carrying `code` and `message`.

NOTE: None of these inherit from ValueError. A pydantic validator raising one of them is not wrapped
into a ValidationError, the coded exception reaches the caller unchanged.
"""

from typing import Optional

from src.core.error_codes import ErrorCategory, ErrorCode, category_of, default_message


class GameError(Exception):
    """Base class for everything the engine reports as a rejected operation."""

    default_code: ErrorCode = ErrorCode.SYSTEM_ERROR

    def __init__(self, message: Optional[str] = None, code: Optional[ErrorCode] = None) -> None:
        self.code = code or self.default_code
        self.message = message or default_message(self.code)
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return category_of(self.code)


class InvalidRequestError(GameError):
    """Input could not be interpreted (wrong shape, wrong types, out of range)."""

    default_code = ErrorCode.INVALID_FORMAT


class IllegalMoveError(GameError):
    """Well-formed move that the rules of chess do not allow."""

    default_code = ErrorCode.INVALID_MOVEMENT


class NotYourTurnError(IllegalMoveError):
    default_code = ErrorCode.WRONG_TURN


class GameStateError(GameError):
    """Operation not allowed in the current game state (ex. game is over, illegal status change)."""

    default_code = ErrorCode.GAME_NOT_ACTIVE


class InvalidFENError(GameError):
    default_code = ErrorCode.INVALID_FORMAT


class CorruptionError(GameError):
    """A partial/corrupted state could not be reconstructed."""

    default_code = ErrorCode.STATE_CORRUPTION


class RepositoryError(GameError):
    default_code = ErrorCode.SYSTEM_ERROR
