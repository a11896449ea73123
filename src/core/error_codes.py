"""
Error taxonomy shared by every layer.

Every failure on the public surface is reported with one of these codes. The category groups the
codes the same way the result objects are documented (input shape, legality, sequencing, status machine, structure).
"""

from enum import StrEnum


class ErrorCategory(StrEnum):
    FORMAT = "format"
    COORDINATE = "coordinate"
    PIECE = "piece"
    MOVEMENT = "movement"
    RULE = "rule"
    CHECK = "check"
    STATE = "state"
    SYSTEM = "system"


class ErrorCode(StrEnum):
    # input shape
    MALFORMED_MOVE = "MALFORMED_MOVE"
    INVALID_FORMAT = "INVALID_FORMAT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_COORDINATES = "INVALID_COORDINATES"
    SAME_SQUARE = "SAME_SQUARE"

    # pieces / turn
    NO_PIECE = "NO_PIECE"
    WRONG_TURN = "WRONG_TURN"

    # movement
    INVALID_MOVEMENT = "INVALID_MOVEMENT"
    PATH_BLOCKED = "PATH_BLOCKED"
    CAPTURE_OWN_PIECE = "CAPTURE_OWN_PIECE"

    # special moves
    INVALID_CASTLING = "INVALID_CASTLING"
    INVALID_PROMOTION = "INVALID_PROMOTION"

    # king safety
    KING_IN_CHECK = "KING_IN_CHECK"
    PINNED_PIECE_INVALID_MOVE = "PINNED_PIECE_INVALID_MOVE"
    CHECK_NOT_RESOLVED = "CHECK_NOT_RESOLVED"

    # sequencing / status machine
    GAME_NOT_ACTIVE = "GAME_NOT_ACTIVE"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    MISSING_WINNER = "MISSING_WINNER"
    INVALID_WINNER_FOR_DRAW = "INVALID_WINNER_FOR_DRAW"
    TURN_SEQUENCE_VIOLATION = "TURN_SEQUENCE_VIOLATION"
    TURN_HISTORY_MISMATCH = "TURN_HISTORY_MISMATCH"
    INVALID_COLOR = "INVALID_COLOR"
    STALE_STATE = "STALE_STATE"

    # structure
    STATE_CORRUPTION = "STATE_CORRUPTION"
    SYSTEM_ERROR = "SYSTEM_ERROR"


ERROR_CATEGORIES: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.MALFORMED_MOVE: ErrorCategory.FORMAT,
    ErrorCode.INVALID_FORMAT: ErrorCategory.FORMAT,
    ErrorCode.MISSING_REQUIRED_FIELD: ErrorCategory.FORMAT,
    ErrorCode.INVALID_COORDINATES: ErrorCategory.COORDINATE,
    ErrorCode.SAME_SQUARE: ErrorCategory.COORDINATE,
    ErrorCode.NO_PIECE: ErrorCategory.PIECE,
    ErrorCode.WRONG_TURN: ErrorCategory.PIECE,
    ErrorCode.INVALID_MOVEMENT: ErrorCategory.MOVEMENT,
    ErrorCode.PATH_BLOCKED: ErrorCategory.MOVEMENT,
    ErrorCode.CAPTURE_OWN_PIECE: ErrorCategory.RULE,
    ErrorCode.INVALID_CASTLING: ErrorCategory.RULE,
    ErrorCode.INVALID_PROMOTION: ErrorCategory.RULE,
    ErrorCode.KING_IN_CHECK: ErrorCategory.CHECK,
    ErrorCode.PINNED_PIECE_INVALID_MOVE: ErrorCategory.CHECK,
    ErrorCode.CHECK_NOT_RESOLVED: ErrorCategory.CHECK,
    ErrorCode.GAME_NOT_ACTIVE: ErrorCategory.STATE,
    ErrorCode.INVALID_STATUS: ErrorCategory.STATE,
    ErrorCode.INVALID_STATUS_TRANSITION: ErrorCategory.STATE,
    ErrorCode.MISSING_WINNER: ErrorCategory.STATE,
    ErrorCode.INVALID_WINNER_FOR_DRAW: ErrorCategory.STATE,
    ErrorCode.TURN_SEQUENCE_VIOLATION: ErrorCategory.STATE,
    ErrorCode.TURN_HISTORY_MISMATCH: ErrorCategory.STATE,
    ErrorCode.INVALID_COLOR: ErrorCategory.STATE,
    ErrorCode.STALE_STATE: ErrorCategory.STATE,
    ErrorCode.STATE_CORRUPTION: ErrorCategory.SYSTEM,
    ErrorCode.SYSTEM_ERROR: ErrorCategory.SYSTEM,
}

DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MALFORMED_MOVE: "Move must be an object",
    ErrorCode.INVALID_FORMAT: "Move format is incorrect. Check your move structure.",
    ErrorCode.MISSING_REQUIRED_FIELD: "Required move information is missing.",
    ErrorCode.INVALID_COORDINATES: "Invalid coordinates",
    ErrorCode.SAME_SQUARE: "Source and destination squares cannot be the same.",
    ErrorCode.NO_PIECE: "No piece at source square",
    ErrorCode.WRONG_TURN: "Not your turn",
    ErrorCode.INVALID_MOVEMENT: "This piece cannot move in that pattern.",
    ErrorCode.PATH_BLOCKED: "The path is blocked by other pieces.",
    ErrorCode.CAPTURE_OWN_PIECE: "You cannot capture your own pieces.",
    ErrorCode.INVALID_CASTLING: "Castling is not allowed in this position.",
    ErrorCode.INVALID_PROMOTION: "Invalid pawn promotion piece selected.",
    ErrorCode.KING_IN_CHECK: "This move would put your king in check.",
    ErrorCode.PINNED_PIECE_INVALID_MOVE: "This piece is pinned and cannot move there.",
    ErrorCode.CHECK_NOT_RESOLVED: "This move does not resolve the check.",
    ErrorCode.GAME_NOT_ACTIVE: "Game is not active",
    ErrorCode.INVALID_STATUS: "Invalid game status.",
    ErrorCode.INVALID_STATUS_TRANSITION: "Invalid game status change.",
    ErrorCode.MISSING_WINNER: "Winner must be specified for checkmate",
    ErrorCode.INVALID_WINNER_FOR_DRAW: "Winner should be null for draw conditions",
    ErrorCode.TURN_SEQUENCE_VIOLATION: "Turn sequence is incorrect.",
    ErrorCode.TURN_HISTORY_MISMATCH: "Turn sequence inconsistent with move history",
    ErrorCode.INVALID_COLOR: "Invalid color specified for turn validation",
    ErrorCode.STALE_STATE: "Game state changed since it was last read.",
    ErrorCode.STATE_CORRUPTION: "Game state corruption detected.",
    ErrorCode.SYSTEM_ERROR: "A system error occurred.",
}


def default_message(code: ErrorCode) -> str:
    return DEFAULT_MESSAGES.get(code, "An error occurred")


def category_of(code: ErrorCode) -> ErrorCategory:
    return ERROR_CATEGORIES.get(code, ErrorCategory.SYSTEM)
