"""
(De)serialization of game states to/from JSON text.

Failures are reported as None (and logged), never raised: a snapshot that cannot be written or read is
simply not available.
"""

import logging
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

logger = logging.getLogger(__name__)

_STATE_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


def serialize_game_state(game_state: Any) -> Optional[str]:
    if not isinstance(game_state, dict):
        logger.warning("Cannot serialize game state of type %s", type(game_state).__name__)
        return None
    try:
        return _STATE_ADAPTER.dump_json(game_state).decode("utf-8")
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        logger.warning("Failed to serialize game state: %s", exc)
        return None


def deserialize_game_state(serialized: Any) -> Optional[dict[str, Any]]:
    if not isinstance(serialized, (str, bytes)):
        logger.warning("Cannot deserialize game state of type %s", type(serialized).__name__)
        return None
    try:
        return _STATE_ADAPTER.validate_json(serialized)
    except ValidationError as exc:
        logger.warning("Failed to deserialize game state: %s", exc.errors()[0]["msg"])
        return None
