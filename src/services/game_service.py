"""
Orchestration of a single game for its callers (session layer, tests, ...).

The rules engine assumes a single writer at a time. This service is that caller-held lock:
every mutating call runs under it, and a move can be fenced on the state version the caller last read.
"""

import logging
import threading
from typing import Any, Optional

from src.api.models import MoveResult, OperationResult
from src.core.config import EngineSettings
from src.core.error_codes import ErrorCode
from src.core.exceptions import GameStateError, RepositoryError
from src.core.models import Checkpoint
from src.rules.game import Game
from src.state.repository import CheckpointRepository, InMemoryCheckpointRepository

logger = logging.getLogger(__name__)


class GameService:
    """Orchestration of the rules engine and the checkpoint repository for one game."""

    def __init__(
        self,
        game: Optional[Game] = None,
        repository: Optional[CheckpointRepository] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.game = game or Game.new_game(settings)
        self.repo = repository or InMemoryCheckpointRepository()
        self._lock = threading.Lock()

    @property
    def state_version(self) -> int:
        return self.game.state_version

    def get_game_state(self) -> dict[str, Any]:
        with self._lock:
            return self.game.get_game_state()

    def make_move(self, move: Any, expected_version: Optional[int] = None) -> MoveResult:
        """
        Attempt a move.
        ----

        With `expected_version`, the move is only tried if nobody changed the game since the caller read that version
        (STALE_STATE otherwise). Of several racing requests fenced on the same version, at most one gets through.
        """
        with self._lock:
            if expected_version is not None and expected_version != self.game.state_version:
                logger.warning(
                    "Stale move request: expected version %s, current version %d",
                    expected_version,
                    self.game.state_version,
                )
                return MoveResult.rejected(
                    GameStateError(
                        f"State version {expected_version} is outdated (current: {self.game.state_version}).",
                        code=ErrorCode.STALE_STATE,
                    )
                )
            return self.game.make_move(move)

    def save_checkpoint(self) -> Checkpoint:
        """Checkpoint the live game and store it in the repository."""
        with self._lock:
            checkpoint = self.game.create_checkpoint()
            return self.repo.save(checkpoint)

    def restore_checkpoint(self, checkpoint_id: Optional[str] = None) -> OperationResult:
        """Restore a stored checkpoint (default: the latest one)."""
        with self._lock:
            checkpoint = (
                self.repo.get(checkpoint_id) if checkpoint_id is not None else self.repo.latest()
            )
            if checkpoint is None:
                return OperationResult.failed(
                    RepositoryError(f"Checkpoint {checkpoint_id!r} not found.")
                )
            return self.game.restore_from_checkpoint(checkpoint)

    def delete_checkpoint(self, checkpoint_id: str) -> None:
        with self._lock:
            self.repo.delete(checkpoint_id)
