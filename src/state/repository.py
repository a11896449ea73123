"""Protocol repository for checkpoints (in memory only: there is no on-disk persistence)"""

from typing import Protocol

from src.core.exceptions import RepositoryError
from src.core.models import Checkpoint


class CheckpointRepository(Protocol):
    """Checkpoint storage orchestration"""

    def save(self, checkpoint: Checkpoint) -> Checkpoint:
        """Store a checkpoint under its own id."""
        ...

    def get(self, checkpoint_id: str) -> Checkpoint | None:
        """Get checkpoint by ID, if it exists."""
        ...

    def latest(self) -> Checkpoint | None:
        """Most recently saved checkpoint."""
        ...

    def delete(self, checkpoint_id: str) -> Checkpoint | None:
        """Remove a checkpoint."""
        ...

    def list_ids(self) -> list[str]:
        """IDs in the order they were saved."""
        ...


class InMemoryCheckpointRepository:
    """Checkpoints kept in a dict, oldest first"""

    def __init__(self) -> None:
        self._checkpoints: dict[str, Checkpoint] = {}

    def save(self, checkpoint: Checkpoint) -> Checkpoint:
        if checkpoint.id in self._checkpoints:
            raise RepositoryError(f"Checkpoint {checkpoint.id!r} already exists.")
        self._checkpoints[checkpoint.id] = checkpoint
        return checkpoint

    def get(self, checkpoint_id: str) -> Checkpoint | None:
        return self._checkpoints.get(checkpoint_id)

    def latest(self) -> Checkpoint | None:
        if not self._checkpoints:
            return None
        return next(reversed(self._checkpoints.values()))

    def delete(self, checkpoint_id: str) -> Checkpoint | None:
        return self._checkpoints.pop(checkpoint_id, None)

    def list_ids(self) -> list[str]:
        return list(self._checkpoints)
