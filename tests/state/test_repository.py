"""Unit tests for /src/state/repository.py"""

import pytest

from src.core.exceptions import RepositoryError
from src.core.models import Checkpoint
from src.rules.game import Game
from src.state.repository import InMemoryCheckpointRepository
from tests.helpers import play


@pytest.fixture
def repo() -> InMemoryCheckpointRepository:
    return InMemoryCheckpointRepository()


def _checkpoints(game: Game, count: int) -> list[Checkpoint]:
    checkpoints = []
    for uci in ["e2e4", "e7e5", "g1f3", "b8c6"][:count]:
        play(game, uci)
        checkpoints.append(game.create_checkpoint())
    return checkpoints


def test_save_and_get(repo: InMemoryCheckpointRepository, game: Game) -> None:
    checkpoint = game.create_checkpoint()
    assert repo.save(checkpoint) is checkpoint
    assert repo.get(checkpoint.id) == checkpoint
    assert repo.get("checkpoint_unknown") is None


def test_save_duplicate_id(repo: InMemoryCheckpointRepository, game: Game) -> None:
    checkpoint = game.create_checkpoint()
    repo.save(checkpoint)
    with pytest.raises(RepositoryError):
        repo.save(checkpoint)


def test_latest_and_order(repo: InMemoryCheckpointRepository, game: Game) -> None:
    assert repo.latest() is None
    checkpoints = _checkpoints(game, 3)
    for checkpoint in checkpoints:
        repo.save(checkpoint)
    assert repo.list_ids() == [checkpoint.id for checkpoint in checkpoints]
    assert repo.latest() == checkpoints[-1]


def test_delete(repo: InMemoryCheckpointRepository, game: Game) -> None:
    first, second = _checkpoints(game, 2)
    repo.save(first)
    repo.save(second)

    assert repo.delete(second.id) == second
    assert repo.delete(second.id) is None
    assert repo.latest() == first
    assert repo.list_ids() == [first.id]
