"""Unit tests for src/services/game_service.py"""

import threading
from typing import Generator
from unittest.mock import patch

import pytest

from src.api.models import MoveResult
from src.core.config import EngineSettings
from src.core.error_codes import ErrorCode
from src.core.models import Checkpoint
from src.core.shared_types import Color
from src.rules.game import Game
from src.services.game_service import GameService
from src.state.repository import InMemoryCheckpointRepository
from tests.helpers import uci_to_request


class MockRepository(InMemoryCheckpointRepository):
    """Mock the CheckpointRepository: an in-memory one that can be cleared between tests"""

    def clear(self) -> None:
        self._checkpoints.clear()


@pytest.fixture
def mock_repository() -> Generator[MockRepository, None, None]:
    repo = MockRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def service(settings: EngineSettings, mock_repository: MockRepository) -> GameService:
    return GameService(repository=mock_repository, settings=settings)


# --- SERVICE - MAKING MOVES ---
def test_new_service_starts_a_standard_game(service: GameService) -> None:
    state = service.get_game_state()
    assert state["current_turn"] == "white"
    assert state["state_version"] == 1
    assert service.state_version == 1


def test_service_wraps_an_existing_game(settings: EngineSettings) -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/8/R3K3 b - - 0 1", settings)
    service = GameService(game=game)
    assert service.get_game_state()["current_turn"] == "black"


def test_make_move(service: GameService) -> None:
    result = service.make_move(uci_to_request("e2e4"))
    assert result.success
    assert service.state_version == 2
    assert service.game.current_turn == Color.BLACK


def test_make_move_fenced_on_current_version(service: GameService) -> None:
    assert service.make_move(uci_to_request("e2e4"), expected_version=1).success
    assert service.make_move(uci_to_request("e7e5"), expected_version=2).success


def test_stale_move_is_rejected(service: GameService) -> None:
    service.make_move(uci_to_request("e2e4"))
    result = service.make_move(uci_to_request("e7e5"), expected_version=1)
    assert not result.success
    assert result.error_code == ErrorCode.STALE_STATE
    assert service.state_version == 2
    assert service.game.current_turn == Color.BLACK


def test_illegal_move_is_reported(service: GameService) -> None:
    result = service.make_move(uci_to_request("e2e5"), expected_version=1)
    assert result.error_code == ErrorCode.INVALID_MOVEMENT
    assert service.state_version == 1


def test_racing_moves_on_the_same_version(service: GameService) -> None:
    """Several clients read version 1 and all send a move: exactly one of them gets through."""
    moves = ["e2e4", "d2d4", "g1f3", "b1c3", "c2c4", "f2f4", "h2h3", "a2a3"]
    barrier = threading.Barrier(len(moves))
    results: list[MoveResult] = []
    results_lock = threading.Lock()

    def client(uci: str) -> None:
        barrier.wait()
        result = service.make_move(uci_to_request(uci), expected_version=1)
        with results_lock:
            results.append(result)

    threads = [threading.Thread(target=client, args=(uci,)) for uci in moves]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    accepted = [result for result in results if result.success]
    rejected = [result for result in results if not result.success]
    assert len(accepted) == 1
    assert len(rejected) == len(moves) - 1
    assert all(result.error_code == ErrorCode.STALE_STATE for result in rejected)
    assert service.state_version == 2
    assert len(service.game.move_history) == 1


# --- SERVICE - CHECKPOINTS ---
def test_save_and_restore_latest_checkpoint(service: GameService, mock_repository: MockRepository) -> None:
    service.make_move(uci_to_request("e2e4"))
    checkpoint = service.save_checkpoint()
    assert isinstance(checkpoint, Checkpoint)
    assert mock_repository.list_ids() == [checkpoint.id]

    service.make_move(uci_to_request("e7e5"))
    version_before_restore = service.state_version
    result = service.restore_checkpoint()
    assert result.success
    assert service.game.current_turn == Color.BLACK
    assert len(service.game.move_history) == 1
    assert service.state_version > version_before_restore


def test_restore_checkpoint_by_id(service: GameService) -> None:
    first = service.save_checkpoint()
    service.make_move(uci_to_request("d2d4"))
    service.save_checkpoint()

    assert service.restore_checkpoint(first.id).success
    assert service.game.move_history == []
    assert service.game.current_turn == Color.WHITE


def test_restore_makes_older_reads_stale(service: GameService) -> None:
    service.save_checkpoint()
    service.restore_checkpoint()
    result = service.make_move(uci_to_request("e2e4"), expected_version=1)
    assert result.error_code == ErrorCode.STALE_STATE


@pytest.mark.parametrize("checkpoint_id", [None, "checkpoint_unknown"])
def test_restore_missing_checkpoint(service: GameService, checkpoint_id: str | None) -> None:
    result = service.restore_checkpoint(checkpoint_id)
    assert not result.success
    assert result.error_code == ErrorCode.SYSTEM_ERROR
    assert service.state_version == 1


def test_delete_checkpoint(service: GameService, mock_repository: MockRepository) -> None:
    checkpoint = service.save_checkpoint()
    service.delete_checkpoint(checkpoint.id)
    assert mock_repository.get(checkpoint.id) is None
    assert not service.restore_checkpoint(checkpoint.id).success


def test_stale_request_never_reaches_the_rules_engine(service: GameService) -> None:
    service.make_move(uci_to_request("e2e4"))
    with patch.object(service.game, attribute="make_move") as mock_make_move:
        result = service.make_move(uci_to_request("e7e5"), expected_version=1)
        mock_make_move.assert_not_called()
    assert result.error_code == ErrorCode.STALE_STATE


def test_checkpoints_go_through_the_repository(service: GameService, mock_repository: MockRepository) -> None:
    with patch.object(mock_repository, attribute="latest", return_value=None) as mock_latest:
        result = service.restore_checkpoint()
        mock_latest.assert_called_once()
    assert not result.success
