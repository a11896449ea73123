"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures required for testing multiple layers.
"""

import pytest

from src.core.config import EngineSettings
from src.rules.board import Board
from src.rules.game import Game
from tests.helpers import EMPTY_FEN


@pytest.fixture
def settings() -> EngineSettings:
    """Defaults, independent of whatever is in the environment / .env.chess"""
    return EngineSettings(
        _env_file=None,
        position_history_limit=100,
        state_cleanup_limit=50,
        repetition_threshold=3,
        fifty_move_rule=False,
    )


@pytest.fixture
def game(settings: EngineSettings) -> Game:
    return Game.new_game(settings)


@pytest.fixture
def starting_board() -> Board:
    return Board.starting_position()


@pytest.fixture
def empty_board() -> Board:
    return Board.from_fen(EMPTY_FEN)
