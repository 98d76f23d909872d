"""
Pytest fixtures shared by the engine and API tests.

The API tests need DATABASE_URL pointing at a throwaway sqlite file before
dice_catan.api.database is first imported, so it is set here at import time.
"""
import os
import tempfile

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="dice_catan_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"

from dice_catan.engine.definitions import GameConfig  # noqa: E402
from dice_catan.engine.state import Die, GameState  # noqa: E402
from dice_catan.engine.utils import initialize_game_state  # noqa: E402

# Faces: 1 lumber, 2 brick, 3 wool, 4 wheat, 5 ore, 6 gold
ROAD_FACES = [1, 2, 3, 3, 3, 3]
SETTLEMENT_FACES = [1, 2, 4, 3, 5, 5]
CITY_FACES = [5, 5, 5, 4, 4, 1]
KNIGHT_FACES = [5, 3, 4, 1, 1, 1]
NOTHING_FACES = [3, 3, 3, 3, 3, 3]


def set_faces(state: GameState, faces: list[int]) -> GameState:
    """Overwrite the dice in place as if they had just been rolled."""
    state.dice = [Die(face=f) for f in faces]
    return state


@pytest.fixture
def config() -> GameConfig:
    """Rules with the built-in defaults, independent of DICE_CATAN_* variables."""
    return GameConfig()


@pytest.fixture
def solo_state(config) -> GameState:
    return initialize_game_state([{"id": "p1", "name": "Ann"}], config)


@pytest.fixture
def two_player_state(config) -> GameState:
    return initialize_game_state(
        [{"id": "p1", "name": "Ann"}, {"id": "p2", "name": "Ben"}],
        config,
    )


@pytest.fixture
def three_player_state(config) -> GameState:
    return initialize_game_state(
        [
            {"id": "p1", "name": "Ann"},
            {"id": "p2", "name": "Ben"},
            {"id": "p3", "name": "Cal", "is_bot": True},
        ],
        config,
    )
