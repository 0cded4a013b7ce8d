"""
Pytest configuration and shared fixtures.

The backend reads DATABASE_URL when its modules are first imported, so it is
pointed at a throwaway SQLite file here before any test imports it.
"""

import os
import tempfile
from pathlib import Path

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="tictactoe-tests-")
DB_PATH = Path(_DB_DIR) / "test.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["DRAW_POLICY"] = "sentinel"

from tictactoe.engine import apply_move, create_game  # noqa: E402


@pytest.fixture
def new_game():
    """Return a fresh game with a fixed id."""
    return create_game("game-1")


@pytest.fixture
def play():
    """Return a helper that plays (player, position) pairs and fails on any rejected move."""

    def _play(moves, game=None):
        game = game or create_game("game-1")
        for player, position in moves:
            result = apply_move(game, position, player)
            assert result.ok, f"{player}:{position} rejected with {result.error}"
            game = result.game
        return game

    return _play


@pytest.fixture
def x_wins_top_row():
    """Moves X:0, O:3, X:1, O:4, X:2."""
    return [("X", 0), ("O", 3), ("X", 1), ("O", 4), ("X", 2)]


@pytest.fixture
def drawn_game_moves():
    """Nine moves filling the board with no line."""
    return [("X", 0), ("O", 1), ("X", 2), ("O", 4), ("X", 3), ("O", 5), ("X", 7), ("O", 6), ("X", 8)]


@pytest.fixture
def fresh_db():
    """Drop and recreate every table in the test database."""
    from sqlalchemy import create_engine

    from tictactoe.db import Base
    import tictactoe.main  # noqa: F401  registers every table on Base.metadata

    sync_engine = create_engine(f"sqlite:///{DB_PATH}")
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()


@pytest.fixture
def client(fresh_db):
    """Return a TestClient over a freshly emptied database."""
    from fastapi.testclient import TestClient

    from tictactoe.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_moves(client):
    """Return a helper posting (player, position) moves and returning the last response."""

    def _make_moves(game_id, moves):
        response = None
        for player, position in moves:
            response = client.post(f"/api/games/{game_id}/move", json={"player": player, "position": position})
        return response

    return _make_moves
