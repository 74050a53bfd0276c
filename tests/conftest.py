"""
Shared pytest fixtures for tournament engine tests.

Running tests:
    pytest tests/
"""
import pytest
import random
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.engine import TournamentEngine
from core.queries import create_team
from core.store import EntityStore


@pytest.fixture
def data_dir(tmp_path):
    """Empty tournament data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return str(path)


@pytest.fixture
def store(data_dir):
    return EntityStore(data_dir)


@pytest.fixture
def rng():
    """Seeded random source so shuffles are repeatable within a test."""
    return random.Random(20240601)


@pytest.fixture
def engine(data_dir, rng):
    return TournamentEngine(data_dir, rng=rng)


@pytest.fixture
def make_teams(store):
    """Factory registering n teams for a category/division pair."""
    def _make(count, category_id=2, division_id=1, prefix="Team"):
        return [create_team(store, f"{prefix} {i + 1}", category_id, division_id)
                for i in range(count)]
    return _make


@pytest.fixture
def client(data_dir, monkeypatch):
    """Flask test client backed by the temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', data_dir)
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
