"""
Shared pytest fixtures for Courtside tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips the roster sweeps)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from courtside.core.models import INDIVIDUAL, TEAM, Participant, TournamentSettings
from courtside.core.rng import NoShuffleRandomSource, RandomSource


def make_players(count, kind=INDIVIDUAL):
    """Participants p1..pN named Player 1..N."""
    prefix = 'Team' if kind == TEAM else 'Player'
    return [Participant(f"p{i}", f"{prefix} {i}", kind=kind) for i in range(1, count + 1)]


@pytest.fixture
def players():
    return make_players


@pytest.fixture
def settings():
    return TournamentSettings()


@pytest.fixture
def rng():
    """Seeded random source so schedules are reproducible."""
    return RandomSource(42)


@pytest.fixture
def ordered_rng():
    """Random source that keeps every roster in its given order."""
    return NoShuffleRandomSource()


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Flask test client writing into a temporary data directory."""
    import courtside.app as app_module

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Temporary data directory patched into the app; returns its path."""
    import courtside.app as app_module

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    return tmp_path
