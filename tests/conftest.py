"""
Pytest configuration and shared fixtures for reward engine tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

FakeClock = _common.FakeClock
make_event = _common.make_event
make_wallet = _common.make_wallet
make_engine = _common.make_engine
counter_salts = _common.counter_salts
build_and_publish = _common.build_and_publish


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def clock():
    """Controllable UTC clock starting Monday 2026-01-12 12:00."""
    return FakeClock()


@pytest.fixture
def store():
    """Fresh in-memory store with schema created."""
    from core.storage.store import RewardStore

    s = RewardStore.in_memory()
    yield s
    s.dispose()


@pytest.fixture
def file_store(tmp_path):
    """File-backed store, for tests that use several threads."""
    from core.storage.store import RewardStore

    s = RewardStore(f"sqlite:///{tmp_path / 'rewards.db'}")
    s.create_all()
    yield s
    s.dispose()


@pytest.fixture
def engine(store, clock):
    """RewardEngine over the in-memory store with deterministic salts."""
    return make_engine(store, clock)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
