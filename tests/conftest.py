"""Pytest fixtures for igstream tests"""

import json
import sys
from pathlib import Path

import pytest

# =============================================================================
# Global Test Setup
# =============================================================================

# Add src to Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

_FIXTURE_CACHE: dict[str, dict] = {}


def _cached_fixture_load(fixtures_dir: Path, filename: str) -> dict:
    """Load and cache fixture files to avoid repeated file I/O.

    Loads each fixture file only once per session.
    """
    cache_key = str(fixtures_dir / "ig_responses" / filename)
    if cache_key not in _FIXTURE_CACHE:
        fixture_path = fixtures_dir / "ig_responses" / filename
        with open(fixture_path) as f:
            _FIXTURE_CACHE[cache_key] = json.load(f)
    return _FIXTURE_CACHE[cache_key]


@pytest.fixture(scope="session")
def fixtures_dir():
    """Return path to test fixtures directory

    Session scope: This is just a path lookup, immutable across all tests.
    """
    return Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def load_fixture(fixtures_dir):
    """Helper to load JSON fixture files with caching.

    Returns a copy so tests can modify the payload freely.
    """

    def _load(filename):
        return json.loads(json.dumps(_cached_fixture_load(fixtures_dir, filename)))

    return _load


@pytest.fixture
def login_payload(load_fixture):
    """v3 POST /session response body"""
    return load_fixture("session_login.json")


@pytest.fixture
def refresh_payload(load_fixture):
    """POST /session/refresh-token response body"""
    return load_fixture("refresh_token.json")


@pytest.fixture
def invalid_refresh_payload(load_fixture):
    """Error body returned for a rejected refresh token"""
    return load_fixture("invalid_refresh_token.json")
