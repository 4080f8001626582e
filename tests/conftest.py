"""Shared fixtures for the SecureDesk core tests."""

import logging
from datetime import datetime, timezone

import pytest

from feature_flags import FeatureFlagManager
from models import preview_items, preview_users
from storage import KeyValueStore


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _detach_file_handlers():
    """Close the rotating handlers AppConfig attaches to the shared logger."""
    yield
    logger = logging.getLogger("SecureDesk")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return KeyValueStore()


@pytest.fixture
def user():
    return preview_users(NOW)[0]


@pytest.fixture
def other_user():
    return preview_users(NOW)[1]


@pytest.fixture
def items():
    return preview_items(NOW)


@pytest.fixture
def debug_flags(store):
    return FeatureFlagManager(store, debug_build=True)


@pytest.fixture
def release_flags(store):
    return FeatureFlagManager(store, debug_build=False)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()
