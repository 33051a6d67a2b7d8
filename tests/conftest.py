"""
Shared pytest fixtures and configuration for all tests.
"""
import logging
import os
from datetime import datetime
from unittest.mock import MagicMock, AsyncMock

import pytest
from hypothesis import settings, Verbosity, Phase

from config.settings import clear_settings_cache
from locations.models import LocationRecord
from storage.base import LocationStore

# Hypothesis profiles; pick one with HYPOTHESIS_PROFILE
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

settings.register_profile(
    "fast",
    max_examples=20,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Make every test load settings from its own environment."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def preserve_root_logging():
    """Restore root logger handlers after code that installs TelemetryService."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def sample_location_input() -> dict:
    """Sample write payload."""
    return {
        "source": "gps",
        "latitude": 37.7749,
        "longitude": -122.4194,
    }


@pytest.fixture
def sample_record() -> LocationRecord:
    """A record as the store would return it."""
    return LocationRecord(
        id=1,
        source="gps",
        latitude=37.7749,
        longitude=-122.4194,
        created_at=datetime(2024, 1, 15, 10, 30, 0),
    )


@pytest.fixture
def mock_store(sample_record) -> MagicMock:
    """Create a mock location store for unit tests."""
    mock = MagicMock(spec=LocationStore)
    mock.insert = AsyncMock(return_value=sample_record)
    mock.scan = AsyncMock(return_value=[sample_record])
    mock.health_check = AsyncMock(return_value=True)
    mock.close = AsyncMock(return_value=None)
    return mock
