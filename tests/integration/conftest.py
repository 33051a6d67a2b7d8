"""
Integration test configuration and fixtures.

Integration tests run against a real SQLite database in a temporary
directory, either through SQLLocationStore directly or through the full
application with TestClient.
"""
import logging
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from config.settings import Settings
from main import create_app
from storage.sql_store import SQLLocationStore

logger = logging.getLogger(__name__)


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """Async SQLite URL of a fresh database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'locations.db'}"


@pytest_asyncio.fixture
async def sql_store(sqlite_url) -> AsyncGenerator[SQLLocationStore, None]:
    """A connected store on a fresh database, closed after the test."""
    store = await SQLLocationStore.connect(sqlite_url)
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
def test_settings(sqlite_url) -> Settings:
    """Settings pointing at the temporary database."""
    return Settings(database_url=sqlite_url, port=8080, log_level="WARNING")


@pytest.fixture
def client(test_settings, preserve_root_logging) -> Generator[TestClient, None, None]:
    """TestClient running the full application, lifespan included."""
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


@pytest.fixture
def make_client(test_settings, preserve_root_logging):
    """
    Build a TestClient around an injected store.

    Usage:
        with make_client(mock_store) as client:
            ...
    """
    def _make(store) -> TestClient:
        return TestClient(create_app(test_settings, store=store))

    return _make
