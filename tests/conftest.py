"""
pytest configuration and shared fixtures for the Pajama Party tests.

Key concern: tests must not require a live MongoDB. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Setting db_client.client = None (disconnected) so routes take their
     degraded path unless a test overrides get_db with a FakeDB.
  3. Resetting the in-process caches and rate-limit counters between tests
     so one test's requests never leak into the next.
"""

import os
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

from tests.fakes import FakeDB  # noqa: E402


@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo → no-op AsyncMock
    - close_mongo_connection → no-op AsyncMock
    - db_client.client / db_client.db → None

    Tests that need data override get_db via the `db_client_with` fixture.
    """
    with (
        patch("pajama_party.main.connect_to_mongo", new_callable=AsyncMock),
        patch("pajama_party.main.close_mongo_connection", new_callable=AsyncMock),
    ):
        import pajama_party.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_server_state():
    """Empty the stats / reality caches and rate-limit counters."""
    from pajama_party.core.rate_limit import limiter
    from pajama_party.routes.reality import reality_cache
    from pajama_party.routes.stats import stats_cache

    stats_cache.clear()
    reality_cache.clear()
    limiter.reset()
    yield
    stats_cache.clear()
    reality_cache.clear()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 (mock_db must run first)
    """
    HTTPX async test client wired to the FastAPI app (no database).

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from pajama_party.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
async def db_client_with(fake_db):
    """Async client whose get_db dependency returns `fake_db`."""
    from pajama_party.core.database import get_db
    from pajama_party.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
