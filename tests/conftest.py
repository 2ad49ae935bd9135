"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from app.main import app
from app.config import settings
from app.database import ensure_indexes


async def _replica_set_or_skip(client: AsyncIOMotorClient) -> None:
    """Skip when MongoDB is unreachable or cannot run transactions."""
    try:
        hello = await client.admin.command("hello")
    except PyMongoError as e:
        pytest.skip(f"MongoDB not available: {e}")
    if "setName" not in hello:
        pytest.skip("MongoDB transactions need a replica set")


@pytest_asyncio.fixture
async def app_client():
    """
    Create a test client with a clean test database.

    This fixture:
    - Creates a test database connection with the app's indexes
    - Yields an async HTTP client for testing
    - Cleans up the test database after each test
    """
    test_client = AsyncIOMotorClient(settings.mongodb_url, serverSelectionTimeoutMS=2000)
    await _replica_set_or_skip(test_client)

    test_db_name = f"{settings.mongodb_db_name}_test"
    test_db = test_client[test_db_name]
    await ensure_indexes(test_db)

    # Override the database dependency
    from app.database import database
    original_db = database.db
    database.db = test_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    # Cleanup: drop test database
    await test_client.drop_database(test_db_name)

    # Restore original database
    database.db = original_db
    test_client.close()


@pytest_asyncio.fixture
async def auth_headers(app_client):
    """Register and log in a user, returning bearer headers."""
    register_data = {
        "email": "runner@example.com",
        "password": "password123",
        "name": "Test Runner",
    }
    await app_client.post("/auth/register", json=register_data)

    login_data = {"email": "runner@example.com", "password": "password123"}
    login_response = await app_client.post("/auth/login", json=login_data)
    token = login_response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
