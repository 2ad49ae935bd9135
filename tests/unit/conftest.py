"""Fixtures for service unit tests backed by mocked Motor collections."""
from collections import defaultdict
from unittest.mock import AsyncMock, MagicMock

import pytest

ASYNC_METHODS = (
    "find_one",
    "insert_one",
    "insert_many",
    "update_one",
    "update_many",
    "find_one_and_update",
    "delete_one",
    "delete_many",
    "count_documents",
    "distinct",
)


def _collection():
    collection = MagicMock()
    for name in ASYNC_METHODS:
        setattr(collection, name, AsyncMock())
    collection.update_many.return_value = MagicMock(modified_count=0)
    return collection


@pytest.fixture
def collections():
    """Mocked collections by name, created on first use."""
    return defaultdict(_collection)


@pytest.fixture
def mock_db(collections):
    """Database mock handing out the mocked collections."""
    db = MagicMock()
    db.__getitem__.side_effect = lambda key: collections[key]
    return db


@pytest.fixture
def make_cursor():
    """Build a cursor mock whose sort/limit chain ends in ``to_list``."""
    def _make(docs):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=docs)
        return cursor
    return _make


@pytest.fixture(autouse=True)
def inline_transactions(monkeypatch):
    """Run transaction callbacks directly with no session."""
    async def run_inline(db, callback):
        return await callback(None)

    monkeypatch.setattr("app.services.goal_tracking_service.run_in_transaction", run_inline)
    monkeypatch.setattr("app.services.recurring_goal_service.run_in_transaction", run_inline)
