"""Tests for the scheduled daily generation script."""
import pytest
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def script(monkeypatch, mock_db, collections):
    """Script module wired to the mocked database."""
    import generate_daily_tasks

    client = MagicMock()
    client.__getitem__.return_value = mock_db
    monkeypatch.setattr(generate_daily_tasks, "AsyncIOMotorClient", MagicMock(return_value=client))

    auth = MagicMock()
    auth.get_user_timezone = AsyncMock(return_value=None)
    monkeypatch.setattr(generate_daily_tasks, "AuthService", MagicMock(return_value=auth))

    collections["recurring_goals"].distinct.return_value = ["u1", "u2", "u3"]
    return SimpleNamespace(module=generate_daily_tasks, client=client, auth=auth)


def _tracking(monkeypatch, script, generate):
    service = MagicMock()
    service.generate_daily_tasks = AsyncMock(side_effect=generate)
    monkeypatch.setattr(script.module, "GoalTrackingService", MagicMock(return_value=service))
    return service


@pytest.mark.asyncio
class TestGenerateForAllUsers:
    """Tests for generate_for_all_users."""

    async def test_runs_every_user(self, monkeypatch, script):
        async def generate(user_id, today):
            return MagicMock(count=2)

        service = _tracking(monkeypatch, script, generate)

        stats = await script.module.generate_for_all_users("mongodb://test", "test", on=date(2024, 1, 3))

        assert stats == {"users": 3, "failed": 0, "tasks": 6}
        assert service.generate_daily_tasks.await_count == 3
        script.client.close.assert_called_once()

    async def test_failing_user_is_skipped(self, monkeypatch, script):
        """A malformed goal for one user still leaves the others their tasks."""
        from app.errors import PersistenceError

        async def generate(user_id, today):
            if user_id == "u1":
                raise ValueError("malformed goal document")
            if user_id == "u2":
                raise PersistenceError("Failed to generate daily tasks")
            return MagicMock(count=1)

        service = _tracking(monkeypatch, script, generate)

        stats = await script.module.generate_for_all_users("mongodb://test", "test", on=date(2024, 1, 3))

        assert stats == {"users": 1, "failed": 2, "tasks": 1}
        called = [call.kwargs["user_id"] for call in service.generate_daily_tasks.await_args_list]
        assert called == ["u1", "u2", "u3"]

    async def test_timezone_lookup_failure_is_skipped(self, monkeypatch, script):
        from pymongo.errors import ServerSelectionTimeoutError

        async def generate(user_id, today):
            return MagicMock(count=1)

        _tracking(monkeypatch, script, generate)
        script.auth.get_user_timezone.side_effect = [
            ServerSelectionTimeoutError("no primary"),
            "Europe/Paris",
            None,
        ]

        stats = await script.module.generate_for_all_users("mongodb://test", "test")

        assert stats == {"users": 2, "failed": 1, "tasks": 2}

    async def test_single_user(self, monkeypatch, script, collections):
        async def generate(user_id, today):
            return MagicMock(count=1)

        service = _tracking(monkeypatch, script, generate)

        stats = await script.module.generate_for_all_users(
            "mongodb://test", "test", on=date(2024, 1, 3), only_user="u9"
        )

        assert stats["users"] == 1
        service.generate_daily_tasks.assert_awaited_once_with(user_id="u9", today=date(2024, 1, 3))
        collections["recurring_goals"].distinct.assert_not_called()
