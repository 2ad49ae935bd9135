"""Tests for RecurringGoalService."""
import pytest
from datetime import date, datetime
from unittest.mock import MagicMock
from bson import ObjectId


def goal_doc(**overrides):
    doc = {
        "_id": ObjectId(),
        "user_id": "user123",
        "title": "Practice guitar",
        "description": None,
        "category": "Music",
        "frequency": "x_per_week",
        "times_per_week": 3,
        "specific_days": [],
        "preferred_time": "any",
        "duration_minutes": None,
        "is_active": True,
        "week_start_date": datetime(2023, 12, 31),
        "times_completed_this_week": 1,
        "streak": 2,
        "best_streak": 6,
        "last_completed_date": datetime(2024, 1, 2),
        "last_generated_date": None,
        "tasks_generated_today": False,
        "created_at": datetime(2023, 12, 1),
        "updated_at": datetime(2023, 12, 1),
    }
    doc.update(overrides)
    return doc


@pytest.mark.asyncio
class TestRecurringGoalServiceCreate:
    """Tests for creating goals."""

    async def test_create_goal_success(self, mock_db, collections):
        from app.models.recurring_goal import Frequency, RecurringGoalCreate
        from app.services.recurring_goal_service import RecurringGoalService

        goals = collections["recurring_goals"]
        goals.insert_one.return_value = MagicMock(inserted_id=ObjectId())

        service = RecurringGoalService(mock_db, week_start="sunday")
        goal = await service.create_goal(
            user_id="user123",
            goal_create=RecurringGoalCreate(
                title="Practice guitar",
                frequency="x_per_week",
                times_per_week=3,
            ),
            today=date(2024, 1, 4),
        )

        assert goal.frequency == Frequency.X_PER_WEEK
        assert goal.times_completed_this_week == 0
        assert goal.streak == 0
        assert goal.is_active is True
        assert goal.week_start_date == date(2023, 12, 31)

        stored = goals.insert_one.call_args[0][0]
        assert stored["frequency"] == "x_per_week"
        assert stored["week_start_date"] == datetime(2023, 12, 31)

    async def test_create_specific_days_goal(self, mock_db, collections):
        from app.models.recurring_goal import RecurringGoalCreate
        from app.services.recurring_goal_service import RecurringGoalService

        collections["recurring_goals"].insert_one.return_value = MagicMock(inserted_id=ObjectId())

        service = RecurringGoalService(mock_db)
        await service.create_goal(
            user_id="user123",
            goal_create=RecurringGoalCreate(
                title="Swim",
                frequency="specific_days",
                specific_days=["Friday", "tuesday"],
            ),
            today=date(2024, 1, 4),
        )

        stored = collections["recurring_goals"].insert_one.call_args[0][0]
        assert stored["specific_days"] == ["tuesday", "friday"]


@pytest.mark.asyncio
class TestRecurringGoalServiceRead:
    """Tests for listing and fetching goals."""

    async def test_list_active_goals(self, mock_db, collections, make_cursor):
        from app.services.recurring_goal_service import RecurringGoalService

        goals = collections["recurring_goals"]
        goals.find.return_value = make_cursor([goal_doc(), goal_doc(title="Stretch")])

        service = RecurringGoalService(mock_db)
        result = await service.list_goals("user123")

        assert [g.title for g in result] == ["Practice guitar", "Stretch"]
        assert goals.find.call_args[0][0] == {"user_id": "user123", "is_active": True}

    async def test_list_including_inactive(self, mock_db, collections, make_cursor):
        from app.services.recurring_goal_service import RecurringGoalService

        goals = collections["recurring_goals"]
        goals.find.return_value = make_cursor([])

        service = RecurringGoalService(mock_db)
        await service.list_goals("user123", include_inactive=True)

        assert goals.find.call_args[0][0] == {"user_id": "user123"}

    async def test_get_goal_of_other_user(self, mock_db, collections):
        from app.errors import NotFoundError
        from app.services.recurring_goal_service import RecurringGoalService

        collections["recurring_goals"].find_one.return_value = None

        service = RecurringGoalService(mock_db)

        with pytest.raises(NotFoundError, match="Goal not found"):
            await service.get_goal("user123", str(ObjectId()))


@pytest.mark.asyncio
class TestRecurringGoalServiceUpdate:
    """Tests for partial updates."""

    async def test_update_title(self, mock_db, collections):
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        goals = collections["recurring_goals"]
        goals.find_one.return_value = doc
        goals.find_one_and_update.return_value = {**doc, "title": "Practice piano"}

        service = RecurringGoalService(mock_db)
        goal = await service.update_goal(
            "user123",
            str(doc["_id"]),
            RecurringGoalUpdate(title="Practice piano"),
        )

        assert goal.title == "Practice piano"
        update = goals.find_one_and_update.call_args[0][1]["$set"]
        assert update["title"] == "Practice piano"
        assert "times_completed_this_week" not in update
        assert "streak" not in update

    async def test_empty_update_rejected(self, mock_db, collections):
        from app.errors import ValidationError
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        collections["recurring_goals"].find_one.return_value = doc

        service = RecurringGoalService(mock_db)

        with pytest.raises(ValidationError, match="No valid fields to update"):
            await service.update_goal("user123", str(doc["_id"]), RecurringGoalUpdate())

    async def test_clearing_required_field_rejected(self, mock_db, collections):
        from app.errors import ValidationError
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        collections["recurring_goals"].find_one.return_value = doc

        service = RecurringGoalService(mock_db)

        with pytest.raises(ValidationError, match="title cannot be empty"):
            await service.update_goal("user123", str(doc["_id"]), RecurringGoalUpdate(title=None))

    async def test_switch_to_specific_days_requires_days(self, mock_db, collections):
        from app.errors import ValidationError
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        collections["recurring_goals"].find_one.return_value = doc

        service = RecurringGoalService(mock_db)

        with pytest.raises(ValidationError, match="specific_days is required"):
            await service.update_goal(
                "user123",
                str(doc["_id"]),
                RecurringGoalUpdate(frequency="specific_days"),
            )
        collections["recurring_goals"].find_one_and_update.assert_not_called()

    async def test_switch_to_daily(self, mock_db, collections):
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc(frequency="specific_days", specific_days=["monday"])
        goals = collections["recurring_goals"]
        goals.find_one.return_value = doc
        goals.find_one_and_update.return_value = {
            **doc,
            "frequency": "daily",
            "specific_days": [],
            "times_per_week": 7,
        }

        service = RecurringGoalService(mock_db)
        await service.update_goal("user123", str(doc["_id"]), RecurringGoalUpdate(frequency="daily"))

        update = goals.find_one_and_update.call_args[0][1]["$set"]
        assert update["frequency"] == "daily"
        assert update["specific_days"] == []
        assert update["times_per_week"] == 7

    async def test_legacy_weekly_frequency(self, mock_db, collections):
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc(frequency="daily", times_per_week=7)
        goals = collections["recurring_goals"]
        goals.find_one.return_value = doc
        goals.find_one_and_update.return_value = {**doc, "frequency": "x_per_week", "times_per_week": 2}

        service = RecurringGoalService(mock_db)
        await service.update_goal(
            "user123",
            str(doc["_id"]),
            RecurringGoalUpdate(frequency="weekly", times_per_week=2),
        )

        update = goals.find_one_and_update.call_args[0][1]["$set"]
        assert update["frequency"] == "x_per_week"
        assert update["times_per_week"] == 2

    async def test_deactivate(self, mock_db, collections):
        from app.models.recurring_goal import RecurringGoalUpdate
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        goals = collections["recurring_goals"]
        goals.find_one.return_value = doc
        goals.find_one_and_update.return_value = {**doc, "is_active": False}

        service = RecurringGoalService(mock_db)
        goal = await service.update_goal("user123", str(doc["_id"]), RecurringGoalUpdate(is_active=False))

        assert goal.is_active is False


@pytest.mark.asyncio
class TestRecurringGoalServiceDelete:
    """Tests for deleting goals."""

    async def test_delete_removes_logs(self, mock_db, collections):
        from app.services.recurring_goal_service import RecurringGoalService

        goal_id = str(ObjectId())
        collections["recurring_goals"].delete_one.return_value = MagicMock(deleted_count=1)
        logs = collections["goal_completion_logs"]
        logs.delete_many.return_value = MagicMock(deleted_count=12)

        service = RecurringGoalService(mock_db)
        result = await service.delete_goal("user123", goal_id)

        assert result == {"deleted_count": 1, "deleted_logs": 12}
        assert logs.delete_many.call_args[0][0] == {"goal_id": goal_id, "user_id": "user123"}

    async def test_delete_missing_goal(self, mock_db, collections):
        from app.errors import NotFoundError
        from app.services.recurring_goal_service import RecurringGoalService

        collections["recurring_goals"].delete_one.return_value = MagicMock(deleted_count=0)

        service = RecurringGoalService(mock_db)

        with pytest.raises(NotFoundError):
            await service.delete_goal("user123", str(ObjectId()))
        collections["goal_completion_logs"].delete_many.assert_not_called()


@pytest.mark.asyncio
class TestRecurringGoalServiceHistory:
    """Tests for completion logs and stats."""

    async def test_list_completion_logs(self, mock_db, collections, make_cursor):
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        goal_id = str(doc["_id"])
        collections["recurring_goals"].find_one.return_value = doc
        logs = collections["goal_completion_logs"]
        cursor = make_cursor([
            {
                "_id": ObjectId(),
                "goal_id": goal_id,
                "user_id": "user123",
                "date": datetime(2024, 1, 2),
                "completed": True,
                "created_at": datetime(2024, 1, 2, 18, 0),
            },
        ])
        logs.find.return_value = cursor

        service = RecurringGoalService(mock_db)
        result = await service.list_completion_logs("user123", goal_id, limit=7)

        assert len(result) == 1
        assert result[0].date == date(2024, 1, 2)
        cursor.limit.assert_called_once_with(7)

    async def test_goal_stats(self, mock_db, collections):
        from app.services.recurring_goal_service import RecurringGoalService

        doc = goal_doc()
        goal_id = str(doc["_id"])
        collections["recurring_goals"].find_one.return_value = doc
        logs = collections["goal_completion_logs"]
        logs.count_documents.side_effect = [40, 12]

        service = RecurringGoalService(mock_db)
        stats = await service.get_goal_stats("user123", goal_id, today=date(2024, 1, 30))

        assert stats.current_streak == 2
        assert stats.best_streak == 6
        assert stats.total_completions == 40
        assert stats.completion_rate_30_days == 40
        assert stats.last_completed_date == date(2024, 1, 2)

        window_query = logs.count_documents.call_args_list[1][0][0]
        assert window_query["date"] == {
            "$gte": datetime(2024, 1, 1),
            "$lte": datetime(2024, 1, 30),
        }
