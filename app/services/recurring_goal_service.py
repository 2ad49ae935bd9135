"""Recurring goal service - goal management, completion history and stats."""
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from app.config import settings
from app.database import run_in_transaction
from app.errors import NotFoundError, ValidationError
from app.models.recurring_goal import (
    Frequency,
    GoalCompletionLog,
    GoalStats,
    RecurringGoal,
    RecurringGoalCreate,
    RecurringGoalUpdate,
)
from app.utils.dates import as_date, as_datetime, local_today, start_of_week
from app.utils.ids import parse_object_id

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30

# Updatable fields that may be omitted but never cleared
REQUIRED_FIELDS = (
    "title",
    "category",
    "frequency",
    "times_per_week",
    "preferred_time",
    "is_active",
)


def doc_to_goal(doc: dict) -> RecurringGoal:
    """
    Convert database document to RecurringGoal model.

    Calendar-day fields are stored as midnight datetimes and come back as dates.
    """
    return RecurringGoal(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        title=doc["title"],
        description=doc.get("description"),
        category=doc.get("category") or "General",
        frequency=doc["frequency"],
        times_per_week=doc.get("times_per_week", 1),
        specific_days=doc.get("specific_days") or [],
        preferred_time=doc.get("preferred_time") or "any",
        duration_minutes=doc.get("duration_minutes"),
        is_active=doc.get("is_active", True),
        week_start_date=as_date(doc.get("week_start_date")),
        times_completed_this_week=doc.get("times_completed_this_week", 0),
        streak=doc.get("streak", 0),
        best_streak=doc.get("best_streak", 0),
        last_completed_date=as_date(doc.get("last_completed_date")),
        last_generated_date=as_date(doc.get("last_generated_date")),
        tasks_generated_today=doc.get("tasks_generated_today", False),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


def doc_to_log(doc: dict) -> GoalCompletionLog:
    """Convert database document to GoalCompletionLog model."""
    return GoalCompletionLog(
        _id=str(doc["_id"]),
        goal_id=doc["goal_id"],
        user_id=doc["user_id"],
        date=as_date(doc["date"]),
        completed=doc.get("completed", True),
        created_at=doc["created_at"],
    )


class RecurringGoalService:
    """Service for managing a user's recurring goals."""

    def __init__(self, db, week_start: Optional[str] = None):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["recurring_goals"]
        self.logs = db["goal_completion_logs"]
        self.week_start = week_start or settings.week_start_day

    async def _find_owned(self, user_id: str, goal_id: str) -> dict:
        object_id = parse_object_id(goal_id, "Goal")
        goal_doc = await self.goals.find_one({"_id": object_id, "user_id": user_id})
        if not goal_doc:
            raise NotFoundError("Goal not found")
        return goal_doc

    async def create_goal(
        self,
        user_id: str,
        goal_create: RecurringGoalCreate,
        today: Optional[date] = None,
    ) -> RecurringGoal:
        """
        Create a new recurring goal.

        Args:
            user_id: User ID who owns the goal
            goal_create: Goal creation data
            today: Day the goal starts counting from (defaults to today)

        Returns:
            Created goal, with its weekly counter anchored to the current week
        """
        today = today or local_today()
        now = datetime.utcnow()

        goal_doc = {
            "user_id": user_id,
            "title": goal_create.title,
            "description": goal_create.description,
            "category": goal_create.category or "General",
            "frequency": goal_create.frequency.value,
            "times_per_week": goal_create.times_per_week,
            "specific_days": [day.value for day in goal_create.specific_days],
            "preferred_time": goal_create.preferred_time.value,
            "duration_minutes": goal_create.duration_minutes,
            "is_active": True,
            "week_start_date": as_datetime(start_of_week(today, self.week_start)),
            "times_completed_this_week": 0,
            "streak": 0,
            "best_streak": 0,
            "last_completed_date": None,
            "last_generated_date": None,
            "tasks_generated_today": False,
            "created_at": now,
            "updated_at": now,
        }

        result = await self.goals.insert_one(goal_doc)
        goal_doc["_id"] = result.inserted_id
        logger.info("Created recurring goal %s for user %s", result.inserted_id, user_id)

        return doc_to_goal(goal_doc)

    async def list_goals(
        self,
        user_id: str,
        include_inactive: bool = False,
    ) -> list[RecurringGoal]:
        """
        List a user's recurring goals, newest first.

        Args:
            user_id: User ID
            include_inactive: Also return deactivated goals
        """
        query = {"user_id": user_id}
        if not include_inactive:
            query["is_active"] = True

        cursor = self.goals.find(query).sort("created_at", -1)
        goal_docs = await cursor.to_list(length=None)

        return [doc_to_goal(doc) for doc in goal_docs]

    async def get_goal(self, user_id: str, goal_id: str) -> RecurringGoal:
        """
        Get a single goal.

        Raises:
            NotFoundError: If the goal does not exist or belongs to another user
        """
        return doc_to_goal(await self._find_owned(user_id, goal_id))

    async def update_goal(
        self,
        user_id: str,
        goal_id: str,
        goal_update: RecurringGoalUpdate,
    ) -> RecurringGoal:
        """
        Apply a partial update to a goal.

        Only fields present in the request are changed. The frequency fields
        are checked together after merging with the stored goal.

        Raises:
            NotFoundError: If goal not found
            ValidationError: If nothing is updated or the merged goal is inconsistent
        """
        existing = await self._find_owned(user_id, goal_id)

        changes = goal_update.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields to update")
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty")

        update_doc = {"updated_at": datetime.utcnow()}
        for field, value in changes.items():
            if field == "specific_days":
                update_doc[field] = [day.value for day in value or []]
            elif field in ("frequency", "preferred_time") and value is not None:
                update_doc[field] = value.value
            else:
                update_doc[field] = value

        frequency = Frequency(update_doc.get("frequency", existing["frequency"]))
        if frequency == Frequency.SPECIFIC_DAYS:
            days = update_doc.get("specific_days", existing.get("specific_days") or [])
            if not days:
                raise ValidationError("specific_days is required when frequency is specific_days")
        else:
            update_doc["specific_days"] = []
        if frequency == Frequency.DAILY:
            update_doc["times_per_week"] = 7

        updated_doc = await self.goals.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )

        return doc_to_goal(updated_doc)

    async def delete_goal(self, user_id: str, goal_id: str) -> dict:
        """
        Permanently delete a goal together with its completion logs.

        Returns:
            Dictionary with deleted_count and deleted_logs
        """
        object_id = parse_object_id(goal_id, "Goal")

        async def _delete(session):
            result = await self.goals.delete_one(
                {"_id": object_id, "user_id": user_id},
                session=session,
            )
            if result.deleted_count == 0:
                raise NotFoundError("Goal not found")

            logs_result = await self.logs.delete_many(
                {"goal_id": goal_id, "user_id": user_id},
                session=session,
            )
            return {
                "deleted_count": result.deleted_count,
                "deleted_logs": logs_result.deleted_count,
            }

        outcome = await run_in_transaction(self.db, _delete)
        logger.info(
            "Deleted recurring goal %s (%d completion logs)",
            goal_id,
            outcome["deleted_logs"],
        )
        return outcome

    async def list_completion_logs(
        self,
        user_id: str,
        goal_id: str,
        limit: int = 30,
    ) -> list[GoalCompletionLog]:
        """Most recent completions of a goal, newest first."""
        await self._find_owned(user_id, goal_id)

        cursor = (
            self.logs.find({"goal_id": goal_id, "user_id": user_id})
            .sort("date", -1)
            .limit(limit)
        )
        log_docs = await cursor.to_list(length=None)

        return [doc_to_log(doc) for doc in log_docs]

    async def get_goal_stats(
        self,
        user_id: str,
        goal_id: str,
        today: Optional[date] = None,
    ) -> GoalStats:
        """
        Completion statistics for a goal.

        The 30-day completion rate is the share of the last 30 calendar days
        (today included) with a completion, as a whole percentage.
        """
        today = today or local_today()
        goal = doc_to_goal(await self._find_owned(user_id, goal_id))

        total = await self.logs.count_documents({
            "goal_id": goal_id,
            "completed": True,
        })
        window_start = today - timedelta(days=STATS_WINDOW_DAYS - 1)
        recent = await self.logs.count_documents({
            "goal_id": goal_id,
            "completed": True,
            "date": {"$gte": as_datetime(window_start), "$lte": as_datetime(today)},
        })

        return GoalStats(
            goal_id=goal.id,
            current_streak=goal.streak,
            best_streak=goal.best_streak,
            total_completions=total,
            last_completed_date=goal.last_completed_date,
            completion_rate_30_days=round(recent / STATS_WINDOW_DAYS * 100),
        )
