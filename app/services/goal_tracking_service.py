"""Goal tracking service - weekly rollover, daily task generation and completions."""
import logging
from datetime import date, datetime
from typing import Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config import settings
from app.database import run_in_transaction
from app.errors import AlreadyCompletedTodayError, NotFoundError, PersistenceError
from app.models.recurring_goal import GoalTodayStatus, RecurringGoal
from app.models.task import GeneratedTasks, TaskSource
from app.services.recurring_goal_service import doc_to_goal
from app.services.task_service import doc_to_task, new_task_doc
from app.utils.dates import as_date, as_datetime, start_of_week
from app.utils.ids import parse_object_id
from app.utils.recurrence import (
    is_completed_today,
    is_open_today,
    remaining_this_week,
    rollover_update,
)
from app.utils.streak import calculate_streak

logger = logging.getLogger(__name__)


class GoalTrackingService:
    """
    Service for the day-to-day life of recurring goals.

    Every operation takes ``today`` explicitly so callers decide which
    calendar day (and so which timezone) is meant.
    """

    def __init__(
        self,
        db,
        week_start: Optional[str] = None,
        streak_window: Optional[int] = None,
    ):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["recurring_goals"]
        self.logs = db["goal_completion_logs"]
        self.tasks = db["tasks"]
        self.week_start = week_start or settings.week_start_day
        self.streak_window = streak_window or settings.streak_window

    async def rollover_week(self, user_id: str, today: date, session=None) -> int:
        """
        Reset weekly counters of goals whose week has ended.

        Each goal document is updated on its own, so a failure part-way
        leaves the already reset goals reset and the call can simply be
        repeated.

        Args:
            user_id: Owner of the goals
            today: Current calendar day
            session: Optional session of an enclosing transaction

        Returns:
            Number of goals rolled over
        """
        current_week = as_datetime(start_of_week(today, self.week_start))
        result = await self.goals.update_many(
            {
                "user_id": user_id,
                "$or": [
                    {"week_start_date": None},
                    {"week_start_date": {"$lt": current_week}},
                ],
            },
            {"$set": rollover_update(today, self.week_start)},
            session=session,
        )

        if result.modified_count:
            logger.info(
                "Rolled over %d goals for user %s (week of %s)",
                result.modified_count,
                user_id,
                current_week.date(),
            )
        return result.modified_count

    async def generate_daily_tasks(self, user_id: str, today: date) -> GeneratedTasks:
        """
        Create today's tasks from the user's recurring goals.

        Runs as a single transaction: counters are rolled over, every active
        goal not yet generated today is evaluated, one task is inserted per
        due goal and those goals are marked as generated. Calling it again on
        the same day creates nothing new.

        Raises:
            PersistenceError: If storage fails; nothing is written in that case
        """
        today_marker = as_datetime(today)
        not_generated_today = {
            "$or": [
                {"last_generated_date": None},
                {"last_generated_date": {"$lt": today_marker}},
            ],
        }

        async def _generate(session) -> list[dict]:
            await self.rollover_week(user_id, today, session=session)

            cursor = self.goals.find(
                {"user_id": user_id, "is_active": True, **not_generated_today},
                session=session,
            )
            goal_docs = await cursor.to_list(length=None)

            due_goals = [
                goal
                for goal in (doc_to_goal(doc) for doc in goal_docs)
                if is_open_today(goal, today, self.week_start)
            ]
            if not due_goals:
                return []

            task_docs = [
                new_task_doc(
                    user_id=user_id,
                    title=goal.title,
                    description=goal.description,
                    category=goal.category,
                    created_by=TaskSource.GOAL,
                    goal_id=goal.id,
                    scheduled_date=today,
                    estimated_duration=goal.duration_minutes,
                )
                for goal in due_goals
            ]
            result = await self.tasks.insert_many(task_docs, session=session)
            for task_doc, inserted_id in zip(task_docs, result.inserted_ids):
                task_doc["_id"] = inserted_id

            await self.goals.update_many(
                {
                    "_id": {"$in": [ObjectId(goal.id) for goal in due_goals]},
                    "user_id": user_id,
                },
                {
                    "$set": {
                        "last_generated_date": today_marker,
                        "tasks_generated_today": True,
                        "updated_at": datetime.utcnow(),
                    }
                },
                session=session,
            )
            return task_docs

        try:
            task_docs = await run_in_transaction(self.db, _generate)
        except PyMongoError as e:
            logger.exception("Daily task generation failed for user %s", user_id)
            raise PersistenceError("Failed to generate daily tasks") from e

        tasks = [doc_to_task(doc) for doc in task_docs]
        logger.info("Generated %d tasks for user %s on %s", len(tasks), user_id, today)

        return GeneratedTasks(
            tasks=tasks,
            count=len(tasks),
            message=f"Generated {len(tasks)} tasks for today",
        )

    async def complete_goal(
        self,
        user_id: str,
        goal_id: str,
        today: date,
    ) -> RecurringGoal:
        """
        Mark a goal as done for ``today``.

        Logs the completion, bumps the weekly counter and refreshes the
        streak, all in one transaction. A goal can be completed once per day;
        the unique (goal_id, date) index settles concurrent requests, and a
        request that loses a write conflict is retried and then sees the
        winner's completion.

        A day from an earlier week is logged and counts towards the streak
        but leaves this week's counter alone.

        Returns:
            Updated goal

        Raises:
            NotFoundError: If goal not found
            AlreadyCompletedTodayError: If the goal already has today's completion
            PersistenceError: If storage fails
        """
        object_id = parse_object_id(goal_id, "Goal")

        async def _complete(session) -> dict:
            await self.rollover_week(user_id, today, session=session)

            goal_doc = await self.goals.find_one(
                {"_id": object_id, "user_id": user_id},
                session=session,
            )
            if not goal_doc:
                raise NotFoundError("Goal not found")
            if as_date(goal_doc.get("last_completed_date")) == today:
                raise AlreadyCompletedTodayError()

            logged = await self._log_completion(user_id, goal_id, today, session)
            if not logged:
                raise AlreadyCompletedTodayError()

            goal_update = {
                "$max": {"last_completed_date": as_datetime(today)},
                "$set": {"updated_at": datetime.utcnow()},
            }
            # A day from an earlier week goes into the history only
            week_start_date = as_date(goal_doc.get("week_start_date"))
            if week_start_date is None or week_start_date <= today:
                goal_update["$inc"] = {"times_completed_this_week": 1}
            await self.goals.update_one(
                {"_id": object_id, "user_id": user_id},
                goal_update,
                session=session,
            )

            latest = max(today, as_date(goal_doc.get("last_completed_date")) or today)
            completed_dates = await self._recent_completion_dates(goal_id, latest, session)
            streak = calculate_streak(completed_dates)

            return await self.goals.find_one_and_update(
                {"_id": object_id, "user_id": user_id},
                {
                    "$set": {"streak": streak},
                    "$max": {"best_streak": streak},
                },
                return_document=True,
                session=session,
            )

        try:
            goal_doc = await run_in_transaction(self.db, _complete)
        except DuplicateKeyError:
            raise AlreadyCompletedTodayError()
        except PyMongoError as e:
            logger.exception("Completing goal %s failed", goal_id)
            raise PersistenceError("Failed to mark goal complete") from e

        goal = doc_to_goal(goal_doc)
        logger.info("Goal %s completed on %s (streak %d)", goal_id, today, goal.streak)
        return goal

    async def get_today_status(self, user_id: str, today: date) -> list[GoalTodayStatus]:
        """
        Active goals with today's computed status, due goals first.

        Uses the same due rule as the generator.
        """
        await self.rollover_week(user_id, today)

        cursor = self.goals.find({"user_id": user_id, "is_active": True}).sort("created_at", -1)
        goals = [doc_to_goal(doc) for doc in await cursor.to_list(length=None)]
        totals = await self._completion_totals([goal.id for goal in goals])

        statuses = [
            GoalTodayStatus(
                **goal.model_dump(),
                completed_today=is_completed_today(goal, today),
                due_today=is_open_today(goal, today, self.week_start),
                remaining_this_week=remaining_this_week(goal, today, self.week_start),
                total_completions=totals.get(goal.id, 0),
            )
            for goal in goals
        ]
        # sort is stable, so newest-first order holds within each group
        statuses.sort(key=lambda status: not status.due_today)
        return statuses

    async def _log_completion(self, user_id: str, goal_id: str, today: date, session) -> bool:
        """Insert today's completion log; False if one already existed."""
        result = await self.logs.update_one(
            {"goal_id": goal_id, "date": as_datetime(today)},
            {
                "$setOnInsert": {
                    "user_id": user_id,
                    "completed": True,
                    "created_at": datetime.utcnow(),
                }
            },
            upsert=True,
            session=session,
        )
        return result.upserted_id is not None

    async def _recent_completion_dates(self, goal_id: str, today: date, session) -> list[date]:
        cursor = (
            self.logs.find(
                {
                    "goal_id": goal_id,
                    "completed": True,
                    "date": {"$lte": as_datetime(today)},
                },
                {"date": 1},
                session=session,
            )
            .sort("date", -1)
            .limit(self.streak_window)
        )
        log_docs = await cursor.to_list(length=None)
        return [as_date(doc["date"]) for doc in log_docs]

    async def _completion_totals(self, goal_ids: list[str]) -> dict[str, int]:
        if not goal_ids:
            return {}
        cursor = self.logs.aggregate([
            {"$match": {"goal_id": {"$in": goal_ids}, "completed": True}},
            {"$group": {"_id": "$goal_id", "count": {"$sum": 1}}},
        ])
        rows = await cursor.to_list(length=None)
        return {row["_id"]: row["count"] for row in rows}
