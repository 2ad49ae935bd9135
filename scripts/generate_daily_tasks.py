"""Generate today's tasks for every user with active recurring goals.

Meant to run once a day from cron or a scheduler. Each user is handled in
its own transaction; a user whose pass fails is logged and skipped, and a
later run picks them up again.

Usage:
    python scripts/generate_daily_tasks.py
    python scripts/generate_daily_tasks.py --date 2024-01-05 --user-id 65a1...
"""
import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.errors import PersistenceError
from app.services.auth_service import AuthService
from app.services.goal_tracking_service import GoalTrackingService
from app.utils.dates import local_today

logger = logging.getLogger("generate_daily_tasks")


async def generate_for_all_users(
    mongodb_url: str,
    db_name: str,
    on: Optional[date] = None,
    only_user: Optional[str] = None,
) -> dict:
    """
    Run the daily generator for each owner of an active goal.

    Returns:
        Counts of users processed, users failed and tasks created
    """
    client = AsyncIOMotorClient(mongodb_url)
    db = client[db_name]
    stats = {"users": 0, "failed": 0, "tasks": 0}

    try:
        if only_user:
            user_ids = [only_user]
        else:
            user_ids = await db["recurring_goals"].distinct("user_id", {"is_active": True})

        service = GoalTrackingService(db)
        auth = AuthService(db)

        for user_id in user_ids:
            try:
                today = on or local_today(await auth.get_user_timezone(user_id))
                result = await service.generate_daily_tasks(user_id=user_id, today=today)
            except PersistenceError:
                stats["failed"] += 1
                logger.warning("Skipping user %s, generation failed", user_id)
                continue
            except Exception:
                # One bad goal document or timezone must not stop the other users
                stats["failed"] += 1
                logger.exception("Skipping user %s, unexpected error", user_id)
                continue

            stats["users"] += 1
            stats["tasks"] += result.count
    finally:
        client.close()

    return stats


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate daily tasks from recurring goals")
    parser.add_argument(
        "--mongodb-url",
        default=settings.mongodb_url,
        help="MongoDB connection URL",
    )
    parser.add_argument(
        "--db-name",
        default=settings.mongodb_db_name,
        help="Database name",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Day to generate for (YYYY-MM-DD); defaults to each user's today",
    )
    parser.add_argument(
        "--user-id",
        default=None,
        help="Only generate for this user",
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    stats = await generate_for_all_users(
        mongodb_url=args.mongodb_url,
        db_name=args.db_name,
        on=args.date,
        only_user=args.user_id,
    )
    logger.info(
        "Done: %d users, %d tasks created, %d users failed",
        stats["users"],
        stats["tasks"],
        stats["failed"],
    )
    if stats["failed"]:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
