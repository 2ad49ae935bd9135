"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=False)
        self.db = self.client[settings.mongodb_db_name]
        await ensure_indexes(self.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db


async def ensure_indexes(db) -> None:
    """
    Create the indexes the services rely on.

    The unique (goal_id, date) index on goal_completion_logs is what keeps a
    goal to a single completion per calendar day.
    """
    await db["users"].create_index("email", unique=True)
    await db["recurring_goals"].create_index(
        [("user_id", ASCENDING), ("is_active", ASCENDING)]
    )
    await db["goal_completion_logs"].create_index(
        [("goal_id", ASCENDING), ("date", ASCENDING)],
        unique=True,
        name="goal_date_unique",
    )
    await db["goal_completion_logs"].create_index(
        [("goal_id", ASCENDING), ("date", DESCENDING)]
    )
    await db["tasks"].create_index(
        [("user_id", ASCENDING), ("status", ASCENDING)]
    )
    await db["tasks"].create_index("goal_id", sparse=True)


async def run_in_transaction(db, callback):
    """
    Run ``callback(session)`` inside a transaction and return its result.

    The driver commits when the callback returns, aborts when it raises and
    retries the whole callback on transient errors such as write conflicts
    with a concurrent request. Needs a replica set deployment (Atlas
    clusters are).
    """
    async with await db.client.start_session() as session:
        return await session.with_transaction(callback)
