"""Task service - business logic for task management."""
import logging
from datetime import date, datetime
from typing import Optional

from app.errors import NotFoundError, ValidationError
from app.models.task import Task, TaskCreate, TaskSource, TaskStatus, TaskUpdate
from app.utils.dates import as_date, as_datetime
from app.utils.ids import parse_object_id

logger = logging.getLogger(__name__)


def new_task_doc(
    user_id: str,
    title: str,
    description: Optional[str] = None,
    category: Optional[str] = None,
    created_by: TaskSource = TaskSource.USER,
    goal_id: Optional[str] = None,
    scheduled_date: Optional[date] = None,
    estimated_duration: Optional[int] = None,
    deadline: Optional[datetime] = None,
) -> dict:
    """Build a pending task document ready to insert."""
    now = datetime.utcnow()
    return {
        "user_id": user_id,
        "title": title,
        "description": description,
        "category": category,
        "status": TaskStatus.PENDING.value,
        "created_by": created_by.value,
        "goal_id": goal_id,
        "scheduled_date": as_datetime(scheduled_date),
        "estimated_duration": estimated_duration,
        "deadline": deadline,
        "completed_at": None,
        "deleted": False,
        "deleted_at": None,
        "created_at": now,
        "updated_at": now,
    }


def doc_to_task(doc: dict) -> Task:
    """Convert database document to Task model."""
    return Task(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        title=doc["title"],
        description=doc.get("description"),
        category=doc.get("category"),
        status=doc.get("status", TaskStatus.PENDING.value),
        created_by=doc.get("created_by", TaskSource.USER.value),
        goal_id=doc.get("goal_id"),
        scheduled_date=as_date(doc.get("scheduled_date")),
        estimated_duration=doc.get("estimated_duration"),
        deadline=doc.get("deadline"),
        completed_at=doc.get("completed_at"),
        deleted=doc.get("deleted", False),
        deleted_at=doc.get("deleted_at"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


class TaskService:
    """Service for handling task operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.tasks = db["tasks"]

    async def create_task(self, user_id: str, task_create: TaskCreate) -> Task:
        """
        Create a task by hand.

        Args:
            user_id: User ID who owns the task
            task_create: Task creation data

        Returns:
            Created task
        """
        task_doc = new_task_doc(
            user_id=user_id,
            title=task_create.title,
            description=task_create.description,
            category=task_create.category,
            estimated_duration=task_create.estimated_duration,
            deadline=task_create.deadline,
        )

        result = await self.tasks.insert_one(task_doc)
        task_doc["_id"] = result.inserted_id

        return doc_to_task(task_doc)

    async def list_tasks(
        self,
        user_id: str,
        status: Optional[TaskStatus] = None,
        goal_id: Optional[str] = None,
        scheduled_date: Optional[date] = None,
    ) -> list[Task]:
        """
        List a user's tasks, newest first.

        Args:
            user_id: User ID
            status: Optional status filter
            goal_id: Optional filter for tasks generated from one goal
            scheduled_date: Optional filter for the day a task was generated for

        Returns:
            List of tasks (deleted tasks excluded)
        """
        query = {
            "user_id": user_id,
            "deleted": False,
        }

        if status:
            query["status"] = status.value
        if goal_id:
            query["goal_id"] = goal_id
        if scheduled_date:
            query["scheduled_date"] = as_datetime(scheduled_date)

        cursor = self.tasks.find(query).sort("created_at", -1)
        task_docs = await cursor.to_list(length=None)

        return [doc_to_task(doc) for doc in task_docs]

    async def _find_owned(self, user_id: str, task_id: str) -> dict:
        object_id = parse_object_id(task_id, "Task")
        task_doc = await self.tasks.find_one({
            "_id": object_id,
            "user_id": user_id,
            "deleted": False,
        })
        if not task_doc:
            raise NotFoundError("Task not found")
        return task_doc

    async def get_task(self, user_id: str, task_id: str) -> Task:
        """
        Get a single task.

        Raises:
            NotFoundError: If task not found, deleted or owned by someone else
        """
        return doc_to_task(await self._find_owned(user_id, task_id))

    async def update_task(
        self,
        user_id: str,
        task_id: str,
        task_update: TaskUpdate,
    ) -> Task:
        """
        Apply a partial update.

        Moving a task into or out of ``completed`` keeps ``completed_at`` in step.

        Raises:
            NotFoundError: If task not found
            ValidationError: If the update carries no fields
        """
        existing = await self._find_owned(user_id, task_id)

        changes = task_update.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields to update")

        update_doc = {"updated_at": datetime.utcnow()}
        for field, value in changes.items():
            if field in ("title", "status") and value is None:
                raise ValidationError(f"{field.capitalize()} cannot be empty")
            elif field == "status":
                update_doc.update(self._status_fields(TaskStatus(value)))
            else:
                update_doc[field] = value

        updated_doc = await self.tasks.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )

        return doc_to_task(updated_doc)

    async def toggle_task(self, user_id: str, task_id: str) -> Task:
        """Flip a task between pending and completed."""
        existing = await self._find_owned(user_id, task_id)

        if existing.get("status") == TaskStatus.COMPLETED.value:
            new_status = TaskStatus.PENDING
        else:
            new_status = TaskStatus.COMPLETED

        update_doc = self._status_fields(new_status)
        update_doc["updated_at"] = datetime.utcnow()

        updated_doc = await self.tasks.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )

        return doc_to_task(updated_doc)

    async def delete_task(self, user_id: str, task_id: str) -> dict:
        """
        Soft delete a task.

        Returns:
            Dictionary with deleted_count
        """
        existing = await self._find_owned(user_id, task_id)

        result = await self.tasks.update_one(
            {"_id": existing["_id"], "user_id": user_id},
            {
                "$set": {
                    "deleted": True,
                    "deleted_at": datetime.utcnow(),
                }
            },
        )

        return {"deleted_count": result.modified_count}

    @staticmethod
    def _status_fields(status: TaskStatus) -> dict:
        fields = {"status": status.value}
        if status == TaskStatus.COMPLETED:
            fields["completed_at"] = datetime.utcnow()
        else:
            fields["completed_at"] = None
        return fields
