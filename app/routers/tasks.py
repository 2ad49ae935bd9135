"""Task router - API endpoints for task management."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_database
from app.errors import NotFoundError, ValidationError
from app.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from app.routers.auth import get_current_user_id
from app.services.task_service import TaskService


router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Create a task by hand. New tasks start as pending."""
    service = TaskService(db)
    return await service.create_task(user_id=user_id, task_create=task)


@router.get("", response_model=list[Task])
async def list_tasks(
    task_status: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status"),
    goal_id: Optional[str] = Query(None, description="Only tasks generated from this goal"),
    scheduled_date: Optional[date] = Query(None, description="Only tasks generated for this day"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    List tasks for the authenticated user.

    - Optional filters: status, goal_id, scheduled_date
    - Excludes deleted tasks
    """
    service = TaskService(db)
    return await service.list_tasks(
        user_id=user_id,
        status=task_status,
        goal_id=goal_id,
        scheduled_date=scheduled_date,
    )


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a single task. Returns 404 if not found or deleted."""
    service = TaskService(db)
    try:
        return await service.get_task(user_id=user_id, task_id=task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    task_update: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Update a task.

    - Only the fields sent are changed
    - Returns 400 for an empty update, 404 if not found
    """
    service = TaskService(db)
    try:
        return await service.update_task(
            user_id=user_id,
            task_id=task_id,
            task_update=task_update,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{task_id}/toggle", response_model=Task)
async def toggle_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Flip a task between pending and completed."""
    service = TaskService(db)
    try:
        return await service.toggle_task(user_id=user_id, task_id=task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Soft delete a task. Returns 404 if not found."""
    service = TaskService(db)
    try:
        return await service.delete_task(user_id=user_id, task_id=task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
