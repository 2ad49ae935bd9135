"""Recurring goal router - goal management, daily generation and check-ins."""
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_database
from app.errors import AlreadyCompletedTodayError, NotFoundError, ValidationError
from app.models.recurring_goal import (
    CompletionResult,
    CompletionStatus,
    GoalCompletionLog,
    GoalStats,
    GoalTodayStatus,
    RecurringGoal,
    RecurringGoalCreate,
    RecurringGoalUpdate,
)
from app.models.task import GeneratedTasks
from app.routers.auth import get_current_user_id, get_user_today
from app.services.goal_tracking_service import GoalTrackingService
from app.services.recurring_goal_service import RecurringGoalService


router = APIRouter(prefix="/recurring-goals", tags=["recurring-goals"])


@router.post("", response_model=RecurringGoal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal: RecurringGoalCreate,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """
    Create a recurring goal.

    - Requires authentication
    - Title and frequency are required
    - specific_days is required for specific_days goals
    """
    service = RecurringGoalService(db)
    return await service.create_goal(user_id=user_id, goal_create=goal, today=today)


@router.get("", response_model=list[RecurringGoal])
async def list_goals(
    include_inactive: bool = Query(False, description="Include deactivated goals"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the user's recurring goals, newest first."""
    service = RecurringGoalService(db)
    return await service.list_goals(user_id=user_id, include_inactive=include_inactive)


@router.get("/today-status", response_model=list[GoalTodayStatus])
async def get_today_status(
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """
    Today's view of the active goals.

    - Rolls weekly counters over first
    - Adds completed_today, due_today, remaining_this_week and total_completions
    - Due goals come first
    """
    service = GoalTrackingService(db)
    return await service.get_today_status(user_id=user_id, today=today)


@router.post("/generate-daily-tasks", response_model=GeneratedTasks)
async def generate_daily_tasks(
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """
    Create today's tasks from the user's recurring goals.

    - At most one task per goal per day; repeated calls create nothing new
    - All or nothing: a storage failure leaves no partial result (503)
    """
    service = GoalTrackingService(db)
    return await service.generate_daily_tasks(user_id=user_id, today=today)


@router.post("/rollover")
async def rollover_week(
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """Reset weekly counters of goals whose week has ended."""
    service = GoalTrackingService(db)
    rolled_over = await service.rollover_week(user_id=user_id, today=today)
    return {"rolled_over": rolled_over}


@router.get("/{goal_id}", response_model=RecurringGoal)
async def get_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Get a single recurring goal.

    - Returns 404 if the goal does not exist or belongs to someone else
    """
    service = RecurringGoalService(db)
    try:
        return await service.get_goal(user_id=user_id, goal_id=goal_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{goal_id}", response_model=RecurringGoal)
async def update_goal(
    goal_id: str,
    goal_update: RecurringGoalUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Update a recurring goal.

    - Only the fields sent are changed
    - Set is_active to false to deactivate a goal
    - Returns 400 for an empty or inconsistent update, 404 if not found
    """
    service = RecurringGoalService(db)
    try:
        return await service.update_goal(
            user_id=user_id,
            goal_id=goal_id,
            goal_update=goal_update,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Permanently delete a goal and its completion history.

    - Returns 404 if goal not found
    """
    service = RecurringGoalService(db)
    try:
        return await service.delete_goal(user_id=user_id, goal_id=goal_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{goal_id}/complete", response_model=CompletionResult)
async def complete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """
    Mark a goal as done for today.

    - Responds with status "completed" and the updated goal
    - Responds with status "already_done" when today's check-in exists
    - Returns 404 if goal not found
    """
    service = GoalTrackingService(db)
    try:
        goal = await service.complete_goal(user_id=user_id, goal_id=goal_id, today=today)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyCompletedTodayError as e:
        return CompletionResult(status=CompletionStatus.ALREADY_DONE, detail=str(e))

    return CompletionResult(status=CompletionStatus.COMPLETED, goal=goal)


@router.get("/{goal_id}/logs", response_model=list[GoalCompletionLog])
async def list_completion_logs(
    goal_id: str,
    limit: int = Query(30, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Completion history of a goal, most recent first."""
    service = RecurringGoalService(db)
    try:
        return await service.list_completion_logs(user_id=user_id, goal_id=goal_id, limit=limit)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{goal_id}/stats", response_model=GoalStats)
async def get_goal_stats(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    today: date = Depends(get_user_today),
    db=Depends(get_database),
):
    """Streaks, total completions and the 30-day completion rate of a goal."""
    service = RecurringGoalService(db)
    try:
        return await service.get_goal_stats(user_id=user_id, goal_id=goal_id, today=today)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
