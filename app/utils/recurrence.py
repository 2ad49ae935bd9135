"""Recurrence rules for recurring goals.

Pure functions shared by the daily task generator and the today-status
projection, so both always agree on whether a goal is due.
"""
from datetime import date, datetime
from typing import Optional

from app.models.recurring_goal import Frequency, RecurringGoal
from app.utils.dates import as_datetime, days_remaining_in_week, start_of_week, weekday_name

# Preferred weekdays for "N times per week" goals, spread across the week.
DISTRIBUTED_DAYS = {
    1: ("wednesday",),
    2: ("tuesday", "friday"),
    3: ("monday", "wednesday", "friday"),
    4: ("monday", "tuesday", "thursday", "friday"),
    5: ("monday", "tuesday", "wednesday", "thursday", "friday"),
    6: ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday"),
    7: ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"),
}


def get_distributed_days(times_per_week: int) -> frozenset[str]:
    """
    Preferred weekdays for a goal done ``times_per_week`` times a week.

    Values outside 1-7 fall back to the three-times-a-week pattern.

    Examples:
        >>> sorted(get_distributed_days(2))
        ['friday', 'tuesday']
    """
    return frozenset(DISTRIBUTED_DAYS.get(times_per_week, DISTRIBUTED_DAYS[3]))


def needs_rollover(week_start_date: Optional[date], today: date, week_start: str = "sunday") -> bool:
    """Whether a goal's weekly counter belongs to an earlier week."""
    if week_start_date is None:
        return True
    return week_start_date < start_of_week(today, week_start)


def rollover_update(today: date, week_start: str = "sunday") -> dict:
    """Field values that reset a goal's weekly counter for the week of ``today``."""
    return {
        "times_completed_this_week": 0,
        "week_start_date": as_datetime(start_of_week(today, week_start)),
        "tasks_generated_today": False,
        "updated_at": datetime.utcnow(),
    }


def completed_this_week(goal: RecurringGoal, today: date, week_start: str = "sunday") -> int:
    """Weekly counter as seen from ``today``; a stale week counts as zero."""
    if needs_rollover(goal.week_start_date, today, week_start):
        return 0
    return goal.times_completed_this_week


def remaining_this_week(goal: RecurringGoal, today: date, week_start: str = "sunday") -> Optional[int]:
    """Completions still needed this week for quota goals, None otherwise."""
    if goal.frequency != Frequency.X_PER_WEEK:
        return None
    return max(goal.times_per_week - completed_this_week(goal, today, week_start), 0)


def is_due_today(goal: RecurringGoal, today: date, week_start: str = "sunday") -> bool:
    """
    Decide whether a goal should produce a task on ``today``.

    - daily: always due
    - specific_days: due when today's weekday is one of the goal's days
    - x_per_week: due while the weekly quota is unmet and today is a
      preferred day, or when the remaining quota needs every day left in
      the week (catch-up)

    Whether the goal was already completed or generated today is left to
    the caller.
    """
    today_name = weekday_name(today)

    if goal.frequency == Frequency.DAILY:
        return True

    if goal.frequency == Frequency.SPECIFIC_DAYS:
        return today_name in goal.specific_days

    if goal.frequency == Frequency.X_PER_WEEK:
        if goal.times_per_week <= 0:
            return False
        done = completed_this_week(goal, today, week_start)
        if done >= goal.times_per_week:
            return False
        if today_name in get_distributed_days(goal.times_per_week):
            return True
        still_needed = goal.times_per_week - done
        return still_needed >= days_remaining_in_week(today, week_start)

    return False


def is_completed_today(goal: RecurringGoal, today: date) -> bool:
    return goal.last_completed_date == today


def is_open_today(goal: RecurringGoal, today: date, week_start: str = "sunday") -> bool:
    """Due today and not yet completed today.

    The generator and the today-status view both decide with this.
    """
    return not is_completed_today(goal, today) and is_due_today(goal, today, week_start)
