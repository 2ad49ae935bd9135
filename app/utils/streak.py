"""Streak calculation from goal completion history."""
from datetime import date
from typing import Iterable, Optional


def calculate_streak(completed_dates: Iterable[date], just_completed: bool = True) -> int:
    """
    Count consecutive completed days ending at the most recent completion.

    Args:
        completed_dates: Completion dates, most recent first
        just_completed: Whether a completion was just logged; decides the
            result for an empty history

    Returns:
        Current streak length in days

    Examples:
        >>> calculate_streak([date(2024, 1, 5), date(2024, 1, 4), date(2024, 1, 3)])
        3
        >>> calculate_streak([date(2024, 1, 5), date(2024, 1, 3)])
        1
    """
    dates = list(completed_dates)
    if not dates:
        return 1 if just_completed else 0

    streak = 1
    for newer, older in zip(dates, dates[1:]):
        # Whole calendar days; dates carry no time component to drift across DST.
        if (newer - older).days == 1:
            streak += 1
        else:
            break

    return streak


def best_streak(previous_best: Optional[int], streak: int) -> int:
    """Historical maximum streak after a new streak value."""
    return max(previous_best or 0, streak)
