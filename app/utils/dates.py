"""Calendar helpers: weekday names, week boundaries and date storage."""
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import WEEKDAY_NAMES, settings


def weekday_name(day: date) -> str:
    """
    Lower-case English weekday name for a date.

    Examples:
        >>> weekday_name(date(2024, 1, 2))
        'tuesday'
    """
    return WEEKDAY_NAMES[day.weekday()]


def week_order(week_start: str = "sunday") -> tuple[str, ...]:
    """Weekday names in calendar order, starting at ``week_start``."""
    first = WEEKDAY_NAMES.index(week_start)
    return WEEKDAY_NAMES[first:] + WEEKDAY_NAMES[:first]


def start_of_week(day: date, week_start: str = "sunday") -> date:
    """
    First day of the week containing ``day``.

    Examples:
        >>> start_of_week(date(2024, 1, 6))  # Saturday
        datetime.date(2023, 12, 31)
        >>> start_of_week(date(2024, 1, 6), week_start="monday")
        datetime.date(2024, 1, 1)
    """
    offset = (day.weekday() - WEEKDAY_NAMES.index(week_start)) % 7
    return day - timedelta(days=offset)


def days_remaining_in_week(day: date, week_start: str = "sunday") -> int:
    """
    Days left in the week, counting ``day`` itself.

    With a Sunday week start this is 7 on Sunday and 1 on Saturday.
    """
    return 7 - (day - start_of_week(day, week_start)).days


def local_today(tz_name: Optional[str] = None) -> date:
    """Current calendar date in the configured timezone."""
    tz_name = tz_name or settings.timezone
    if tz_name == "local":
        return datetime.now().astimezone().date()
    return datetime.now(ZoneInfo(tz_name)).date()


def as_datetime(day: Optional[date]) -> Optional[datetime]:
    """
    Convert a date to a midnight datetime for storage.

    BSON has no date-only type, so calendar days are stored as naive
    midnight datetimes.
    """
    if day is None:
        return None
    if isinstance(day, datetime):
        return datetime.combine(day.date(), datetime.min.time())
    return datetime.combine(day, datetime.min.time())


def as_date(value) -> Optional[date]:
    """Convert a stored value (datetime, date, ISO string or None) to a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
