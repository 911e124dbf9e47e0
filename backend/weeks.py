"""
Week arithmetic for the Monday-based weekly grid
"""

from datetime import date, datetime, timedelta
from typing import Union

DAYS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

DateLike = Union[date, str]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def start_of_week(value: DateLike) -> date:
    """Return the Monday of the week containing ``value``"""
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def week_key(value: DateLike) -> str:
    """ISO string of the Monday of the week containing ``value``"""
    return start_of_week(value).isoformat()


def day_code(value: DateLike) -> str:
    return DAYS[_as_date(value).weekday()]


def occurrence_date(week_start: DateLike, day: str) -> date:
    """
    Resolve a (weekStart, day) pair to a calendar date

    Args:
        week_start: Monday of the week
        day: Three-letter day code

    Returns:
        The date of that weekday in that week
    """
    return _as_date(week_start) + timedelta(days=DAYS.index(day))


def previous_week(week_start: DateLike) -> date:
    return start_of_week(week_start) - timedelta(weeks=1)


def next_week(week_start: DateLike) -> date:
    return start_of_week(week_start) + timedelta(weeks=1)


def current_week(today: date = None) -> date:
    return start_of_week(today or date.today())


def week_range_label(week_start: DateLike) -> str:
    """Header text such as ``Week of Jun 2 - Jun 8, 2025``"""
    start = start_of_week(week_start)
    end = start + timedelta(days=6)
    return f"Week of {start.strftime('%b')} {start.day} - {end.strftime('%b')} {end.day}, {end.year}"
