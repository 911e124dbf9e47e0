"""
Recurring event expansion

Expands a base event carrying a repeat rule into the dated instances of its
series. Every call mints a new group id, so regenerating a series always
replaces the previous instances rather than extending them.
"""

import logging
import uuid
from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from errors import ValidationError
from models import Event
from weeks import occurrence_date, start_of_week, day_code

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 100
DEFAULT_SPAN = relativedelta(months=3)

STEPS = {
    'daily': timedelta(days=1),
    'weekly': timedelta(days=7),
    'monthly': relativedelta(months=1),
}


def new_group_id() -> str:
    return f"recurring-{uuid.uuid4()}"


def series_end_date(base_event: Event) -> date:
    """Last date a series may reach: the explicit end date or three months out"""
    first = occurrence_date(base_event.week_start, base_event.day)
    if base_event.repeat_end_date:
        return date.fromisoformat(base_event.repeat_end_date)
    return first + DEFAULT_SPAN


def generate_recurring_events(base_event: Event, group_id: Optional[str] = None) -> List[Event]:
    """
    Generate every instance of a recurring event

    Args:
        base_event: Event with a repeat rule; must be scheduled
        group_id: Group id to stamp on the instances (minted when omitted)

    Returns:
        Instances in date order, at most MAX_OCCURRENCES. An event without
        a repeat rule or without a schedule comes back unchanged as a
        single-item list.

    Raises:
        ValidationError: if the end date precedes the first occurrence
    """
    if not base_event.has_repeat_rule or not base_event.is_scheduled:
        return [base_event]

    step = STEPS.get(base_event.repeat_type)
    if step is None:
        raise ValidationError(f"Unknown repeat type: {base_event.repeat_type}")

    first = occurrence_date(base_event.week_start, base_event.day)
    end = series_end_date(base_event)
    if end < first:
        raise ValidationError(
            f"Repeat end date {end.isoformat()} is before the first occurrence {first.isoformat()}"
        )

    group_id = group_id or new_group_id()
    instances = []
    current = first
    # Steps accumulate, so a monthly series anchored on the 31st drifts to the
    # shortest month's last day and stays there.
    while current <= end and len(instances) < MAX_OCCURRENCES:
        instances.append(base_event.replace(
            id=f"{group_id}-{len(instances)}",
            week_start=start_of_week(current).isoformat(),
            day=day_code(current),
            is_recurring=True,
            recurring_group_id=group_id,
        ))
        current = current + step

    logger.debug("Generated %d %s instances from %s to %s",
                 len(instances), base_event.repeat_type, first, end)
    return instances
