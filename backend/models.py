"""
Data models for calendar events
"""

import uuid
from datetime import date
from typing import Optional, Dict, Any, List

from errors import ValidationError
from weeks import DAYS, occurrence_date

EVENT_COLORS = [
    '#ef4444',  # red
    '#f59e0b',  # amber
    '#10b981',  # emerald
    '#3b82f6',  # blue
    '#8b5cf6',  # violet
    '#ec4899',  # pink
]

REPEAT_TYPES = ['none', 'daily', 'weekly', 'monthly']

SLOTS_PER_DAY = 96
MAX_TIME_SLOT = 95  # 23:45
MIN_EVENT_DURATION = 1  # 15 minutes
MAX_EVENT_DURATION = 48  # 12 hours
DEFAULT_DURATION = 4  # 1 hour

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 200
NOTES_MAX_LENGTH = 300
ATTENDEES_MAX_LENGTH = 200

# attribute name -> wire key
FIELD_NAMES = {
    'id': 'id',
    'title': 'title',
    'description': 'description',
    'color': 'color',
    'day': 'day',
    'time_slot': 'timeSlot',
    'duration': 'duration',
    'week_start': 'weekStart',
    'location': 'location',
    'link': 'link',
    'notes': 'notes',
    'attendees': 'attendees',
    'repeat_type': 'repeatType',
    'repeat_end_date': 'repeatEndDate',
    'is_recurring': 'isRecurring',
    'recurring_group_id': 'recurringGroupId',
}

SCHEDULING_FIELDS = ('day', 'time_slot', 'duration', 'week_start')


def contrast_text_color(hex_color: str) -> str:
    """
    Pick black or white text for a background colour

    Args:
        hex_color: Colour in ``#rrggbb`` form

    Returns:
        "black" for light backgrounds, "white" for dark ones
    """
    value = hex_color.lstrip('#')
    r = int(value[0:2], 16)
    g = int(value[2:4], 16)
    b = int(value[4:6], 16)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return 'black' if luminance > 0.5 else 'white'


class Event:
    """Calendar event model"""

    def __init__(self, id: str, title: str, color: str,
                 description: Optional[str] = None, day: Optional[str] = None,
                 time_slot: Optional[int] = None, duration: Optional[int] = None,
                 week_start: Optional[str] = None, location: Optional[str] = None,
                 link: Optional[str] = None, notes: Optional[str] = None,
                 attendees: Optional[str] = None, repeat_type: str = 'none',
                 repeat_end_date: Optional[str] = None, is_recurring: bool = False,
                 recurring_group_id: Optional[str] = None):
        self.id = id
        self.title = title
        self.color = color
        self.description = description
        self.day = day
        self.time_slot = time_slot  # quarter-hours from midnight, 0-95
        self.duration = duration  # quarter-hours, 1-48
        self.week_start = week_start  # ISO date of the Monday
        self.location = location
        self.link = link
        self.notes = notes
        self.attendees = attendees
        self.repeat_type = repeat_type or 'none'
        self.repeat_end_date = repeat_end_date
        self.is_recurring = is_recurring
        self.recurring_group_id = recurring_group_id

    @property
    def is_scheduled(self) -> bool:
        return self.day is not None and self.time_slot is not None and self.week_start is not None

    @property
    def has_repeat_rule(self) -> bool:
        return self.repeat_type != 'none'

    @property
    def text_color(self) -> str:
        return contrast_text_color(self.color)

    def replace(self, **changes) -> 'Event':
        """Return a copy of this event with the given attributes changed"""
        values = {name: getattr(self, name) for name in FIELD_NAMES}
        for name in changes:
            if name not in FIELD_NAMES:
                raise TypeError(f"Unknown event field: {name}")
        values.update(changes)
        return Event(**values)

    def unscheduled(self) -> 'Event':
        return self.replace(**dict.fromkeys(SCHEDULING_FIELDS))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to its wire dictionary"""
        return {key: getattr(self, name) for name, key in FIELD_NAMES.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        """Create event from a wire dictionary, ignoring unknown keys"""
        values = {name: data.get(key) for name, key in FIELD_NAMES.items()}
        values['id'] = values['id'] or ''
        values['title'] = values['title'] or ''
        values['color'] = values['color'] or ''
        values['repeat_type'] = values['repeat_type'] or 'none'
        values['is_recurring'] = bool(values['is_recurring'])
        return cls(**values)

    def __eq__(self, other):
        if not isinstance(other, Event):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        if self.is_scheduled:
            where = f"{self.day} {self.week_start} slot={self.time_slot}+{self.duration}"
        else:
            where = 'unscheduled'
        return f"<Event {self.id!r} {self.title!r} {where}>"


def _parse_iso_date(value) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def event_errors(data: Dict[str, Any]) -> List[str]:
    """
    Check an event document against the storage schema

    Args:
        data: Event in wire form (camelCase keys)

    Returns:
        List of human-readable problems, empty when the document is valid
    """
    errors = []

    if not data.get('id'):
        errors.append('id is required')
    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        errors.append('title is required')
    elif len(title) > TITLE_MAX_LENGTH:
        errors.append(f'title must be {TITLE_MAX_LENGTH} characters or less')
    color = data.get('color')
    if not color:
        errors.append('color is required')
    elif color not in EVENT_COLORS:
        errors.append(f'color must be one of {", ".join(EVENT_COLORS)}')

    for key, limit in (('description', DESCRIPTION_MAX_LENGTH),
                       ('notes', NOTES_MAX_LENGTH),
                       ('attendees', ATTENDEES_MAX_LENGTH)):
        value = data.get(key)
        if value is not None and (not isinstance(value, str) or len(value) > limit):
            errors.append(f'{key} must be text of {limit} characters or less')

    day = data.get('day')
    time_slot = data.get('timeSlot')
    duration = data.get('duration')
    week_start = data.get('weekStart')

    if day is not None and day not in DAYS:
        errors.append(f'day must be one of {", ".join(DAYS)}')
    if time_slot is not None and (not _is_int(time_slot) or not 0 <= time_slot <= MAX_TIME_SLOT):
        errors.append(f'timeSlot must be an integer between 0 and {MAX_TIME_SLOT}')
    if duration is not None and (not _is_int(duration)
                                 or not MIN_EVENT_DURATION <= duration <= MAX_EVENT_DURATION):
        errors.append(f'duration must be an integer between {MIN_EVENT_DURATION} and {MAX_EVENT_DURATION}')
    if week_start is not None:
        parsed = _parse_iso_date(week_start)
        if parsed is None:
            errors.append('weekStart must be an ISO date')
        elif parsed.weekday() != 0:
            errors.append('weekStart must be a Monday')

    present = [value is not None for value in (day, time_slot, week_start)]
    if any(present) and not all(present):
        errors.append('day, timeSlot and weekStart must be set together')
    elif all(present) and duration is None:
        errors.append('duration is required for a scheduled event')

    repeat_type = data.get('repeatType')
    if repeat_type is not None and repeat_type not in REPEAT_TYPES:
        errors.append(f'repeatType must be one of {", ".join(REPEAT_TYPES)}')
    repeat_end_date = data.get('repeatEndDate')
    if repeat_end_date is not None and _parse_iso_date(repeat_end_date) is None:
        errors.append('repeatEndDate must be an ISO date')

    return errors


def validate_event(event: Event) -> None:
    """
    Validate an event before it is mutated locally

    Raises:
        ValidationError: describing every problem found
    """
    errors = event_errors(event.to_dict())
    if not errors and event.has_repeat_rule and event.is_scheduled and event.repeat_end_date:
        first = occurrence_date(event.week_start, event.day)
        if date.fromisoformat(event.repeat_end_date) < first:
            errors.append('repeatEndDate must not be before the first occurrence')
    if errors:
        raise ValidationError('; '.join(errors))


def new_event_id() -> str:
    return f"event-{uuid.uuid4()}"
