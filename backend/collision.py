"""
Time-slot collision detection within a week
"""

from typing import Iterable, List, Optional

from models import Event


def intervals_overlap(start_a: int, duration_a: int, start_b: int, duration_b: int) -> bool:
    """Half-open slot ranges overlap; touching edges do not"""
    end_a = start_a + duration_a
    end_b = start_b + duration_b
    return not (end_a <= start_b or start_a >= end_b)


def find_collisions(events: Iterable[Event], day: str, time_slot: int, duration: int,
                    week_start: str, exclude_id: Optional[str] = None) -> List[Event]:
    """
    List the events a candidate placement would overlap

    Only scheduled events on the same day of the same week are considered,
    and the event identified by ``exclude_id`` is never compared to itself.
    """
    collisions = []
    for event in events:
        if event.id == exclude_id or not event.is_scheduled or not event.duration:
            continue
        if event.day != day or event.week_start != week_start:
            continue
        if intervals_overlap(time_slot, duration, event.time_slot, event.duration):
            collisions.append(event)
    return collisions


def collides(events: Iterable[Event], day: str, time_slot: int, duration: int,
             week_start: str, exclude_id: Optional[str] = None) -> bool:
    return bool(find_collisions(events, day, time_slot, duration, week_start, exclude_id))
