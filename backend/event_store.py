"""
Client-side event collection

The store holds the session's events as an immutable tuple and swaps the
whole tuple on every change, so a snapshot is simply the tuple that was
current before a mutation. Events are never modified in place; changes go
through ``Event.replace``.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from collision import collides, find_collisions
from errors import NotFoundError
from models import Event
from slots import time_to_slot
from weeks import DAYS, occurrence_date

logger = logging.getLogger(__name__)

Snapshot = Tuple[Event, ...]


class EventStore:
    """In-memory source of truth for the current session"""

    def __init__(self, events: Optional[Iterable[Event]] = None):
        self._events: Snapshot = tuple(events or ())
        self._lock = threading.RLock()

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def __contains__(self, event_id):
        return self.find(event_id) is not None

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    # Snapshots

    def snapshot(self) -> Snapshot:
        return self._events

    def restore(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._events = tuple(snapshot)

    def revert(self, snapshot: Snapshot, event_ids: Iterable[str]) -> None:
        """
        Undo one change: put back the snapshot's version of ``event_ids``

        Ids the change added are dropped and ids it removed or replaced
        return to their snapshot position. Every other event keeps its
        current state, so changes committed in the meantime survive.
        """
        ids = set(event_ids)
        with self._lock:
            events = [e for e in self._events if e.id not in ids]
            for index, event in enumerate(snapshot):
                if event.id in ids:
                    events.insert(min(index, len(events)), event)
            self._events = tuple(events)

    def replace_all(self, events: Iterable[Event]) -> None:
        with self._lock:
            self._events = tuple(events)

    # Lookups

    def find(self, event_id: str) -> Optional[Event]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def get(self, event_id: str) -> Event:
        event = self.find(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        return event

    def group(self, group_id: str) -> List[Event]:
        return [e for e in self._events if group_id and e.recurring_group_id == group_id]

    # Mutations

    def add(self, events: Sequence[Event]) -> None:
        with self._lock:
            self._events = self._events + tuple(events)

    def replace(self, event: Event) -> None:
        """Swap the event with the same id, keeping its position"""
        with self._lock:
            if self.find(event.id) is None:
                raise NotFoundError(f"Event {event.id} not found")
            self._events = tuple(event if e.id == event.id else e for e in self._events)

    def remove(self, event_ids: Iterable[str]) -> List[Event]:
        ids = set(event_ids)
        with self._lock:
            removed = [e for e in self._events if e.id in ids]
            self._events = tuple(e for e in self._events if e.id not in ids)
        return removed

    def remove_group(self, group_id: str) -> List[Event]:
        return self.remove(e.id for e in self.group(group_id))

    def move(self, active_id: str, over_id: str) -> bool:
        """
        Move one event to another event's position

        Mirrors a sortable list's arrayMove: the item is taken out and
        re-inserted at the target index, everything else keeps its order.

        Returns:
            False when either id is unknown (nothing changes)
        """
        with self._lock:
            ids = [e.id for e in self._events]
            if active_id not in ids or over_id not in ids:
                return False
            old_index = ids.index(active_id)
            new_index = ids.index(over_id)
            events = list(self._events)
            events.insert(new_index, events.pop(old_index))
            self._events = tuple(events)
        return True

    # Queries

    def collides(self, day: str, time_slot: int, duration: int, week_start: str,
                 exclude_id: Optional[str] = None) -> bool:
        return collides(self._events, day, time_slot, duration, week_start, exclude_id)

    def collisions(self, day: str, time_slot: int, duration: int, week_start: str,
                   exclude_id: Optional[str] = None) -> List[Event]:
        return find_collisions(self._events, day, time_slot, duration, week_start, exclude_id)

    def scheduled_for_week(self, week_start: str) -> List[Event]:
        """Events of one week ordered by day, then start slot"""
        events = [e for e in self._events if e.is_scheduled and e.week_start == week_start]
        return sorted(events, key=lambda e: (DAYS.index(e.day), e.time_slot))

    def unscheduled(self) -> List[Event]:
        return [e for e in self._events if not e.is_scheduled]

    def upcoming(self, now: datetime, limit: int = 5) -> List[Event]:
        """
        Next events from ``now``

        Includes today's events that have not started yet and every event
        in the following seven days, ordered by date then start slot.
        """
        today = now.date()
        current_slot = time_to_slot(now.hour, now.minute)
        horizon = today + timedelta(days=8)

        dated = []
        for event in self._events:
            if not event.is_scheduled:
                continue
            when = occurrence_date(event.week_start, event.day)
            if when == today:
                if event.time_slot >= current_slot:
                    dated.append((when, event))
            elif today < when < horizon:
                dated.append((when, event))

        dated.sort(key=lambda pair: (pair[0], pair[1].time_slot))
        return [event for _, event in dated[:limit]]
