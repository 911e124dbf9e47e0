"""
Optimistic synchronisation between the local event store and the API

Every networked operation follows the same three steps: take a snapshot of
the store, apply the change locally, then run the remote calls. When any
remote call fails the events it touched are put back from the snapshot and
the user is notified, so the local collection never keeps a change the
server did not accept. Changes to other events are left alone.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterable, List, Optional, Sequence

from api_client import EventsApiClient
from errors import CalendarError, CollisionError, ConflictError, ValidationError
from event_store import EventStore
from models import (
    DAYS, DEFAULT_DURATION, EVENT_COLORS, MAX_TIME_SLOT, Event, new_event_id, validate_event,
)
from recurrence import generate_recurring_events
from slots import clamp_duration, resize_slots
from weeks import start_of_week

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

TEXT_FIELDS = ('title', 'description', 'location', 'link', 'notes', 'attendees')


def log_notifier(message: str, level: str = 'success') -> None:
    """Default notifier: user-facing messages go to the log"""
    if level == 'error':
        logger.warning(message)
    else:
        logger.info(message)


def run_all(calls: Sequence[Callable], max_workers: int = 8) -> List:
    """
    Run remote calls concurrently and treat them as one batch

    All calls are allowed to finish. If any of them raised, the first
    error (in call order) is re-raised, otherwise the results are returned
    in call order.
    """
    if not calls:
        return []
    if len(calls) == 1:
        return [calls[0]()]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = [pool.submit(call) for call in calls]
        wait(futures)

    errors = [f.exception() for f in futures if f.exception() is not None]
    if errors:
        if len(errors) > 1:
            logger.warning("%d of %d calls in batch failed", len(errors), len(calls))
        raise errors[0]
    return [f.result() for f in futures]


def normalise_event(event: Event) -> Event:
    """Trim text fields and drop an end date that has no repeat rule"""
    changes = {}
    for name in TEXT_FIELDS:
        value = getattr(event, name)
        if isinstance(value, str):
            changes[name] = value.strip()
    if not event.has_repeat_rule:
        changes['repeat_end_date'] = None
    return event.replace(**changes)


class CalendarSync:
    """User-level calendar operations with optimistic updates and rollback"""

    def __init__(self, store: EventStore, api: EventsApiClient,
                 notify: Optional[Notifier] = None, max_workers: int = 8):
        self.store = store
        self.api = api
        self.notify = notify or log_notifier
        self.max_workers = max_workers
        self._in_flight = set()
        self._flight_lock = threading.Lock()

    # Plumbing

    @contextmanager
    def _single_flight(self, event_ids: Iterable[str]):
        ids = set(event_ids)
        with self._flight_lock:
            busy = ids & self._in_flight
            if busy:
                raise ConflictError(f"Another change is still saving for: {', '.join(sorted(busy))}")
            self._in_flight |= ids
        try:
            yield
        finally:
            with self._flight_lock:
                self._in_flight -= ids

    def _batch(self, calls: Sequence[Callable]) -> List:
        return run_all(calls, self.max_workers)

    def _optimistic(self, action: str, event_ids: Iterable[str], apply: Callable[[], None],
                    remote: Callable[[], None], success: str, failure: str) -> bool:
        """
        Apply a change locally, then confirm it remotely or roll it back

        Args:
            action: Short name used in log lines
            event_ids: Every id the change touches, old and new
            apply: Local mutation of the store
            remote: Remote calls; raising means the change was not persisted
            success: Notification on commit
            failure: Notification on rollback

        Returns:
            True when committed, False when rolled back
        """
        event_ids = list(event_ids)
        with self._single_flight(event_ids):
            snapshot = self.store.snapshot()
            apply()
            logger.debug("%s applied locally", action)
            try:
                remote()
            except CalendarError as exc:
                self.store.revert(snapshot, event_ids)
                logger.warning("%s rolled back: %s", action, exc)
                self.notify(failure, 'error')
                return False
            except Exception:
                self.store.revert(snapshot, event_ids)
                logger.exception("%s rolled back after unexpected error", action)
                raise
        logger.info("%s committed", action)
        self.notify(success, 'success')
        return True

    def _create_all(self, events: Sequence[Event]) -> None:
        self._batch([partial(self.api.create_event, e) for e in events])

    def _delete_all(self, events: Sequence[Event]) -> None:
        self._batch([partial(self.api.delete_event, e.id) for e in events])

    def _replace_remote(self, old: Sequence[Event], new: Sequence[Event]) -> None:
        # Deletes finish before creates start
        self._delete_all(old)
        self._create_all(new)

    def _update(self, action: str, updated: Event, success: str,
                failure: str = 'Failed to save changes') -> bool:
        return self._optimistic(
            action, [updated.id],
            apply=lambda: self.store.replace(updated),
            remote=lambda: self.api.update_event(updated.id, updated),
            success=success, failure=failure,
        )

    def _check_placement(self, day: str, time_slot: int, week_start: str) -> None:
        if day not in DAYS:
            raise ValidationError(f"day must be one of {', '.join(DAYS)}")
        if not 0 <= time_slot <= MAX_TIME_SLOT:
            raise ValidationError(f"timeSlot must be between 0 and {MAX_TIME_SLOT}")
        try:
            monday = start_of_week(week_start).isoformat()
        except (TypeError, ValueError):
            monday = None
        if monday != week_start:
            raise ValidationError("weekStart must be the ISO date of a Monday")

    def _check_collision(self, day: str, time_slot: int, duration: int, week_start: str,
                         exclude_id: Optional[str] = None) -> None:
        if self.store.collides(day, time_slot, duration, week_start, exclude_id):
            self.notify('Cannot schedule event: time slot conflict', 'error')
            raise CollisionError(
                f"{day} {week_start} slot {time_slot}+{duration} overlaps an existing event"
            )

    # Loading

    def load(self) -> bool:
        """Replace the local collection with the server's"""
        try:
            events = self.api.list_events()
        except CalendarError as exc:
            logger.warning("Loading events failed: %s", exc)
            self.notify('Failed to load events', 'error')
            return False
        self.store.replace_all(events)
        logger.info("Loaded %d events", len(events))
        return True

    def migrate(self, events: Sequence[Event]) -> dict:
        """Bulk-import events into the server, then reload the collection"""
        result = self.api.migrate(events)
        self.notify(f"Imported {result['migrated']} events, skipped {result['skipped']}", 'success')
        self.load()
        return result

    # Create

    def add_event(self, event: Event) -> bool:
        """
        Create an event, expanding it into its series when it repeats

        Raises:
            ValidationError: before any change when the event is invalid
        """
        if not event.id:
            event = event.replace(id=new_event_id())
        event = normalise_event(event)
        validate_event(event)

        if event.has_repeat_rule and event.is_scheduled:
            instances = generate_recurring_events(event)
            return self._optimistic(
                'create series', [e.id for e in instances],
                apply=lambda: self.store.add(instances),
                remote=lambda: self._create_all(instances),
                success=f"Created {len(instances)} recurring events",
                failure='Failed to save recurring events',
            )

        return self._optimistic(
            'create', [event.id],
            apply=lambda: self.store.add([event]),
            remote=lambda: self.api.create_event(event),
            success='Event created successfully',
            failure='Failed to save event',
        )

    def create_at_time(self, day: str, time_slot: int, week_start: str) -> Optional[Event]:
        """
        Create a one-hour "New Event" in an empty grid cell

        Returns:
            The new event once saved, None when the save was rolled back
        """
        self._check_placement(day, time_slot, week_start)
        duration = clamp_duration(time_slot, DEFAULT_DURATION)
        self._check_collision(day, time_slot, duration, week_start)
        event = Event(
            id=new_event_id(),
            title='New Event',
            description='',
            color=EVENT_COLORS[0],
            day=day,
            time_slot=time_slot,
            duration=duration,
            week_start=week_start,
        )
        committed = self._optimistic(
            'create at time', [event.id],
            apply=lambda: self.store.add([event]),
            remote=lambda: self.api.create_event(event),
            success='Event created. Click to edit details.',
            failure='Failed to save event',
        )
        return event if committed else None

    # Update

    def update_event(self, updated: Event) -> bool:
        """
        Save an edited event

        Editing any instance of a series regenerates the whole series (or
        collapses it into one plain event when the repeat rule was
        removed). Giving a scheduled plain event a repeat rule expands it
        into a series. Anything else is an in-place update.
        """
        updated = normalise_event(updated)
        validate_event(updated)
        current = self.store.get(updated.id)
        group_id = current.recurring_group_id if current.is_recurring else None

        if group_id:
            old = self.store.group(group_id)
            if updated.has_repeat_rule and updated.is_scheduled:
                new = generate_recurring_events(updated)
            else:
                new = [updated.replace(is_recurring=False, recurring_group_id=None)]

            def apply():
                self.store.remove_group(group_id)
                self.store.add(new)

            return self._optimistic(
                'update series', [e.id for e in old] + [e.id for e in new],
                apply=apply,
                remote=lambda: self._replace_remote(old, new),
                success='Recurring event series updated',
                failure='Failed to update recurring events',
            )

        if updated.has_repeat_rule and updated.is_scheduled:
            new = generate_recurring_events(updated)

            def apply():
                self.store.remove([current.id])
                self.store.add(new)

            return self._optimistic(
                'convert to series', [current.id] + [e.id for e in new],
                apply=apply,
                remote=lambda: self._replace_remote([current], new),
                success=f"Created {len(new)} recurring events",
                failure='Failed to create recurring events',
            )

        return self._update('update', updated, 'Event updated successfully')

    # Delete

    def delete_event(self, event_id: str) -> bool:
        """Delete one event; other instances of its series are kept"""
        event = self.store.get(event_id)
        return self._optimistic(
            'delete', [event.id],
            apply=lambda: self.store.remove([event.id]),
            remote=lambda: self.api.delete_event(event.id),
            success='Event deleted',
            failure='Failed to delete event',
        )

    # Placement

    def place_event(self, event_id: str, day: str, time_slot: int, week_start: str) -> bool:
        """
        Drop an event onto a grid cell

        Raises:
            CollisionError: when the cell range overlaps another event;
                nothing is changed
        """
        event = self.store.get(event_id)
        self._check_placement(day, time_slot, week_start)
        duration = clamp_duration(time_slot, event.duration or DEFAULT_DURATION)
        self._check_collision(day, time_slot, duration, week_start, exclude_id=event.id)

        placed = event.replace(day=day, time_slot=time_slot, duration=duration, week_start=week_start)

        if event.has_repeat_rule and event.week_start is None:
            instances = generate_recurring_events(placed)

            def apply():
                self.store.remove([event.id])
                self.store.add(instances)

            return self._optimistic(
                'schedule series', [event.id] + [e.id for e in instances],
                apply=apply,
                remote=lambda: self._replace_remote([event], instances),
                success=f"Created {len(instances)} recurring events",
                failure='Failed to save recurring events',
            )

        return self._update('move', placed, 'Event moved')

    def resize_event(self, event_id: str, edge: str, delta_slots: int) -> bool:
        """
        Drag the top or bottom edge of a scheduled event by ``delta_slots``

        Raises:
            ValidationError: when the event is not on the grid
            CollisionError: when the new range overlaps another event
        """
        event = self.store.get(event_id)
        if not event.is_scheduled:
            raise ValidationError(f"Event {event_id} is not scheduled")
        time_slot, duration = resize_slots(
            event.time_slot, event.duration or DEFAULT_DURATION, edge, delta_slots
        )
        if (time_slot, duration) == (event.time_slot, event.duration):
            return True
        self._check_collision(event.day, time_slot, duration, event.week_start, exclude_id=event.id)
        return self._update('resize', event.replace(time_slot=time_slot, duration=duration), 'Event resized')

    def unschedule_event(self, event_id: str) -> bool:
        """
        Drop an event back onto the unscheduled list

        A series instance takes its whole series with it: every instance is
        deleted and a single unscheduled event with a fresh id replaces them.
        """
        event = self.store.get(event_id)
        if not event.is_scheduled:
            return True

        if event.is_recurring and event.recurring_group_id:
            old = self.store.group(event.recurring_group_id)
            fresh = event.unscheduled().replace(
                id=new_event_id(), is_recurring=False, recurring_group_id=None,
            )

            def apply():
                self.store.remove_group(event.recurring_group_id)
                self.store.add([fresh])

            return self._optimistic(
                'unschedule series', [e.id for e in old] + [fresh.id],
                apply=apply,
                remote=lambda: self._replace_remote(old, [fresh]),
                success='Recurring series unscheduled',
                failure='Failed to save changes',
            )

        return self._update('unschedule', event.unscheduled(), 'Event unscheduled')

    def reorder(self, active_id: str, over_id: str) -> bool:
        """Reorder the local list; never persisted"""
        return self.store.move(active_id, over_id)
