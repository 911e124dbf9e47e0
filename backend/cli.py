"""
Command-line front end for the weekly calendar
"""

import argparse
import json
import sys
from datetime import date, datetime
from typing import List, Optional

from api_client import EventsApiClient
from errors import CalendarError
from event_store import EventStore
from models import DAYS, EVENT_COLORS, Event
from settings import configure_logging, load_settings
from slots import format_time_12h, format_time_slot, time_to_slot
from sync import CalendarSync
from weeks import current_week, next_week, occurrence_date, previous_week, week_key, week_range_label


def print_notifier(message: str, level: str = 'success') -> None:
    print(message, file=sys.stderr if level == 'error' else sys.stdout)


def parse_time(value: str) -> int:
    """Parse ``HH:MM`` into a slot index"""
    try:
        hour, minute = (int(part) for part in value.split(':'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected HH:MM, got {value!r}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise argparse.ArgumentTypeError(f"Time out of range: {value!r}")
    return time_to_slot(hour, minute)


def parse_color(value: str) -> str:
    if value.isdigit() and 1 <= int(value) <= len(EVENT_COLORS):
        return EVENT_COLORS[int(value) - 1]
    if value in EVENT_COLORS:
        return value
    raise argparse.ArgumentTypeError(
        f"Color must be 1-{len(EVENT_COLORS)} or one of {', '.join(EVENT_COLORS)}"
    )


def resolve_week(args) -> str:
    if getattr(args, 'week', None):
        return week_key(args.week)
    week = current_week()
    offset = getattr(args, 'offset', 0) or 0
    step = next_week if offset > 0 else previous_week
    for _ in range(abs(offset)):
        week = step(week)
    return week.isoformat()


def describe(event: Event) -> str:
    if not event.is_scheduled:
        return f"{event.title} ({event.id})"
    start = format_time_slot(event.time_slot)
    end = format_time_slot(event.time_slot + (event.duration or 0))
    series = ' [series]' if event.is_recurring else ''
    return f"{start}-{end} {event.title}{series} ({event.id})"


def cmd_agenda(sync: CalendarSync, args) -> int:
    week = resolve_week(args)
    print(week_range_label(week))
    by_day = {day: [] for day in DAYS}
    for event in sync.store.scheduled_for_week(week):
        by_day[event.day].append(event)
    for day in DAYS:
        print(f"{day} {occurrence_date(week, day).isoformat()}")
        for event in by_day[day]:
            print(f"  {describe(event)}")

    unscheduled = sync.store.unscheduled()
    print(f"Unscheduled ({len(unscheduled)})")
    for event in unscheduled:
        print(f"  {describe(event)}")

    upcoming = sync.store.upcoming(datetime.now())
    if upcoming:
        print('Upcoming')
        for event in upcoming:
            when = occurrence_date(event.week_start, event.day)
            print(f"  {when.strftime('%a, %b')} {when.day} {format_time_12h(event.time_slot)} {event.title}")
    return 0


def cmd_add(sync: CalendarSync, args) -> int:
    event = Event(
        id='',
        title=args.title,
        color=args.color,
        description=args.description,
        location=args.location,
        link=args.link,
        notes=args.notes,
        attendees=args.attendees,
        repeat_type=args.repeat,
        repeat_end_date=args.until,
    )
    if args.day:
        event = event.replace(
            day=args.day,
            time_slot=args.time if args.time is not None else 0,
            duration=args.duration,
            week_start=resolve_week(args),
        )
    return 0 if sync.add_event(event) else 1


def cmd_place(sync: CalendarSync, args) -> int:
    return 0 if sync.place_event(args.event_id, args.day, args.time, resolve_week(args)) else 1


def cmd_resize(sync: CalendarSync, args) -> int:
    return 0 if sync.resize_event(args.event_id, args.edge, args.delta) else 1


def cmd_unschedule(sync: CalendarSync, args) -> int:
    return 0 if sync.unschedule_event(args.event_id) else 1


def cmd_delete(sync: CalendarSync, args) -> int:
    return 0 if sync.delete_event(args.event_id) else 1


def cmd_import(sync: CalendarSync, args) -> int:
    with open(args.file, 'r') as f:
        data = json.load(f)
    items = data.get('events', []) if isinstance(data, dict) else data
    result = sync.migrate([Event.from_dict(item) for item in items])
    print(f"Migrated {result['migrated']}, skipped {result['skipped']}")
    if result.get('error'):
        print(result['error'], file=sys.stderr)
        return 1
    return 0


def _add_week_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--week', type=date.fromisoformat, help='Any date in the target week (YYYY-MM-DD)')
    parser.add_argument('--offset', type=int, default=0, help='Weeks from the current week')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='calendar', description='Weekly calendar')
    parser.add_argument('--api-url', help='Persistence API base URL')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('agenda', help='Show one week')
    _add_week_options(p)
    p.set_defaults(func=cmd_agenda)

    p = sub.add_parser('add', help='Create an event')
    p.add_argument('title')
    p.add_argument('--color', type=parse_color, default=EVENT_COLORS[0])
    p.add_argument('--description')
    p.add_argument('--location')
    p.add_argument('--link')
    p.add_argument('--notes')
    p.add_argument('--attendees')
    p.add_argument('--day', choices=DAYS)
    p.add_argument('--time', type=parse_time)
    p.add_argument('--duration', type=int, default=4, help='Quarter-hours')
    p.add_argument('--repeat', choices=['none', 'daily', 'weekly', 'monthly'], default='none')
    p.add_argument('--until', help='Last date of the series (YYYY-MM-DD)')
    _add_week_options(p)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser('place', help='Schedule or move an event')
    p.add_argument('event_id')
    p.add_argument('day', choices=DAYS)
    p.add_argument('time', type=parse_time)
    _add_week_options(p)
    p.set_defaults(func=cmd_place)

    p = sub.add_parser('resize', help='Move the top or bottom edge of an event')
    p.add_argument('event_id')
    p.add_argument('edge', choices=['top', 'bottom'])
    p.add_argument('delta', type=int, help='Signed number of quarter-hours')
    p.set_defaults(func=cmd_resize)

    p = sub.add_parser('unschedule', help='Move an event (or its series) back to the unscheduled list')
    p.add_argument('event_id')
    p.set_defaults(func=cmd_unschedule)

    p = sub.add_parser('delete', help='Delete one event')
    p.add_argument('event_id')
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser('import', help='Bulk-import events from a JSON file')
    p.add_argument('file')
    p.set_defaults(func=cmd_import)

    return parser


def main(argv: Optional[List[str]] = None, sync: Optional[CalendarSync] = None) -> int:
    args = build_parser().parse_args(argv)
    if sync is None:
        settings = load_settings()
        configure_logging(settings.log_level)
        api = EventsApiClient(args.api_url or settings.api_url, timeout=settings.request_timeout)
        sync = CalendarSync(EventStore(), api, notify=print_notifier,
                            max_workers=settings.sync_workers)

    try:
        if args.command != 'import' and not sync.load():
            return 1
        return args.func(sync, args)
    except CalendarError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
