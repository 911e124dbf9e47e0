"""Shared fixtures: an in-memory fake of the events API and a Flask test app."""

import json
import threading

import pytest

from app import create_app
from database import Database
from errors import ConflictError, NotFoundError, TransportError
from event_store import EventStore
from models import EVENT_COLORS, Event
from settings import Settings
from sync import CalendarSync


def make_event(**overrides) -> Event:
    values = {
        'id': 'e1',
        'title': 'Standup',
        'color': EVENT_COLORS[3],
    }
    values.update(overrides)
    return Event(**values)


def scheduled(event_id='e1', day='Mon', time_slot=36, duration=4, week_start='2025-06-02', **overrides) -> Event:
    return make_event(id=event_id, day=day, time_slot=time_slot, duration=duration,
                      week_start=week_start, **overrides)


class FakeEventsApi:
    """Stands in for EventsApiClient; ``fail`` makes chosen calls raise."""

    def __init__(self, events=()):
        self.events = {e.id: e for e in events}
        self.calls = []
        self.failures = {}
        self._lock = threading.Lock()

    def fail(self, method, event_id='*', error=None):
        self.failures[method] = (event_id, error or TransportError('500 from server', 500))

    def _record(self, method, event_id=None):
        with self._lock:
            self.calls.append((method, event_id))
        rule = self.failures.get(method)
        if rule and rule[0] in ('*', event_id):
            raise rule[1]

    def calls_for(self, method):
        return [event_id for m, event_id in self.calls if m == method]

    def list_events(self):
        self._record('list')
        return list(self.events.values())

    def create_event(self, event):
        self._record('create', event.id)
        with self._lock:
            if event.id in self.events:
                raise ConflictError('Event with this ID already exists')
            self.events[event.id] = event
        return event

    def update_event(self, event_id, changes):
        self._record('update', event_id)
        if event_id not in self.events:
            raise NotFoundError('Event not found')
        self.events[event_id] = changes
        return changes

    def delete_event(self, event_id):
        self._record('delete', event_id)
        with self._lock:
            if event_id not in self.events:
                raise NotFoundError('Event not found')
            return self.events.pop(event_id)

    def migrate(self, events):
        self._record('migrate')
        migrated = 0
        for event in events:
            if event.id not in self.events:
                self.events[event.id] = event
                migrated += 1
        return {'migrated': migrated, 'skipped': len(events) - migrated, 'message': ''}


class Notifications(list):
    def __call__(self, message, level='success'):
        self.append((level, message))

    def __bool__(self):
        # A notifier is always present, even before it has recorded anything
        return True

    @property
    def errors(self):
        return [message for level, message in self if level == 'error']


@pytest.fixture
def notifications():
    return Notifications()


@pytest.fixture
def fake_api():
    return FakeEventsApi()


@pytest.fixture
def make_sync(notifications):
    """Build a CalendarSync whose store and fake API both start with ``events``."""

    def factory(events=(), api=None):
        api = api or FakeEventsApi(events)
        return CalendarSync(EventStore(events), api, notify=notifications, max_workers=4)

    return factory


@pytest.fixture
def app():
    database = Database()
    app = create_app(Settings(), database=database)
    app.config['TESTING'] = True
    yield app
    database.close()


@pytest.fixture
def client(app):
    return app.test_client()


class _FlaskResponse:
    def __init__(self, response):
        self.status_code = response.status_code
        self.text = response.get_data(as_text=True)

    def json(self):
        return json.loads(self.text)


class FlaskSession:
    """Routes requests-style calls to a Flask test client."""

    def __init__(self, client, base_url='http://calendar.test/api'):
        self.client = client
        self.base_url = base_url
        self.requests = []

    def request(self, method, url, json=None, timeout=None):
        path = '/api' + url[len(self.base_url):]
        self.requests.append((method, path))
        return _FlaskResponse(self.client.open(path, method=method, json=json))


@pytest.fixture
def flask_session(client):
    return FlaskSession(client)
