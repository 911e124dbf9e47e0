"""Tests for the HTTP client, run against the Flask app through a test-client session."""

import json

import pytest
import requests

from api_client import EventsApiClient
from conftest import Notifications, make_event, scheduled
from errors import ConflictError, NotFoundError, TransportError, ValidationError
from event_store import EventStore
from sync import CalendarSync


@pytest.fixture
def api(flask_session):
    return EventsApiClient(flask_session.base_url, session=flask_session)


class _Response:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text

    def json(self):
        return json.loads(self.text)


class _StubSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def request(self, method, url, json=None, timeout=None):
        if self.error is not None:
            raise self.error
        return self.response


class TestEventsApiClient:

    def test_crud_round_trip(self, api):
        created = api.create_event(scheduled())
        assert created == scheduled()

        updated = api.update_event('e1', {'title': 'Retro'})
        assert updated.title == 'Retro'
        assert api.get_event('e1').title == 'Retro'

        assert [e.id for e in api.list_events()] == ['e1']
        assert api.delete_event('e1').id == 'e1'
        assert api.list_events() == []

    def test_update_with_event_sends_every_field(self, api, flask_session):
        api.create_event(scheduled())

        updated = api.update_event('e1', scheduled().unscheduled())

        assert not updated.is_scheduled
        assert flask_session.requests[-1] == ('PUT', '/api/events/e1')

    def test_status_codes_map_to_errors(self, api):
        api.create_event(make_event())

        with pytest.raises(ConflictError):
            api.create_event(make_event())
        with pytest.raises(NotFoundError):
            api.get_event('missing')
        with pytest.raises(ValidationError):
            api.create_event(make_event(id='bad', color='#000000'))

    def test_health(self, api):
        assert api.health()['success'] is True

    def test_migrate(self, api):
        api.create_event(make_event(id='a'))

        result = api.migrate([make_event(id='a'), make_event(id='b')])

        assert result == {'migrated': 1, 'skipped': 1, 'message': 'Successfully migrated 1 events'}

    def test_connection_failure(self):
        session = _StubSession(error=requests.ConnectionError('refused'))
        client = EventsApiClient('http://calendar.test/api', session=session)

        with pytest.raises(TransportError):
            client.list_events()

    def test_non_json_body(self):
        session = _StubSession(response=_Response(502, '<html>Bad Gateway</html>'))
        client = EventsApiClient('http://calendar.test/api', session=session)

        with pytest.raises(TransportError) as exc:
            client.list_events()
        assert exc.value.status_code == 502

    def test_unsuccessful_envelope(self):
        session = _StubSession(response=_Response(200, '{"success": false, "error": "nope"}'))
        client = EventsApiClient('http://calendar.test/api', session=session)

        with pytest.raises(TransportError, match='nope'):
            client.list_events()

    @pytest.mark.parametrize('body', ['{"success": true}', '{"success": true, "data": "e1"}'])
    def test_success_without_event_data(self, body):
        client = EventsApiClient('http://calendar.test/api', session=_StubSession(response=_Response(200, body)))

        with pytest.raises(TransportError):
            client.create_event(make_event())
        with pytest.raises(TransportError):
            client.update_event('e1', {'title': 'x'})
        with pytest.raises(TransportError):
            client.delete_event('e1')
        with pytest.raises(TransportError):
            client.list_events()

    def test_server_error(self):
        session = _StubSession(response=_Response(500, '{"success": false, "error": "boom"}'))
        client = EventsApiClient('http://calendar.test/api', session=session)

        with pytest.raises(TransportError) as exc:
            client.delete_event('e1')
        assert exc.value.status_code == 500


class TestSyncAgainstServer:

    def test_series_lifecycle(self, api):
        notifications = Notifications()
        sync = CalendarSync(EventStore(), api, notify=notifications, max_workers=1)
        base = scheduled(repeat_type='daily', repeat_end_date='2025-06-04')

        assert sync.add_event(base)
        assert len(api.list_events()) == 3

        instance = sync.store.events[1]
        assert sync.update_event(instance.replace(title='Renamed', repeat_end_date='2025-06-05'))

        assert sync.load()
        assert len(sync.store) == 4
        assert {e.title for e in sync.store} == {'Renamed'}

        assert sync.unschedule_event(sync.store.events[0].id)
        remote = api.list_events()
        assert len(remote) == 1
        assert not remote[0].is_scheduled
        assert notifications.errors == []

    def test_rejected_create_rolls_back(self, api):
        sync = CalendarSync(EventStore(), api, notify=Notifications(), max_workers=1)
        api.create_event(make_event(id='taken'))

        assert not sync.add_event(make_event(id='taken', title='Second'))

        assert len(sync.store) == 0
