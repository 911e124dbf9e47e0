"""Tests for the persistence REST API."""

from conftest import make_event, scheduled


def post(client, event):
    return client.post('/api/events', json=event.to_dict())


class TestHealth:

    def test_health(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200
        assert resp.get_json()['status'] == 'ok'


class TestEventCrud:

    def test_create_and_fetch(self, client):
        resp = post(client, scheduled())

        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['timeSlot'] == 36
        assert data['repeatType'] == 'none'
        assert data['createdAt'] == data['updatedAt']

        fetched = client.get('/api/events/e1').get_json()['data']
        assert fetched['title'] == 'Standup'

    def test_unscheduled_event_has_no_scheduling_keys(self, client):
        data = post(client, make_event()).get_json()['data']
        assert 'day' not in data
        assert 'timeSlot' not in data

    def test_missing_required_fields(self, client):
        resp = client.post('/api/events', json={'id': 'x', 'title': 'No colour'})

        assert resp.status_code == 400
        assert resp.get_json() == {'success': False, 'error': 'Missing required fields: id, title, or color'}

    def test_duplicate_id(self, client):
        post(client, make_event())
        resp = post(client, make_event(title='Again'))

        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'Event with this ID already exists'

    def test_schema_violation(self, client):
        resp = post(client, scheduled(time_slot=120))

        assert resp.status_code == 400
        assert 'timeSlot' in resp.get_json()['error']

    def test_list_is_newest_first(self, client):
        for event_id in ('a', 'b', 'c'):
            post(client, make_event(id=event_id))

        data = client.get('/api/events').get_json()['data']

        assert [e['id'] for e in data] == ['c', 'b', 'a']

    def test_unknown_event(self, client):
        assert client.get('/api/events/nope').status_code == 404
        assert client.put('/api/events/nope', json={'title': 'x'}).status_code == 404
        assert client.delete('/api/events/nope').status_code == 404

    def test_update_ignores_id_in_body(self, client):
        post(client, scheduled())

        resp = client.put('/api/events/e1', json={'id': 'hijack', '_id': 'x', 'title': 'Retro'})

        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['id'] == 'e1'
        assert data['title'] == 'Retro'
        assert client.get('/api/events/hijack').status_code == 404

    def test_update_with_nulls_unschedules(self, client):
        post(client, scheduled())

        resp = client.put('/api/events/e1', json=scheduled().unscheduled().to_dict())

        data = resp.get_json()['data']
        assert resp.status_code == 200
        assert 'day' not in data and 'weekStart' not in data

    def test_partial_scheduling_update_is_rejected(self, client):
        post(client, scheduled())

        resp = client.put('/api/events/e1', json={'day': None})

        assert resp.status_code == 400
        assert client.get('/api/events/e1').get_json()['data']['day'] == 'Mon'

    def test_delete(self, client):
        post(client, make_event())

        resp = client.delete('/api/events/e1')

        assert resp.status_code == 200
        assert resp.get_json()['data']['id'] == 'e1'
        assert client.get('/api/events').get_json()['data'] == []


class TestMigrate:

    def test_body_must_hold_a_list(self, client):
        resp = client.post('/api/migrate', json={'events': 'nope'})
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'Expected an array of events'

    def test_empty_list(self, client):
        resp = client.post('/api/migrate', json={'events': []})
        assert resp.status_code == 200
        assert resp.get_json()['migrated'] == 0

    def test_every_event_needs_required_fields(self, client):
        resp = client.post('/api/migrate', json={'events': [make_event().to_dict(), {'id': 'x'}]})

        assert resp.status_code == 400
        assert client.get('/api/events').get_json()['data'] == []

    def test_imports_new_and_skips_existing(self, client):
        post(client, make_event(id='a'))
        events = [make_event(id=i).to_dict() for i in 'abc']

        resp = client.post('/api/migrate', json={'events': events})

        body = resp.get_json()
        assert resp.status_code == 201
        assert (body['migrated'], body['skipped']) == (2, 1)
        assert len(client.get('/api/events').get_json()['data']) == 3

    def test_all_existing(self, client):
        post(client, make_event(id='a'))

        resp = client.post('/api/migrate', json={'events': [make_event(id='a').to_dict()]})

        body = resp.get_json()
        assert resp.status_code == 200
        assert (body['migrated'], body['skipped']) == (0, 1)

    def test_partial_failure(self, client):
        events = [make_event(id='good').to_dict(), make_event(id='bad', color='#000000').to_dict()]

        resp = client.post('/api/migrate', json={'events': events})

        body = resp.get_json()
        assert resp.status_code == 207
        assert body['migrated'] == 1
        assert body['error'] == 'Some events failed to migrate'
        assert client.get('/api/events/good').status_code == 200

    def test_nothing_stored(self, client):
        events = [make_event(id='bad', color='#000000').to_dict()]

        resp = client.post('/api/migrate', json={'events': events})

        assert resp.status_code == 500
        assert resp.get_json()['success'] is False
