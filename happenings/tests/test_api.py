"""Tests for the FastAPI routes."""

ADMIN_HEADERS = {'Authorization': 'test-admin-key'}


class TestHealth:
    def test_health(self, client):
        response = client.get('/')
        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'healthy'
        assert body['timezone'] == 'America/Denver'


class TestHappenings:
    def test_series_and_unknown(self, client, add_event):
        weekly = add_event(title='Tuesday Open Mic', day_of_week='Tuesday')
        add_event(title='Mystery Jam')
        add_event(title='Draft', day_of_week='Monday', is_published=False)

        response = client.get('/api/happenings', params={'days': 30})

        assert response.status_code == 200
        body = response.json()
        assert body['window'] == {'start_key': '2026-03-01', 'end_key': '2026-03-31'}
        assert [s['event']['id'] for s in body['series']] == [weekly.id]
        series = body['series'][0]
        assert series['recurrence_summary'] == 'Every Tuesday'
        assert series['next_occurrence']['date_key'] == '2026-03-03'
        assert series['total_upcoming_count'] == 5
        assert [e['title'] for e in body['unknown_events']] == ['Mystery Jam']
        assert body['metrics']['total_occurrences'] == 5

    def test_unreadable_rule_does_not_break_page(self, client, add_event):
        add_event(title='Broken', recurrence_rule='FREQ=SOMETIMES')
        add_event(title='Fine', day_of_week='Friday')

        body = client.get('/api/happenings', params={'days': 30}).json()

        assert [s['event']['title'] for s in body['series']] == ['Fine']
        assert [e['title'] for e in body['unknown_events']] == ['Broken']

    def test_malformed_custom_dates_listed_as_unknown(self, client, add_event):
        add_event(title='Odd Dates', recurrence_rule='custom', custom_dates=5)
        add_event(title='Fine', day_of_week='Friday')

        response = client.get('/api/happenings', params={'days': 30})

        assert response.status_code == 200
        body = response.json()
        assert [s['event']['title'] for s in body['series']] == ['Fine']
        assert [e['title'] for e in body['unknown_events']] == ['Odd Dates']

    def test_venue_filter(self, client, add_venue, add_event):
        venue = add_venue(name='The Lounge')
        add_event(title='Here', day_of_week='Tuesday', venue_id=venue.id)
        add_event(title='Elsewhere', day_of_week='Tuesday')

        body = client.get('/api/happenings', params={'venue_id': venue.id, 'days': 30}).json()

        assert [s['event']['title'] for s in body['series']] == ['Here']
        assert body['series'][0]['next_occurrence']['location_name'] == 'The Lounge'

    def test_invalid_days(self, client):
        assert client.get('/api/happenings', params={'days': 0}).status_code == 422

    def test_timeline(self, client, add_event):
        add_event(title='Sunday Jam', day_of_week='Sunday', start_time='20:00')

        body = client.get('/api/happenings/timeline', params={'days': 7}).json()

        assert [g['date'] for g in body['groups']] == ['2026-03-01', '2026-03-08']
        assert body['groups'][0]['label'] == 'Today'
        assert body['groups'][0]['occurrences'][0]['title'] == 'Sunday Jam'


class TestEventDetail:
    def test_event(self, client, add_event):
        event = add_event(title='Monday Show', day_of_week='Monday')

        response = client.get(f'/api/events/{event.id}')

        assert response.status_code == 200
        body = response.json()
        assert body['event']['title'] == 'Monday Show'
        assert body['series']['is_one_time'] is False
        assert body['next_occurrence']['date'] == '2026-03-02'
        assert body['next_occurrence']['is_tomorrow'] is True
        assert body['is_unknown_schedule'] is False

    def test_unknown_schedule(self, client, add_event):
        event = add_event(title='Someday')
        body = client.get(f'/api/events/{event.id}').json()
        assert body['series'] is None
        assert body['is_unknown_schedule'] is True

    def test_missing(self, client):
        assert client.get('/api/events/999').status_code == 404


class TestOverrides:
    def test_requires_admin_key(self, client, add_event):
        event = add_event(day_of_week='Tuesday')
        payload = {'date_key': '2026-03-10', 'status': 'cancelled'}

        assert client.post(f'/api/events/{event.id}/overrides', json=payload).status_code == 401
        assert client.post(
            f'/api/events/{event.id}/overrides', json=payload, headers={'Authorization': 'wrong'}
        ).status_code == 401
        assert client.delete(f'/api/events/{event.id}/overrides/2026-03-10').status_code == 401

    def test_upsert_list_and_revert(self, client, add_event):
        event = add_event(day_of_week='Tuesday', start_time='19:00')
        url = f'/api/events/{event.id}/overrides'

        response = client.post(
            url,
            json={'date_key': '2026-03-10', 'override_patch': {'start_time': '20:00', 'day_of_week': 'Friday'}},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()['result'] == 'upserted'

        rows = client.get(url).json()
        assert [(r['date_key'], r['override_patch']) for r in rows] == [('2026-03-10', {'start_time': '20:00'})]

        series = client.get('/api/happenings', params={'days': 30}).json()['series'][0]
        times = {o['date_key']: o['start_time'] for o in series['upcoming_occurrences']}
        assert times['2026-03-10'] == '20:00'
        assert times['2026-03-17'] == '19:00'

        response = client.post(url, json={'date_key': '2026-03-10', 'status': 'normal'}, headers=ADMIN_HEADERS)
        assert response.json()['result'] == 'reverted'
        assert client.get(url).json() == []

    def test_cancel_shows_in_timeline(self, client, add_event):
        event = add_event(day_of_week='Tuesday')
        client.post(
            f'/api/events/{event.id}/overrides',
            json={'date_key': '2026-03-03', 'status': 'cancelled', 'override_notes': 'Power outage'},
            headers=ADMIN_HEADERS,
        )

        body = client.get('/api/happenings/timeline', params={'days': 7}).json()

        assert body['groups'] == []
        assert body['cancelled'][0]['date_key'] == '2026-03-03'
        assert body['cancelled'][0]['host_notes'] == 'Power outage'

    def test_invalid_writes_are_400(self, client, add_event):
        event = add_event(day_of_week='Tuesday')
        url = f'/api/events/{event.id}/overrides'

        past = {'date_key': '2026-03-10', 'override_patch': {'event_date': '2026-02-01'}}
        not_object = {'date_key': '2026-03-10', 'override_patch': 'cancel it'}
        bad_key = {'date_key': 'March 10'}
        both = {'date_key': '2026-03-10', 'override_patch': {'venue_id': 1, 'custom_location_name': 'Park'}}

        for payload in (past, not_object, bad_key, both):
            assert client.post(url, json=payload, headers=ADMIN_HEADERS).status_code == 400

    def test_delete(self, client, add_event):
        event = add_event(day_of_week='Tuesday')
        url = f'/api/events/{event.id}/overrides'
        client.post(url, json={'date_key': '2026-03-10', 'status': 'cancelled'}, headers=ADMIN_HEADERS)

        assert client.delete(f'{url}/2026-03-10', headers=ADMIN_HEADERS).json()['deleted'] is True
        assert client.delete(f'{url}/2026-03-10', headers=ADMIN_HEADERS).json()['deleted'] is False
        assert client.delete(f'{url}/not-a-date', headers=ADMIN_HEADERS).status_code == 400

    def test_missing_event(self, client):
        response = client.post(
            '/api/events/999/overrides', json={'date_key': '2026-03-10', 'status': 'cancelled'}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 404
