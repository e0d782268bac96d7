"""Tests for storage queries and override persistence."""

import pytest
from sqlalchemy import func, select

from happenings.db.queries import (
    REVERTED,
    UPSERTED,
    delete_override,
    fetch_listing_events,
    fetch_overrides,
    fetch_venue_map,
    save_override,
)
from happenings.errors import FormatError, InvariantViolation
from happenings.models import Event, OccurrenceOverride

TODAY = '2026-03-01'


def override_count(session):
    return session.scalar(select(func.count()).select_from(OccurrenceOverride))


class TestEventModel:
    def test_venue_and_custom_location_rejected(self, add_venue):
        venue = add_venue()
        with pytest.raises(InvariantViolation):
            Event(title='Both', venue_id=venue.id, custom_location_name='Backyard')

    def test_to_dict_denormalizes_venue(self, add_venue, add_event):
        venue = add_venue(name='The Lounge', address='1 Main St')
        event = add_event(day_of_week='Tuesday', venue_id=venue.id)
        record = event.to_dict()
        assert record['venue_name'] == 'The Lounge'
        assert record['venue_address'] == '1 Main St'
        assert record['custom_dates'] == []


class TestFetchListingEvents:
    def test_visibility_filter(self, test_db_session, add_event):
        shown = add_event(title='Shown')
        add_event(title='Draft', is_published=False)
        add_event(title='Gone', status='cancelled')
        unverified = add_event(title='Unverified', status='unverified')

        events = fetch_listing_events(test_db_session)
        assert [e.id for e in events] == [shown.id, unverified.id]

    def test_venue_filter(self, test_db_session, add_venue, add_event):
        venue = add_venue()
        at_venue = add_event(title='Here', venue_id=venue.id)
        add_event(title='Elsewhere')
        assert [e.id for e in fetch_listing_events(test_db_session, venue.id)] == [at_venue.id]


class TestFetchOverrides:
    def test_window_and_event_filter(self, test_db_session, add_event):
        first = add_event(title='First', day_of_week='Tuesday')
        second = add_event(title='Second', day_of_week='Tuesday')
        for event_id, date_key in [(first.id, '2026-02-24'), (first.id, '2026-03-10'), (second.id, '2026-03-10')]:
            save_override(test_db_session, event_id, {'date_key': date_key, 'status': 'cancelled'}, '2026-01-01')
        test_db_session.commit()

        rows = fetch_overrides(test_db_session, [first.id], TODAY, '2026-03-31')
        assert [(r.event_id, r.date_key) for r in rows] == [(first.id, '2026-03-10')]

    def test_no_events(self, test_db_session):
        assert fetch_overrides(test_db_session, [], TODAY, '2026-03-31') == []

    def test_invalid_window(self, test_db_session):
        with pytest.raises(FormatError):
            fetch_overrides(test_db_session, [1], 'today', '2026-03-31')


class TestSaveOverride:
    def test_empty_override_on_missing_row_is_noop(self, test_db_session, add_event):
        event = add_event(day_of_week='Tuesday')
        assert save_override(test_db_session, event.id, {'date_key': '2026-03-10', 'status': 'normal'}, TODAY) == REVERTED
        assert override_count(test_db_session) == 0

    def test_empty_override_deletes_existing_row_idempotently(self, test_db_session, add_event):
        event = add_event(day_of_week='Tuesday')
        request = {'date_key': '2026-03-10', 'override_patch': {'start_time': '20:00'}}
        assert save_override(test_db_session, event.id, request, TODAY) == UPSERTED
        assert override_count(test_db_session) == 1

        empty = {'date_key': '2026-03-10', 'status': 'normal'}
        assert save_override(test_db_session, event.id, empty, TODAY) == REVERTED
        assert override_count(test_db_session) == 0
        assert save_override(test_db_session, event.id, empty, TODAY) == REVERTED
        assert override_count(test_db_session) == 0

    def test_upsert_replaces_existing_row(self, test_db_session, add_event):
        event = add_event(day_of_week='Tuesday')
        save_override(test_db_session, event.id, {'date_key': '2026-03-10', 'override_notes': 'Early'}, TODAY)
        save_override(test_db_session, event.id, {'date_key': '2026-03-10', 'status': 'cancelled'}, TODAY)

        rows = test_db_session.scalars(select(OccurrenceOverride)).all()
        assert len(rows) == 1
        assert rows[0].status == 'cancelled'
        assert rows[0].override_notes is None

    def test_past_reschedule_rejected(self, test_db_session, add_event):
        event = add_event(day_of_week='Tuesday')
        with pytest.raises(InvariantViolation):
            save_override(
                test_db_session, event.id,
                {'date_key': '2026-03-10', 'override_patch': {'event_date': '2026-02-20'}},
                TODAY,
            )
        assert override_count(test_db_session) == 0


class TestDeleteOverride:
    def test_delete(self, test_db_session, add_event):
        event = add_event(day_of_week='Tuesday')
        save_override(test_db_session, event.id, {'date_key': '2026-03-10', 'status': 'cancelled'}, TODAY)
        assert delete_override(test_db_session, event.id, '2026-03-10') is True
        assert delete_override(test_db_session, event.id, '2026-03-10') is False
        assert override_count(test_db_session) == 0


def test_fetch_venue_map(test_db_session, add_venue):
    venue = add_venue(name='Union Hall', address='2 Oak Ave')
    assert fetch_venue_map(test_db_session, [venue.id, None]) == {venue.id: venue.to_dict()}
    assert fetch_venue_map(test_db_session, []) == {}
