"""Tests for override normalization and write-path validation."""

import pytest

from happenings.errors import FormatError, InvariantViolation
from happenings.occurrences.overrides import (
    ALLOWED_OVERRIDE_FIELDS,
    build_override_map,
    check_location_exclusivity,
    normalize_override,
    prepare_override_write,
    sanitize_override_patch,
)

TODAY = '2026-03-01'


class TestNormalizeOverride:
    def test_patch_wins_over_legacy_column(self):
        override = normalize_override({
            'event_id': 1,
            'date_key': '2026-03-10',
            'status': None,
            'override_start_time': '18:00',
            'override_notes': 'Bring a guitar',
            'override_patch': {'start_time': '20:00'},
        })
        assert override.event_id == '1'
        assert override.status == 'normal'
        assert override.patch == {'start_time': '20:00', 'host_notes': 'Bring a guitar'}

    def test_legacy_only_row(self):
        override = normalize_override({
            'event_id': 2,
            'date_key': '2026-03-10',
            'status': 'cancelled',
            'override_cover_image_url': 'https://img/flyer.png',
        })
        assert override.is_cancelled
        assert override.patch == {'cover_image_url': 'https://img/flyer.png'}

    def test_unknown_patch_keys_dropped(self):
        override = normalize_override({
            'event_id': 1,
            'date_key': '2026-03-10',
            'override_patch': {'recurrence_rule': 'weekly', 'title': 'Special'},
        })
        assert override.patch == {'title': 'Special'}

    def test_non_object_patch_ignored(self):
        override = normalize_override({'event_id': 1, 'date_key': '2026-03-10', 'override_patch': ['x']})
        assert override.patch == {}
        assert override.is_empty

    def test_orm_like_object(self):
        class Row:
            event_id = 3
            date_key = '2026-03-12'
            status = 'normal'
            override_start_time = None
            override_cover_image_url = None
            override_notes = None
            override_patch = {'event_date': '2026-03-13'}

        override = normalize_override(Row())
        assert override.rescheduled_date == '2026-03-13'

    def test_same_date_is_not_a_reschedule(self):
        override = normalize_override({'event_id': 1, 'date_key': '2026-03-10', 'override_patch': {'event_date': '2026-03-10'}})
        assert override.rescheduled_date is None


class TestBuildOverrideMap:
    def test_keys_by_event_and_date(self):
        overrides = build_override_map([
            {'event_id': 1, 'date_key': '2026-03-10', 'status': 'cancelled'},
            {'event_id': 1, 'date_key': '2026-03-17', 'override_start_time': '21:00'},
            {'event_id': 2, 'date_key': '2026-03-10', 'override_notes': 'Late start'},
        ])
        assert set(overrides) == {('1', '2026-03-10'), ('1', '2026-03-17'), ('2', '2026-03-10')}
        assert overrides[('1', '2026-03-10')].is_cancelled
        assert overrides[('1', '2026-03-17')].patch == {'start_time': '21:00'}

    def test_empty(self):
        assert build_override_map([]) == {}


class TestSanitize:
    def test_only_allow_listed_keys_survive(self):
        patch = sanitize_override_patch({'title': 'A', 'day_of_week': 'Monday', 'status': 'cancelled'})
        assert patch == {'title': 'A'}

    def test_allow_list_covers_location_and_signup(self):
        for name in ('venue_id', 'custom_location_name', 'signup_time', 'is_published', 'event_date'):
            assert name in ALLOWED_OVERRIDE_FIELDS


class TestPrepareOverrideWrite:
    def test_reschedule_to_past_rejected(self):
        with pytest.raises(InvariantViolation):
            prepare_override_write(1, '2026-03-10', override_patch={'event_date': '2026-02-28'}, today_key=TODAY)

    def test_reschedule_to_today_allowed(self):
        write = prepare_override_write(1, '2026-03-10', override_patch={'event_date': TODAY}, today_key=TODAY)
        assert write.override_patch == {'event_date': TODAY}

    def test_reschedule_earlier_than_original_allowed(self):
        write = prepare_override_write(1, '2026-03-20', override_patch={'event_date': '2026-03-05'}, today_key=TODAY)
        assert write.override_patch == {'event_date': '2026-03-05'}
        assert not write.is_empty

    def test_same_date_stripped(self):
        write = prepare_override_write(1, '2026-03-10', override_patch={'event_date': '2026-03-10'}, today_key=TODAY)
        assert write.override_patch is None
        assert write.is_empty

    def test_invalid_reschedule_date(self):
        with pytest.raises(FormatError):
            prepare_override_write(1, '2026-03-10', override_patch={'event_date': 'next week'}, today_key=TODAY)

    def test_venue_and_custom_location_rejected(self):
        with pytest.raises(InvariantViolation):
            prepare_override_write(
                1, '2026-03-10',
                override_patch={'venue_id': 4, 'custom_location_name': 'The Park'},
                today_key=TODAY,
            )

    def test_invalid_status(self):
        with pytest.raises(InvariantViolation):
            prepare_override_write(1, '2026-03-10', status='postponed', today_key=TODAY)

    def test_non_object_patch(self):
        with pytest.raises(InvariantViolation):
            prepare_override_write(1, '2026-03-10', override_patch=['title'], today_key=TODAY)

    def test_invalid_date_key(self):
        with pytest.raises(FormatError):
            prepare_override_write(1, '03/10/2026', today_key=TODAY)

    def test_invalid_times(self):
        with pytest.raises(FormatError):
            prepare_override_write(1, '2026-03-10', override_start_time='7pm', today_key=TODAY)
        with pytest.raises(FormatError):
            prepare_override_write(1, '2026-03-10', override_patch={'end_time': '25:00'}, today_key=TODAY)

    @pytest.mark.parametrize('kwargs', [
        {},
        {'status': 'normal'},
        {'override_patch': {}},
        {'override_patch': {'bogus': True}},
        {'override_notes': ''},
    ])
    def test_empty_override(self, kwargs):
        assert prepare_override_write(1, '2026-03-10', today_key=TODAY, **kwargs).is_empty

    def test_cancelled_is_not_empty(self):
        write = prepare_override_write(1, '2026-03-10', status='cancelled', today_key=TODAY)
        assert not write.is_empty
        assert write.to_row()['status'] == 'cancelled'

    def test_unknown_keys_dropped(self):
        write = prepare_override_write(
            1, '2026-03-10',
            override_patch={'title': 'Holiday Edition', 'recurrence_rule': 'weekly'},
            today_key=TODAY,
        )
        assert write.override_patch == {'title': 'Holiday Edition'}


class TestLocationExclusivity:
    def test_either_is_fine(self):
        check_location_exclusivity({'venue_id': 1})
        check_location_exclusivity({'custom_location_name': 'Backyard'})
        check_location_exclusivity({'venue_id': None, 'custom_location_name': 'Backyard'})

    def test_both_rejected(self):
        with pytest.raises(InvariantViolation):
            check_location_exclusivity({'venue_id': 1, 'custom_location_name': 'Backyard'})
