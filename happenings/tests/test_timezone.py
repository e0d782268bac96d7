"""Tests for date-key utilities in the listing timezone (America/Denver)."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from happenings.errors import FormatError
from happenings.utils.timezone import (
    add_days,
    date_key_from_datetime,
    days_between,
    end_of_day,
    format_date_group_header,
    format_date_key_for_email,
    format_date_key_long,
    format_date_key_short,
    is_valid_date_key,
    is_valid_time_of_day,
    parse_date_key,
    today,
    weekday_name,
)

DENVER = ZoneInfo('America/Denver')


class TestToday:
    """today() must follow the listing timezone's calendar."""

    def test_late_evening_local_is_still_same_day(self):
        """23:30 local on D is D, not D+1."""
        assert today(datetime(2026, 3, 10, 23, 30, tzinfo=DENVER)) == '2026-03-10'

    def test_same_instant_given_in_utc(self):
        """The UTC rendering of 23:30 Denver is already the next UTC day."""
        assert today(datetime(2026, 3, 11, 5, 30, tzinfo=timezone.utc)) == '2026-03-10'

    def test_instant_in_other_timezone(self):
        tokyo = ZoneInfo('Asia/Tokyo')
        assert today(datetime(2026, 7, 2, 14, 0, tzinfo=tokyo)) == '2026-07-01'

    def test_naive_datetime_is_utc(self):
        assert date_key_from_datetime(datetime(2026, 1, 15, 3, 0)) == '2026-01-14'

    def test_wall_clock_default_is_valid_key(self):
        assert is_valid_date_key(today())


class TestAddDays:
    def test_simple(self):
        assert add_days('2026-03-01', 9) == '2026-03-10'

    def test_negative(self):
        assert add_days('2026-03-01', -1) == '2026-02-28'

    def test_across_spring_forward(self):
        assert add_days('2026-03-07', 1) == '2026-03-08'
        assert add_days('2026-03-08', 1) == '2026-03-09'

    def test_across_fall_back(self):
        assert add_days('2026-10-31', 1) == '2026-11-01'
        assert add_days('2026-11-01', 1) == '2026-11-02'

    def test_across_year_and_leap_day(self):
        assert add_days('2027-12-31', 1) == '2028-01-01'
        assert add_days('2028-02-28', 1) == '2028-02-29'

    def test_invalid_input(self):
        with pytest.raises(FormatError):
            add_days('2026-3-1', 1)


class TestEndOfDay:
    def test_last_moment_in_listing_timezone(self):
        moment = end_of_day('2026-03-10')
        assert moment.tzinfo == DENVER
        assert moment.date().isoformat() == '2026-03-10'
        assert (moment.hour, moment.minute, moment.second) == (23, 59, 59)
        assert date_key_from_datetime(moment) == '2026-03-10'

    def test_invalid_input(self):
        with pytest.raises(FormatError):
            end_of_day('not-a-date')


class TestParsing:
    @pytest.mark.parametrize('key', ['2026-02-30', '2026-13-01', '20260301', '2026/03/01', '', None, 20260301])
    def test_invalid_keys(self, key):
        with pytest.raises(FormatError):
            parse_date_key(key)
        assert not is_valid_date_key(key)

    def test_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_date_key('nope')

    def test_days_between(self):
        assert days_between('2026-03-01', '2026-05-30') == 90

    @pytest.mark.parametrize('value,expected', [
        ('19:00', True),
        ('07:30:00', True),
        ('24:00', False),
        ('7pm', False),
        ('', False),
        (None, False),
    ])
    def test_time_of_day(self, value, expected):
        assert is_valid_time_of_day(value) is expected


class TestFormatting:
    def test_weekday_name(self):
        assert weekday_name('2026-03-01') == 'Sunday'

    def test_long(self):
        assert format_date_key_long('2026-01-18') == 'Sunday, January 18, 2026'

    def test_short(self):
        assert format_date_key_short('2026-01-18') == 'Sun, Jan 18'

    def test_email(self):
        assert format_date_key_for_email('2026-01-08') == '01-08-2026'

    def test_group_header(self):
        assert format_date_group_header('2026-03-01', '2026-03-01') == 'Today'
        assert format_date_group_header('2026-03-02', '2026-03-01') == 'Tomorrow'
        assert format_date_group_header('2026-03-05', '2026-03-01') == 'Thu, Mar 5'
