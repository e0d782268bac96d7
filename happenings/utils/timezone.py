"""Date-key utilities for the listing timezone.

A date key is a calendar date written as ``YYYY-MM-DD`` in the deployment's
civil timezone. It is its own value type: converting an instant to a key
always goes through the listing timezone, never through UTC truncation.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ..config.listings import LISTING_TIMEZONE
from ..errors import FormatError

DATE_KEY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_OF_DAY_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)(:([0-5]\d))?$')

# Noon is at least eleven hours away from any DST transition
_ANCHOR_TIME = time(12, 0)


def parse_date_key(date_key: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` key into a date.

    Raises:
        FormatError: If the key is not a real calendar date in that format
    """
    if not isinstance(date_key, str) or not DATE_KEY_PATTERN.match(date_key):
        raise FormatError(f"Invalid date key: {date_key!r}. Expected YYYY-MM-DD.")
    try:
        return date.fromisoformat(date_key)
    except ValueError as e:
        raise FormatError(f"Invalid date key: {date_key!r} ({e})") from e


def is_valid_date_key(date_key: Optional[str]) -> bool:
    """Check whether a value is a strict, real ``YYYY-MM-DD`` date key."""
    if not date_key:
        return False
    try:
        parse_date_key(date_key)
    except FormatError:
        return False
    return True


def date_key_from_date(value: date) -> str:
    """Format a calendar date as a date key."""
    return value.isoformat()


def date_key_from_datetime(moment: datetime) -> str:
    """
    Convert an instant to the date key it falls on in the listing timezone.

    Naive datetimes are treated as UTC instants.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(LISTING_TIMEZONE).date().isoformat()


def now_local() -> datetime:
    """Get the current time in the listing timezone."""
    return datetime.now(LISTING_TIMEZONE)


def ensure_local_timezone(moment: Optional[datetime]) -> Optional[datetime]:
    """Attach the listing timezone to naive datetimes, convert aware ones."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=LISTING_TIMEZONE)
    return moment.astimezone(LISTING_TIMEZONE)


def today(now: Optional[datetime] = None) -> str:
    """
    Get today's date key in the listing timezone.

    Args:
        now: Optional instant to evaluate instead of the wall clock

    Returns:
        The date key of ``now`` as seen on a calendar in the listing timezone
    """
    return date_key_from_datetime(now if now is not None else datetime.now(timezone.utc))


def add_days(date_key: str, days: int) -> str:
    """
    Get the date key ``days`` days after ``date_key`` (negative goes back).

    The arithmetic is anchored at noon in the listing timezone so a DST
    transition can never push the result onto a neighbouring date.
    """
    anchor = datetime.combine(parse_date_key(date_key), _ANCHOR_TIME, tzinfo=LISTING_TIMEZONE)
    return (anchor + timedelta(days=days)).astimezone(LISTING_TIMEZONE).date().isoformat()


def end_of_day(date_key: str) -> datetime:
    """Get the last instant of ``date_key`` in the listing timezone."""
    return datetime.combine(parse_date_key(date_key), time.max, tzinfo=LISTING_TIMEZONE)


def days_between(start_key: str, end_key: str) -> int:
    """Number of calendar days from ``start_key`` to ``end_key``."""
    return (parse_date_key(end_key) - parse_date_key(start_key)).days


def weekday_index(date_key: str) -> int:
    """Day of week of a key, 0=Sunday through 6=Saturday."""
    return (parse_date_key(date_key).weekday() + 1) % 7


def weekday_name(date_key: str) -> str:
    """Full weekday name of a key, e.g. ``"Saturday"``."""
    return parse_date_key(date_key).strftime('%A')


def format_date_key_long(date_key: str) -> str:
    """Format a key for messages, e.g. ``"Sunday, January 18, 2026"``."""
    d = parse_date_key(date_key)
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_date_key_short(date_key: str) -> str:
    """Format a key compactly, e.g. ``"Sun, Jan 18"``."""
    d = parse_date_key(date_key)
    return f"{d:%a}, {d:%b} {d.day}"


def format_date_key_for_email(date_key: str) -> str:
    """Format a key as ``MM-DD-YYYY``."""
    d = parse_date_key(date_key)
    return f"{d.month:02d}-{d.day:02d}-{d.year}"


def format_date_group_header(date_key: str, today_key: str) -> str:
    """Header for a timeline group: "Today", "Tomorrow", or a short date."""
    if date_key == today_key:
        return "Today"
    if date_key == add_days(today_key, 1):
        return "Tomorrow"
    return format_date_key_short(date_key)


def is_valid_time_of_day(value: Optional[str]) -> bool:
    """Check ``HH:MM`` or ``HH:MM:SS`` civil time strings."""
    return bool(value) and isinstance(value, str) and bool(TIME_OF_DAY_PATTERN.match(value))
