"""Recurrence interpretation and occurrence expansion.

Every schedule an event can carry is reduced to one ``NormalizedRecurrence``:

- ``event_date`` alone: a one-time event
- ``day_of_week`` alone: weekly on that day
- legacy text in ``recurrence_rule`` ("weekly", "biweekly", "2nd/4th",
  "last", "custom", ...) read together with ``day_of_week``
- an RFC 5545 RRULE ("FREQ=MONTHLY;BYDAY=1TH,3TH", optionally prefixed with
  "RRULE:")

``expand_occurrences`` turns that description into the ordered date keys
inside a window. Recurring schedules are expanded with ``dateutil.rrule``.
"""

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import MAXYEAR, date, datetime, time
from math import gcd
from typing import Any, Callable, Iterator, List, Mapping, Optional, Tuple

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule, rrulestr, weekday

from ..errors import FormatError
from ..utils.timezone import (
    add_days,
    date_key_from_date,
    parse_date_key,
    today as today_key_now,
    weekday_index,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DAY_ABBREVS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]

DAY_NAME_TO_INDEX = {name.lower(): index for index, name in enumerate(DAY_NAMES)}
DAY_ABBREV_TO_INDEX = {abbrev: index for index, abbrev in enumerate(DAY_ABBREVS)}

# Legacy ordinal words stored in recurrence_rule
LEGACY_ORDINAL_TO_NUMBER = {
    "1st": 1,
    "2nd": 2,
    "3rd": 3,
    "4th": 4,
    "5th": 5,
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "last": -1,
}

ORDINAL_LABELS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "5th", -1: "Last"}

# Recurrence frequencies
WEEKLY_FREQUENCY = "weekly"
BIWEEKLY_FREQUENCY = "biweekly"
MONTHLY_FREQUENCY = "monthly"
DAILY_FREQUENCY = "daily"
YEARLY_FREQUENCY = "yearly"
CUSTOM_FREQUENCY = "custom"
ONE_TIME_FREQUENCY = "one-time"
UNKNOWN_FREQUENCY = "unknown"

_RRULE_FREQUENCIES = {
    "DAILY": (DAILY, DAILY_FREQUENCY),
    "WEEKLY": (WEEKLY, WEEKLY_FREQUENCY),
    "MONTHLY": (MONTHLY, MONTHLY_FREQUENCY),
    "YEARLY": (YEARLY, YEARLY_FREQUENCY),
}

_BYDAY_PATTERN = re.compile(r'^([+-]?\d+)?([A-Z]{2})$')
_MULTI_ORDINAL_SPLIT = re.compile(r'[/&,]|\band\b')
_ORDINAL_WORD = re.compile(r'\b(1st|2nd|3rd|4th|5th|first|second|third|fourth|fifth|last)\b')

_SUPPORTED_RRULE_PARTS = {"FREQ", "INTERVAL", "COUNT", "UNTIL", "BYDAY", "BYMONTHDAY", "WKST"}

# Largest BYDAY ordinal accepted per frequency
_MAX_BYDAY_ORDINAL = {"MONTHLY": 5, "YEARLY": 52}

# The Gregorian calendar (weekdays and leap years) repeats every 400 years
GREGORIAN_CYCLE_YEARS = 400
GREGORIAN_CYCLE_MONTHS = GREGORIAN_CYCLE_YEARS * 12


@dataclass(frozen=True)
class NormalizedRecurrence:
    """
    Canonical interpretation of an event's schedule.

    Fields:
        is_recurring: Whether the event repeats
        frequency: One of weekly, biweekly, monthly, daily, yearly, custom,
                   one-time or unknown
        day_of_week_index: 0=Sunday .. 6=Saturday (None when not day-based)
        ordinals: Monthly positions (1=first, -1=last)
        interval: Step between periods (2 = every other)
        start_date: Series anchor date key (event_date), if any
        end_date: Last date key the series may produce, if bounded
        count: Maximum number of occurrences counted from the anchor
        rrule: The RRULE body (without UNTIL) when the rule was an RRULE
        custom_dates: Explicit date keys for custom series
        is_confident: Whether occurrences can be computed reliably
    """
    is_recurring: bool
    frequency: str
    day_of_week_index: Optional[int] = None
    ordinals: Tuple[int, ...] = ()
    interval: int = 1
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    count: Optional[int] = None
    rrule: Optional[str] = None
    custom_dates: Tuple[str, ...] = ()
    is_confident: bool = True

    @property
    def day_abbrev(self) -> Optional[str]:
        if self.day_of_week_index is None:
            return None
        return DAY_ABBREVS[self.day_of_week_index]

    @property
    def day_name(self) -> Optional[str]:
        if self.day_of_week_index is None:
            return None
        return DAY_NAMES[self.day_of_week_index]

    @property
    def is_unknown(self) -> bool:
        """True when no occurrence can be computed from this schedule."""
        if self.frequency == ONE_TIME_FREQUENCY:
            return self.start_date is None
        return not (self.is_recurring and self.is_confident)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_date_key(value: Any, field_name: str) -> Optional[str]:
    key = _clean(value)
    if key is None:
        return None
    try:
        parse_date_key(key)
    except FormatError as e:
        raise FormatError(f"Invalid {field_name}: {e}") from e
    return key


def _positive_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise FormatError(f"Expected a whole number, got {value!r}")
    return number if number > 0 else None


def _day_index_from_name(day_of_week: Optional[str]) -> Optional[int]:
    if not day_of_week:
        return None
    return DAY_NAME_TO_INDEX.get(day_of_week.strip().lower())


def _parse_custom_dates(value: Any) -> Tuple[str, ...]:
    """Sorted, de-duplicated date keys from the custom_dates column."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise FormatError(f"custom_dates must be a list of date keys, got {type(value).__name__}")
    keys = set()
    for entry in value:
        if not isinstance(entry, str):
            raise FormatError(f"custom_dates entries must be date keys, got {entry!r}")
        key = _optional_date_key(entry, "custom_dates")
        if key:
            keys.add(key)
    return tuple(sorted(keys))


def _earliest(*keys: Optional[str]) -> Optional[str]:
    present = [key for key in keys if key]
    return min(present) if present else None


def looks_like_rrule(rule: Optional[str]) -> bool:
    """Check whether a recurrence_rule is RFC 5545 text rather than a legacy word."""
    return bool(rule) and "FREQ=" in rule.upper()


def is_multi_ordinal_pattern(rule: Optional[str]) -> bool:
    """Detect legacy multi-ordinal rules such as "2nd/4th" or "1st & 3rd"."""
    if not rule:
        return False
    text = rule.lower().strip()
    if any(separator in text for separator in ("/", "&", ",")):
        return True
    if re.search(r'\band\b', text):
        return True
    return len(_ORDINAL_WORD.findall(text)) > 1


def parse_ordinals(rule: Optional[str]) -> List[int]:
    """Extract numeric ordinals from a legacy rule ("2nd/last" -> [2, -1])."""
    if not rule:
        return []
    parts = [part.strip() for part in _MULTI_ORDINAL_SPLIT.split(rule.lower().strip())]
    return [LEGACY_ORDINAL_TO_NUMBER[part] for part in parts if part in LEGACY_ORDINAL_TO_NUMBER]


def build_rule_from_ordinals(ordinals: List[int]) -> str:
    """Build the stored legacy rule for ordinals ([3, -1, 1] -> "1st/3rd/last")."""
    ordered = sorted(ordinals, key=lambda o: (o == -1, o))
    return "/".join("last" if o == -1 else ORDINAL_LABELS.get(o, f"{o}th") for o in ordered)


def _parse_until(value: str) -> str:
    if len(value) < 8 or not value[:8].isdigit():
        raise FormatError(f"Invalid RRULE UNTIL value: {value!r}")
    return _optional_date_key(f"{value[0:4]}-{value[4:6]}-{value[6:8]}", "RRULE UNTIL")


def _rrule_positive_int(parts: Mapping[str, str], key: str, rule: str) -> Optional[int]:
    if key not in parts:
        return None
    value = parts[key]
    if not value.isdecimal() or int(value) < 1:
        raise FormatError(f"RRULE {key} must be a positive whole number in {rule!r}")
    return int(value)


def _parse_monthdays(value: Optional[str], rule: str) -> List[int]:
    if not value:
        return []
    days = []
    for entry in value.split(","):
        try:
            day = int(entry)
        except ValueError:
            raise FormatError(f"Invalid BYMONTHDAY entry {entry!r} in {rule!r}")
        if day == 0 or abs(day) > 31:
            raise FormatError(f"BYMONTHDAY out of range in {rule!r}")
        days.append(day)
    return days


def _interpret_rrule(
    rule: str,
    event_date: Optional[str],
    day_of_week: Optional[str],
    end_date: Optional[str],
    max_occurrences: Optional[int],
) -> NormalizedRecurrence:
    body = re.sub(r'^RRULE:', '', rule.strip(), flags=re.IGNORECASE)
    parts = {}
    kept = []
    for part in re.split(r'[;\n]+', body):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        key = key.strip().upper()
        value = value.strip().upper()
        if not sep or not key or not value:
            raise FormatError(f"Malformed RRULE component {part!r} in {rule!r}")
        parts[key] = value
        # UNTIL is applied as a date-key bound, not by dateutil
        if key != "UNTIL":
            kept.append(f"{key}={value}")

    freq = parts.get("FREQ")
    if freq not in _RRULE_FREQUENCIES:
        raise FormatError(f"Unsupported RRULE frequency {freq!r} in {rule!r}")

    unsupported = sorted(set(parts) - _SUPPORTED_RRULE_PARTS)
    if unsupported:
        raise FormatError(f"Unsupported RRULE part(s) {', '.join(unsupported)} in {rule!r}")

    interval = _rrule_positive_int(parts, "INTERVAL", rule) or 1
    count = _rrule_positive_int(parts, "COUNT", rule)
    until = _parse_until(parts["UNTIL"]) if "UNTIL" in parts else None

    if "WKST" in parts and parts["WKST"] not in DAY_ABBREV_TO_INDEX:
        raise FormatError(f"Invalid WKST {parts['WKST']!r} in {rule!r}")

    monthdays = _parse_monthdays(parts.get("BYMONTHDAY"), rule)
    if monthdays and interval > 1 and freq in ("DAILY", "WEEKLY"):
        raise FormatError(f"BYMONTHDAY with INTERVAL > 1 is not supported for {freq}: {rule!r}")

    day_index = None
    ordinals = []
    has_plain_day = False
    max_ordinal = _MAX_BYDAY_ORDINAL.get(freq)
    for entry in filter(None, parts.get("BYDAY", "").split(",")):
        match = _BYDAY_PATTERN.match(entry.strip())
        if not match or match.group(2) not in DAY_ABBREV_TO_INDEX:
            raise FormatError(f"Invalid BYDAY entry {entry!r} in {rule!r}")
        if day_index is None:
            day_index = DAY_ABBREV_TO_INDEX[match.group(2)]
        if not match.group(1):
            has_plain_day = True
            continue
        ordinal = int(match.group(1))
        if ordinal == 0 or (max_ordinal and abs(ordinal) > max_ordinal):
            raise FormatError(f"BYDAY ordinal out of range in {rule!r}")
        ordinals.append(ordinal)

    # dateutil only honours ordinals for monthly and yearly rules
    if ordinals and max_ordinal:
        if has_plain_day:
            raise FormatError(f"Mixed plain and ordinal BYDAY entries are not supported: {rule!r}")
        if monthdays:
            raise FormatError(f"Ordinal BYDAY with BYMONTHDAY is not supported: {rule!r}")

    if day_index is None:
        day_index = _day_index_from_name(day_of_week)
        if day_index is not None and freq == "WEEKLY":
            kept.append(f"BYDAY={DAY_ABBREVS[day_index]}")

    body = ";".join(kept)
    try:
        rrulestr(body, dtstart=datetime(2000, 1, 1))
    except (ValueError, TypeError) as e:
        raise FormatError(f"Unparseable RRULE {rule!r}: {e}") from e

    frequency = _RRULE_FREQUENCIES[freq][1]
    if frequency == WEEKLY_FREQUENCY and interval == 2:
        frequency = BIWEEKLY_FREQUENCY

    confident = (
        freq == "DAILY"
        or day_index is not None
        or "BYMONTHDAY" in parts
        or event_date is not None
    )

    return NormalizedRecurrence(
        is_recurring=True,
        frequency=frequency,
        day_of_week_index=day_index,
        ordinals=tuple(ordinals),
        interval=interval,
        start_date=event_date,
        end_date=_earliest(until, end_date),
        count=count or max_occurrences,
        rrule=body,
        is_confident=confident,
    )


def _interpret_legacy_rule(
    rule: str,
    event_date: Optional[str],
    day_index: Optional[int],
    end_date: Optional[str],
    max_occurrences: Optional[int],
    custom_dates: Tuple[str, ...],
) -> NormalizedRecurrence:
    text = rule.lower().strip()

    # A legacy rule saved without day_of_week still has a weekday in its anchor
    if day_index is None and event_date:
        day_index = weekday_index(event_date)

    recurring = dict(
        is_recurring=True,
        day_of_week_index=day_index,
        start_date=event_date,
        end_date=end_date,
        count=max_occurrences,
        is_confident=day_index is not None,
    )

    if text in ("none", ""):
        if day_index is not None:
            return NormalizedRecurrence(frequency=WEEKLY_FREQUENCY, **recurring)
        return NormalizedRecurrence(is_recurring=False, frequency=UNKNOWN_FREQUENCY, is_confident=False)

    if text == "weekly":
        return NormalizedRecurrence(frequency=WEEKLY_FREQUENCY, **recurring)

    if text in ("biweekly", "every other week"):
        return NormalizedRecurrence(frequency=BIWEEKLY_FREQUENCY, interval=2, **recurring)

    if text == "custom":
        recurring.update(is_confident=bool(custom_dates))
        return NormalizedRecurrence(frequency=CUSTOM_FREQUENCY, custom_dates=custom_dates, **recurring)

    if text == "monthly":
        return NormalizedRecurrence(frequency=MONTHLY_FREQUENCY, **recurring)

    if text == "seasonal":
        return NormalizedRecurrence(is_recurring=True, frequency=UNKNOWN_FREQUENCY, is_confident=False)

    if is_multi_ordinal_pattern(text):
        ordinals = parse_ordinals(text)
        if not ordinals:
            recurring.update(is_confident=False)
        return NormalizedRecurrence(frequency=MONTHLY_FREQUENCY, ordinals=tuple(ordinals), **recurring)

    if text in LEGACY_ORDINAL_TO_NUMBER:
        return NormalizedRecurrence(
            frequency=MONTHLY_FREQUENCY,
            ordinals=(LEGACY_ORDINAL_TO_NUMBER[text],),
            **recurring
        )

    # Unrecognised wording with a known weekday reads as weekly
    if day_index is not None:
        return NormalizedRecurrence(frequency=WEEKLY_FREQUENCY, **recurring)

    return NormalizedRecurrence(is_recurring=False, frequency=UNKNOWN_FREQUENCY, is_confident=False)


def interpret_recurrence(event: Mapping[str, Any]) -> NormalizedRecurrence:
    """
    Interpret the schedule fields of an event record.

    Recurrence takes precedence over ``event_date``; when both are present
    ``event_date`` anchors the series instead of being its only date.

    Raises:
        FormatError: If a date field or an RRULE cannot be parsed
    """
    event_date = _optional_date_key(event.get("event_date"), "event_date")
    end_date = _optional_date_key(event.get("recurrence_end_date"), "recurrence_end_date")
    max_occurrences = _positive_int(event.get("max_occurrences"))
    day_of_week = _clean(event.get("day_of_week"))
    rule = _clean(event.get("recurrence_rule"))

    if looks_like_rrule(rule):
        return _interpret_rrule(rule, event_date, day_of_week, end_date, max_occurrences)

    day_index = _day_index_from_name(day_of_week)

    if rule:
        custom_dates = _parse_custom_dates(event.get("custom_dates"))
        return _interpret_legacy_rule(rule, event_date, day_index, end_date, max_occurrences, custom_dates)

    if day_index is not None:
        return NormalizedRecurrence(
            is_recurring=True,
            frequency=WEEKLY_FREQUENCY,
            day_of_week_index=day_index,
            start_date=event_date,
            end_date=end_date,
            count=max_occurrences,
        )

    if event_date:
        return NormalizedRecurrence(
            is_recurring=False,
            frequency=ONE_TIME_FREQUENCY,
            day_of_week_index=weekday_index(event_date),
            start_date=event_date,
        )

    return NormalizedRecurrence(is_recurring=False, frequency=UNKNOWN_FREQUENCY, is_confident=False)


def label_from_recurrence(recurrence: NormalizedRecurrence) -> str:
    """Human-readable summary that always matches what expansion produces."""
    if not recurrence.is_recurring:
        return "One-time" if recurrence.frequency == ONE_TIME_FREQUENCY else "Schedule TBD"

    day_name = recurrence.day_name

    if recurrence.frequency == WEEKLY_FREQUENCY:
        return f"Every {day_name}" if day_name else "Weekly"

    if recurrence.frequency == BIWEEKLY_FREQUENCY:
        return f"Every Other {day_name}" if day_name else "Every Other Week"

    if recurrence.frequency == MONTHLY_FREQUENCY:
        if recurrence.ordinals and day_name:
            words = [ORDINAL_LABELS.get(o, f"{o}th") for o in recurrence.ordinals]
            if len(words) == 1:
                return f"{words[0]} {day_name} of the Month"
            return f"{' & '.join(words)} {day_name}s"
        return f"{day_name} (Monthly)" if day_name else "Monthly"

    if recurrence.frequency == DAILY_FREQUENCY:
        return "Every Day" if recurrence.interval == 1 else f"Every {recurrence.interval} Days"

    if recurrence.frequency == YEARLY_FREQUENCY:
        return "Yearly" if recurrence.interval == 1 else f"Every {recurrence.interval} Years"

    if recurrence.frequency == CUSTOM_FREQUENCY:
        return "Custom Schedule"

    return f"Every {day_name}" if day_name else "Recurring"



def _nth_weekday_of_month(day: int, length: int, ordinal: int) -> bool:
    if ordinal > 0:
        return (day - 1) // 7 + 1 == ordinal
    return (length - day) // 7 + 1 == -ordinal


def _month_has_match(year: int, month: int, monthdays, weekdays, nth) -> bool:
    """Whether any day of the month passes BYMONTHDAY and BYDAY (Monday=0)."""
    length = calendar.monthrange(year, month)[1]
    if monthdays:
        days = sorted({d if d > 0 else length + d + 1 for d in monthdays if abs(d) <= length})
    else:
        days = range(1, length + 1)
    for day in days:
        day_of_week = date(year, month, day).weekday()
        if weekdays and day_of_week not in weekdays:
            continue
        if nth and not any(
            day_of_week == w and _nth_weekday_of_month(day, length, n) for w, n in nth
        ):
            continue
        return True
    return False


def _monthly_periods(anchor: date, interval: int) -> Iterator[Tuple[int, int]]:
    first = anchor.year * 12 + anchor.month - 1
    for step in range(GREGORIAN_CYCLE_MONTHS // gcd(interval, GREGORIAN_CYCLE_MONTHS)):
        year, month = divmod(first + step * interval, 12)
        if year > MAXYEAR:
            return
        yield year, month + 1


def _yearly_periods(anchor: date, interval: int) -> Iterator[int]:
    for step in range(GREGORIAN_CYCLE_YEARS // gcd(interval, GREGORIAN_CYCLE_YEARS)):
        year = anchor.year + step * interval
        if year > MAXYEAR:
            return
        yield year


def ensure_rrule_reachable(body: str, anchor: date) -> None:
    """
    Reject an RRULE whose filters never line up with its periods.

    dateutil keeps searching until year 9999 for a date that cannot exist, so
    such a rule is checked here over one full calendar cycle from its anchor.

    Raises:
        FormatError: If the rule can never produce a date
    """
    parts = dict(part.split("=", 1) for part in body.split(";") if part)
    freq = parts["FREQ"]
    interval = int(parts.get("INTERVAL", 1))
    monthdays = [int(d) for d in parts["BYMONTHDAY"].split(",")] if "BYMONTHDAY" in parts else []

    weekdays, nth = set(), set()
    for entry in filter(None, parts.get("BYDAY", "").split(",")):
        match = _BYDAY_PATTERN.match(entry)
        day_of_week = (DAY_ABBREV_TO_INDEX[match.group(2)] - 1) % 7
        if match.group(1) and freq in _MAX_BYDAY_ORDINAL:
            nth.add((day_of_week, int(match.group(1))))
        else:
            weekdays.add(day_of_week)

    if freq == "DAILY":
        reachable = not weekdays or interval % 7 != 0 or anchor.weekday() in weekdays
    elif freq == "WEEKLY":
        reachable = True
    elif freq == "MONTHLY":
        if not (monthdays or weekdays or nth):
            monthdays = [anchor.day]
        reachable = any(
            _month_has_match(year, month, monthdays, weekdays, nth)
            for year, month in _monthly_periods(anchor, interval)
        )
    elif nth:
        # every year has at least 52 of each weekday
        reachable = True
    else:
        months = range(1, 13)
        if not (monthdays or weekdays):
            months, monthdays = [anchor.month], [anchor.day]
        reachable = any(
            _month_has_match(year, month, monthdays, weekdays, nth)
            for year in _yearly_periods(anchor, interval)
            for month in months
        )

    if not reachable:
        raise FormatError(f"RRULE {body!r} never produces a date from {date_key_from_date(anchor)}")

def _as_datetime(day: date) -> datetime:
    return datetime.combine(day, time())


def _build_rule(recurrence: NormalizedRecurrence, anchor: date) -> rrule:
    """Translate a recurring interpretation into a dateutil rule."""
    dtstart = _as_datetime(anchor)

    if recurrence.rrule is not None:
        parsed = rrulestr(recurrence.rrule, dtstart=dtstart)
        if recurrence.count and "COUNT=" not in recurrence.rrule:
            parsed = parsed.replace(count=recurrence.count)
        return parsed

    day = weekday((recurrence.day_of_week_index - 1) % 7)

    if recurrence.frequency == MONTHLY_FREQUENCY and recurrence.ordinals:
        return rrule(
            MONTHLY,
            dtstart=dtstart,
            byweekday=[day(n) for n in recurrence.ordinals],
            count=recurrence.count,
        )

    # weekly, biweekly and monthly-without-ordinals all step by week
    return rrule(
        WEEKLY,
        dtstart=dtstart,
        interval=recurrence.interval,
        byweekday=day,
        count=recurrence.count,
    )


class ScheduleType:
    """How an event's occurrences were determined."""
    ONE_TIME = "one-time"
    RECURRING = "recurring"
    UNKNOWN = "unknown"


@dataclass
class OccurrenceDates:
    """
    Lazy, finite, restartable sequence of occurrence date keys in a window.

    Iterating always starts over, yields keys in ascending order without
    duplicates, and stops at the window end or the occurrence limit. An
    unknown schedule is an empty sequence with ``is_unknown`` set, which is
    distinct from a known schedule that has nothing in the window.
    """
    schedule_type: str
    recurrence: NormalizedRecurrence
    start_key: str
    end_key: str
    limit: Optional[int] = None
    _source: Callable[[], Iterator[date]] = field(default=lambda: iter(()), repr=False)

    @property
    def is_unknown(self) -> bool:
        return self.schedule_type == ScheduleType.UNKNOWN

    @property
    def is_one_time(self) -> bool:
        return self.schedule_type == ScheduleType.ONE_TIME

    def __iter__(self) -> Iterator[str]:
        start = parse_date_key(self.start_key)
        end = parse_date_key(self.end_key)
        last = None
        produced = 0
        for day in self._source():
            if self.limit is not None and produced >= self.limit:
                return
            if day > end:
                return
            if day < start or (last is not None and day <= last):
                continue
            last = day
            produced += 1
            yield date_key_from_date(day)

    def first(self) -> Optional[str]:
        return next(iter(self), None)


def _iter_rule(rule: rrule, start: date) -> Iterator[date]:
    try:
        for moment in rule.xafter(_as_datetime(start), inc=True):
            yield moment.date()
    except ValueError as e:
        raise FormatError(f"Cannot expand recurrence: {e}") from e


def expand_occurrences(
    event: Mapping[str, Any],
    start_key: str,
    end_key: str,
    max_occurrences: Optional[int] = None,
) -> OccurrenceDates:
    """
    Compute the occurrence date keys of an event inside ``[start_key, end_key]``.

    Args:
        event: Event record (mapping with event_date, day_of_week,
               recurrence_rule, custom_dates, recurrence_end_date, max_occurrences)
        start_key: First date key of the window (inclusive)
        end_key: Last date key of the window (inclusive)
        max_occurrences: Optional cap on the number of keys produced

    Returns:
        OccurrenceDates; ``is_unknown`` is set when the schedule is unknown

    Raises:
        FormatError: If the window bounds are invalid, or the event's date
                     fields or rule cannot be parsed
    """
    window_start = parse_date_key(start_key)
    window_end = parse_date_key(end_key)

    recurrence = interpret_recurrence(event)

    if recurrence.is_unknown:
        return OccurrenceDates(ScheduleType.UNKNOWN, recurrence, start_key, end_key, max_occurrences)

    if not recurrence.is_recurring:
        event_day = parse_date_key(recurrence.start_date)
        return OccurrenceDates(
            ScheduleType.ONE_TIME, recurrence, start_key, end_key, max_occurrences,
            _source=lambda: iter([event_day]),
        )

    end = window_end
    if recurrence.end_date:
        end = min(end, parse_date_key(recurrence.end_date))
    if end < window_start:
        return OccurrenceDates(ScheduleType.RECURRING, recurrence, start_key, start_key, 0)
    clipped_end_key = date_key_from_date(end)

    if recurrence.frequency == CUSTOM_FREQUENCY:
        days = [parse_date_key(key) for key in recurrence.custom_dates]
        return OccurrenceDates(
            ScheduleType.RECURRING, recurrence, start_key, clipped_end_key, max_occurrences,
            _source=lambda: iter(days),
        )

    anchor = parse_date_key(recurrence.start_date) if recurrence.start_date else window_start
    if recurrence.rrule is not None:
        ensure_rrule_reachable(recurrence.rrule, anchor)
    rule = _build_rule(recurrence, anchor)
    return OccurrenceDates(
        ScheduleType.RECURRING, recurrence, start_key, clipped_end_key, max_occurrences,
        _source=lambda: _iter_rule(rule, window_start),
    )


@dataclass(frozen=True)
class NextOccurrence:
    """The next date an event happens, relative to a given today."""
    date: str
    is_today: bool
    is_tomorrow: bool
    is_confident: bool


def compute_next_occurrence(
    event: Mapping[str, Any],
    today_key: Optional[str] = None,
    horizon_days: int = 366,
) -> NextOccurrence:
    """
    Compute the next occurrence of an event on or after ``today_key``.

    One-time events report their own date even when it has passed. Unknown
    or exhausted schedules report today with ``is_confident`` False.
    """
    today_key = today_key or today_key_now()
    tomorrow_key = add_days(today_key, 1)

    try:
        dates = expand_occurrences(event, today_key, add_days(today_key, horizon_days))
        if dates.is_one_time:
            key = dates.recurrence.start_date
            return NextOccurrence(key, key == today_key, key == tomorrow_key, True)
        key = dates.first()
    except FormatError as e:
        logger.debug(f"Cannot compute next occurrence for event {event.get('id')}: {e}")
        return NextOccurrence(today_key, True, False, False)

    if key is None:
        return NextOccurrence(today_key, True, False, False)
    return NextOccurrence(key, key == today_key, key == tomorrow_key, True)
