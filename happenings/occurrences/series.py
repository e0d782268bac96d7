"""Series grouping: events + window + overrides -> series and unknown events.

Every listing and detail surface goes through ``group_events_as_series_view``.
Events are expected to be visibility-filtered already; nothing here checks
publication or status.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..config.listings import LISTING_WINDOW_DAYS
from ..errors import FormatError
from ..utils.deduplication import dedupe_events_by_title
from ..utils.timezone import add_days, parse_date_key, today
from .merge import Occurrence, build_occurrence
from .overrides import OccurrenceOverride, OverrideKey, override_key
from .recurrence import expand_occurrences, label_from_recurrence

logger = logging.getLogger(__name__)

SERIES_VIEW_MAX_UPCOMING = 12


@dataclass(frozen=True)
class ExpansionCaps:
    """Upper bounds that keep one request's expansion work bounded."""
    max_events: int = 200
    max_total_occurrences: int = 500
    max_per_event: int = 40


EXPANSION_CAPS = ExpansionCaps()


@dataclass
class ExpansionMetrics:
    events_processed: int = 0
    events_skipped: int = 0
    total_occurrences: int = 0
    cancelled_count: int = 0
    was_capped: bool = False


@dataclass
class SeriesEntry:
    """
    One event with its occurrences in the window.

    Fields:
        event: The event record as supplied
        is_one_time: True for a fixed event_date, False for a recurring schedule
        occurrences: All occurrences in the window, ascending by date key
        upcoming_occurrences: The first SERIES_VIEW_MAX_UPCOMING occurrences
        next_occurrence: First non-cancelled occurrence (first one if all are cancelled)
        total_upcoming_count: Number of occurrences in the window
        recurrence_summary: Human-readable schedule label
    """
    event: Mapping[str, Any]
    is_one_time: bool
    occurrences: List[Occurrence]
    upcoming_occurrences: List[Occurrence]
    next_occurrence: Optional[Occurrence]
    total_upcoming_count: int
    recurrence_summary: str


@dataclass
class SeriesViewResult:
    series: List[SeriesEntry] = field(default_factory=list)
    unknown_events: List[Mapping[str, Any]] = field(default_factory=list)
    metrics: ExpansionMetrics = field(default_factory=ExpansionMetrics)

    @property
    def recurring_series(self) -> List[SeriesEntry]:
        return [entry for entry in self.series if not entry.is_one_time]

    @property
    def one_time_series(self) -> List[SeriesEntry]:
        return [entry for entry in self.series if entry.is_one_time]


def default_window(today_key: Optional[str] = None, days: Optional[int] = None):
    """(start, end) date keys of the listing window starting today."""
    start_key = today_key or today()
    return start_key, add_days(start_key, LISTING_WINDOW_DAYS if days is None else days)


def _build_entry(
    event: Mapping[str, Any],
    is_one_time: bool,
    recurrence_summary: str,
    date_keys: List[str],
    override_map: Mapping[OverrideKey, OccurrenceOverride],
    venues: Optional[Mapping[Any, Mapping[str, Any]]],
) -> SeriesEntry:
    occurrences = [
        build_occurrence(event, key, override_map.get(override_key(event.get("id"), key)), venues)
        for key in date_keys
    ]
    next_occurrence = next((o for o in occurrences if not o.is_cancelled), occurrences[0])
    return SeriesEntry(
        event=event,
        is_one_time=is_one_time,
        occurrences=occurrences,
        upcoming_occurrences=occurrences[:SERIES_VIEW_MAX_UPCOMING],
        next_occurrence=next_occurrence,
        total_upcoming_count=len(occurrences),
        recurrence_summary=recurrence_summary,
    )


def group_events_as_series_view(
    events: List[Mapping[str, Any]],
    start_key: str,
    end_key: str,
    override_map: Optional[Mapping[OverrideKey, OccurrenceOverride]] = None,
    venues: Optional[Mapping[Any, Mapping[str, Any]]] = None,
    caps: ExpansionCaps = EXPANSION_CAPS,
    dedupe: bool = True,
) -> SeriesViewResult:
    """
    Group events into series for the window ``[start_key, end_key]``.

    Args:
        events: Visibility-filtered event records
        start_key: Window start date key (inclusive)
        end_key: Window end date key (inclusive)
        override_map: (event id, date key) -> override, see build_override_map
        venues: Optional venue id -> venue record, used when an override moves
                an occurrence to another venue
        caps: Expansion limits
        dedupe: Collapse same-title duplicates before grouping

    Returns:
        SeriesViewResult with series in input order and unknown-schedule events

    Raises:
        FormatError: If start_key or end_key is not a valid date key. A bad
                     schedule on a single event never raises; that event is
                     routed to unknown_events instead.
    """
    parse_date_key(start_key)
    parse_date_key(end_key)
    override_map = override_map or {}

    result = SeriesViewResult()
    metrics = result.metrics

    candidates = dedupe_events_by_title(events) if dedupe else list(events)
    if len(candidates) > caps.max_events:
        logger.warning(f"Expansion capped at {caps.max_events} of {len(candidates)} events")
        metrics.events_skipped += len(candidates) - caps.max_events
        metrics.was_capped = True
        candidates = candidates[:caps.max_events]

    for event in candidates:
        remaining = caps.max_total_occurrences - metrics.total_occurrences
        if remaining <= 0:
            if not metrics.was_capped:
                logger.warning(f"Expansion capped at {caps.max_total_occurrences} total occurrences")
            metrics.was_capped = True
            metrics.events_skipped += 1
            continue

        event_id = event.get("id")
        try:
            dates = expand_occurrences(event, start_key, end_key, caps.max_per_event)
            date_keys = list(dates)
        except FormatError as e:
            logger.warning(f"Event {event_id} has an unreadable schedule, listing it as unknown: {e}")
            result.unknown_events.append(event)
            metrics.events_processed += 1
            continue

        metrics.events_processed += 1

        if dates.is_unknown:
            logger.debug(f"Event {event_id} has no schedule, listing it as unknown")
            result.unknown_events.append(event)
            continue

        if not date_keys:
            logger.debug(f"Event {event_id} has no occurrences between {start_key} and {end_key}")
            continue

        if len(date_keys) > remaining:
            date_keys = date_keys[:remaining]
            metrics.was_capped = True

        entry = _build_entry(
            event,
            dates.is_one_time,
            label_from_recurrence(dates.recurrence),
            date_keys,
            override_map,
            venues,
        )
        result.series.append(entry)
        metrics.total_occurrences += len(entry.occurrences)
        metrics.cancelled_count += sum(1 for o in entry.occurrences if o.is_cancelled)

    logger.debug(
        f"Series view {start_key}..{end_key}: {len(result.series)} series, "
        f"{len(result.unknown_events)} unknown, {metrics.total_occurrences} occurrences"
    )
    return result
