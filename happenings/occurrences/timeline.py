"""Date-grouped timeline of occurrences, built on the series view."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .merge import Occurrence
from .overrides import OccurrenceOverride, OverrideKey
from .series import EXPANSION_CAPS, ExpansionCaps, ExpansionMetrics, group_events_as_series_view

logger = logging.getLogger(__name__)

# Sorts occurrences without a start time after every timed one
_UNTIMED_SORT_KEY = "99:99"


@dataclass
class TimelineResult:
    """
    Fields:
        groups: display date key -> active occurrences, dates ascending and
                occurrences ordered by start time within a date
        cancelled: Cancelled occurrences, ascending by date key
        unknown_events: Events whose schedule could not be computed
        metrics: Expansion metrics of the underlying series view
    """
    groups: Dict[str, List[Occurrence]] = field(default_factory=dict)
    cancelled: List[Occurrence] = field(default_factory=list)
    unknown_events: List[Mapping[str, Any]] = field(default_factory=list)
    metrics: ExpansionMetrics = field(default_factory=ExpansionMetrics)


def _start_time_sort_key(occurrence: Occurrence) -> str:
    return occurrence.start_time or _UNTIMED_SORT_KEY


def expand_and_group_events(
    events: List[Mapping[str, Any]],
    start_key: str,
    end_key: str,
    override_map: Optional[Mapping[OverrideKey, OccurrenceOverride]] = None,
    venues: Optional[Mapping[Any, Mapping[str, Any]]] = None,
    caps: ExpansionCaps = EXPANSION_CAPS,
    dedupe: bool = False,
) -> TimelineResult:
    """
    Expand events and group their occurrences by the date they are shown on.

    A rescheduled occurrence is listed under its new date while keeping its
    original date key. Cancelled occurrences are collected separately.
    """
    view = group_events_as_series_view(
        events, start_key, end_key, override_map, venues, caps=caps, dedupe=dedupe
    )

    by_date: Dict[str, List[Occurrence]] = {}
    cancelled: List[Occurrence] = []
    for entry in view.series:
        for occurrence in entry.occurrences:
            if occurrence.is_cancelled:
                cancelled.append(occurrence)
            else:
                by_date.setdefault(occurrence.display_date, []).append(occurrence)

    groups = {}
    for date_key in sorted(by_date):
        groups[date_key] = sorted(by_date[date_key], key=_start_time_sort_key)
    cancelled.sort(key=lambda o: (o.date_key, _start_time_sort_key(o)))

    logger.debug(f"Timeline {start_key}..{end_key}: {len(groups)} dates, {len(cancelled)} cancelled")
    return TimelineResult(
        groups=groups,
        cancelled=cancelled,
        unknown_events=view.unknown_events,
        metrics=view.metrics,
    )
