"""JSON shapes for engine results."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from ..utils.timezone import format_date_group_header
from ..occurrences import Occurrence, SeriesEntry, SeriesViewResult, TimelineResult


def occurrence_to_dict(occurrence: Optional[Occurrence]) -> Optional[Dict[str, Any]]:
    if occurrence is None:
        return None
    override = occurrence.override
    return {
        'event_id': occurrence.event_id,
        'date_key': occurrence.date_key,
        'display_date': occurrence.display_date,
        'is_rescheduled': occurrence.is_rescheduled,
        'original_date_key': occurrence.original_date_key,
        'is_cancelled': occurrence.is_cancelled,
        'title': occurrence.title,
        'start_time': occurrence.start_time,
        'end_time': occurrence.end_time,
        'venue_id': occurrence.venue_id,
        'venue_name': occurrence.venue_name,
        'venue_address': occurrence.venue_address,
        'custom_location_name': occurrence.custom_location_name,
        'custom_address': occurrence.custom_address,
        'location_name': occurrence.location_name,
        'cover_image_url': occurrence.cover_image_url,
        'host_notes': occurrence.host_notes,
        'override': {'status': override.status, 'patch': dict(override.patch)} if override else None,
    }


def series_entry_to_dict(entry: SeriesEntry) -> Dict[str, Any]:
    return {
        'event': dict(entry.event),
        'is_one_time': entry.is_one_time,
        'recurrence_summary': entry.recurrence_summary,
        'next_occurrence': occurrence_to_dict(entry.next_occurrence),
        'upcoming_occurrences': [occurrence_to_dict(o) for o in entry.upcoming_occurrences],
        'total_upcoming_count': entry.total_upcoming_count,
    }


def series_view_to_dict(result: SeriesViewResult) -> Dict[str, Any]:
    return {
        'series': [series_entry_to_dict(entry) for entry in result.series],
        'unknown_events': [dict(event) for event in result.unknown_events],
        'metrics': asdict(result.metrics),
    }


def timeline_to_dict(result: TimelineResult, today_key: str) -> Dict[str, Any]:
    return {
        'groups': [
            {
                'date': date_key,
                'label': format_date_group_header(date_key, today_key),
                'occurrences': [occurrence_to_dict(o) for o in occurrences],
            }
            for date_key, occurrences in result.groups.items()
        ],
        'cancelled': [occurrence_to_dict(o) for o in result.cancelled],
        'unknown_events': [dict(event) for event in result.unknown_events],
        'metrics': asdict(result.metrics),
    }
