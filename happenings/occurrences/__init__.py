"""Pure occurrence engine: recurrence, overrides, merge and grouping."""

from .merge import Occurrence, apply_occurrence_override, build_occurrence, get_display_date
from .overrides import (
    ALLOWED_OVERRIDE_FIELDS,
    OccurrenceOverride,
    OverrideWrite,
    build_override_map,
    check_location_exclusivity,
    normalize_override,
    override_key,
    prepare_override_write,
    sanitize_override_patch,
)
from .recurrence import (
    NextOccurrence,
    NormalizedRecurrence,
    OccurrenceDates,
    ScheduleType,
    compute_next_occurrence,
    expand_occurrences,
    interpret_recurrence,
    label_from_recurrence,
)
from .series import (
    EXPANSION_CAPS,
    SERIES_VIEW_MAX_UPCOMING,
    ExpansionCaps,
    ExpansionMetrics,
    SeriesEntry,
    SeriesViewResult,
    default_window,
    group_events_as_series_view,
)
from .timeline import TimelineResult, expand_and_group_events

__all__ = [
    'ALLOWED_OVERRIDE_FIELDS',
    'EXPANSION_CAPS',
    'SERIES_VIEW_MAX_UPCOMING',
    'ExpansionCaps',
    'ExpansionMetrics',
    'NextOccurrence',
    'NormalizedRecurrence',
    'Occurrence',
    'OccurrenceDates',
    'OccurrenceOverride',
    'OverrideWrite',
    'ScheduleType',
    'SeriesEntry',
    'SeriesViewResult',
    'TimelineResult',
    'apply_occurrence_override',
    'build_occurrence',
    'build_override_map',
    'check_location_exclusivity',
    'compute_next_occurrence',
    'default_window',
    'expand_and_group_events',
    'expand_occurrences',
    'get_display_date',
    'group_events_as_series_view',
    'interpret_recurrence',
    'label_from_recurrence',
    'normalize_override',
    'override_key',
    'prepare_override_write',
    'sanitize_override_patch',
]
