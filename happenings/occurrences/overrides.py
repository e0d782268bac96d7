"""Per-occurrence overrides: normalization, lookup map and write validation.

Override rows arrive in two shapes that describe the same thing: the legacy
flat columns (``override_start_time``, ``override_cover_image_url``,
``override_notes``) and the generic ``override_patch`` JSON object. Both are
folded into one ``OccurrenceOverride`` here so the merge step only ever sees
a single shape. Patch values win over legacy columns for the same field.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..errors import FormatError, InvariantViolation
from ..utils.timezone import is_valid_time_of_day, parse_date_key, today

logger = logging.getLogger(__name__)

# Fields a single occurrence may change. Series-level fields
# (recurrence_rule, day_of_week, event_type, ...) are never overridable.
ALLOWED_OVERRIDE_FIELDS = frozenset([
    "title",
    "description",
    "event_date",
    "start_time",
    "end_time",
    "venue_id",
    "location_mode",
    "custom_location_name",
    "custom_address",
    "custom_city",
    "custom_state",
    "online_url",
    "location_notes",
    "capacity",
    "has_timeslots",
    "total_slots",
    "slot_duration_minutes",
    "is_free",
    "cost_label",
    "signup_url",
    "signup_deadline",
    "signup_time",
    "age_policy",
    "external_url",
    "categories",
    "cover_image_url",
    "host_notes",
    "is_published",
])

# Legacy flat column -> event field it overrides
LEGACY_OVERRIDE_COLUMNS = {
    "override_start_time": "start_time",
    "override_cover_image_url": "cover_image_url",
    "override_notes": "host_notes",
}

STATUS_NORMAL = "normal"
STATUS_CANCELLED = "cancelled"
OVERRIDE_STATUSES = (STATUS_NORMAL, STATUS_CANCELLED)

OverrideKey = Tuple[str, str]


def override_key(event_id: Any, date_key: str) -> OverrideKey:
    """Lookup key for an (event, date key) pair."""
    return (str(event_id), date_key)


def sanitize_override_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only allow-listed keys; everything else is dropped silently."""
    return {key: value for key, value in patch.items() if key in ALLOWED_OVERRIDE_FIELDS}


@dataclass(frozen=True)
class OccurrenceOverride:
    """
    Normalized override for one occurrence.

    Fields:
        event_id: Event the override belongs to
        date_key: Original occurrence date key (identity of the occurrence)
        status: 'normal' or 'cancelled'
        patch: Allow-listed field values, legacy columns already folded in
    """
    event_id: str
    date_key: str
    status: str = STATUS_NORMAL
    patch: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED

    @property
    def rescheduled_date(self) -> Optional[str]:
        """The new date key when the patch moves this occurrence, else None."""
        new_date = self.patch.get("event_date")
        if new_date and new_date != self.date_key:
            return new_date
        return None

    @property
    def is_empty(self) -> bool:
        return self.status == STATUS_NORMAL and not self.patch


def _row_value(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def normalize_override(row: Any) -> OccurrenceOverride:
    """
    Convert a stored override row (mapping or ORM object) into the normalized shape.

    A patch that is not a JSON object is ignored. Legacy columns only fill
    fields the patch does not mention, and only when they hold a value.
    """
    raw_patch = _row_value(row, "override_patch")
    patch = sanitize_override_patch(raw_patch) if isinstance(raw_patch, Mapping) else {}

    for column, field_name in LEGACY_OVERRIDE_COLUMNS.items():
        value = _row_value(row, column)
        if value and field_name not in patch:
            patch[field_name] = value

    return OccurrenceOverride(
        event_id=str(_row_value(row, "event_id")),
        date_key=_row_value(row, "date_key"),
        status=_row_value(row, "status") or STATUS_NORMAL,
        patch=patch,
    )


def build_override_map(rows: Iterable[Any]) -> Dict[OverrideKey, OccurrenceOverride]:
    """
    Build the (event id, date key) -> override lookup used during merge.

    The store guarantees one row per key, so rows are only reshaped.
    """
    overrides = {}
    for row in rows:
        override = normalize_override(row)
        overrides[override_key(override.event_id, override.date_key)] = override
    logger.debug(f"Built override map with {len(overrides)} entries")
    return overrides


def check_location_exclusivity(fields: Mapping[str, Any]) -> None:
    """
    Reject a record that links a venue and names a custom location at once.

    Raises:
        InvariantViolation: If both venue_id and custom_location_name are set
    """
    if fields.get("venue_id") and fields.get("custom_location_name"):
        raise InvariantViolation("A venue and a custom location cannot both be set")


@dataclass
class OverrideWrite:
    """A validated override ready to be stored, or deleted when empty."""
    event_id: str
    date_key: str
    status: str = STATUS_NORMAL
    override_start_time: Optional[str] = None
    override_cover_image_url: Optional[str] = None
    override_notes: Optional[str] = None
    override_patch: Optional[Dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        """An empty override is the same state as no override at all."""
        return (
            self.status == STATUS_NORMAL
            and not self.override_start_time
            and not self.override_cover_image_url
            and not self.override_notes
            and not self.override_patch
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "date_key": self.date_key,
            "status": self.status,
            "override_start_time": self.override_start_time,
            "override_cover_image_url": self.override_cover_image_url,
            "override_notes": self.override_notes,
            "override_patch": self.override_patch,
        }


def prepare_override_write(
    event_id: Any,
    date_key: str,
    status: Optional[str] = None,
    override_start_time: Optional[str] = None,
    override_cover_image_url: Optional[str] = None,
    override_notes: Optional[str] = None,
    override_patch: Any = None,
    today_key: Optional[str] = None,
) -> OverrideWrite:
    """
    Validate an override write request.

    The request describes the complete override for the date; columns left
    out are stored empty.

    Args:
        event_id: Event being overridden
        date_key: Occurrence date key the override is stored under
        status: 'normal' (default) or 'cancelled'
        override_start_time: Legacy start time column
        override_cover_image_url: Legacy cover image column
        override_notes: Legacy host notes column
        override_patch: JSON object of field overrides; unknown keys are dropped
        today_key: Today's date key, for the reschedule check

    Returns:
        OverrideWrite; callers delete the stored row when ``is_empty`` is True

    Raises:
        FormatError: If date_key, a rescheduled event_date or a time is malformed
        InvariantViolation: If the status or patch shape is invalid, the patch
                            reschedules into the past, or it sets both a
                            venue and a custom location
    """
    parse_date_key(date_key)

    status = status or STATUS_NORMAL
    if status not in OVERRIDE_STATUSES:
        raise InvariantViolation(f"status must be one of {', '.join(OVERRIDE_STATUSES)}, got {status!r}")

    if override_start_time and not is_valid_time_of_day(override_start_time):
        raise FormatError(f"Invalid override_start_time: {override_start_time!r}")

    patch = None
    if override_patch is not None:
        if not isinstance(override_patch, Mapping):
            raise InvariantViolation("override_patch must be a JSON object")
        sanitized = sanitize_override_patch(override_patch)

        if "event_date" in sanitized:
            new_date = sanitized["event_date"]
            if not isinstance(new_date, str):
                raise FormatError(f"Invalid date format for event_date: {new_date!r}")
            parse_date_key(new_date)
            if new_date == date_key:
                # Not a reschedule
                del sanitized["event_date"]
            elif new_date < (today_key or today()):
                raise InvariantViolation(f"Cannot reschedule to a past date ({new_date})")

        for time_field in ("start_time", "end_time"):
            value = sanitized.get(time_field)
            if value and not is_valid_time_of_day(value):
                raise FormatError(f"Invalid {time_field}: {value!r}")

        check_location_exclusivity(sanitized)
        patch = sanitized or None

    return OverrideWrite(
        event_id=str(event_id),
        date_key=date_key,
        status=status,
        override_start_time=override_start_time or None,
        override_cover_image_url=override_cover_image_url or None,
        override_notes=override_notes or None,
        override_patch=patch,
    )
