"""Merge an event, one of its dates and an optional override into an Occurrence."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .overrides import ALLOWED_OVERRIDE_FIELDS, OccurrenceOverride

# Location fields that belong to a linked venue vs. a custom location
VENUE_FIELDS = ("venue_id", "venue_name", "venue_address")
CUSTOM_LOCATION_FIELDS = ("custom_location_name", "custom_address", "custom_city", "custom_state")


@dataclass
class Occurrence:
    """
    One concrete date of an event with its override applied.

    ``date_key`` is always the original occurrence date and stays the
    identity used for override lookup; ``display_date`` is where the
    occurrence is shown, which differs only for a reschedule.
    """
    event_id: str
    date_key: str
    display_date: str
    is_rescheduled: bool
    is_cancelled: bool
    title: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    venue_id: Optional[Any] = None
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    custom_location_name: Optional[str] = None
    custom_address: Optional[str] = None
    location_name: Optional[str] = None
    cover_image_url: Optional[str] = None
    host_notes: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    override: Optional[OccurrenceOverride] = None

    @property
    def original_date_key(self) -> Optional[str]:
        """Original date when rescheduled, else None."""
        return self.date_key if self.is_rescheduled else None


def apply_occurrence_override(
    event: Mapping[str, Any],
    override: Optional[OccurrenceOverride],
    venues: Optional[Mapping[Any, Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Return a copy of the event record with the override patch applied.

    The event itself is never modified. Only allow-listed fields are applied.
    A patch naming a custom location drops the linked venue from the copy;
    a patch linking a venue drops the custom location and takes the venue's
    name and address from ``venues`` when it is known there.
    """
    merged = dict(event)
    if override is None or not override.patch:
        return merged

    patch = {key: value for key, value in override.patch.items() if key in ALLOWED_OVERRIDE_FIELDS}

    if patch.get("custom_location_name"):
        for name in VENUE_FIELDS:
            merged[name] = None
    elif patch.get("venue_id") and patch["venue_id"] != event.get("venue_id"):
        for name in CUSTOM_LOCATION_FIELDS:
            merged[name] = None
        venue = (venues or {}).get(patch["venue_id"]) or {}
        merged["venue_name"] = venue.get("name")
        merged["venue_address"] = venue.get("address")

    merged.update(patch)
    return merged


def get_display_date(date_key: str, override: Optional[OccurrenceOverride]) -> Tuple[str, bool]:
    """(display date key, is rescheduled) for an occurrence."""
    if override is not None and override.rescheduled_date:
        return override.rescheduled_date, True
    return date_key, False


def build_occurrence(
    event: Mapping[str, Any],
    date_key: str,
    override: Optional[OccurrenceOverride] = None,
    venues: Optional[Mapping[Any, Mapping[str, Any]]] = None,
) -> Occurrence:
    """
    Build the Occurrence of ``event`` on ``date_key``.

    Precedence per field is patch, then legacy override column (already
    folded into the patch), then the event's own value. A cancelled
    override still applies its patch.
    """
    merged = apply_occurrence_override(event, override, venues)
    display_date, is_rescheduled = get_display_date(date_key, override)
    merged["event_date"] = display_date

    return Occurrence(
        event_id=str(event.get("id")),
        date_key=date_key,
        display_date=display_date,
        is_rescheduled=is_rescheduled,
        is_cancelled=override is not None and override.is_cancelled,
        title=merged.get("title"),
        start_time=merged.get("start_time"),
        end_time=merged.get("end_time"),
        venue_id=merged.get("venue_id"),
        venue_name=merged.get("venue_name"),
        venue_address=merged.get("venue_address"),
        custom_location_name=merged.get("custom_location_name"),
        custom_address=merged.get("custom_address"),
        location_name=merged.get("custom_location_name") or merged.get("venue_name"),
        cover_image_url=merged.get("cover_image_url"),
        host_notes=merged.get("host_notes"),
        fields=merged,
        override=override,
    )
