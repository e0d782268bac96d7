"""Storage reads and override writes feeding the occurrence engine."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.event import Event
from ..models.occurrence_override import OccurrenceOverride
from ..models.venue import Venue
from ..occurrences.overrides import prepare_override_write
from ..utils.timezone import parse_date_key
from .operations import with_retry

logger = logging.getLogger(__name__)

# Statuses that still show on listings
LISTED_STATUSES = ('active', 'needs_verification', 'unverified')

UPSERTED = "upserted"
REVERTED = "reverted"


def fetch_listing_events(session: Session, venue_id: Optional[int] = None) -> List[Event]:
    """Published events in a listed status, optionally limited to one venue."""
    query = select(Event).where(
        Event.is_published.is_(True),
        Event.status.in_(LISTED_STATUSES),
    )
    if venue_id is not None:
        query = query.where(Event.venue_id == venue_id)
    return list(session.scalars(query.order_by(Event.id)).unique())


def fetch_event(session: Session, event_id: int) -> Optional[Event]:
    return session.get(Event, event_id)


def fetch_overrides(
    session: Session,
    event_ids: Iterable[int],
    start_key: str,
    end_key: str,
) -> List[OccurrenceOverride]:
    """
    Override rows for the given events whose date key is in ``[start_key, end_key]``.

    Raises:
        FormatError: If a window bound is not a valid date key
    """
    parse_date_key(start_key)
    parse_date_key(end_key)

    ids = list(event_ids)
    if not ids:
        return []

    query = (
        select(OccurrenceOverride)
        .where(
            OccurrenceOverride.event_id.in_(ids),
            OccurrenceOverride.date_key >= start_key,
            OccurrenceOverride.date_key <= end_key,
        )
        .order_by(OccurrenceOverride.event_id, OccurrenceOverride.date_key)
    )
    return list(session.scalars(query))


def fetch_venue_map(session: Session, venue_ids: Iterable[Any]) -> Dict[int, Dict[str, Any]]:
    """venue id -> venue record for the given ids."""
    ids = {venue_id for venue_id in venue_ids if venue_id}
    if not ids:
        return {}
    venues = session.scalars(select(Venue).where(Venue.id.in_(ids)))
    return {venue.id: venue.to_dict() for venue in venues}


def _find_override(session: Session, event_id: int, date_key: str) -> Optional[OccurrenceOverride]:
    return session.scalars(
        select(OccurrenceOverride).where(
            OccurrenceOverride.event_id == event_id,
            OccurrenceOverride.date_key == date_key,
        )
    ).first()


@with_retry()
def save_override(
    session: Session,
    event_id: int,
    request: Mapping[str, Any],
    today_key: Optional[str] = None,
) -> str:
    """
    Validate and store the override for one occurrence.

    ``request`` carries date_key and optionally status, override_start_time,
    override_cover_image_url, override_notes and override_patch. An override
    that validates to empty removes any stored row instead.

    Returns:
        'upserted' when a row was written, 'reverted' when none remains

    Raises:
        FormatError: If the date key, a rescheduled date or a time is malformed
        InvariantViolation: If the override breaks a write-time rule
    """
    write = prepare_override_write(
        event_id,
        request.get('date_key'),
        status=request.get('status'),
        override_start_time=request.get('override_start_time'),
        override_cover_image_url=request.get('override_cover_image_url'),
        override_notes=request.get('override_notes'),
        override_patch=request.get('override_patch'),
        today_key=today_key,
    )

    existing = _find_override(session, event_id, write.date_key)

    if write.is_empty:
        if existing is not None:
            session.delete(existing)
            session.flush()
            logger.info(f"Reverted override for event {event_id} on {write.date_key}")
        return REVERTED

    values = write.to_row()
    values["event_id"] = event_id
    if existing is None:
        session.add(OccurrenceOverride(**values))
    else:
        for key, value in values.items():
            setattr(existing, key, value)
    session.flush()

    logger.info(f"Saved override for event {event_id} on {write.date_key} (status={write.status})")
    return UPSERTED


@with_retry()
def delete_override(session: Session, event_id: int, date_key: str) -> bool:
    """
    Remove the override for one occurrence.

    Returns:
        True if a row was deleted, False if there was none

    Raises:
        FormatError: If date_key is not a valid date key
    """
    parse_date_key(date_key)
    existing = _find_override(session, event_id, date_key)
    if existing is None:
        return False
    session.delete(existing)
    session.flush()

    logger.info(f"Deleted override for event {event_id} on {date_key}")
    return True
