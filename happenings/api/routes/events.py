"""Events router module."""

import logging
from dataclasses import asdict
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...db import DatabaseError, get_db
from ...db.queries import fetch_event
from ...errors import OccurrenceError
from ...occurrences import compute_next_occurrence, default_window, group_events_as_series_view
from ..dependencies import get_today_key
from ..serializers import series_entry_to_dict
from .happenings import load_listing_inputs

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

@router.get("/events/{event_id}", response_model=Dict)
def get_event(
    event_id: int,
    days: Optional[int] = Query(None, ge=1, le=366),
    today_key: str = Depends(get_today_key),
    session: Session = Depends(get_db),
):
    """Get a single event with its series entry for the listing window."""
    try:
        event = fetch_event(session, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")

        record = event.to_dict()
        start_key, end_key = default_window(today_key, days)
        override_map, venues = load_listing_inputs(session, [record], start_key, end_key)
        result = group_events_as_series_view([record], start_key, end_key, override_map, venues, dedupe=False)
        next_occurrence = compute_next_occurrence(record, today_key)
    except HTTPException:
        raise
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to load event {event_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    return {
        'event': record,
        'series': series_entry_to_dict(result.series[0]) if result.series else None,
        'is_unknown_schedule': bool(result.unknown_events),
        'next_occurrence': asdict(next_occurrence),
    }
