"""Listing routes: series view and date timeline."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...db import DatabaseError, get_db
from ...db.queries import fetch_listing_events, fetch_overrides, fetch_venue_map
from ...errors import OccurrenceError
from ...occurrences import (
    build_override_map,
    default_window,
    expand_and_group_events,
    group_events_as_series_view,
)
from ..dependencies import get_today_key
from ..serializers import series_view_to_dict, timeline_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["happenings"])


def load_listing_inputs(
    session: Session,
    events: List[Dict[str, Any]],
    start_key: str,
    end_key: str,
) -> Tuple[Dict, Dict]:
    """Fetch the override map and the venues overrides point at for a window."""
    rows = fetch_overrides(session, [event['id'] for event in events], start_key, end_key)
    override_map = build_override_map(rows)
    venues = fetch_venue_map(session, [o.patch.get('venue_id') for o in override_map.values()])
    return override_map, venues


@router.get("/happenings")
def get_happenings(
    venue_id: Optional[int] = None,
    days: Optional[int] = Query(None, ge=1, le=366),
    today_key: str = Depends(get_today_key),
    session: Session = Depends(get_db),
):
    """Series view of everything happening from today on."""
    try:
        start_key, end_key = default_window(today_key, days)
        events = [event.to_dict() for event in fetch_listing_events(session, venue_id)]
        override_map, venues = load_listing_inputs(session, events, start_key, end_key)
        result = group_events_as_series_view(events, start_key, end_key, override_map, venues)
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to load happenings: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    response = series_view_to_dict(result)
    response['window'] = {'start_key': start_key, 'end_key': end_key}
    return response


@router.get("/happenings/timeline")
def get_timeline(
    days: Optional[int] = Query(None, ge=1, le=366),
    today_key: str = Depends(get_today_key),
    session: Session = Depends(get_db),
):
    """Occurrences grouped by the date they are shown on."""
    try:
        start_key, end_key = default_window(today_key, days)
        events = [event.to_dict() for event in fetch_listing_events(session)]
        override_map, venues = load_listing_inputs(session, events, start_key, end_key)
        result = expand_and_group_events(events, start_key, end_key, override_map, venues)
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to load timeline: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    response = timeline_to_dict(result, today_key)
    response['window'] = {'start_key': start_key, 'end_key': end_key}
    return response
