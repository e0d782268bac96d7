"""Per-occurrence override routes."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...db import DatabaseError, get_db
from ...db.queries import delete_override, fetch_event, fetch_overrides, save_override
from ...errors import OccurrenceError
from ...occurrences import default_window
from ..dependencies import get_today_key, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}/overrides", tags=["overrides"])

def _require_event(session: Session, event_id: int) -> None:
    if not fetch_event(session, event_id):
        raise HTTPException(status_code=404, detail="Event not found")

@router.get("")
def list_overrides(
    event_id: int,
    start_key: Optional[str] = None,
    end_key: Optional[str] = None,
    today_key: str = Depends(get_today_key),
    session: Session = Depends(get_db),
):
    """List an event's overrides in a window (defaults to the listing window)."""
    try:
        _require_event(session, event_id)
        default_start, default_end = default_window(today_key)
        rows = fetch_overrides(session, [event_id], start_key or default_start, end_key or default_end)
    except HTTPException:
        raise
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to list overrides for event {event_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    return [row.to_dict() for row in rows]

@router.post("", dependencies=[Depends(require_admin)])
def upsert_override(
    event_id: int,
    payload: Dict[str, Any] = Body(...),
    today_key: str = Depends(get_today_key),
    session: Session = Depends(get_db),
):
    """
    Create, replace or revert the override for one occurrence.

    The payload is the complete override for ``date_key``. An override with
    status 'normal' and nothing else removes the stored row.
    """
    try:
        _require_event(session, event_id)
        result = save_override(session, event_id, payload, today_key)
        session.commit()
    except HTTPException:
        raise
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to save override for event {event_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    return {
        "status": "success",
        "result": result,
        "date_key": payload.get('date_key'),
    }

@router.delete("/{date_key}", dependencies=[Depends(require_admin)])
def revert_override(
    event_id: int,
    date_key: str,
    session: Session = Depends(get_db),
):
    """Remove the override for one occurrence."""
    try:
        _require_event(session, event_id)
        deleted = delete_override(session, event_id, date_key)
        session.commit()
    except HTTPException:
        raise
    except OccurrenceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Failed to delete override for event {event_id} on {date_key}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    return {
        "status": "success",
        "deleted": deleted,
    }
