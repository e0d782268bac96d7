"""Shared route dependencies."""

from typing import Optional

from fastapi import Header, HTTPException

from ..config.admin import verify_admin_auth
from ..utils.timezone import today


def get_today_key() -> str:
    """Today's date key in the listing timezone."""
    return today()


def require_admin(authorization: Optional[str] = Header(None, alias="Authorization")) -> None:
    """Reject requests without the admin API key."""
    if not verify_admin_auth(authorization):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization"
        )
