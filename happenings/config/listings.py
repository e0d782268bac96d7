"""Listing configuration: civil timezone and display window."""

import os
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .environment import IS_PRODUCTION_ENVIRONMENT  # noqa: F401 (loads .env)

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE_NAME = "America/Denver"
DEFAULT_WINDOW_DAYS = 90


def _load_timezone() -> ZoneInfo:
    name = os.environ.get('HAPPENINGS_TIMEZONE', DEFAULT_TIMEZONE_NAME).strip() or DEFAULT_TIMEZONE_NAME
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to {DEFAULT_TIMEZONE_NAME}")
        return ZoneInfo(DEFAULT_TIMEZONE_NAME)


def _load_window_days() -> int:
    raw = os.environ.get('LISTING_WINDOW_DAYS', '')
    if not raw:
        return DEFAULT_WINDOW_DAYS
    try:
        days = int(raw)
    except ValueError:
        logger.warning(f"Invalid LISTING_WINDOW_DAYS '{raw}', using {DEFAULT_WINDOW_DAYS}")
        return DEFAULT_WINDOW_DAYS
    return days if days > 0 else DEFAULT_WINDOW_DAYS


# The deployment's civil timezone. Every date key is computed in it.
LISTING_TIMEZONE = _load_timezone()

# Forward window (in days) used by listing pages
LISTING_WINDOW_DAYS = _load_window_days()

__all__ = ['LISTING_TIMEZONE', 'LISTING_WINDOW_DAYS', 'DEFAULT_WINDOW_DAYS']
