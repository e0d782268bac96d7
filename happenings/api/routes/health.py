"""Health check route."""

from fastapi import APIRouter

from ... import __version__
from ...config.environment import ENVIRONMENT
from ...config.listings import LISTING_TIMEZONE, LISTING_WINDOW_DAYS

router = APIRouter(tags=["health"])

@router.get("/")
async def health_check():
    """Report liveness together with the listing calendar settings."""
    return {
        "status": "healthy",
        "environment": ENVIRONMENT,
        "timezone": LISTING_TIMEZONE.key,
        "listing_window_days": LISTING_WINDOW_DAYS,
        "version": __version__
    }
