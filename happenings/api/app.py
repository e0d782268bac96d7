"""FastAPI application: listings, event detail and occurrence overrides."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.environment import IS_PRODUCTION_ENVIRONMENT # Environment must be imported first
from ..config.cors import CORS_CONFIG
from ..config.listings import LISTING_TIMEZONE, LISTING_WINDOW_DAYS
from ..utils.logging_config import setup_logging
from ..db import db, DatabaseError
from .. import __version__
from .routes import (
    events,
    happenings,
    health,
    overrides
)

setup_logging()
logger = logging.getLogger(__name__)

# Routers served under /api; health stays at the root
API_ROUTERS = (happenings.router, events.router, overrides.router)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Verify the schema before serving and release connections on shutdown."""
    try:
        db.ensure_tables_exist()
    except DatabaseError as e:
        logger.error(f"Startup failed: {e}")
        raise
    logger.info(
        f"Serving listings in {LISTING_TIMEZONE.key} with a {LISTING_WINDOW_DAYS}-day window"
    )
    yield
    db.dispose()

def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    docs_enabled = not IS_PRODUCTION_ENVIRONMENT
    app = FastAPI(
        title="Happenings API",
        description="Listings of one-time and recurring events with per-date overrides",
        version=__version__,
        docs_url='/api/docs' if docs_enabled else None,
        redoc_url='/api/redoc' if docs_enabled else None,
        lifespan=lifespan
    )

    app.add_middleware(CORSMiddleware, **CORS_CONFIG)

    app.include_router(health.router)
    for router in API_ROUTERS:
        app.include_router(router, prefix="/api")

    return app

app = create_application()
