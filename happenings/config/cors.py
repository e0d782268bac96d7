"""CORS configuration for the FastAPI application."""

import os

from .environment import IS_PRODUCTION_ENVIRONMENT

DEFAULT_PRODUCTION_ORIGINS = [
    "https://happenings.live",
    "https://www.happenings.live",
]


def _production_origins():
    # CORS_ORIGINS is a comma-separated list
    configured = os.environ.get('CORS_ORIGINS', '')
    origins = [origin.strip() for origin in configured.split(',') if origin.strip()]
    return origins or DEFAULT_PRODUCTION_ORIGINS


ALLOWED_ORIGINS = _production_origins() if IS_PRODUCTION_ENVIRONMENT else ["*"]

# Listings are read-only; only override writes need POST and DELETE
ALLOWED_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]

ALLOWED_HEADERS = ["Authorization", "Content-Type", "Accept"]

CORS_CONFIG = {
    "allow_origins": ALLOWED_ORIGINS,
    # Credentials cannot be combined with a wildcard origin
    "allow_credentials": IS_PRODUCTION_ENVIRONMENT,
    "allow_methods": ALLOWED_METHODS,
    "allow_headers": ALLOWED_HEADERS,
    "max_age": 3600,
}
