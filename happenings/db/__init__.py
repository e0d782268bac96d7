"""Database package initialization.

This module exposes the public interface of the database package.
"""

from .db_core import (
    Database,
    DatabaseConfig,
    DatabaseError,
    DatabaseConnectionError,
    SessionError,
    db
)
from .operations import with_retry
from .session import get_db

__all__ = [
    # Core database classes
    'Database',
    'DatabaseConfig',

    # Exceptions
    'DatabaseError',
    'DatabaseConnectionError',
    'SessionError',

    # Global instance
    'db',

    # Utilities
    'with_retry',
    'get_db',
]
