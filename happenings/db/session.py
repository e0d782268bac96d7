"""Request-scoped database sessions for FastAPI routes."""

from typing import Generator

from sqlalchemy.orm import Session

from .db_core import db

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one transactional session per request.

    Routes commit their own writes; anything left uncommitted when the
    request fails is rolled back.
    """
    with db.session() as session:
        yield session
