"""Retry handling for override writes.

SQLite reports "database is locked" and PostgreSQL drops idle connections as
``OperationalError``; both are worth another attempt once the session has
been rolled back.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_delays(max_attempts: int, delay: float, backoff: float) -> Tuple[float, ...]:
    """Pauses taken between attempts (one fewer than the attempts)."""
    return tuple(delay * backoff ** n for n in range(max(max_attempts - 1, 0)))


def with_retry(
    max_attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2,
    exceptions: Tuple[Type[BaseException], ...] = (OperationalError,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry a storage operation whose first argument is a Session.

    The session is rolled back after every failed attempt so the next one
    starts from a clean transaction. The last failure is re-raised.

    Example:
        @with_retry(max_attempts=3)
        def delete_override(session, event_id, date_key):
            ...
    """
    delays = retry_delays(max_attempts, delay, backoff)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(session: Session, *args: Any, **kwargs: Any) -> T:
            for attempt, pause in enumerate(delays + (None,), start=1):
                try:
                    return func(session, *args, **kwargs)
                except exceptions as e:
                    session.rollback()
                    if pause is None:
                        logger.error(f"{func.__name__} failed after {attempt} attempts: {e}")
                        raise
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed: {e}. "
                        f"Retrying in {pause:.2f}s"
                    )
                    sleep(pause)
            raise AssertionError("unreachable")

        return wrapper
    return decorator
