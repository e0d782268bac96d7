"""Routes package initialization."""

from . import (
    events,
    happenings,
    health,
    overrides
)

__all__ = [
    'events',
    'happenings',
    'health',
    'overrides'
]
