"""Models package initialization."""

from .base import Base
from .venue import Venue
from .event import Event
from .occurrence_override import OccurrenceOverride

__all__ = ['Base', 'Venue', 'Event', 'OccurrenceOverride']
