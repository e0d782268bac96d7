"""Event model definition."""

from typing import Dict, Any
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from .base import Base
from ..occurrences.overrides import check_location_exclusivity
from ..utils.timezone import ensure_local_timezone, now_local

class Event(Base):
    """
    Event model: something that happens once or repeatedly.

    The schedule is one of: a fixed ``event_date`` (one-time), a
    ``day_of_week`` and/or ``recurrence_rule`` (recurring, the rule may be a
    legacy word like 'biweekly' or an RRULE string), or nothing at all
    (schedule unknown). Recurrence wins when both are set.

    Fields:
        id: Unique identifier (auto-generated)
        title: Event title
        description: Event description (optional)
        event_date: Date key of a one-time event, or the series anchor
        day_of_week: Weekday name for weekly-style schedules ('Tuesday')
        recurrence_rule: Legacy rule text or RRULE (optional)
        custom_dates: Explicit date keys for rule 'custom'
        recurrence_end_date: Last date key a series may produce (optional)
        max_occurrences: Occurrence count limit measured from the anchor (optional)
        start_time / end_time: Civil time of day, 'HH:MM' (optional)
        venue_id: Linked venue (mutually exclusive with custom_location_name)
        venue_name / venue_address: Denormalized venue fields
        custom_location_name / custom_address / custom_city / custom_state:
            Free-form location used instead of a venue
        is_published: Whether the event is visible on listings
        status: Lifecycle status ('active', 'needs_verification',
                'unverified', 'cancelled', ...)
    """
    __tablename__ = 'events'

    # Required fields
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)

    # Schedule
    event_date = Column(String(10))
    day_of_week = Column(String(16))
    recurrence_rule = Column(String)
    custom_dates = Column(JSON)
    recurrence_end_date = Column(String(10))
    max_occurrences = Column(Integer)
    start_time = Column(String(8))
    end_time = Column(String(8))
    event_type = Column(String)

    # Location
    venue_id = Column(Integer, ForeignKey('venues.id'))
    venue_name = Column(String)
    venue_address = Column(String)
    location_mode = Column(String)
    custom_location_name = Column(String)
    custom_address = Column(String)
    custom_city = Column(String)
    custom_state = Column(String)
    online_url = Column(String)
    location_notes = Column(Text)

    # Details
    description = Column(Text)
    capacity = Column(Integer)
    has_timeslots = Column(Boolean, default=False)
    total_slots = Column(Integer)
    slot_duration_minutes = Column(Integer)
    is_free = Column(Boolean)
    cost_label = Column(String)
    signup_url = Column(String)
    signup_time = Column(String)
    signup_deadline = Column(String)
    age_policy = Column(String)
    external_url = Column(String)
    categories = Column(JSON)
    cover_image_url = Column(String)
    host_notes = Column(Text)

    # Lifecycle
    is_published = Column(Boolean, default=False, nullable=False)
    status = Column(String, default='active', nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), default=now_local, onupdate=now_local)

    venue = relationship('Venue', back_populates='events', lazy='joined')
    overrides = relationship('OccurrenceOverride', back_populates='event', cascade='all, delete-orphan')

    def __init__(self, **kwargs):
        """Initialize Event, rejecting a venue combined with a custom location."""
        check_location_exclusivity(kwargs)

        for key in ('created_at', 'updated_at'):
            if kwargs.get(key) is not None:
                kwargs[key] = ensure_local_timezone(kwargs[key])

        super().__init__(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the plain record the occurrence engine consumes.

        Venue name and address fall back to the linked venue when the row
        has no denormalized copy.
        """
        venue_name = self.venue_name
        venue_address = self.venue_address
        if self.venue is not None:
            venue_name = venue_name or self.venue.name
            venue_address = venue_address or self.venue.address

        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'event_type': self.event_type,
            'event_date': self.event_date,
            'day_of_week': self.day_of_week,
            'recurrence_rule': self.recurrence_rule,
            'custom_dates': self.custom_dates if self.custom_dates is not None else [],
            'recurrence_end_date': self.recurrence_end_date,
            'max_occurrences': self.max_occurrences,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'venue_id': self.venue_id,
            'venue_name': venue_name,
            'venue_address': venue_address,
            'location_mode': self.location_mode,
            'custom_location_name': self.custom_location_name,
            'custom_address': self.custom_address,
            'custom_city': self.custom_city,
            'custom_state': self.custom_state,
            'online_url': self.online_url,
            'location_notes': self.location_notes,
            'capacity': self.capacity,
            'has_timeslots': self.has_timeslots,
            'total_slots': self.total_slots,
            'slot_duration_minutes': self.slot_duration_minutes,
            'is_free': self.is_free,
            'cost_label': self.cost_label,
            'signup_url': self.signup_url,
            'signup_time': self.signup_time,
            'signup_deadline': self.signup_deadline,
            'age_policy': self.age_policy,
            'external_url': self.external_url,
            'categories': list(self.categories or []),
            'cover_image_url': self.cover_image_url,
            'host_notes': self.host_notes,
            'is_published': self.is_published,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"Event(id={self.id}, title={self.title}, event_date={self.event_date}, recurrence_rule={self.recurrence_rule})"
