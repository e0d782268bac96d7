"""Model for per-occurrence overrides of an event."""

from typing import Dict, Any
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.timezone import now_local

class OccurrenceOverride(Base):
    """
    A sparse patch for one date of an event.

    At most one row exists per (event_id, date_key). A row that would carry
    nothing (status 'normal', no patch, no legacy columns) is deleted
    instead of stored.

    Fields:
        id: Unique identifier (auto-generated)
        event_id: Event being overridden
        date_key: Original occurrence date key ('YYYY-MM-DD')
        status: 'normal' or 'cancelled'
        override_start_time: Legacy start time override
        override_cover_image_url: Legacy cover image override
        override_notes: Legacy host notes override
        override_patch: JSON object of allow-listed field overrides
        created_at / updated_at: Row timestamps
    """
    __tablename__ = 'occurrence_overrides'
    __table_args__ = (
        UniqueConstraint('event_id', 'date_key', name='uq_occurrence_overrides_event_date'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    date_key = Column(String(10), nullable=False)
    status = Column(String, nullable=False, default='normal')
    override_start_time = Column(String(8))
    override_cover_image_url = Column(String)
    override_notes = Column(Text)
    override_patch = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), default=now_local, onupdate=now_local)

    event = relationship('Event', back_populates='overrides')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'event_id': self.event_id,
            'date_key': self.date_key,
            'status': self.status,
            'override_start_time': self.override_start_time,
            'override_cover_image_url': self.override_cover_image_url,
            'override_notes': self.override_notes,
            'override_patch': self.override_patch,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"OccurrenceOverride(event_id={self.event_id}, date_key={self.date_key}, status={self.status})"
