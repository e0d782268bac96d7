"""Venue model definition."""

from typing import Dict, Any
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.timezone import now_local

class Venue(Base):
    """
    A place events are held at.

    Fields:
        id: Unique identifier (auto-generated)
        name: Display name of the venue
        address: Street address (optional)
        city: City (optional)
        state: State or region (optional)
        created_at: When the venue was added
    """
    __tablename__ = 'venues'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    address = Column(String)
    city = Column(String)
    state = Column(String)
    created_at = Column(DateTime(timezone=True), default=now_local)

    events = relationship('Event', back_populates='venue')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'city': self.city,
            'state': self.state,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"Venue(id={self.id}, name={self.name})"
