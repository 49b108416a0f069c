"""Booking model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from slotbook.database import Base


class Booking(Base):
    """A visitor's claim on a single availability slot."""
    __tablename__ = "bookings"
    __table_args__ = (
        # One booking per slot, enforced by the database rather than by a prior read.
        UniqueConstraint("availability_id", name="uq_bookings_availability_id"),
    )

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    booked_by_name = Column(String(255), nullable=False)
    booked_by_email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    slot = relationship("AvailabilitySlot", back_populates="booking")
