"""Availability model definitions."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import relationship

from slotbook.database import Base
from slotbook.models.booking import Booking  # noqa: F401
from slotbook.models.user import User  # noqa: F401


class AvailabilitySlot(Base):
    """Represents an owner-defined interval that visitors can book."""
    __tablename__ = "availability"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_availability_start_before_end"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    description = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    booking = relationship(
        "Booking",
        back_populates="slot",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_booked(self) -> bool:
        return self.booking is not None
