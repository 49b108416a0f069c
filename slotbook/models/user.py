"""User model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from slotbook.database import Base


class User(Base):
    """Represents a slot owner."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
