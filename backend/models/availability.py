"""Availability model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base

RECURRING_PATTERNS = ("weekly", "biweekly", "monthly")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Availability(Base):
    """A batch of free time windows reported by one user, usually one per week."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    week_of = Column(Date, nullable=False)
    raw_input = Column(String)
    parsed_by_ai = Column(Boolean, default=False)
    recurring = Column(Boolean, default=False)
    recurring_pattern = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    slots = relationship(
        "AvailabilitySlot",
        back_populates="availability",
        cascade="all, delete-orphan",
        order_by="AvailabilitySlot.start_time",
    )


class AvailabilitySlot(Base):
    """A single free window inside an availability record."""
    __tablename__ = "availability_slots"

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    availability = relationship("Availability", back_populates="slots")
