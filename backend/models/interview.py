"""Interview model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.scheduling.intervals import STATUS_PROPOSED


INTERVIEW_TYPES = ("technical", "behavioral", "cultural", "final")
DEFAULT_INTERVIEW_TYPE = "technical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Interview(Base):
    """A proposed or committed interview between a candidate and an interviewer."""
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True)
    candidate_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    interviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, default=STATUS_PROPOSED, nullable=False)
    interview_type = Column(String, default=DEFAULT_INTERVIEW_TYPE)
    meeting_link = Column(String)
    notes = Column(String)
    selected_slot_index = Column(Integer)
    feedback_rating = Column(Integer)
    feedback_comments = Column(String)
    feedback_submitted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    candidate = relationship("User", foreign_keys=[candidate_id])
    interviewer = relationship("User", foreign_keys=[interviewer_id])
    proposed_slots = relationship(
        "ProposedSlot",
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="ProposedSlot.position",
    )


class ProposedSlot(Base):
    """One of the ranked times offered to the candidate for an interview."""
    __tablename__ = "proposed_slots"

    id = Column(Integer, primary_key=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    score = Column(Float)

    interview = relationship("Interview", back_populates="proposed_slots")
