from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from backend.models.availability import Availability, AvailabilitySlot
from backend.models.interview import Interview
from backend.scheduling.intervals import (
    ACTIVE_STATUSES,
    AvailabilityRecord,
    BookedInterview,
    TimeInterval,
)


def to_availability_record(availability: Availability) -> AvailabilityRecord:
    return AvailabilityRecord(
        user_id=availability.user_id,
        intervals=tuple(TimeInterval(slot.start_time, slot.end_time) for slot in availability.slots),
    )


def to_booked_interview(interview: Interview) -> BookedInterview:
    return BookedInterview(
        candidate_id=interview.candidate_id,
        interviewer_id=interview.interviewer_id,
        scheduled_time=TimeInterval(interview.start_time, interview.end_time),
        status=interview.status,
    )


def get_availability(db: Session, user_id: int, start: datetime, end: datetime) -> list[AvailabilityRecord]:
    """Records of ``user_id`` holding at least one slot that overlaps ``[start, end)``."""
    overlapping_record_ids = select(AvailabilitySlot.availability_id).where(
        AvailabilitySlot.start_time < end,
        AvailabilitySlot.end_time > start,
    )
    records = db.query(Availability).options(selectinload(Availability.slots)).filter(
        Availability.user_id == user_id,
        Availability.id.in_(overlapping_record_ids),
    ).order_by(Availability.week_of.asc(), Availability.id.asc()).all()

    return [to_availability_record(record) for record in records]


def get_active_interviews(
    db: Session,
    candidate_id: int,
    interviewer_id: int,
    start: datetime,
    end: datetime,
    exclude_interview_id: int | None = None,
) -> list[BookedInterview]:
    """Proposed or confirmed interviews of either party overlapping ``[start, end)``."""
    query = db.query(Interview).filter(
        or_(
            Interview.candidate_id == candidate_id,
            Interview.interviewer_id == interviewer_id,
        ),
        Interview.status.in_(sorted(ACTIVE_STATUSES)),
        Interview.start_time < end,
        Interview.end_time > start,
    )
    if exclude_interview_id is not None:
        query = query.filter(Interview.id != exclude_interview_id)

    return [to_booked_interview(interview) for interview in query.order_by(Interview.start_time.asc()).all()]


def build_lookups(db: Session):
    """Bind the lookups to ``db`` in the shape ``find_optimal_slots`` expects."""

    def availability_lookup(user_id: int, start: datetime, end: datetime) -> list[AvailabilityRecord]:
        return get_availability(db, user_id, start, end)

    def booking_lookup(candidate_id: int, interviewer_id: int, start: datetime, end: datetime) -> list[BookedInterview]:
        return get_active_interviews(db, candidate_id, interviewer_id, start, end)

    return availability_lookup, booking_lookup
