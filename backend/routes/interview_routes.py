import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_role
from backend.database import get_db
from backend.models.interview import Interview
from backend.models.user import ROLE_ADMIN, ROLE_CANDIDATE, ROLE_INTERVIEWER, User
from backend.routes.common import database_unavailable, ensure_database_ready
from backend.scheduling.intervals import (
    INTERVIEW_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PROPOSED,
    as_utc,
)
from backend.scheduling.lookups import get_active_interviews

router = APIRouter(tags=['interviews'])

logger = logging.getLogger(__name__)

MAX_FEEDBACK_COMMENTS_LENGTH = 2000


def normalize_meeting_link(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None
    if not normalized.startswith(('http://', 'https://')):
        raise ValueError('Meeting link must be an http(s) URL.')

    return normalized


class ProposedSlotResponse(BaseModel):
    position: int
    start_time: datetime
    end_time: datetime
    score: float | None = None

    class Config:
        from_attributes = True


class InterviewResponse(BaseModel):
    id: int
    candidate_id: int
    interviewer_id: int
    start_time: datetime
    end_time: datetime
    status: str
    interview_type: str
    meeting_link: str | None = None
    notes: str | None = None
    selected_slot_index: int | None = None
    feedback_rating: int | None = None
    feedback_comments: str | None = None
    feedback_submitted_at: datetime | None = None
    proposed_slots: list[ProposedSlotResponse]

    class Config:
        from_attributes = True


class SelectSlotRequest(BaseModel):
    slot_index: int = Field(ge=0, le=2)


class ConfirmInterviewRequest(BaseModel):
    start: datetime
    end: datetime
    meeting_link: str | None = None
    notes: str | None = None

    @field_validator('meeting_link')
    @classmethod
    def validate_meeting_link(cls, value: str | None) -> str | None:
        return normalize_meeting_link(value)

    @model_validator(mode='after')
    def validate_order(self) -> 'ConfirmInterviewRequest':
        if as_utc(self.end) <= as_utc(self.start):
            raise ValueError('End time must be after start time.')
        return self


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comments: str | None = None

    @field_validator('comments')
    @classmethod
    def validate_comments(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None
        if len(normalized) > MAX_FEEDBACK_COMMENTS_LENGTH:
            raise ValueError(f'Comments must be {MAX_FEEDBACK_COMMENTS_LENGTH} characters or fewer.')

        return normalized


class InterviewStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]


def is_participant(interview: Interview, user: User) -> bool:
    return user.role == ROLE_ADMIN or user.id in (interview.candidate_id, interview.interviewer_id)


def get_interview_or_404(interview_id: int, db: Session) -> Interview:
    interview = db.query(Interview).filter(Interview.id == interview_id).first()
    if not interview:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Interview not found.',
        )
    return interview


def ensure_no_schedule_clash(interview: Interview, start: datetime, end: datetime, db: Session) -> None:
    clashes = get_active_interviews(
        db,
        interview.candidate_id,
        interview.interviewer_id,
        start,
        end,
        exclude_interview_id=interview.id,
    )
    if clashes:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time overlaps another active interview for the candidate or interviewer.',
        )


@router.get('/', response_model=list[InterviewResponse])
def list_interviews(
    status_filter: str | None = Query(default=None, alias='status'),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if status_filter is not None and status_filter not in INTERVIEW_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid interview status.',
        )

    ensure_database_ready()

    try:
        query = db.query(Interview)
        if current_user.role == ROLE_CANDIDATE:
            query = query.filter(Interview.candidate_id == current_user.id)
        elif current_user.role == ROLE_INTERVIEWER:
            query = query.filter(Interview.interviewer_id == current_user.id)

        if status_filter:
            query = query.filter(Interview.status == status_filter)
        if start_date:
            query = query.filter(Interview.start_time >= as_utc(start_date))
        if end_date:
            query = query.filter(Interview.start_time <= as_utc(end_date))

        return query.order_by(Interview.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/stats/overview', response_model=InterviewStatsResponse, dependencies=[Depends(require_role(ROLE_ADMIN))])
def interview_stats(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        total = db.query(func.count(Interview.id)).scalar() or 0
        by_status = db.query(Interview.status, func.count(Interview.id)).group_by(Interview.status).all()
        by_type = db.query(Interview.interview_type, func.count(Interview.id)).group_by(Interview.interview_type).all()

        return InterviewStatsResponse(
            total=total,
            by_status={interview_status: count for interview_status, count in by_status},
            by_type={interview_type or 'unknown': count for interview_type, count in by_type},
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{interview_id}', response_model=InterviewResponse)
def get_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        interview = get_interview_or_404(interview_id, db)
        if not is_participant(interview, current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Access denied.')

        return interview
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{interview_id}/select-slot', response_model=InterviewResponse)
def select_slot(
    interview_id: int,
    data: SelectSlotRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        interview = get_interview_or_404(interview_id, db)

        if interview.candidate_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the candidate can select a time slot.',
            )

        if interview.status != STATUS_PROPOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Interview is not in proposed status.',
            )

        selected = next(
            (slot for slot in interview.proposed_slots if slot.position == data.slot_index),
            None,
        )
        if selected is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Invalid slot index.',
            )

        ensure_no_schedule_clash(interview, selected.start_time, selected.end_time, db)

        interview.start_time = selected.start_time
        interview.end_time = selected.end_time
        interview.selected_slot_index = data.slot_index
        interview.status = STATUS_CONFIRMED
        db.commit()
        db.refresh(interview)

        logger.info('Candidate %s confirmed interview %s using slot %d', current_user.id, interview.id, data.slot_index)
        return interview
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/{interview_id}/confirm', response_model=InterviewResponse)
def confirm_interview(
    interview_id: int,
    data: ConfirmInterviewRequest,
    current_user: User = Depends(require_role(ROLE_INTERVIEWER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        interview = get_interview_or_404(interview_id, db)
        if not is_participant(interview, current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Access denied.')

        start_time = as_utc(data.start)
        end_time = as_utc(data.end)
        ensure_no_schedule_clash(interview, start_time, end_time, db)

        interview.start_time = start_time
        interview.end_time = end_time
        interview.status = STATUS_CONFIRMED
        if data.meeting_link:
            interview.meeting_link = data.meeting_link
        if data.notes:
            interview.notes = data.notes
        db.commit()
        db.refresh(interview)

        logger.info('User %s confirmed interview %s', current_user.id, interview.id)
        return interview
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/{interview_id}/cancel', response_model=InterviewResponse)
def cancel_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        interview = get_interview_or_404(interview_id, db)
        if not is_participant(interview, current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Access denied.')

        interview.status = STATUS_CANCELLED
        db.commit()
        db.refresh(interview)

        return interview
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/{interview_id}/feedback', response_model=InterviewResponse)
def submit_feedback(
    interview_id: int,
    data: FeedbackRequest,
    current_user: User = Depends(require_role(ROLE_INTERVIEWER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        interview = get_interview_or_404(interview_id, db)
        if interview.interviewer_id != current_user.id and current_user.role != ROLE_ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the interviewer can submit feedback.',
            )

        interview.feedback_rating = data.rating
        interview.feedback_comments = data.comments
        interview.feedback_submitted_at = datetime.now(timezone.utc)
        interview.status = STATUS_COMPLETED
        db.commit()
        db.refresh(interview)

        return interview
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
