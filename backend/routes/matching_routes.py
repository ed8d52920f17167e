import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_role
from backend.core import config
from backend.database import get_db
from backend.models.interview import DEFAULT_INTERVIEW_TYPE, INTERVIEW_TYPES, Interview, ProposedSlot
from backend.models.user import ROLE_ADMIN, ROLE_CANDIDATE, ROLE_INTERVIEWER, User
from backend.routes.common import database_unavailable, ensure_database_ready
from backend.routes.interview_routes import InterviewResponse, normalize_meeting_link
from backend.scheduling.intervals import STATUS_PROPOSED, InvalidMatchingInput, as_utc
from backend.scheduling.lookups import build_lookups
from backend.scheduling.matching import MatchingOptions, PreferredTimes, find_optimal_slots

router = APIRouter(tags=['matching'])

logger = logging.getLogger(__name__)

MAX_PROPOSED_SLOTS = 3
NO_SLOTS_MESSAGE = (
    'The candidate and interviewer have no overlapping availability. '
    'Please update availability and try again.'
)


def normalize_interview_type(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip().lower()
    if normalized not in INTERVIEW_TYPES:
        raise ValueError('Invalid interview type.')

    return normalized


class PreferredTimesRequest(BaseModel):
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=1, le=24)

    @model_validator(mode='after')
    def validate_order(self) -> 'PreferredTimesRequest':
        if self.end_hour <= self.start_hour:
            raise ValueError('Preferred end hour must be after the start hour.')
        return self


class FindSlotsRequest(BaseModel):
    candidate_id: int
    interviewer_id: int
    duration_minutes: int = Field(
        default=config.MATCHING_DEFAULT_DURATION_MINUTES,
        ge=config.MATCHING_MIN_DURATION_MINUTES,
        le=config.MATCHING_MAX_DURATION_MINUTES,
    )
    max_slots: int = Field(default=config.MATCHING_DEFAULT_MAX_SLOTS, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None
    preferred_times: PreferredTimesRequest | None = None
    interview_type: str | None = None

    @field_validator('interview_type')
    @classmethod
    def validate_interview_type(cls, value: str | None) -> str | None:
        return normalize_interview_type(value)


class RankedSlotResponse(BaseModel):
    start: datetime
    end: datetime
    score: int


class ParticipantResponse(BaseModel):
    id: int
    name: str


class FindSlotsResponse(BaseModel):
    slots: list[RankedSlotResponse]
    candidate: ParticipantResponse
    interviewer: ParticipantResponse


class ProposedSlotRequest(BaseModel):
    start: datetime
    end: datetime
    score: float | None = None

    @model_validator(mode='after')
    def validate_order(self) -> 'ProposedSlotRequest':
        if as_utc(self.end) <= as_utc(self.start):
            raise ValueError('End time must be after start time.')
        return self


class ProposeInterviewRequest(BaseModel):
    candidate_id: int
    interviewer_id: int
    proposed_slots: list[ProposedSlotRequest] = Field(min_length=1, max_length=MAX_PROPOSED_SLOTS)
    interview_type: str | None = None
    notes: str | None = None
    meeting_link: str | None = None

    @field_validator('interview_type')
    @classmethod
    def validate_interview_type(cls, value: str | None) -> str | None:
        return normalize_interview_type(value)

    @field_validator('meeting_link')
    @classmethod
    def validate_meeting_link(cls, value: str | None) -> str | None:
        return normalize_meeting_link(value)


def get_user_with_role(user_id: int, role: str, db: Session) -> User | None:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.role != role:
        return None
    return user


@router.post('/find-slots', response_model=FindSlotsResponse, dependencies=[Depends(get_current_user)])
def find_slots(
    data: FindSlotsRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        candidate = get_user_with_role(data.candidate_id, ROLE_CANDIDATE, db)
        if candidate is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid candidate.')

        interviewer = get_user_with_role(data.interviewer_id, ROLE_INTERVIEWER, db)
        if interviewer is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid interviewer.')

        preferred_times = None
        if data.preferred_times:
            preferred_times = PreferredTimes(data.preferred_times.start_hour, data.preferred_times.end_hour)

        options = MatchingOptions(
            duration_minutes=data.duration_minutes,
            max_slots=data.max_slots,
            start_date=data.start_date,
            end_date=data.end_date,
            preferred_times=preferred_times,
        )
        availability_lookup, booking_lookup = build_lookups(db)
        slots = find_optimal_slots(
            candidate.id,
            interviewer.id,
            options,
            availability_lookup=availability_lookup,
            booking_lookup=booking_lookup,
        )
    except InvalidMatchingInput as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if not slots:
        logger.info('No matching slots for candidate %s and interviewer %s', candidate.id, interviewer.id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={'error': 'No matching time slots found', 'message': NO_SLOTS_MESSAGE},
        )

    return FindSlotsResponse(
        slots=[RankedSlotResponse(**slot.to_dict()) for slot in slots],
        candidate=ParticipantResponse(id=candidate.id, name=candidate.full_name),
        interviewer=ParticipantResponse(id=interviewer.id, name=interviewer.full_name),
    )


@router.post('/propose', response_model=InterviewResponse, status_code=status.HTTP_201_CREATED)
def propose_interview(
    data: ProposeInterviewRequest,
    current_user: User = Depends(require_role(ROLE_INTERVIEWER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        candidate = db.query(User).filter(User.id == data.candidate_id).first()
        interviewer = db.query(User).filter(User.id == data.interviewer_id).first()
        if candidate is None or interviewer is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Invalid candidate or interviewer.',
            )

        proposed_slots = [
            ProposedSlot(
                position=index,
                start_time=as_utc(slot.start),
                end_time=as_utc(slot.end),
                score=slot.score if slot.score is not None else 100 - index * 10,
            )
            for index, slot in enumerate(data.proposed_slots)
        ]
        first_slot = proposed_slots[0]

        interview = Interview(
            candidate_id=candidate.id,
            interviewer_id=interviewer.id,
            start_time=first_slot.start_time,
            end_time=first_slot.end_time,
            status=STATUS_PROPOSED,
            interview_type=data.interview_type or DEFAULT_INTERVIEW_TYPE,
            notes=data.notes,
            meeting_link=data.meeting_link,
            proposed_slots=proposed_slots,
        )
        db.add(interview)
        db.commit()
        db.refresh(interview)

        logger.info(
            'User %s proposed interview %s with %d slot(s)',
            current_user.id,
            interview.id,
            len(proposed_slots),
        )
        return interview
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
