from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.availability import RECURRING_PATTERNS, Availability, AvailabilitySlot
from backend.models.user import User
from backend.routes.common import database_unavailable, ensure_database_ready
from backend.scheduling.intervals import as_utc

router = APIRouter(tags=['availability'])


def normalize_recurring_pattern(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip().lower()
    if not normalized:
        return None
    if normalized not in RECURRING_PATTERNS:
        raise ValueError('Invalid recurring pattern.')

    return normalized


class TimeSlotRequest(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_order(self) -> 'TimeSlotRequest':
        if as_utc(self.end) <= as_utc(self.start):
            raise ValueError('End time must be after start time.')
        return self


class CreateAvailabilityRequest(BaseModel):
    week_of: date
    slots: list[TimeSlotRequest] = Field(min_length=1)
    recurring: bool = False
    recurring_pattern: str | None = None

    @field_validator('recurring_pattern')
    @classmethod
    def validate_recurring_pattern(cls, value: str | None) -> str | None:
        return normalize_recurring_pattern(value)


class UpdateAvailabilityRequest(BaseModel):
    slots: list[TimeSlotRequest] | None = Field(default=None, min_length=1)
    recurring: bool | None = None
    recurring_pattern: str | None = None

    @field_validator('recurring_pattern')
    @classmethod
    def validate_recurring_pattern(cls, value: str | None) -> str | None:
        return normalize_recurring_pattern(value)


class AvailabilitySlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    id: int
    user_id: int
    week_of: date
    recurring: bool
    recurring_pattern: str | None = None
    parsed_by_ai: bool
    raw_input: str | None = None
    slots: list[AvailabilitySlotResponse]

    class Config:
        from_attributes = True


def build_slots(slots: list[TimeSlotRequest]) -> list[AvailabilitySlot]:
    return [
        AvailabilitySlot(start_time=as_utc(slot.start), end_time=as_utc(slot.end))
        for slot in sorted(slots, key=lambda slot: as_utc(slot.start))
    ]


def get_owned_availability(availability_id: int, user: User, db: Session) -> Availability:
    availability = db.query(Availability).filter(
        Availability.id == availability_id,
        Availability.user_id == user.id,
    ).first()

    if not availability:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability not found.',
        )

    return availability


@router.get('/', response_model=list[AvailabilityResponse])
def list_my_availability(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Availability).filter(Availability.user_id == current_user.id)
        if start_date:
            query = query.filter(Availability.week_of >= start_date)
        if end_date:
            query = query.filter(Availability.week_of <= end_date)

        return query.order_by(Availability.week_of.asc(), Availability.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/user/{user_id}', response_model=list[AvailabilityResponse], dependencies=[Depends(get_current_user)])
def list_user_availability(
    user_id: int,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Availability).filter(Availability.user_id == user_id)
        if start_date or end_date:
            slot_filters = []
            if start_date:
                slot_filters.append(AvailabilitySlot.end_time > as_utc(start_date))
            if end_date:
                slot_filters.append(AvailabilitySlot.start_time < as_utc(end_date))
            matching_ids = select(AvailabilitySlot.availability_id).where(*slot_filters)
            query = query.filter(Availability.id.in_(matching_ids))

        return query.order_by(Availability.week_of.asc(), Availability.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = Availability(
            user_id=current_user.id,
            week_of=data.week_of,
            recurring=data.recurring,
            recurring_pattern=data.recurring_pattern,
            parsed_by_ai=False,
            slots=build_slots(data.slots),
        )
        db.add(availability)
        db.commit()
        db.refresh(availability)

        return availability
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{availability_id}', response_model=AvailabilityResponse)
def update_availability(
    availability_id: int,
    data: UpdateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = get_owned_availability(availability_id, current_user, db)

        if data.slots is not None:
            availability.slots = build_slots(data.slots)
        if data.recurring is not None:
            availability.recurring = data.recurring
        if 'recurring_pattern' in data.model_fields_set:
            availability.recurring_pattern = data.recurring_pattern

        db.commit()
        db.refresh(availability)

        return availability
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/{availability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = get_owned_availability(availability_id, current_user, db)
        db.delete(availability)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
