import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from backend.database import Base  # noqa: E402
from backend.models.availability import Availability, AvailabilitySlot  # noqa: E402
from backend.models.interview import Interview, ProposedSlot  # noqa: E402
from backend.models.user import User  # noqa: E402

ROUTE_MODULES = (
    'backend.routes.availability_routes',
    'backend.routes.interview_routes',
    'backend.routes.matching_routes',
)


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ROUTE_MODULES:
        monkeypatch.setattr(f'{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def make_user(db_session):
    def factory(email: str, role: str, first_name: str = '', last_name: str = '') -> User:
        user = User(
            email=email,
            hashed_password='',
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory


@pytest.fixture
def add_availability(db_session):
    def factory(user: User, *windows: tuple[datetime, datetime]) -> Availability:
        record = Availability(
            user_id=user.id,
            week_of=windows[0][0].date(),
            slots=[AvailabilitySlot(start_time=start, end_time=end) for start, end in windows],
        )
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return factory


@pytest.fixture
def add_interview(db_session):
    def factory(
        candidate: User,
        interviewer: User,
        start: datetime,
        end: datetime,
        status: str = 'proposed',
        proposed: list[tuple[datetime, datetime]] | None = None,
    ) -> Interview:
        interview = Interview(
            candidate_id=candidate.id,
            interviewer_id=interviewer.id,
            start_time=start,
            end_time=end,
            status=status,
            proposed_slots=[
                ProposedSlot(position=index, start_time=slot_start, end_time=slot_end, score=100 - index * 10)
                for index, (slot_start, slot_end) in enumerate(proposed or [(start, end)])
            ],
        )
        db_session.add(interview)
        db_session.commit()
        db_session.refresh(interview)
        return interview

    return factory
