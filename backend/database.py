from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


engine = create_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

SCHEMA_INDEXES = {
    'availability': [
        'CREATE INDEX IF NOT EXISTS idx_availability_user_week ON availability(user_id, week_of)',
    ],
    'availability_slots': [
        'CREATE INDEX IF NOT EXISTS idx_availability_slots_time_range '
        'ON availability_slots(start_time, end_time)',
    ],
    'interviews': [
        'CREATE INDEX IF NOT EXISTS idx_interviews_candidate_status ON interviews(candidate_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_interviews_interviewer_status ON interviews(interviewer_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_interviews_start ON interviews(start_time)',
    ],
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema() -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        inspector = inspect(engine)
        existing_tables = set(inspector.get_table_names())

        with engine.begin() as connection:
            for table_name, statements in SCHEMA_INDEXES.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _schema_checked = True
