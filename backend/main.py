import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import Base, engine, ensure_schema
from backend.models import availability, interview, user  # noqa: F401
from backend.routes import auth_routes, availability_routes, interview_routes, matching_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Interview Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Interview Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(matching_routes.router, prefix='/matching')
app.include_router(interview_routes.router, prefix='/interviews')
