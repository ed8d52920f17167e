import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from backend.database import ensure_schema

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database operation failed', exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
