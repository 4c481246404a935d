from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from telecare.database import SessionLocal, ensure_availability_schema, ensure_appointment_schema

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
