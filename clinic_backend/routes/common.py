import math

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query

from clinic_backend.core import config
from clinic_backend.database import (
    SessionLocal,
    ensure_appointment_schema,
    ensure_availability_schema,
    ensure_blocked_slot_schema,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
        ensure_blocked_slot_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def clamp_page_size(limit: int | None) -> int:
    if not limit or limit < 1:
        return config.DEFAULT_PAGE_SIZE
    return min(limit, config.MAX_PAGE_SIZE)


def paginate(query: Query, page: int, limit: int) -> dict:
    """Run ``query`` for one page and return the rows with paging metadata."""
    page = max(page, 1)
    limit = clamp_page_size(limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()

    return {
        'rows': rows,
        'total': total,
        'current_page': page,
        'last_page': math.ceil(total / limit) if total else 0,
        'per_page': limit,
    }
