"""Blocked slot model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, Index, Integer, String, Time, func, text
from clinic_backend.database import Base


class BlockedSlot(Base):
    """A full-day or partial block on a calendar date."""
    __tablename__ = "blocked_slots"
    __table_args__ = (
        Index("idx_blocked_slots_date", "blocked_date", "is_full_day"),
        Index(
            "uq_blocked_slots_full_day",
            "blocked_date",
            unique=True,
            sqlite_where=text("is_full_day"),
            postgresql_where=text("is_full_day"),
        ),
    )

    id = Column(Integer, primary_key=True)
    blocked_date = Column(Date, nullable=False)
    is_full_day = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time)
    end_time = Column(Time)
    reason = Column(String)
    created_at = Column(DateTime, server_default=func.now())
