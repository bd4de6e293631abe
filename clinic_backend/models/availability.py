"""Availability model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Time, func
from clinic_backend.database import Base


class Availability(Base):
    """Weekly availability template for one day of the week."""
    __tablename__ = "availability"
    __table_args__ = (
        Index("idx_availability_day_active", "day_of_week", "is_active"),
    )

    id = Column(Integer, primary_key=True)
    day_of_week = Column(String, nullable=False, unique=True)
    morning_start_time = Column(Time)
    morning_end_time = Column(Time)
    evening_start_time = Column(Time)
    evening_end_time = Column(Time)
    slot_duration = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
