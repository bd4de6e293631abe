import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402
from clinic_backend.models.availability import Availability  # noqa: E402
from clinic_backend.models.blocked_slot import BlockedSlot  # noqa: E402
from clinic_backend.models.transaction import Transaction  # noqa: E402
from clinic_backend.models.user import User  # noqa: E402
from clinic_backend.repositories.sql import SqlSchedulingRepository  # noqa: E402


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


@pytest.fixture
def repository(db_session):
    return SqlSchedulingRepository(db_session)


@pytest.fixture
def patient(db_session) -> User:
    user = User(name='Asha Patel', mobile='9000000001', role='user')
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def add_template(db_session):
    def _add_template(
        day_of_week: str = 'Monday',
        morning: tuple[time, time] | None = (time(9, 0), time(10, 0)),
        evening: tuple[time, time] | None = None,
        slot_duration: int = 30,
        is_active: bool = True,
    ) -> Availability:
        availability = Availability(
            day_of_week=day_of_week,
            morning_start_time=morning[0] if morning else None,
            morning_end_time=morning[1] if morning else None,
            evening_start_time=evening[0] if evening else None,
            evening_end_time=evening[1] if evening else None,
            slot_duration=slot_duration,
            is_active=is_active,
        )
        db_session.add(availability)
        db_session.commit()
        db_session.refresh(availability)
        return availability

    return _add_template


@pytest.fixture
def add_appointment(db_session, patient):
    def _add_appointment(
        appointment_date: date,
        appointment_time: time,
        status: str = 'pending',
        user_id: int | None = None,
    ) -> Appointment:
        appointment = Appointment(
            user_id=user_id or patient.id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            status=status,
            duration=30,
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _add_appointment


@pytest.fixture
def add_block(db_session):
    def _add_block(
        blocked_date: date,
        start_time: time | None = None,
        end_time: time | None = None,
        reason: str | None = None,
    ) -> BlockedSlot:
        block = BlockedSlot(
            blocked_date=blocked_date,
            is_full_day=start_time is None,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        db_session.add(block)
        db_session.commit()
        db_session.refresh(block)
        return block

    return _add_block


@pytest.fixture
def count_full_day_blocks(db_session):
    def _count(blocked_date: date) -> int:
        return db_session.query(BlockedSlot).filter(
            BlockedSlot.blocked_date == blocked_date,
            BlockedSlot.is_full_day.is_(True),
        ).count()

    return _count


@pytest.fixture
def count_transactions(db_session):
    def _count() -> int:
        return db_session.query(Transaction).count()

    return _count
