import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_backend.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

engine = create_engine(
    DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_tables: set[str] = set()

ACTIVE_STATUS_SQL = "status IN ('pending', 'confirmed')"


def _ensure_table_schema(table_name: str, migration_steps: list[tuple[str, str]], index_statements: list[str]) -> None:
    if table_name in _checked_tables:
        return

    with _schema_lock:
        if table_name in _checked_tables:
            return

        inspector = inspect(engine)

        if table_name not in inspector.get_table_names():
            _checked_tables.add(table_name)
            return

        existing_columns = {column['name'] for column in inspector.get_columns(table_name)}

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            for statement in index_statements:
                connection.execute(text(statement))

        _checked_tables.add(table_name)


def ensure_availability_schema() -> None:
    # Older deployments stored a single start_time/end_time window per day.
    _ensure_table_schema(
        'availability',
        [
            ('morning_start_time', 'ALTER TABLE availability ADD COLUMN morning_start_time TIME'),
            ('morning_end_time', 'ALTER TABLE availability ADD COLUMN morning_end_time TIME'),
            ('evening_start_time', 'ALTER TABLE availability ADD COLUMN evening_start_time TIME'),
            ('evening_end_time', 'ALTER TABLE availability ADD COLUMN evening_end_time TIME'),
        ],
        [
            'CREATE INDEX IF NOT EXISTS idx_availability_day_active ON availability(day_of_week, is_active)',
        ],
    )


def ensure_appointment_schema() -> None:
    _ensure_table_schema(
        'appointments',
        [
            ('description', 'ALTER TABLE appointments ADD COLUMN description TEXT'),
            ('duration', 'ALTER TABLE appointments ADD COLUMN duration INTEGER'),
        ],
        [
            'CREATE INDEX IF NOT EXISTS idx_appointments_date_time ON appointments(appointment_date, appointment_time)',
            'CREATE INDEX IF NOT EXISTS idx_appointments_user_created ON appointments(user_id, created_at)',
            'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
            f'ON appointments(appointment_date, appointment_time) WHERE {ACTIVE_STATUS_SQL}',
        ],
    )


def ensure_blocked_slot_schema() -> None:
    # Full-day-only tables predate partial blocks.
    _ensure_table_schema(
        'blocked_slots',
        [
            ('start_time', 'ALTER TABLE blocked_slots ADD COLUMN start_time TIME'),
            ('end_time', 'ALTER TABLE blocked_slots ADD COLUMN end_time TIME'),
        ],
        [
            'CREATE INDEX IF NOT EXISTS idx_blocked_slots_date ON blocked_slots(blocked_date, is_full_day)',
            'CREATE UNIQUE INDEX IF NOT EXISTS uq_blocked_slots_full_day '
            'ON blocked_slots(blocked_date) WHERE is_full_day',
        ],
    )
