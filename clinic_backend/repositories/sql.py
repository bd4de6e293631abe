"""SQLAlchemy-backed storage for the scheduling engine."""

from contextlib import contextmanager
from datetime import date, time

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.availability import Availability
from clinic_backend.models.blocked_slot import BlockedSlot
from clinic_backend.models.transaction import Transaction
from clinic_backend.models.user import User
from clinic_backend.scheduling.records import (
    ACTIVE_STATUSES,
    AppointmentRecord,
    AppointmentStatus,
    AvailabilityTemplate,
    BlockedSlotRecord,
    NewAppointment,
    NewTransaction,
    TransactionRecord,
    Weekday,
)
from clinic_backend.scheduling.repository import DuplicateBookingError, SchedulingRepository

ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_STATUSES)


def to_template_record(row: Availability) -> AvailabilityTemplate:
    return AvailabilityTemplate(
        id=row.id,
        day_of_week=Weekday(row.day_of_week),
        slot_duration_minutes=row.slot_duration,
        morning_start=row.morning_start_time,
        morning_end=row.morning_end_time,
        evening_start=row.evening_start_time,
        evening_end=row.evening_end_time,
        is_active=bool(row.is_active),
    )


def to_blocked_slot_record(row: BlockedSlot) -> BlockedSlotRecord:
    return BlockedSlotRecord(
        id=row.id,
        blocked_date=row.blocked_date,
        is_full_day=bool(row.is_full_day),
        start_time=row.start_time,
        end_time=row.end_time,
        reason=row.reason,
    )


def to_appointment_record(row: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=row.id,
        user_id=row.user_id,
        appointment_date=row.appointment_date,
        appointment_time=row.appointment_time,
        status=AppointmentStatus(row.status),
        duration_minutes=row.duration,
        description=row.description,
        created_at=row.created_at,
    )


def to_transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        appointment_id=row.appointment_id,
        amount=row.amount,
        payment_method=row.payment_method,
        status=row.status,
        transaction_reference=row.transaction_reference,
        notes=row.notes,
    )


def get_or_create_user(db: Session, name: str, mobile: str) -> User:
    user = db.query(User).filter(User.mobile == mobile).first()
    if user is None:
        user = User(name=name, mobile=mobile, role='user')
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


class SqlSchedulingRepository(SchedulingRepository):
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _active_appointments(self, appointment_date: date):
        return self.db.query(Appointment).filter(
            Appointment.appointment_date == appointment_date,
            Appointment.status.in_(ACTIVE_STATUS_VALUES),
        )

    def find_active_template(self, day_of_week: Weekday) -> AvailabilityTemplate | None:
        row = self.db.query(Availability).filter(
            Availability.day_of_week == day_of_week.value,
            Availability.is_active.is_(True),
        ).first()
        return to_template_record(row) if row else None

    def has_full_day_block(self, blocked_date: date) -> bool:
        return self.db.query(BlockedSlot.id).filter(
            BlockedSlot.blocked_date == blocked_date,
            BlockedSlot.is_full_day.is_(True),
        ).first() is not None

    def list_partial_blocks(self, blocked_date: date) -> list[BlockedSlotRecord]:
        rows = self.db.query(BlockedSlot).filter(
            BlockedSlot.blocked_date == blocked_date,
            BlockedSlot.is_full_day.is_(False),
        ).order_by(BlockedSlot.start_time.asc()).all()
        return [to_blocked_slot_record(row) for row in rows]

    def _find_full_day_block(self, blocked_date: date) -> BlockedSlot | None:
        return self.db.query(BlockedSlot).filter(
            BlockedSlot.blocked_date == blocked_date,
            BlockedSlot.is_full_day.is_(True),
        ).first()

    def create_full_day_block(self, blocked_date: date, reason: str) -> BlockedSlotRecord:
        existing = self._find_full_day_block(blocked_date)
        if existing:
            return to_blocked_slot_record(existing)

        block = BlockedSlot(blocked_date=blocked_date, is_full_day=True, reason=reason)
        self.db.add(block)
        try:
            self.db.flush()
        except IntegrityError:
            # Another process created it between the lookup and the insert.
            self.db.rollback()
            return to_blocked_slot_record(self._find_full_day_block(blocked_date))

        return to_blocked_slot_record(block)

    def count_active_appointments(self, appointment_date: date) -> int:
        return self._active_appointments(appointment_date).count()

    def find_active_appointment(self, appointment_date: date, appointment_time: time) -> AppointmentRecord | None:
        row = self._active_appointments(appointment_date).filter(
            Appointment.appointment_time == appointment_time,
        ).first()
        return to_appointment_record(row) if row else None

    def list_active_appointments(self, appointment_date: date) -> list[AppointmentRecord]:
        rows = self._active_appointments(appointment_date).order_by(Appointment.appointment_time.asc()).all()
        return [to_appointment_record(row) for row in rows]

    def create_appointment(self, record: NewAppointment) -> AppointmentRecord:
        appointment = Appointment(
            user_id=record.user_id,
            appointment_date=record.appointment_date,
            appointment_time=record.appointment_time,
            status=record.status.value,
            description=record.description,
            duration=record.duration_minutes,
        )
        self.db.add(appointment)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateBookingError(str(exc.orig)) from exc

        self.db.refresh(appointment)
        return to_appointment_record(appointment)

    def create_transaction(self, record: NewTransaction) -> TransactionRecord:
        transaction = Transaction(
            user_id=record.user_id,
            appointment_id=record.appointment_id,
            amount=record.amount,
            payment_method=record.payment_method,
            status=record.status,
            transaction_reference=record.transaction_reference,
            notes=record.notes,
        )
        self.db.add(transaction)
        self.db.flush()
        return to_transaction_record(transaction)

    def get_appointment(self, appointment_id: int) -> AppointmentRecord | None:
        row = self.db.get(Appointment, appointment_id)
        return to_appointment_record(row) if row else None

    def find_latest_appointment(self, user_id: int) -> AppointmentRecord | None:
        row = self.db.query(Appointment).filter(
            Appointment.user_id == user_id,
        ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).first()
        return to_appointment_record(row) if row else None

    def update_appointment(self, appointment_id: int, **fields) -> AppointmentRecord | None:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            return None

        for name, value in fields.items():
            if isinstance(value, AppointmentStatus):
                value = value.value
            setattr(appointment, name, value)

        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateBookingError(str(exc.orig)) from exc

        self.db.refresh(appointment)
        return to_appointment_record(appointment)
