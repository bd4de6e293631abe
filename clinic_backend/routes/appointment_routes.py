import logging
from datetime import date, datetime, time
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.transaction import Transaction
from clinic_backend.repositories.sql import SqlSchedulingRepository, get_or_create_user
from clinic_backend.routes.common import database_unavailable, ensure_database_ready, get_db, paginate
from clinic_backend.scheduling.availability import DayAvailability, DayStatus, SlotAvailability
from clinic_backend.scheduling.lifecycle import APPOINTMENT_NOT_FOUND_MESSAGE, AppointmentLifecycleManager
from clinic_backend.scheduling.records import (
    AppointmentRecord,
    AppointmentStatus,
    BookingResult,
    PaymentInfo,
    TransactionRecord,
)
from clinic_backend.scheduling.slots import parse_time_of_day

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 1000


class CreateAppointmentRequest(BaseModel):
    username: str
    mobile: str
    appointment_date: date
    appointment_time: time
    duration: int = Field(gt=0)
    description: str | None = None
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    payment_method: str = config.DEFAULT_PAYMENT_METHOD
    payment_status: str = 'pending'
    transaction_id: str | None = None

    @field_validator('username', 'mobile')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name and mobile number are required.')
        return normalized

    @field_validator('appointment_time', mode='before')
    @classmethod
    def validate_appointment_time(cls, value):
        return parse_time_of_day(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')

        return normalized


class AvailableSlotsRequest(BaseModel):
    date: date


class RescheduleAppointmentRequest(BaseModel):
    user_id: int
    appointment_date: date
    appointment_time: time

    @field_validator('appointment_time', mode='before')
    @classmethod
    def validate_appointment_time(cls, value):
        return parse_time_of_day(value)


class UpdateAppointmentStatusRequest(BaseModel):
    appointment_id: int
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    duration: int
    description: str | None = None


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    appointment_id: int
    amount: Decimal
    payment_method: str
    status: str
    transaction_reference: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    success: bool
    message: str
    appointment: AppointmentResponse | None = None
    transaction: TransactionResponse | None = None


class SlotResponse(BaseModel):
    time: str
    is_available: bool
    is_booked: bool
    is_blocked: bool


class AvailableSlotsResponse(BaseModel):
    date: date
    status: DayStatus
    message: str | None = None
    morning: list[SlotResponse]
    evening: list[SlotResponse]


class UserSummaryResponse(BaseModel):
    id: int
    name: str
    mobile: str | None = None
    email: str | None = None

    class Config:
        from_attributes = True


class AppointmentDetailResponse(BaseModel):
    id: int
    user_id: int
    appointment_date: date
    appointment_time: time
    status: str
    duration: int
    description: str | None = None
    created_at: datetime | None = None
    user: UserSummaryResponse | None = None
    transaction: TransactionResponse | None = None

    class Config:
        from_attributes = True


class AppointmentPageResponse(BaseModel):
    data: list[AppointmentDetailResponse]
    total: int
    current_page: int
    last_page: int
    per_page: int


def to_appointment_response(record: AppointmentRecord | None) -> AppointmentResponse | None:
    if record is None:
        return None
    return AppointmentResponse(
        id=record.id,
        user_id=record.user_id,
        appointment_date=record.appointment_date,
        appointment_time=record.appointment_time,
        status=record.status,
        duration=record.duration_minutes,
        description=record.description,
    )


def to_booking_response(result: BookingResult) -> BookingResponse:
    transaction: TransactionRecord | None = result.transaction
    return BookingResponse(
        success=result.success,
        message=result.message,
        appointment=to_appointment_response(result.appointment),
        transaction=TransactionResponse.model_validate(transaction) if transaction else None,
    )


def to_slot_responses(slots: list[SlotAvailability]) -> list[SlotResponse]:
    return [
        SlotResponse(
            time=slot.slot.label,
            is_available=slot.is_available,
            is_booked=slot.is_booked,
            is_blocked=slot.is_blocked,
        )
        for slot in slots
    ]


def to_available_slots_response(day: DayAvailability) -> AvailableSlotsResponse:
    return AvailableSlotsResponse(
        date=day.date,
        status=day.status,
        message=day.message,
        morning=to_slot_responses(day.morning),
        evening=to_slot_responses(day.evening),
    )


@router.post('', response_model=BookingResponse)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        user = get_or_create_user(db, name=data.username, mobile=data.mobile)
        manager = AppointmentLifecycleManager(SqlSchedulingRepository(db))
        result = manager.book_appointment(
            user_id=user.id,
            day=data.appointment_date,
            at=data.appointment_time,
            duration_minutes=data.duration,
            payment=PaymentInfo(
                amount=data.amount,
                payment_method=data.payment_method,
                status=data.payment_status,
                transaction_reference=data.transaction_id,
            ),
            description=data.description,
        )

        return to_booking_response(result)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Booking failed for %s %s', data.appointment_date, data.appointment_time)
        raise database_unavailable() from exc


@router.post('/available-slots', response_model=AvailableSlotsResponse)
def get_available_slots(data: AvailableSlotsRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        manager = AppointmentLifecycleManager(SqlSchedulingRepository(db))
        return to_available_slots_response(manager.get_available_slots(data.date))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/reschedule', response_model=BookingResponse)
def reschedule_appointment(data: RescheduleAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        manager = AppointmentLifecycleManager(SqlSchedulingRepository(db))
        result = manager.reschedule_latest(data.user_id, data.appointment_date, data.appointment_time)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if not result.success and result.message == APPOINTMENT_NOT_FOUND_MESSAGE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=APPOINTMENT_NOT_FOUND_MESSAGE)

    return to_booking_response(result)


@router.put('/status', response_model=BookingResponse)
def update_appointment_status(data: UpdateAppointmentStatusRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        manager = AppointmentLifecycleManager(SqlSchedulingRepository(db))
        result = manager.update_status(data.appointment_id, data.status)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if not result.success and result.message == APPOINTMENT_NOT_FOUND_MESSAGE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=APPOINTMENT_NOT_FOUND_MESSAGE)

    return to_booking_response(result)


@router.get('', response_model=AppointmentPageResponse)
def list_appointments(
    appointment_date: date | None = Query(default=None, alias='date'),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    payment_status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment)
        if appointment_date is not None:
            query = query.filter(Appointment.appointment_date == appointment_date)
        if appointment_status is not None:
            query = query.filter(Appointment.status == appointment_status.value)
        if payment_status:
            query = query.join(Transaction, Transaction.appointment_id == Appointment.id).filter(
                Transaction.status == payment_status,
            )

        result = paginate(query.order_by(Appointment.created_at.desc(), Appointment.id.desc()), page, limit)

        return AppointmentPageResponse(
            data=[AppointmentDetailResponse.model_validate(row) for row in result['rows']],
            total=result['total'],
            current_page=result['current_page'],
            last_page=result['last_page'],
            per_page=result['per_page'],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentDetailResponse)
def get_appointment_details(appointment_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = db.get(Appointment, appointment_id)
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=APPOINTMENT_NOT_FOUND_MESSAGE,
            )

        return AppointmentDetailResponse.model_validate(appointment)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
