from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.availability import Availability
from clinic_backend.models.blocked_slot import BlockedSlot
from clinic_backend.repositories.sql import ACTIVE_STATUS_VALUES, SqlSchedulingRepository
from clinic_backend.routes.common import database_unavailable, ensure_database_ready, get_db, paginate
from clinic_backend.scheduling.blocks import FullDayBlockResolver
from clinic_backend.scheduling.records import Weekday
from clinic_backend.scheduling.slots import parse_time_of_day

router = APIRouter(tags=['availability'])

WINDOW_FIELDS = ('morning_start_time', 'morning_end_time', 'evening_start_time', 'evening_end_time')


def _optional_time(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_time_of_day(value)


class CreateAvailabilityRequest(BaseModel):
    day_of_week: Weekday
    morning_start_time: time | None = None
    morning_end_time: time | None = None
    evening_start_time: time | None = None
    evening_end_time: time | None = None
    slot_duration: int = Field(gt=0)
    is_active: bool = True

    @field_validator(*WINDOW_FIELDS, mode='before')
    @classmethod
    def validate_window_time(cls, value):
        return _optional_time(value)


class UpdateAvailabilityRequest(BaseModel):
    day_of_week: Weekday | None = None
    morning_start_time: time | None = None
    morning_end_time: time | None = None
    evening_start_time: time | None = None
    evening_end_time: time | None = None
    slot_duration: int | None = Field(default=None, gt=0)
    is_active: bool | None = None

    @field_validator(*WINDOW_FIELDS, mode='before')
    @classmethod
    def validate_window_time(cls, value):
        return _optional_time(value)


class AvailabilityResponse(BaseModel):
    id: int
    day_of_week: Weekday
    morning_start_time: time | None = None
    morning_end_time: time | None = None
    evening_start_time: time | None = None
    evening_end_time: time | None = None
    slot_duration: int
    is_active: bool

    class Config:
        from_attributes = True


class AvailabilityPageResponse(BaseModel):
    data: list[AvailabilityResponse]
    total: int
    current_page: int
    last_page: int
    per_page: int


class CreateBlockRequest(BaseModel):
    date: date
    is_full_day: bool = False
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_block_time(cls, value):
        return _optional_time(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode='after')
    def validate_interval(self) -> 'CreateBlockRequest':
        if self.is_full_day:
            self.start_time = None
            self.end_time = None
            return self

        if self.start_time is None or self.end_time is None:
            raise ValueError('Partial blocks need both start_time and end_time.')
        if self.start_time > self.end_time:
            raise ValueError('start_time must not be after end_time.')

        return self


class BlockedSlotResponse(BaseModel):
    id: int
    blocked_date: date
    is_full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None

    class Config:
        from_attributes = True


@router.post('/blocks', response_model=BlockedSlotResponse, status_code=status.HTTP_201_CREATED)
def create_block(data: CreateBlockRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        if data.is_full_day:
            existing_full_day = db.query(BlockedSlot).filter(
                BlockedSlot.blocked_date == data.date,
                BlockedSlot.is_full_day.is_(True),
            ).first()
            if existing_full_day:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='This day is already blocked.',
                )
        else:
            overlapping_block = db.query(BlockedSlot).filter(
                BlockedSlot.blocked_date == data.date,
                BlockedSlot.is_full_day.is_(False),
                BlockedSlot.start_time <= data.end_time,
                BlockedSlot.end_time >= data.start_time,
            ).first()
            if overlapping_block:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='This time is already blocked.',
                )

            booked_appointment = db.query(Appointment).filter(
                Appointment.appointment_date == data.date,
                Appointment.status.in_(ACTIVE_STATUS_VALUES),
                Appointment.appointment_time >= data.start_time,
                Appointment.appointment_time <= data.end_time,
            ).first()
            if booked_appointment:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='This time is already booked by a patient appointment.',
                )

        blocked_slot = BlockedSlot(
            blocked_date=data.date,
            is_full_day=data.is_full_day,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
        db.add(blocked_slot)
        db.commit()
        db.refresh(blocked_slot)

        if not blocked_slot.is_full_day:
            repository = SqlSchedulingRepository(db)
            template = repository.find_active_template(Weekday.for_date(data.date))
            if template is not None:
                FullDayBlockResolver(repository).reconcile(data.date, template)

        return blocked_slot
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/blocks', response_model=list[BlockedSlotResponse])
def list_blocks(
    blocked_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(BlockedSlot)
        if blocked_date is not None:
            query = query.filter(BlockedSlot.blocked_date == blocked_date)
        else:
            query = query.filter(BlockedSlot.blocked_date >= date.today())

        return query.order_by(
            BlockedSlot.blocked_date.asc(),
            BlockedSlot.is_full_day.desc(),
            BlockedSlot.start_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/blocks/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_block(block_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        blocked_slot = db.query(BlockedSlot).filter(BlockedSlot.id == block_id).first()

        if not blocked_slot:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Blocked time not found.',
            )

        db.delete(blocked_slot)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(data: CreateAvailabilityRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        existing = db.query(Availability).filter(Availability.day_of_week == data.day_of_week.value).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Availability for {data.day_of_week.value} already exists',
            )

        availability = Availability(
            day_of_week=data.day_of_week.value,
            morning_start_time=data.morning_start_time,
            morning_end_time=data.morning_end_time,
            evening_start_time=data.evening_start_time,
            evening_end_time=data.evening_end_time,
            slot_duration=data.slot_duration,
            is_active=data.is_active,
        )
        db.add(availability)
        db.commit()
        db.refresh(availability)

        return availability
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=AvailabilityPageResponse)
def list_availabilities(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = paginate(db.query(Availability).order_by(Availability.id.asc()), page, limit)

        return AvailabilityPageResponse(
            data=[AvailabilityResponse.model_validate(row) for row in result['rows']],
            total=result['total'],
            current_page=result['current_page'],
            last_page=result['last_page'],
            per_page=result['per_page'],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def _get_availability_or_404(availability_id: int, db: Session) -> Availability:
    availability = db.get(Availability, availability_id)
    if not availability:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability not found',
        )
    return availability


@router.get('/{availability_id}', response_model=AvailabilityResponse)
def get_availability(availability_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return _get_availability_or_404(availability_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{availability_id}', response_model=AvailabilityResponse)
def update_availability(availability_id: int, data: UpdateAvailabilityRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        availability = _get_availability_or_404(availability_id, db)
        changes = data.model_dump(exclude_unset=True)

        new_day = changes.pop('day_of_week', None)
        if new_day is not None and new_day.value != availability.day_of_week:
            clash = db.query(Availability).filter(
                Availability.day_of_week == new_day.value,
                Availability.id != availability_id,
            ).first()
            if clash:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f'Availability for {new_day.value} already exists',
                )
            availability.day_of_week = new_day.value

        # Null durations and flags keep their stored values; window times may be cleared.
        for field_name, value in changes.items():
            if value is None and field_name not in WINDOW_FIELDS:
                continue
            setattr(availability, field_name, value)

        db.commit()
        db.refresh(availability)

        return availability
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{availability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(availability_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        availability = _get_availability_or_404(availability_id, db)
        db.delete(availability)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
