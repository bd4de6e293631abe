"""Plain data records exchanged between the scheduling engine and its repository."""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum


class Weekday(str, Enum):
    """Day names, indexed with Sunday as day 0."""

    SUNDAY = 'Sunday'
    MONDAY = 'Monday'
    TUESDAY = 'Tuesday'
    WEDNESDAY = 'Wednesday'
    THURSDAY = 'Thursday'
    FRIDAY = 'Friday'
    SATURDAY = 'Saturday'

    @property
    def index(self) -> int:
        return list(Weekday).index(self)

    @classmethod
    def for_date(cls, value: date) -> 'Weekday':
        # date.weekday() counts from Monday=0
        return list(cls)[(value.weekday() + 1) % 7]


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    RESCHEDULED = 'rescheduled'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


@dataclass(frozen=True)
class AvailabilityTemplate:
    day_of_week: Weekday
    slot_duration_minutes: int
    morning_start: time | None = None
    morning_end: time | None = None
    evening_start: time | None = None
    evening_end: time | None = None
    is_active: bool = True
    id: int | None = None


@dataclass(frozen=True)
class BlockedSlotRecord:
    blocked_date: date
    is_full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class NewAppointment:
    user_id: int
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.PENDING
    description: str | None = None


@dataclass(frozen=True)
class AppointmentRecord:
    id: int
    user_id: int
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    duration_minutes: int
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentInfo:
    amount: Decimal
    payment_method: str
    status: str = 'pending'
    transaction_reference: str | None = None


@dataclass(frozen=True)
class NewTransaction:
    user_id: int
    appointment_id: int
    amount: Decimal
    payment_method: str
    status: str = 'pending'
    transaction_reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    user_id: int
    appointment_id: int
    amount: Decimal
    payment_method: str
    status: str
    transaction_reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class BookingResult:
    """Outcome of a booking-style operation. Rejections carry a message, not an exception."""

    success: bool
    message: str
    appointment: AppointmentRecord | None = None
    transaction: TransactionRecord | None = None
