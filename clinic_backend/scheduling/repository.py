"""Storage operations the scheduling engine depends on."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, time

from clinic_backend.scheduling.records import (
    AppointmentRecord,
    AvailabilityTemplate,
    BlockedSlotRecord,
    NewAppointment,
    NewTransaction,
    TransactionRecord,
    Weekday,
)


class DuplicateBookingError(Exception):
    """An active appointment already holds the requested date and time."""


class SchedulingRepository(ABC):
    """Abstract persistence boundary for the scheduling engine.

    Implementations return plain records and must make
    ``create_full_day_block`` idempotent per date. ``atomic`` groups writes
    into one unit that is committed on success and rolled back on error.
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        ...

    @abstractmethod
    def find_active_template(self, day_of_week: Weekday) -> AvailabilityTemplate | None:
        ...

    @abstractmethod
    def has_full_day_block(self, blocked_date: date) -> bool:
        ...

    @abstractmethod
    def list_partial_blocks(self, blocked_date: date) -> list[BlockedSlotRecord]:
        ...

    @abstractmethod
    def create_full_day_block(self, blocked_date: date, reason: str) -> BlockedSlotRecord:
        ...

    @abstractmethod
    def count_active_appointments(self, appointment_date: date) -> int:
        ...

    @abstractmethod
    def find_active_appointment(self, appointment_date: date, appointment_time: time) -> AppointmentRecord | None:
        ...

    @abstractmethod
    def list_active_appointments(self, appointment_date: date) -> list[AppointmentRecord]:
        ...

    @abstractmethod
    def create_appointment(self, record: NewAppointment) -> AppointmentRecord:
        """Persist a new appointment; raise DuplicateBookingError on an active-slot collision."""

    @abstractmethod
    def create_transaction(self, record: NewTransaction) -> TransactionRecord:
        ...

    @abstractmethod
    def get_appointment(self, appointment_id: int) -> AppointmentRecord | None:
        ...

    @abstractmethod
    def find_latest_appointment(self, user_id: int) -> AppointmentRecord | None:
        ...

    @abstractmethod
    def update_appointment(self, appointment_id: int, **fields) -> AppointmentRecord | None:
        """Overwrite the given fields; raise DuplicateBookingError on an active-slot collision."""
