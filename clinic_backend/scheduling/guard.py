"""Admission checks for a requested appointment slot."""

from dataclasses import dataclass
from datetime import date, time

from clinic_backend.scheduling.availability import NO_AVAILABILITY_MESSAGE
from clinic_backend.scheduling.records import AvailabilityTemplate, Weekday
from clinic_backend.scheduling.repository import SchedulingRepository
from clinic_backend.scheduling.slots import is_start_blocked

DAY_FULLY_BOOKED_MESSAGE = 'This day is fully booked and not available'
SLOT_ALREADY_BOOKED_MESSAGE = 'This time slot is already booked'
SLOT_BLOCKED_MESSAGE = 'This time slot is blocked'


@dataclass(frozen=True)
class Admission:
    admitted: bool
    reason: str | None = None
    template: AvailabilityTemplate | None = None

    @classmethod
    def reject(cls, reason: str) -> 'Admission':
        return cls(admitted=False, reason=reason)


class BookingConflictGuard:
    def __init__(self, repository: SchedulingRepository):
        self.repository = repository

    def admit(self, day: date, at: time, exclude_appointment_id: int | None = None) -> Admission:
        """Run the admission checks in order; the first failing check decides."""
        template = self.repository.find_active_template(Weekday.for_date(day))
        if template is None or not template.is_active:
            return Admission.reject(NO_AVAILABILITY_MESSAGE)

        if self.repository.has_full_day_block(day):
            return Admission.reject(DAY_FULLY_BOOKED_MESSAGE)

        existing = self.repository.find_active_appointment(day, at)
        if existing is not None and existing.id != exclude_appointment_id:
            return Admission.reject(SLOT_ALREADY_BOOKED_MESSAGE)

        if is_start_blocked(at, self.repository.list_partial_blocks(day)):
            return Admission.reject(SLOT_BLOCKED_MESSAGE)

        return Admission(admitted=True, template=template)
