"""Per-slot availability for a single date."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from clinic_backend.scheduling.records import AvailabilityTemplate, Weekday
from clinic_backend.scheduling.repository import SchedulingRepository
from clinic_backend.scheduling.slots import (
    Slot,
    generate_time_slots,
    is_start_blocked,
    is_window_configured,
)

NO_AVAILABILITY_MESSAGE = 'No availability for this day'
DAY_UNAVAILABLE_MESSAGE = 'This day is not available'


class DayStatus(str, Enum):
    AVAILABLE = 'available'
    NO_AVAILABILITY = 'no_availability'
    UNAVAILABLE = 'unavailable'


@dataclass(frozen=True)
class SlotAvailability:
    slot: Slot
    is_available: bool
    is_booked: bool = False
    is_blocked: bool = False


@dataclass(frozen=True)
class DayAvailability:
    date: date
    status: DayStatus
    message: str | None = None
    morning: list[SlotAvailability] = field(default_factory=list)
    evening: list[SlotAvailability] = field(default_factory=list)


def build_template_slots(template: AvailabilityTemplate) -> tuple[list[Slot], list[Slot]]:
    """Return the (morning, evening) slots a template yields for one day."""
    morning: list[Slot] = []
    evening: list[Slot] = []

    if is_window_configured(template.morning_start, template.morning_end):
        morning = generate_time_slots(
            template.morning_start,
            template.morning_end,
            template.slot_duration_minutes,
        )

    if is_window_configured(template.evening_start, template.evening_end):
        evening = generate_time_slots(
            template.evening_start,
            template.evening_end,
            template.slot_duration_minutes,
        )

    return morning, evening


class SlotAvailabilityEvaluator:
    def __init__(self, repository: SchedulingRepository):
        self.repository = repository

    def evaluate(self, day: date) -> DayAvailability:
        template = self.repository.find_active_template(Weekday.for_date(day))
        if template is None or not template.is_active:
            return DayAvailability(date=day, status=DayStatus.NO_AVAILABILITY, message=NO_AVAILABILITY_MESSAGE)

        if self.repository.has_full_day_block(day):
            return DayAvailability(date=day, status=DayStatus.UNAVAILABLE, message=DAY_UNAVAILABLE_MESSAGE)

        morning_slots, evening_slots = build_template_slots(template)

        booked_times = {
            appointment.appointment_time.strftime('%H:%M:00')
            for appointment in self.repository.list_active_appointments(day)
        }
        partial_blocks = self.repository.list_partial_blocks(day)

        def mark(slots: list[Slot]) -> list[SlotAvailability]:
            marked = []
            for slot in slots:
                is_booked = slot.start.strftime('%H:%M:00') in booked_times
                is_blocked = is_start_blocked(slot.start, partial_blocks)
                marked.append(
                    SlotAvailability(
                        slot=slot,
                        is_available=not (is_booked or is_blocked),
                        is_booked=is_booked,
                        is_blocked=is_blocked,
                    )
                )
            return marked

        return DayAvailability(
            date=day,
            status=DayStatus.AVAILABLE,
            morning=mark(morning_slots),
            evening=mark(evening_slots),
        )
