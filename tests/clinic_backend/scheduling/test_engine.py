from datetime import date, time

from clinic_backend.scheduling.availability import DayStatus, SlotAvailabilityEvaluator
from clinic_backend.scheduling.blocks import FullDayBlockResolver
from clinic_backend.scheduling.guard import BookingConflictGuard
from clinic_backend.scheduling.records import Weekday

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)
MONDAY_WEEKDAY = Weekday.MONDAY


def availability_pairs(slots) -> list[tuple[str, bool]]:
    return [(slot.slot.label, slot.is_available) for slot in slots]


class TestSlotAvailabilityEvaluator:
    def test_marks_booked_slot_unavailable(self, repository, add_template, add_appointment) -> None:
        add_template('Monday', morning=(time(9, 0), time(10, 0)), slot_duration=30)
        add_appointment(MONDAY, time(9, 30))

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert day.status is DayStatus.AVAILABLE
        assert availability_pairs(day.morning) == [('09:00-09:30', True), ('09:30-10:00', False)]
        assert day.morning[1].is_booked
        assert day.evening == []

    def test_inactive_appointments_do_not_occupy_slots(self, repository, add_template, add_appointment) -> None:
        add_template('Monday', morning=(time(9, 0), time(10, 0)))
        add_appointment(MONDAY, time(9, 0), status='cancelled')
        add_appointment(MONDAY, time(9, 30), status='rescheduled')

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert availability_pairs(day.morning) == [('09:00-09:30', True), ('09:30-10:00', True)]

    def test_no_template_signals_no_availability(self, repository, add_template) -> None:
        add_template('Monday')

        day = SlotAvailabilityEvaluator(repository).evaluate(TUESDAY)

        assert day.status is DayStatus.NO_AVAILABILITY
        assert day.message == 'No availability for this day'
        assert day.morning == [] and day.evening == []

    def test_inactive_template_signals_no_availability(self, repository, add_template) -> None:
        add_template('Monday', is_active=False)

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert day.status is DayStatus.NO_AVAILABILITY

    def test_full_day_block_short_circuits(self, repository, add_template, add_block) -> None:
        add_template('Monday')
        add_block(MONDAY, reason='Holiday')

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert day.status is DayStatus.UNAVAILABLE
        assert day.message == 'This day is not available'
        assert day.morning == [] and day.evening == []

    def test_partial_block_marks_slots_by_start_minute(self, repository, add_template, add_block) -> None:
        add_template('Monday', morning=(time(9, 0), time(11, 0)), slot_duration=30)
        add_block(MONDAY, time(9, 45), time(10, 0))

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert availability_pairs(day.morning) == [
            ('09:00-09:30', True),
            ('09:30-10:00', True),
            ('10:00-10:30', False),
            ('10:30-11:00', True),
        ]
        assert day.morning[2].is_blocked

    def test_morning_and_evening_are_independent(self, repository, add_template) -> None:
        add_template(
            'Monday',
            morning=(time(0, 0), time(0, 0)),
            evening=(time(17, 0), time(18, 0)),
            slot_duration=60,
        )

        day = SlotAvailabilityEvaluator(repository).evaluate(MONDAY)

        assert day.morning == []
        assert availability_pairs(day.evening) == [('17:00-18:00', True)]


class TestBookingConflictGuard:
    def test_rejects_exact_time_collision(self, repository, add_template, add_appointment) -> None:
        add_template('Monday', morning=(time(9, 0), time(12, 0)))
        add_appointment(MONDAY, time(10, 0))
        guard = BookingConflictGuard(repository)

        rejected = guard.admit(MONDAY, time(10, 0))
        admitted = guard.admit(MONDAY, time(10, 30))

        assert not rejected.admitted
        assert rejected.reason == 'This time slot is already booked'
        assert admitted.admitted
        assert admitted.template.day_of_week.value == 'Monday'

    def test_rejects_day_without_template(self, repository) -> None:
        admission = BookingConflictGuard(repository).admit(TUESDAY, time(10, 0))

        assert admission.reason == 'No availability for this day'

    def test_full_day_block_wins_over_slot_checks(self, repository, add_template, add_appointment, add_block) -> None:
        add_template('Monday')
        add_appointment(MONDAY, time(9, 0))
        add_block(MONDAY)

        admission = BookingConflictGuard(repository).admit(MONDAY, time(9, 0))

        assert admission.reason == 'This day is fully booked and not available'

    def test_rejects_start_inside_partial_block(self, repository, add_template, add_block) -> None:
        add_template('Monday', morning=(time(9, 0), time(12, 0)))
        add_block(MONDAY, time(11, 0), time(11, 30))

        admission = BookingConflictGuard(repository).admit(MONDAY, time(11, 30))

        assert admission.reason == 'This time slot is blocked'

    def test_excluded_appointment_does_not_collide(self, repository, add_template, add_appointment) -> None:
        add_template('Monday')
        appointment = add_appointment(MONDAY, time(9, 0))

        admission = BookingConflictGuard(repository).admit(
            MONDAY,
            time(9, 0),
            exclude_appointment_id=appointment.id,
        )

        assert admission.admitted

    def test_cancelled_appointment_frees_the_slot(self, repository, add_template, add_appointment) -> None:
        add_template('Monday')
        add_appointment(MONDAY, time(9, 0), status='cancelled')

        assert BookingConflictGuard(repository).admit(MONDAY, time(9, 0)).admitted


class TestFullDayBlockResolver:
    def test_blocks_date_once_every_slot_is_booked(
        self, repository, add_template, add_appointment, count_full_day_blocks
    ) -> None:
        add_template('Monday', morning=(time(9, 0), time(10, 0)))
        template = repository.find_active_template(MONDAY_WEEKDAY)
        resolver = FullDayBlockResolver(repository)

        add_appointment(MONDAY, time(9, 0))
        assert resolver.reconcile(MONDAY, template) is False
        assert count_full_day_blocks(MONDAY) == 0

        add_appointment(MONDAY, time(9, 30))
        assert resolver.reconcile(MONDAY, template) is True
        assert count_full_day_blocks(MONDAY) == 1
        assert repository.has_full_day_block(MONDAY)

    def test_reconcile_is_idempotent(
        self, repository, add_template, add_appointment, count_full_day_blocks
    ) -> None:
        add_template('Monday', morning=(time(9, 0), time(10, 0)))
        add_appointment(MONDAY, time(9, 0))
        add_appointment(MONDAY, time(9, 30))
        template = repository.find_active_template(MONDAY_WEEKDAY)
        resolver = FullDayBlockResolver(repository)

        resolver.reconcile(MONDAY, template)
        resolver.reconcile(MONDAY, template)

        assert count_full_day_blocks(MONDAY) == 1

    def test_partial_blocks_count_towards_capacity(
        self, repository, add_template, add_appointment, add_block, count_full_day_blocks
    ) -> None:
        add_template('Monday', morning=(time(9, 0), time(10, 0)))
        add_appointment(MONDAY, time(9, 0))
        add_block(MONDAY, time(9, 30), time(9, 30))
        template = repository.find_active_template(MONDAY_WEEKDAY)

        assert FullDayBlockResolver(repository).reconcile(MONDAY, template) is True
        assert count_full_day_blocks(MONDAY) == 1

    def test_template_without_slots_never_blocks(
        self, repository, add_template, count_full_day_blocks
    ) -> None:
        add_template('Monday', morning=None, evening=None)
        template = repository.find_active_template(MONDAY_WEEKDAY)

        assert FullDayBlockResolver(repository).reconcile(MONDAY, template) is False
        assert count_full_day_blocks(MONDAY) == 0

    def test_uses_configured_reason(self, repository, add_template, add_appointment) -> None:
        add_template('Monday', morning=(time(9, 0), time(9, 30)))
        add_appointment(MONDAY, time(9, 0))
        template = repository.find_active_template(MONDAY_WEEKDAY)

        FullDayBlockResolver(repository).reconcile(MONDAY, template)

        assert repository.create_full_day_block(MONDAY, 'ignored').reason == 'All slots booked'
