"""Booking, rescheduling and status changes for appointments."""

import logging
from datetime import date, time
from threading import Lock
from weakref import WeakValueDictionary

from clinic_backend.scheduling.availability import DayAvailability, SlotAvailabilityEvaluator
from clinic_backend.scheduling.blocks import FullDayBlockResolver
from clinic_backend.scheduling.guard import SLOT_ALREADY_BOOKED_MESSAGE, BookingConflictGuard
from clinic_backend.scheduling.records import (
    AppointmentStatus,
    AvailabilityTemplate,
    BookingResult,
    NewAppointment,
    NewTransaction,
    PaymentInfo,
    Weekday,
)
from clinic_backend.scheduling.repository import DuplicateBookingError, SchedulingRepository
from clinic_backend.scheduling.slots import format_time, parse_time_of_day

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED_MESSAGE = 'Appointment created successfully'
APPOINTMENT_RESCHEDULED_MESSAGE = 'Appointment rescheduled successfully'
APPOINTMENT_STATUS_UPDATED_MESSAGE = 'Appointment status updated successfully'
APPOINTMENT_NOT_FOUND_MESSAGE = 'Appointment not found'


class DateLocks:
    """One lock per calendar date, shared by every manager in the process.

    Entries live only while some caller still holds the lock object.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: WeakValueDictionary[date, Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def for_date(self, day: date) -> Lock:
        with self._guard:
            lock = self._locks.get(day)
            if lock is None:
                lock = self._locks[day] = Lock()
            return lock


_booking_locks = DateLocks()


def coerce_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


class AppointmentLifecycleManager:
    def __init__(self, repository: SchedulingRepository, locks: DateLocks | None = None):
        self.repository = repository
        self.locks = locks or _booking_locks
        self.guard = BookingConflictGuard(repository)
        self.evaluator = SlotAvailabilityEvaluator(repository)
        self.resolver = FullDayBlockResolver(repository)

    def get_available_slots(self, day: date | str) -> DayAvailability:
        return self.evaluator.evaluate(coerce_date(day))

    def book_appointment(
        self,
        user_id: int,
        day: date | str,
        at: time | str,
        duration_minutes: int,
        payment: PaymentInfo | None = None,
        description: str | None = None,
    ) -> BookingResult:
        day = coerce_date(day)
        at = parse_time_of_day(at)

        with self.locks.for_date(day):
            admission = self.guard.admit(day, at)
            if not admission.admitted:
                logger.info('Booking rejected for %s %s: %s', day.isoformat(), format_time(at), admission.reason)
                return BookingResult(success=False, message=admission.reason)

            try:
                with self.repository.atomic():
                    appointment = self.repository.create_appointment(
                        NewAppointment(
                            user_id=user_id,
                            appointment_date=day,
                            appointment_time=at,
                            duration_minutes=duration_minutes,
                            description=description,
                        )
                    )
                    transaction = None
                    if payment is not None:
                        transaction = self.repository.create_transaction(
                            NewTransaction(
                                user_id=user_id,
                                appointment_id=appointment.id,
                                amount=payment.amount,
                                payment_method=payment.payment_method,
                                status=payment.status,
                                transaction_reference=payment.transaction_reference,
                                notes=f'Payment for appointment on {day.isoformat()} at {format_time(at)}',
                            )
                        )
            except DuplicateBookingError:
                logger.info('Booking lost a race for %s %s', day.isoformat(), format_time(at))
                return BookingResult(success=False, message=SLOT_ALREADY_BOOKED_MESSAGE)

            logger.info('Appointment %s booked for %s %s', appointment.id, day.isoformat(), format_time(at))
            self._reconcile_committed(day, admission.template)

        return BookingResult(
            success=True,
            message=APPOINTMENT_CREATED_MESSAGE,
            appointment=appointment,
            transaction=transaction,
        )

    def reschedule_latest(self, user_id: int, day: date | str, at: time | str) -> BookingResult:
        """Move the user's most recently created appointment to a new slot.

        The new slot passes through the same admission checks as a booking,
        ignoring the appointment being moved.
        """
        day = coerce_date(day)
        at = parse_time_of_day(at)

        appointment = self.repository.find_latest_appointment(user_id)
        if appointment is None:
            return BookingResult(success=False, message=APPOINTMENT_NOT_FOUND_MESSAGE)

        with self.locks.for_date(day):
            admission = self.guard.admit(day, at, exclude_appointment_id=appointment.id)
            if not admission.admitted:
                logger.info('Reschedule of appointment %s rejected: %s', appointment.id, admission.reason)
                return BookingResult(success=False, message=admission.reason, appointment=appointment)

            with self.repository.atomic():
                updated = self.repository.update_appointment(
                    appointment.id,
                    appointment_date=day,
                    appointment_time=at,
                    status=AppointmentStatus.RESCHEDULED,
                )

        logger.info('Appointment %s rescheduled to %s %s', appointment.id, day.isoformat(), format_time(at))
        return BookingResult(success=True, message=APPOINTMENT_RESCHEDULED_MESSAGE, appointment=updated)

    def update_status(self, appointment_id: int, status: AppointmentStatus | str) -> BookingResult:
        status = AppointmentStatus(status)

        appointment = self.repository.get_appointment(appointment_id)
        if appointment is None:
            return BookingResult(success=False, message=APPOINTMENT_NOT_FOUND_MESSAGE)

        day = appointment.appointment_date
        with self.locks.for_date(day):
            try:
                with self.repository.atomic():
                    updated = self.repository.update_appointment(appointment_id, status=status)
            except DuplicateBookingError:
                return BookingResult(success=False, message=SLOT_ALREADY_BOOKED_MESSAGE, appointment=appointment)

            if status.is_active:
                self._reconcile_committed(day)

        return BookingResult(success=True, message=APPOINTMENT_STATUS_UPDATED_MESSAGE, appointment=updated)

    def _reconcile_committed(self, day: date, template: AvailabilityTemplate | None = None) -> None:
        # The triggering write is already committed; a failed recount is retried by the next booking.
        try:
            if template is None:
                template = self.repository.find_active_template(Weekday.for_date(day))
            if template is not None and template.is_active:
                self.resolver.reconcile(day, template)
        except Exception:
            logger.exception('Full-day reconcile failed for %s', day.isoformat())
