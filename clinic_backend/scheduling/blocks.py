"""Derives full-day blocks from slot capacity."""

import logging
from datetime import date

from clinic_backend.core import config
from clinic_backend.scheduling.availability import build_template_slots
from clinic_backend.scheduling.records import AvailabilityTemplate
from clinic_backend.scheduling.repository import SchedulingRepository
from clinic_backend.scheduling.slots import is_start_blocked

logger = logging.getLogger(__name__)


class FullDayBlockResolver:
    """Marks a date fully blocked once active bookings and partial blocks cover every slot.

    Counts are recomputed from storage on every call. The transition is one
    way: this class never removes a full-day block.
    """

    def __init__(self, repository: SchedulingRepository, reason: str | None = None):
        self.repository = repository
        self.reason = reason or config.FULL_DAY_BLOCK_REASON

    def reconcile(self, day: date, template: AvailabilityTemplate) -> bool:
        morning, evening = build_template_slots(template)
        candidates = morning + evening
        if not candidates:
            return False

        booked_count = self.repository.count_active_appointments(day)
        partial_blocks = self.repository.list_partial_blocks(day)
        blocked_count = sum(1 for slot in candidates if is_start_blocked(slot.start, partial_blocks))

        if booked_count + blocked_count < len(candidates):
            return False

        with self.repository.atomic():
            self.repository.create_full_day_block(day, self.reason)

        logger.info(
            'Date %s fully blocked: %d booked, %d blocked, %d slots.',
            day.isoformat(),
            booked_count,
            blocked_count,
            len(candidates),
        )
        return True
