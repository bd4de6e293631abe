"""Time-of-day arithmetic and fixed-width slot generation."""

import re
from dataclasses import dataclass
from datetime import time
from typing import Iterable

MINUTES_PER_DAY = 24 * 60
ZERO_TIME = time(0, 0)

_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')


class InvalidTimeError(ValueError):
    """Raised when a time-of-day value is not a well-formed HH:MM[:SS] string."""


def parse_time_of_day(value: str | time) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeError(f'Invalid time of day: {value!r}. Expected HH:MM.')

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeError(f'Invalid time of day: {value!r}. Expected HH:MM.')

    return time(hour, minute)


def to_minutes(value: str | time) -> int:
    parsed = parse_time_of_day(value)
    return parsed.hour * 60 + parsed.minute


def from_minutes(minutes: int) -> time:
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def format_time(value: time) -> str:
    return value.strftime('%H:%M')


@dataclass(frozen=True)
class Slot:
    start: time
    end: time

    @property
    def label(self) -> str:
        return f'{format_time(self.start)}-{format_time(self.end)}'

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    def __str__(self) -> str:
        return self.label


def generate_time_slots(start: str | time, end: str | time, duration: int) -> list[Slot]:
    """Split a window into consecutive slots of ``duration`` minutes.

    A window whose end is earlier than its start runs past midnight. Equal
    bounds are an empty window. Only full-length slots are emitted; a trailing
    remainder shorter than ``duration`` is dropped.
    """
    duration = int(duration)
    if duration <= 0:
        raise ValueError('Slot duration must be a positive number of minutes.')

    current = to_minutes(start)
    end_minutes = to_minutes(end)

    if end_minutes == current:
        return []
    if end_minutes < current:
        end_minutes += MINUTES_PER_DAY

    slots: list[Slot] = []
    while current + duration <= end_minutes:
        slots.append(Slot(start=from_minutes(current), end=from_minutes(current + duration)))
        current += duration

    return slots


def is_window_configured(start: time | None, end: time | None) -> bool:
    # 00:00 is the "not configured" value stored for unused windows
    return start is not None and end is not None and start != ZERO_TIME and end != ZERO_TIME


def is_start_blocked(slot_start: str | time, blocks: Iterable) -> bool:
    """True when ``slot_start`` falls inside any partial block, both bounds inclusive."""
    start_minutes = to_minutes(slot_start)

    for block in blocks:
        if block.start_time is None or block.end_time is None:
            continue
        if to_minutes(block.start_time) <= start_minutes <= to_minutes(block.end_time):
            return True

    return False
