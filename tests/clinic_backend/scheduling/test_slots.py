from datetime import date, time
from types import SimpleNamespace

import pytest

from clinic_backend.scheduling.records import Weekday
from clinic_backend.scheduling.slots import (
    InvalidTimeError,
    generate_time_slots,
    is_start_blocked,
    is_window_configured,
    parse_time_of_day,
)


def labels(slots) -> list[str]:
    return [slot.label for slot in slots]


def test_zero_width_window_yields_no_slots() -> None:
    assert generate_time_slots('09:00', '09:00', 30) == []


def test_window_is_split_into_full_slots() -> None:
    assert labels(generate_time_slots('09:00', '10:00', 30)) == ['09:00-09:30', '09:30-10:00']


def test_overnight_window_wraps_at_midnight() -> None:
    assert labels(generate_time_slots('23:00', '01:00', 60)) == ['23:00-00:00', '00:00-01:00']


def test_trailing_partial_slot_is_dropped() -> None:
    assert labels(generate_time_slots('09:00', '10:00', 45)) == ['09:00-09:45']


def test_window_shorter_than_duration_yields_no_slots() -> None:
    assert generate_time_slots('09:00', '09:20', 30) == []


def test_accepts_seconds_and_time_objects() -> None:
    assert labels(generate_time_slots('17:00:00', time(18, 0), '20')) == [
        '17:00-17:20',
        '17:20-17:40',
        '17:40-18:00',
    ]


def test_slot_str_is_its_label() -> None:
    slot = generate_time_slots('9:05', '9:20', 15)[0]

    assert str(slot) == '09:05-09:20'
    assert slot.start == time(9, 5)
    assert slot.end == time(9, 20)


@pytest.mark.parametrize('value', ['', '9', '24:00', '09:60', '09-00', 'nine', '09:00:61', None])
def test_parse_time_of_day_rejects_malformed_values(value) -> None:
    with pytest.raises(InvalidTimeError):
        parse_time_of_day(value)


def test_generate_fails_fast_on_malformed_bounds() -> None:
    with pytest.raises(InvalidTimeError):
        generate_time_slots('25:00', '10:00', 30)


@pytest.mark.parametrize('duration', [0, -15])
def test_generate_rejects_non_positive_duration(duration: int) -> None:
    with pytest.raises(ValueError):
        generate_time_slots('09:00', '10:00', duration)


def test_window_configuration_ignores_missing_and_zero_bounds() -> None:
    assert is_window_configured(time(9, 0), time(12, 0))
    assert not is_window_configured(None, time(12, 0))
    assert not is_window_configured(time(9, 0), None)
    assert not is_window_configured(time(0, 0), time(0, 0))


def test_start_blocked_uses_inclusive_bounds_on_slot_start() -> None:
    blocks = [SimpleNamespace(start_time=time(10, 0), end_time=time(10, 30))]

    assert is_start_blocked(time(10, 0), blocks)
    assert is_start_blocked(time(10, 30), blocks)
    assert not is_start_blocked(time(9, 45), blocks)
    assert not is_start_blocked(time(10, 31), blocks)


def test_start_blocked_skips_blocks_without_interval() -> None:
    blocks = [SimpleNamespace(start_time=None, end_time=None)]

    assert not is_start_blocked('10:00', blocks)


@pytest.mark.parametrize(
    ('day', 'weekday', 'index'),
    [
        (date(2024, 1, 7), Weekday.SUNDAY, 0),
        (date(2024, 1, 1), Weekday.MONDAY, 1),
        (date(2024, 1, 6), Weekday.SATURDAY, 6),
    ],
)
def test_weekday_for_date_counts_from_sunday(day: date, weekday: Weekday, index: int) -> None:
    assert Weekday.for_date(day) is weekday
    assert weekday.index == index
