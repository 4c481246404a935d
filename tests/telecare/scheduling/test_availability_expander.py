from datetime import date, time
from types import SimpleNamespace

import pytest

from telecare.scheduling.availability import (
    default_windows,
    expand_availability,
    generate_time_slots,
    next_day_occurrence,
    weekday_number,
)

# 2026-01-05 is a Monday.
MONDAY = date(2026, 1, 5)
WEDNESDAY = date(2026, 1, 7)


def window(day_of_week: int, start: time, end: time, is_available: bool = True) -> SimpleNamespace:
    return SimpleNamespace(day_of_week=day_of_week, start_time=start, end_time=end, is_available=is_available)


def test_weekday_number_uses_sunday_as_zero() -> None:
    assert weekday_number(date(2026, 1, 4)) == 0
    assert weekday_number(MONDAY) == 1
    assert weekday_number(date(2026, 1, 10)) == 6


def test_next_day_occurrence_returns_today_for_same_weekday() -> None:
    assert next_day_occurrence(1, MONDAY) == MONDAY


def test_next_day_occurrence_moves_forward_to_next_week() -> None:
    assert next_day_occurrence(1, WEDNESDAY) == date(2026, 1, 12)
    assert next_day_occurrence(5, WEDNESDAY) == date(2026, 1, 9)


def test_generate_time_slots_for_morning_window() -> None:
    assert generate_time_slots(time(9, 0), time(12, 0)) == [time(9, 0), time(10, 0), time(11, 0)]


@pytest.mark.parametrize(
    ('start', 'end', 'expected_count'),
    [
        (time(9, 0), time(9, 45), 0),
        (time(9, 0), time(10, 0), 1),
        (time(9, 0), time(12, 30), 3),
        (time(9, 30), time(17, 0), 7),
        (time(0, 0), time(23, 59), 23),
        (time(12, 0), time(9, 0), 0),
    ],
)
def test_generate_time_slots_counts_whole_hours(start: time, end: time, expected_count: int) -> None:
    slots = generate_time_slots(start, end)

    assert len(slots) == expected_count
    assert all(start <= slot < end for slot in slots)


def test_expand_availability_attaches_next_monday() -> None:
    schedules = expand_availability([window(1, time(9, 0), time(12, 0))], today=WEDNESDAY)

    assert len(schedules) == 1
    assert schedules[0].day == 'Monday'
    assert schedules[0].date == date(2026, 1, 12)
    assert schedules[0].slots == [time(9, 0), time(10, 0), time(11, 0)]


def test_expand_availability_unions_windows_on_same_day() -> None:
    schedules = expand_availability(
        [
            window(2, time(13, 0), time(15, 0)),
            window(2, time(9, 0), time(11, 0)),
            window(2, time(10, 0), time(12, 0)),
        ],
        today=MONDAY,
    )

    assert [schedule.day for schedule in schedules] == ['Tuesday']
    assert schedules[0].slots == [time(9, 0), time(10, 0), time(11, 0), time(13, 0), time(14, 0)]


def test_expand_availability_is_idempotent() -> None:
    windows = [window(1, time(9, 0), time(12, 0)), window(1, time(9, 0), time(12, 0))]

    first = expand_availability(windows, today=MONDAY)
    second = expand_availability(windows, today=MONDAY)

    assert first == second
    assert first[0].slots == [time(9, 0), time(10, 0), time(11, 0)]


def test_expand_availability_skips_unavailable_windows() -> None:
    schedules = expand_availability(
        [window(1, time(9, 0), time(12, 0), is_available=False), window(3, time(9, 0), time(10, 0))],
        today=MONDAY,
    )

    assert [schedule.day for schedule in schedules] == ['Wednesday']


def test_default_windows_cover_weekdays_nine_to_five() -> None:
    windows = default_windows()

    assert [item['day_of_week'] for item in windows] == [1, 2, 3, 4, 5]
    assert all(item['start_time'] == time(9, 0) and item['end_time'] == time(17, 0) for item in windows)
