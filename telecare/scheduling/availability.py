"""Expansion of recurring weekly availability into bookable one-hour slots."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Protocol

SLOT_DURATION_MINUTES = 60
SLOT_DURATION = timedelta(minutes=SLOT_DURATION_MINUTES)

# 0 = Sunday, matching the stored day_of_week values.
DAYS_OF_WEEK = (
    'Sunday',
    'Monday',
    'Tuesday',
    'Wednesday',
    'Thursday',
    'Friday',
    'Saturday',
)

DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5)
DEFAULT_START_TIME = time(9, 0)
DEFAULT_END_TIME = time(17, 0)


class WindowLike(Protocol):
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool


@dataclass
class DaySchedule:
    day_of_week: int
    day: str
    date: date
    slots: list[time] = field(default_factory=list)


def day_label(day_of_week: int) -> str:
    return DAYS_OF_WEEK[day_of_week]


def weekday_number(value: date) -> int:
    """Convert a date to the Sunday-based day_of_week numbering."""
    return (value.weekday() + 1) % 7


def next_day_occurrence(day_of_week: int, today: date) -> date:
    days_to_add = (day_of_week - weekday_number(today) + 7) % 7
    return today + timedelta(days=days_to_add)


def generate_time_slots(start_time: time, end_time: time) -> list[time]:
    """Return one-hour slot starts that fit entirely inside ``[start_time, end_time)``."""
    anchor = date(2000, 1, 1)
    current = datetime.combine(anchor, start_time).replace(microsecond=0)
    end = datetime.combine(anchor, end_time)

    slots: list[time] = []
    while current + SLOT_DURATION <= end:
        slots.append(current.time())
        current += SLOT_DURATION

    return slots


def expand_availability(windows: Iterable[WindowLike], today: date) -> list[DaySchedule]:
    schedules: dict[int, DaySchedule] = {}
    slot_sets: dict[int, set[time]] = {}

    for window in windows:
        if not window.is_available:
            continue

        day_of_week = window.day_of_week
        if day_of_week not in schedules:
            schedules[day_of_week] = DaySchedule(
                day_of_week=day_of_week,
                day=day_label(day_of_week),
                date=next_day_occurrence(day_of_week, today),
            )
            slot_sets[day_of_week] = set()

        slot_sets[day_of_week].update(generate_time_slots(window.start_time, window.end_time))

    for day_of_week, schedule in schedules.items():
        schedule.slots = sorted(slot_sets[day_of_week])

    return list(schedules.values())


def default_windows() -> list[dict]:
    return [
        {
            'day_of_week': day_of_week,
            'start_time': DEFAULT_START_TIME,
            'end_time': DEFAULT_END_TIME,
            'is_available': True,
        }
        for day_of_week in DEFAULT_WORKING_DAYS
    ]
