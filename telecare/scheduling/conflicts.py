"""Booked/free classification of candidate slots against existing appointments.

All comparisons are done in minutes since midnight on the target date, so an
appointment is only considered against slots of the day it starts on.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Protocol

from telecare.scheduling.availability import SLOT_DURATION, SLOT_DURATION_MINUTES, DaySchedule, WindowLike, weekday_number

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = frozenset({'pending', 'confirmed'})


class AppointmentLike(Protocol):
    start_time: datetime
    end_time: datetime
    status: str


@dataclass(frozen=True)
class Slot:
    day: str
    date: date
    start_time: time
    end_time: time
    is_booked: bool


def time_to_minutes(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def slot_overlaps(slot_start: int, slot_end: int, appointment_start: int, appointment_end: int) -> bool:
    starts_inside = appointment_start <= slot_start < appointment_end
    ends_inside = appointment_start < slot_end <= appointment_end
    contains = slot_start <= appointment_start and slot_end >= appointment_end
    return starts_inside or ends_inside or contains


def active_appointments(appointments: Iterable[AppointmentLike]) -> list[AppointmentLike]:
    return [appointment for appointment in appointments if (appointment.status or '').lower() in ACTIVE_STATUSES]


def appointments_on_date(appointments: Iterable[AppointmentLike], target_date: date) -> list[AppointmentLike]:
    return [appointment for appointment in appointments if appointment.start_time.date() == target_date]


def slot_end_time(slot_start: time) -> time:
    return (datetime.combine(date(2000, 1, 1), slot_start) + SLOT_DURATION).time()


def minutes_from_midnight(value: datetime, target_date: date) -> int:
    """Minutes between midnight of ``target_date`` and ``value``.

    Values on a later day count past 1440, so an appointment ending at the
    next midnight ends at minute 1440 rather than minute 0.
    """
    return int((value - datetime.combine(target_date, time.min)).total_seconds() // 60)


def _range_is_booked(
    start_minutes: int,
    end_minutes: int,
    appointments: Iterable[AppointmentLike],
    target_date: date,
) -> bool:
    return any(
        slot_overlaps(
            start_minutes,
            end_minutes,
            minutes_from_midnight(appointment.start_time, target_date),
            minutes_from_midnight(appointment.end_time, target_date),
        )
        for appointment in appointments
    )


def find_booked_slots(
    slots: Iterable[time],
    appointments: Iterable[AppointmentLike],
    target_date: date,
) -> set[time]:
    same_day = appointments_on_date(active_appointments(appointments), target_date)

    booked: set[time] = set()
    for slot in slots:
        slot_start = time_to_minutes(slot)
        # A slot starting at 23:00 ends at midnight, which is minute 1440 here.
        slot_end = slot_start + SLOT_DURATION_MINUTES
        if _range_is_booked(slot_start, slot_end, same_day, target_date):
            booked.add(slot)

    return booked


def mark_schedule(schedule: DaySchedule, appointments: Iterable[AppointmentLike]) -> list[Slot]:
    booked = find_booked_slots(schedule.slots, appointments, schedule.date)
    return [
        Slot(
            day=schedule.day,
            date=schedule.date,
            start_time=slot,
            end_time=slot_end_time(slot),
            is_booked=slot in booked,
        )
        for slot in schedule.slots
    ]


def is_time_range_available(
    windows: Iterable[WindowLike],
    appointments: Iterable[AppointmentLike],
    target_date: date,
    start_time: time,
    end_time: time,
) -> bool:
    day_of_week = weekday_number(target_date)
    fits_window = any(
        window.is_available
        and window.day_of_week == day_of_week
        and start_time >= window.start_time
        and end_time <= window.end_time
        for window in windows
    )
    if not fits_window:
        logger.debug('Range %s-%s on %s is outside the availability windows', start_time, end_time, target_date)
        return False

    same_day = appointments_on_date(active_appointments(appointments), target_date)
    return not _range_is_booked(time_to_minutes(start_time), time_to_minutes(end_time), same_day, target_date)


def booking_window(target_date: date, slot_start: time) -> tuple[datetime, datetime]:
    start = datetime.combine(target_date, slot_start).replace(microsecond=0)
    return start, start + SLOT_DURATION
