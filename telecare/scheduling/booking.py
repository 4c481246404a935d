"""Booking submission with an optimistic slot lock.

The board is the booked-slot view a patient was shown. Submitting a booking
marks the slot on the board before the insert and releases it again when the
insert fails, so the board always ends up either holding the new booking or
exactly as it was before the submission.

Nothing here makes check-then-insert atomic: two boards built from the same
snapshot can both commit the same slot.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Iterable, Protocol

from sqlalchemy.orm import Session

from telecare.models.appointment import Appointment
from telecare.scheduling.availability import DaySchedule
from telecare.scheduling.conflicts import booking_window, find_booked_slots
from telecare.scheduling.notifications import (
    APPOINTMENT_REQUEST,
    NotificationDeliveryPolicy,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

PENDING_STATUS = 'pending'


class BookingError(Exception):
    """Raised when the appointment insert itself fails."""


class SlotUnavailableError(BookingError):
    """Raised when the selected slot is already marked booked."""


@dataclass(frozen=True)
class BookingRequest:
    therapist_id: int
    patient_id: int
    date: date
    time: time
    title: str
    description: str | None = None


class AppointmentGateway(Protocol):
    def insert_appointment(
        self,
        *,
        therapist_id: int,
        patient_id: int,
        title: str,
        description: str | None,
        start_time: datetime,
        end_time: datetime,
        status: str,
    ) -> Appointment: ...


class SqlAlchemyAppointmentGateway:
    def __init__(self, db: Session):
        self.db = db

    def insert_appointment(self, **fields) -> Appointment:
        appointment = Appointment(**fields)
        self.db.add(appointment)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(appointment)
        return appointment


class BookingBoard:
    def __init__(self, booked: dict[date, Iterable[time]] | None = None):
        self._booked: dict[date, set[time]] = {day: set(slots) for day, slots in (booked or {}).items()}

    @classmethod
    def from_snapshot(cls, schedules: Iterable[DaySchedule], appointments: Iterable) -> 'BookingBoard':
        appointments = list(appointments)
        return cls({
            schedule.date: find_booked_slots(schedule.slots, appointments, schedule.date)
            for schedule in schedules
        })

    def is_booked(self, day: date, slot: time) -> bool:
        return slot in self._booked.get(day, set())

    def mark(self, day: date, slot: time) -> None:
        self._booked.setdefault(day, set()).add(slot)

    def release(self, day: date, slot: time) -> None:
        self._booked.get(day, set()).discard(slot)

    def snapshot(self) -> dict[date, frozenset[time]]:
        return {day: frozenset(slots) for day, slots in self._booked.items() if slots}


Notifier = Callable[[Appointment], None]


class BookingNotifier:
    """Tells both the therapist and the patient about a new request."""

    def __init__(
        self,
        db: Session,
        policy: NotificationDeliveryPolicy,
        therapist_name: str | None = None,
        patient_name: str | None = None,
    ):
        self.db = db
        self.policy = policy
        self.therapist_name = therapist_name or 'your therapist'
        self.patient_name = patient_name or 'A patient'

    def __call__(self, appointment: Appointment) -> None:
        when = f"{appointment.start_time:%Y-%m-%d} from {appointment.start_time:%H:%M} to {appointment.end_time:%H:%M}"
        self.policy.deliver_all(self.db, [
            NotificationPayload(
                user_id=appointment.therapist_id,
                title='New appointment request',
                message=f'{self.patient_name} requested an appointment on {when}.',
                type=APPOINTMENT_REQUEST,
                link='/therapist/appointments',
            ),
            NotificationPayload(
                user_id=appointment.patient_id,
                title='Appointment requested',
                message=f'Your appointment with {self.therapist_name} on {when} is awaiting confirmation.',
                type=APPOINTMENT_REQUEST,
                link='/patient/appointments',
            ),
        ])


class BookingCommitter:
    def __init__(self, board: BookingBoard, gateway: AppointmentGateway, notifier: Notifier | None = None):
        self.board = board
        self.gateway = gateway
        self.notifier = notifier

    def submit(self, request: BookingRequest) -> Appointment:
        if self.board.is_booked(request.date, request.time):
            raise SlotUnavailableError('This slot is already booked.')

        self.board.mark(request.date, request.time)
        start_time, end_time = booking_window(request.date, request.time)

        try:
            appointment = self.gateway.insert_appointment(
                therapist_id=request.therapist_id,
                patient_id=request.patient_id,
                title=request.title,
                description=request.description,
                start_time=start_time,
                end_time=end_time,
                status=PENDING_STATUS,
            )
        except Exception as exc:
            self.board.release(request.date, request.time)
            logger.exception('Booking insert failed for therapist %s at %s', request.therapist_id, start_time)
            raise BookingError('Error booking appointment.') from exc

        logger.info(
            'Appointment %s requested with therapist %s from %s to %s',
            appointment.id,
            appointment.therapist_id,
            start_time,
            end_time,
        )

        if self.notifier is not None:
            try:
                self.notifier(appointment)
            except Exception:
                logger.warning('Notifications for appointment %s failed', appointment.id, exc_info=True)

        return appointment
