import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_profile, require_expert, require_patient
from telecare.auth.roles import is_expert_role
from telecare.models.appointment import Appointment
from telecare.models.profile import Profile
from telecare.routes.availability_routes import get_active_appointments, get_available_windows, get_expert_profile
from telecare.routes.common import database_unavailable, ensure_database_ready, get_db
from telecare.scheduling.availability import expand_availability
from telecare.scheduling.booking import (
    BookingBoard,
    BookingCommitter,
    BookingError,
    BookingNotifier,
    BookingRequest,
    SlotUnavailableError,
    SqlAlchemyAppointmentGateway,
)
from telecare.scheduling.notifications import (
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_REJECTED,
    SYSTEM,
    NotificationDeliveryPolicy,
    NotificationPayload,
)

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
CANCELLED_STATUS = 'cancelled'
STATUS_ALIASES = {'canceled': CANCELLED_STATUS}
THERAPIST_STATUSES = {'confirmed', CANCELLED_STATUS, 'completed'}
TERMINAL_STATUSES = {CANCELLED_STATUS, 'completed'}

notification_policy = NotificationDeliveryPolicy()


def normalize_status(value: str) -> str:
    normalized = value.strip().lower()
    return STATUS_ALIASES.get(normalized, normalized)


class BookAppointmentRequest(BaseModel):
    therapist_id: int
    date: date
    time: time
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = normalize_status(value)
        if normalized not in THERAPIST_STATUSES:
            raise ValueError('Status must be confirmed, cancelled or completed.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    therapist_id: int
    patient_id: int
    title: str | None = None
    description: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    counterpart_name: str | None = None

    class Config:
        from_attributes = True


def to_appointment_response(appointment: Appointment, counterpart_name: str | None = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        therapist_id=appointment.therapist_id,
        patient_id=appointment.patient_id,
        title=appointment.title,
        description=appointment.description,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=normalize_status(appointment.status or 'pending'),
        counterpart_name=counterpart_name,
    )


def get_appointment(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )
    return appointment


def describe_start(appointment: Appointment) -> str:
    return f'{appointment.start_time:%Y-%m-%d} at {appointment.start_time:%H:%M}'


@router.post('/', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    profile: Profile = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        therapist = get_expert_profile(data.therapist_id, db)
        schedules = expand_availability(get_available_windows(data.therapist_id, db), date.today())
        appointments = get_active_appointments(data.therapist_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    slot_time = data.time.replace(microsecond=0)
    schedule = next((item for item in schedules if item.date == data.date), None)
    if schedule is None or slot_time not in schedule.slots:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Selected time is not an available slot for this therapist.',
        )

    committer = BookingCommitter(
        board=BookingBoard.from_snapshot(schedules, appointments),
        gateway=SqlAlchemyAppointmentGateway(db),
        notifier=BookingNotifier(
            db,
            notification_policy,
            therapist_name=therapist.full_name,
            patient_name=profile.full_name,
        ),
    )

    try:
        appointment = committer.submit(BookingRequest(
            therapist_id=data.therapist_id,
            patient_id=profile.user_id,
            date=data.date,
            time=slot_time,
            title=f'Appointment with {therapist.full_name or "therapist"}',
            description=data.notes,
        ))
    except SlotUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except BookingError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Error booking appointment. Please try again.',
        ) from exc

    return to_appointment_response(appointment, counterpart_name=therapist.full_name)


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    expert = is_expert_role(profile.role)
    try:
        owner_column = Appointment.therapist_id if expert else Appointment.patient_id
        appointments = db.query(Appointment).filter(
            owner_column == profile.user_id,
        ).order_by(Appointment.start_time.asc()).all()

        counterpart_ids = {
            appointment.patient_id if expert else appointment.therapist_id
            for appointment in appointments
        }
        names = dict(
            db.query(Profile.user_id, Profile.full_name).filter(Profile.user_id.in_(counterpart_ids)).all()
        ) if counterpart_ids else {}
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [
        to_appointment_response(
            appointment,
            counterpart_name=names.get(appointment.patient_id if expert else appointment.therapist_id),
        )
        for appointment in appointments
    ]


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment(appointment_id, db)

        if appointment.therapist_id != profile.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the therapist of this appointment can change its status.',
            )

        if normalize_status(appointment.status or '') in TERMINAL_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This appointment can no longer be changed.',
            )

        appointment.status = data.status
        appointment.updated_at = datetime.now()
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Appointment %s set to %s by therapist %s', appointment.id, data.status, profile.user_id)
    response = to_appointment_response(appointment)

    if data.status == 'confirmed':
        notification_policy.deliver(db, NotificationPayload(
            user_id=response.patient_id,
            title='Appointment confirmed',
            message=f'{profile.full_name or "Your therapist"} confirmed your appointment on {describe_start(appointment)}.',
            type=APPOINTMENT_CONFIRMED,
            link='/patient/appointments',
        ))
    elif data.status == CANCELLED_STATUS:
        notification_policy.deliver(db, NotificationPayload(
            user_id=response.patient_id,
            title='Appointment cancelled',
            message=f'{profile.full_name or "Your therapist"} cancelled your appointment on {describe_start(appointment)}.',
            type=APPOINTMENT_REJECTED,
            link='/patient/appointments',
        ))

    return response


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    profile: Profile = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment(appointment_id, db)

        if appointment.patient_id != profile.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the patient who booked this appointment can cancel it.',
            )

        if normalize_status(appointment.status or '') in TERMINAL_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This appointment can no longer be cancelled.',
            )

        appointment.status = CANCELLED_STATUS
        appointment.updated_at = datetime.now()
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Patient %s cancelled appointment %s', profile.user_id, appointment.id)
    response = to_appointment_response(appointment)

    notification_policy.deliver(db, NotificationPayload(
        user_id=response.therapist_id,
        title='Appointment cancelled',
        message=f'{profile.full_name or "A patient"} cancelled the appointment on {describe_start(appointment)}.',
        type=SYSTEM,
        link='/therapist/appointments',
    ))

    return response
