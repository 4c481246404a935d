import logging
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_profile, require_expert
from telecare.auth.roles import is_expert_role
from telecare.models.appointment import Appointment
from telecare.models.availability import AvailabilityWindow
from telecare.models.profile import Profile
from telecare.routes.common import database_unavailable, ensure_database_ready, get_db
from telecare.scheduling.availability import day_label, default_windows, expand_availability
from telecare.scheduling.conflicts import ACTIVE_STATUSES, is_time_range_available, mark_schedule

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


class AvailabilityWindowRequest(BaseModel):
    start_time: time
    end_time: time
    is_available: bool = True

    @model_validator(mode='after')
    def validate_time_range(self) -> 'AvailabilityWindowRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class AvailabilityWindowResponse(BaseModel):
    id: int
    therapist_id: int
    day_of_week: int
    day: str
    start_time: time
    end_time: time
    is_available: bool


class SlotResponse(BaseModel):
    start_time: time
    end_time: time
    is_booked: bool


class DayScheduleResponse(BaseModel):
    day_of_week: int
    day: str
    date: date
    slots: list[SlotResponse]


class CheckTimeRangeRequest(BaseModel):
    date: date
    start_time: time
    end_time: time

    @model_validator(mode='after')
    def validate_time_range(self) -> 'CheckTimeRangeRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class CheckTimeRangeResponse(BaseModel):
    available: bool


def to_window_response(window: AvailabilityWindow) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=window.id,
        therapist_id=window.therapist_id,
        day_of_week=window.day_of_week,
        day=day_label(window.day_of_week),
        start_time=window.start_time,
        end_time=window.end_time,
        is_available=bool(window.is_available),
    )


def validate_day_of_week(day_of_week: int) -> int:
    if not 0 <= day_of_week <= 6:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Day of week must be between 0 (Sunday) and 6 (Saturday).',
        )
    return day_of_week


def get_expert_profile(therapist_id: int, db: Session) -> Profile:
    profile = db.query(Profile).filter(Profile.user_id == therapist_id).first()
    if profile is None or not is_expert_role(profile.role):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Therapist not found.',
        )
    return profile


def get_available_windows(therapist_id: int, db: Session) -> list[AvailabilityWindow]:
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.therapist_id == therapist_id,
        AvailabilityWindow.is_available.is_(True),
    ).order_by(AvailabilityWindow.day_of_week.asc(), AvailabilityWindow.start_time.asc()).all()


def get_active_appointments(therapist_id: int, db: Session) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.therapist_id == therapist_id,
        Appointment.status.in_(sorted(ACTIVE_STATUSES)),
    ).all()


def build_day_schedules(therapist_id: int, db: Session, today: date | None = None) -> list[DayScheduleResponse]:
    windows = get_available_windows(therapist_id, db)
    appointments = get_active_appointments(therapist_id, db)

    return [
        DayScheduleResponse(
            day_of_week=schedule.day_of_week,
            day=schedule.day,
            date=schedule.date,
            slots=[
                SlotResponse(start_time=slot.start_time, end_time=slot.end_time, is_booked=slot.is_booked)
                for slot in mark_schedule(schedule, appointments)
            ],
        )
        for schedule in expand_availability(windows, today or date.today())
    ]


@router.get('/me', response_model=list[AvailabilityWindowResponse])
def list_my_availability(
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        windows = db.query(AvailabilityWindow).filter(
            AvailabilityWindow.therapist_id == profile.user_id,
        ).order_by(AvailabilityWindow.day_of_week.asc(), AvailabilityWindow.start_time.asc()).all()

        if not windows:
            logger.info('No availability for therapist %s, creating default schedule', profile.user_id)
            windows = [
                AvailabilityWindow(therapist_id=profile.user_id, **window)
                for window in default_windows()
            ]
            db.add_all(windows)
            db.commit()
            for window in windows:
                db.refresh(window)

        return [to_window_response(window) for window in windows]
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.put('/me/days/{day_of_week}', response_model=AvailabilityWindowResponse)
def set_day_availability(
    day_of_week: int,
    data: AvailabilityWindowRequest,
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    validate_day_of_week(day_of_week)
    ensure_database_ready()

    try:
        window = db.query(AvailabilityWindow).filter(
            AvailabilityWindow.therapist_id == profile.user_id,
            AvailabilityWindow.day_of_week == day_of_week,
        ).first()

        if window is None:
            window = AvailabilityWindow(therapist_id=profile.user_id, day_of_week=day_of_week)
            db.add(window)

        window.start_time = data.start_time
        window.end_time = data.end_time
        window.is_available = data.is_available

        db.commit()
        db.refresh(window)

        return to_window_response(window)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/me/{window_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_window(
    window_id: int,
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        window = db.query(AvailabilityWindow).filter(
            AvailabilityWindow.id == window_id,
            AvailabilityWindow.therapist_id == profile.user_id,
        ).first()

        if not window:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Availability window not found.',
            )

        db.delete(window)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/therapists/{therapist_id}/slots', response_model=list[DayScheduleResponse])
def list_therapist_slots(
    therapist_id: int,
    db: Session = Depends(get_db),
    _: Profile = Depends(get_current_profile),
):
    ensure_database_ready()

    try:
        get_expert_profile(therapist_id, db)
        return build_day_schedules(therapist_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/therapists/{therapist_id}/check', response_model=CheckTimeRangeResponse)
def check_time_range(
    therapist_id: int,
    data: CheckTimeRangeRequest,
    db: Session = Depends(get_db),
    _: Profile = Depends(get_current_profile),
):
    ensure_database_ready()

    try:
        get_expert_profile(therapist_id, db)
        available = is_time_range_available(
            get_available_windows(therapist_id, db),
            get_active_appointments(therapist_id, db),
            data.date,
            data.start_time,
            data.end_time,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return CheckTimeRangeResponse(available=available)
