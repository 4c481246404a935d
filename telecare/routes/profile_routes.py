from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_profile
from telecare.auth.roles import EXPERT_ROLES, UserRole
from telecare.models.profile import Profile
from telecare.routes.common import database_unavailable, get_db

router = APIRouter(tags=['profiles'])

MAX_BIO_LENGTH = 2000
PROFILE_STATUSES = {'active', 'away', 'inactive'}


class ProfileResponse(BaseModel):
    id: int
    user_id: int
    full_name: str | None = None
    role: str
    status: str | None = None
    specialization: str | None = None
    bio: str | None = None
    phone_number: str | None = None
    avatar_url: str | None = None
    session_duration_minutes: int | None = None

    class Config:
        from_attributes = True


class UpdateProfileRequest(BaseModel):
    full_name: str | None = None
    status: str | None = None
    specialization: str | None = None
    bio: str | None = None
    phone_number: str | None = None
    avatar_url: str | None = None
    session_duration_minutes: int | None = None

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name cannot be blank.')
        return normalized

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in PROFILE_STATUSES:
            raise ValueError('Invalid profile status.')
        return normalized

    @field_validator('bio')
    @classmethod
    def validate_bio(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_BIO_LENGTH:
            raise ValueError(f'Bio must be {MAX_BIO_LENGTH} characters or fewer.')
        return value

    @field_validator('session_duration_minutes')
    @classmethod
    def validate_session_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Session duration must be positive.')
        return value


@router.get('/me', response_model=ProfileResponse)
def read_my_profile(profile: Profile = Depends(get_current_profile)):
    return profile


@router.patch('/me', response_model=ProfileResponse)
def update_my_profile(
    data: UpdateProfileRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    # role is deliberately absent from the update model
    for field_name, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, field_name, value)

    try:
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return profile


@router.get('/experts', response_model=list[ProfileResponse])
def list_experts(
    role: UserRole | None = Query(default=None),
    db: Session = Depends(get_db),
    _: Profile = Depends(get_current_profile),
):
    if role is not None and role not in EXPERT_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Role is not an expert role.')

    roles = [role.value] if role is not None else [expert.value for expert in EXPERT_ROLES]
    try:
        return db.query(Profile).filter(
            Profile.role.in_(roles),
            Profile.status != 'inactive',
        ).order_by(Profile.full_name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{user_id}', response_model=ProfileResponse)
def read_profile(
    user_id: int,
    db: Session = Depends(get_db),
    _: Profile = Depends(get_current_profile),
):
    try:
        profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Profile not found.')
    return profile
