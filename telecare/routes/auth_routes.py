import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth import jwt_handler
from telecare.auth.dependencies import get_session
from telecare.auth.passwords import hash_password, verify_password
from telecare.auth.roles import UserRole, home_path, parse_role
from telecare.auth.route_guard import resolve_route
from telecare.auth.session import SessionService
from telecare.models.profile import Profile
from telecare.models.user import User
from telecare.routes.common import database_unavailable, get_db

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized or '@' not in normalized:
        raise ValueError('A valid email address is required.')
    return normalized


class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str
    role: UserRole = UserRole.PATIENT
    specialization: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        return value

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name is required.')
        return normalized


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    role: str
    home_path: str


class SessionResponse(BaseModel):
    status: str
    email: str | None = None
    role: str | None = None
    full_name: str | None = None
    home_path: str | None = None


class RouteDecisionResponse(BaseModel):
    action: str
    target: str | None = None
    allowed: bool


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        if db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email already in use.')

        user = User(email=data.email, hashed_password=hash_password(data.password))
        db.add(user)
        db.flush()

        db.add(Profile(
            user_id=user.id,
            full_name=data.full_name,
            role=data.role.value,
            status='active',
            specialization=data.specialization,
        ))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email already in use.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Registered %s as %s', data.email, data.role.value)
    token = jwt_handler.create_access_token(subject=data.email)
    return TokenResponse(access_token=token, role=data.role.value, home_path=home_path(data.role))


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
        profile = db.query(Profile).filter(Profile.user_id == user.id).first() if user else None
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password')

    role = profile.role if profile else UserRole.PATIENT.value
    token = jwt_handler.create_access_token(subject=user.email)
    return TokenResponse(access_token=token, role=role, home_path=home_path(role))


@router.get('/me', response_model=SessionResponse)
def me(session: SessionService = Depends(get_session)):
    return SessionResponse(
        status=session.status.value,
        email=session.user.email if session.user else None,
        role=session.role,
        full_name=session.profile.full_name if session.profile else None,
        home_path=home_path(session.role) if session.role else None,
    )


@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(session: SessionService = Depends(get_session)):
    if not session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token')
    session.sign_out()


@router.get('/route', response_model=RouteDecisionResponse)
def check_route(
    path: str = Query(...),
    allowed_roles: list[str] = Query(default=[]),
    session: SessionService = Depends(get_session),
):
    try:
        allowed = [parse_role(role) for role in allowed_roles]
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Unknown role in allowed_roles.') from exc

    decision = resolve_route(session.status, session.role, path, allowed)
    return RouteDecisionResponse(action=decision.action, target=decision.target, allowed=decision.allowed)
