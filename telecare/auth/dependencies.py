from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from telecare.auth.roles import is_expert_role
from telecare.auth.session import SessionService, SessionStatus
from telecare.models.profile import Profile
from telecare.models.user import User
from telecare.routes.common import get_db

security = HTTPBearer(auto_error=False)


def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> SessionService:
    session = SessionService(db)
    session.initialize(credentials.credentials if credentials else None)
    return session


def get_current_user(session: SessionService = Depends(get_session)) -> User:
    if not session.is_authenticated or session.user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return session.user


def get_current_profile(session: SessionService = Depends(get_session)) -> Profile:
    if session.status is SessionStatus.UNAUTHENTICATED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if session.profile is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not found for this account.")
    return session.profile


def require_expert(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not is_expert_role(profile.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only experts can perform this action.")
    return profile


def require_patient(profile: Profile = Depends(get_current_profile)) -> Profile:
    if is_expert_role(profile.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only patients can perform this action.")
    return profile
