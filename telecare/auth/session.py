"""Session state for one authenticated client.

A ``SessionService`` starts out ``loading``, resolves to one of the other
states once the bearer token has been checked, follows auth events, and is
torn down on sign-out.
"""

import enum
import logging
from typing import Callable

import jwt
from sqlalchemy.orm import Session

from telecare.auth import jwt_handler
from telecare.models.profile import Profile
from telecare.models.user import User

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    LOADING = 'loading'
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED_NO_PROFILE = 'authenticated_no_profile'
    AUTHENTICATED = 'authenticated'


class AuthEvent(str, enum.Enum):
    SIGNED_IN = 'SIGNED_IN'
    TOKEN_REFRESHED = 'TOKEN_REFRESHED'
    SIGNED_OUT = 'SIGNED_OUT'


class SessionService:
    def __init__(self, db: Session, decode_token: Callable[[str], dict] = jwt_handler.decode_access_token):
        self._db = db
        self._decode_token = decode_token
        self.status = SessionStatus.LOADING
        self.user: User | None = None
        self.profile: Profile | None = None
        self._token_payload: dict | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status in (SessionStatus.AUTHENTICATED, SessionStatus.AUTHENTICATED_NO_PROFILE)

    @property
    def role(self) -> str | None:
        return self.profile.role if self.profile is not None else None

    def initialize(self, token: str | None) -> SessionStatus:
        self._clear()

        if not token:
            self.status = SessionStatus.UNAUTHENTICATED
            return self.status

        try:
            payload = self._decode_token(token)
        except jwt.PyJWTError:
            logger.info('Rejected session token')
            self.status = SessionStatus.UNAUTHENTICATED
            return self.status

        email = payload.get('sub')
        user = self._db.query(User).filter(User.email == email).first() if email else None
        if user is None:
            self.status = SessionStatus.UNAUTHENTICATED
            return self.status

        self.user = user
        self._token_payload = payload
        self.refresh_profile()
        return self.status

    def refresh_profile(self) -> SessionStatus:
        if self.user is None:
            return self.status

        self.profile = self._db.query(Profile).filter(Profile.user_id == self.user.id).first()
        self.status = (
            SessionStatus.AUTHENTICATED if self.profile is not None else SessionStatus.AUTHENTICATED_NO_PROFILE
        )
        return self.status

    def handle_auth_event(self, event: AuthEvent, token: str | None = None) -> SessionStatus:
        if event is AuthEvent.SIGNED_OUT:
            return self.sign_out()
        return self.initialize(token)

    def sign_out(self) -> SessionStatus:
        if self._token_payload is not None:
            jwt_handler.revoke_token(self._token_payload)
            logger.info('User %s signed out', self.user.email if self.user else self._token_payload.get('sub'))
        self._clear()
        self.status = SessionStatus.UNAUTHENTICATED
        return self.status

    def _clear(self) -> None:
        self.user = None
        self.profile = None
        self._token_payload = None
