import uuid
from datetime import datetime, timedelta, timezone
from threading import Lock

import jwt

from telecare.core import config

_revoked_token_ids: set[str] = set()
_revocation_lock = Lock()


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=expire_minutes)
    payload = {"sub": subject, "jti": uuid.uuid4().hex, "exp": expire, "iat": issued_at}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    if is_token_revoked(payload.get("jti")):
        raise jwt.InvalidTokenError("Token has been revoked")
    return payload


def revoke_token(payload: dict) -> None:
    token_id = payload.get("jti")
    if not token_id:
        return
    with _revocation_lock:
        _revoked_token_ids.add(token_id)


def is_token_revoked(token_id: str | None) -> bool:
    if not token_id:
        return False
    with _revocation_lock:
        return token_id in _revoked_token_ids
