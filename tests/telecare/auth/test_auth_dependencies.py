import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from telecare.auth import jwt_handler
from telecare.auth.dependencies import (
    get_current_profile,
    get_current_user,
    get_session,
    require_expert,
    require_patient,
)


def bearer(email: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=jwt_handler.create_access_token(subject=email))


def test_missing_credentials_are_rejected(db) -> None:
    session = get_session(credentials=None, db=db)

    with pytest.raises(HTTPException) as exc_info:
        get_current_user(session=session)
    assert exc_info.value.status_code == 401

    with pytest.raises(HTTPException) as exc_info:
        get_current_profile(session=session)
    assert exc_info.value.status_code == 401


def test_account_without_profile_is_forbidden(db, make_account) -> None:
    make_account('new@example.com', role=None)
    session = get_session(credentials=bearer('new@example.com'), db=db)

    assert get_current_user(session=session).email == 'new@example.com'
    with pytest.raises(HTTPException) as exc_info:
        get_current_profile(session=session)
    assert exc_info.value.status_code == 403


def test_role_requirements(db, make_account) -> None:
    _, patient = make_account('pat@example.com')
    _, coach = make_account('coach@example.com', role='health_wellness_coach')

    assert require_patient(profile=patient) is patient
    assert require_expert(profile=coach) is coach

    with pytest.raises(HTTPException) as exc_info:
        require_expert(profile=patient)
    assert exc_info.value.status_code == 403

    with pytest.raises(HTTPException) as exc_info:
        require_patient(profile=coach)
    assert exc_info.value.status_code == 403
