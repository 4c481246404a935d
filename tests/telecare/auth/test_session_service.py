import jwt
import pytest

from telecare.auth import jwt_handler
from telecare.auth.session import AuthEvent, SessionService, SessionStatus
from telecare.models.profile import Profile


def test_new_session_is_loading(db) -> None:
    assert SessionService(db).status is SessionStatus.LOADING


def test_missing_token_is_unauthenticated(db) -> None:
    session = SessionService(db)

    assert session.initialize(None) is SessionStatus.UNAUTHENTICATED
    assert session.is_authenticated is False


def test_invalid_token_is_unauthenticated(db) -> None:
    assert SessionService(db).initialize('not-a-jwt') is SessionStatus.UNAUTHENTICATED


def test_token_for_unknown_user_is_unauthenticated(db) -> None:
    token = jwt_handler.create_access_token(subject='ghost@example.com')

    assert SessionService(db).initialize(token) is SessionStatus.UNAUTHENTICATED


def test_valid_token_with_profile_is_authenticated(db, make_account) -> None:
    make_account('pat@example.com', role='patient', full_name='Pat Doe')
    session = SessionService(db)

    status = session.initialize(jwt_handler.create_access_token(subject='pat@example.com'))

    assert status is SessionStatus.AUTHENTICATED
    assert session.role == 'patient'
    assert session.profile.full_name == 'Pat Doe'


def test_user_without_profile_is_authenticated_no_profile(db, make_account) -> None:
    make_account('new@example.com', role=None)
    session = SessionService(db)

    status = session.initialize(jwt_handler.create_access_token(subject='new@example.com'))

    assert status is SessionStatus.AUTHENTICATED_NO_PROFILE
    assert session.is_authenticated is True
    assert session.role is None


def test_refresh_profile_picks_up_new_profile(db, make_account) -> None:
    user, _ = make_account('late@example.com', role=None)
    session = SessionService(db)
    session.initialize(jwt_handler.create_access_token(subject='late@example.com'))

    db.add(Profile(user_id=user.id, full_name='Late Profile', role='therapist', status='active'))
    db.commit()

    assert session.refresh_profile() is SessionStatus.AUTHENTICATED
    assert session.role == 'therapist'


def test_sign_out_revokes_token(db, make_account) -> None:
    make_account('out@example.com')
    token = jwt_handler.create_access_token(subject='out@example.com')
    session = SessionService(db)
    session.initialize(token)

    assert session.sign_out() is SessionStatus.UNAUTHENTICATED
    assert session.user is None

    with pytest.raises(jwt.InvalidTokenError):
        jwt_handler.decode_access_token(token)
    assert SessionService(db).initialize(token) is SessionStatus.UNAUTHENTICATED


def test_auth_events_drive_state(db, make_account) -> None:
    make_account('events@example.com')
    session = SessionService(db)

    signed_in = session.handle_auth_event(
        AuthEvent.SIGNED_IN,
        jwt_handler.create_access_token(subject='events@example.com'),
    )
    refreshed = session.handle_auth_event(
        AuthEvent.TOKEN_REFRESHED,
        jwt_handler.create_access_token(subject='events@example.com'),
    )
    signed_out = session.handle_auth_event(AuthEvent.SIGNED_OUT)

    assert signed_in is SessionStatus.AUTHENTICATED
    assert refreshed is SessionStatus.AUTHENTICATED
    assert signed_out is SessionStatus.UNAUTHENTICATED


def test_expired_token_is_unauthenticated(db, make_account) -> None:
    make_account('old@example.com')
    token = jwt_handler.create_access_token(subject='old@example.com', expires_minutes=-1)

    assert SessionService(db).initialize(token) is SessionStatus.UNAUTHENTICATED
