import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from telecare.auth.roles import UserRole
from telecare.routes.profile_routes import (
    UpdateProfileRequest,
    list_experts,
    read_my_profile,
    read_profile,
    update_my_profile,
)


def test_read_my_profile_returns_current_profile(make_account) -> None:
    _, profile = make_account('pat@example.com', full_name='Pat Doe')

    assert read_my_profile(profile=profile) is profile


def test_update_my_profile_only_changes_sent_fields(db, make_account) -> None:
    _, profile = make_account('doc@example.com', role='therapist', full_name='Dr. Rivera')
    profile.specialization = 'Anxiety'
    db.commit()

    updated = update_my_profile(
        data=UpdateProfileRequest(bio='Ten years of practice.', status='Away'),
        profile=profile,
        db=db,
    )

    assert updated.bio == 'Ten years of practice.'
    assert updated.status == 'away'
    assert updated.specialization == 'Anxiety'
    assert updated.role == 'therapist'


@pytest.mark.parametrize(
    'payload',
    [
        {'full_name': '   '},
        {'status': 'busy'},
        {'session_duration_minutes': 0},
        {'bio': 'x' * 2001},
    ],
)
def test_update_profile_validation(payload) -> None:
    with pytest.raises(ValidationError):
        UpdateProfileRequest(**payload)


def test_list_experts_hides_patients_and_inactive(db, make_account) -> None:
    _, viewer = make_account('pat@example.com')
    make_account('b@example.com', role='therapist', full_name='Bea')
    make_account('a@example.com', role='financial_expert', full_name='Abe')
    _, inactive = make_account('c@example.com', role='therapist', full_name='Cal')
    inactive.status = 'inactive'
    db.commit()

    experts = list_experts(role=None, db=db, _=viewer)

    assert [expert.full_name for expert in experts] == ['Abe', 'Bea']


def test_list_experts_filters_by_role(db, make_account) -> None:
    _, viewer = make_account('pat@example.com')
    make_account('b@example.com', role='therapist', full_name='Bea')
    make_account('a@example.com', role='financial_expert', full_name='Abe')

    experts = list_experts(role=UserRole.THERAPIST, db=db, _=viewer)

    assert [expert.full_name for expert in experts] == ['Bea']


def test_list_experts_rejects_patient_role(db, make_account) -> None:
    _, viewer = make_account('pat@example.com')

    with pytest.raises(HTTPException) as exc_info:
        list_experts(role=UserRole.PATIENT, db=db, _=viewer)

    assert exc_info.value.status_code == 400


def test_read_profile_by_user_id(db, make_account) -> None:
    _, viewer = make_account('pat@example.com')
    doc_user, _ = make_account('doc@example.com', role='therapist', full_name='Dr. Rivera')

    assert read_profile(user_id=doc_user.id, db=db, _=viewer).full_name == 'Dr. Rivera'

    with pytest.raises(HTTPException) as exc_info:
        read_profile(user_id=999, db=db, _=viewer)
    assert exc_info.value.status_code == 404
