import logging

import pytest

from telecare.models.notification import Notification
from telecare.scheduling.notifications import (
    APPOINTMENT_REQUEST,
    NotificationDeliveryPolicy,
    NotificationPayload,
    call_stored_procedure,
    insert_only,
)


def make_payload(user_id: int = 7) -> NotificationPayload:
    return NotificationPayload(
        user_id=user_id,
        title='New appointment request',
        message='A patient requested an appointment.',
        type=APPOINTMENT_REQUEST,
        link='/therapist/appointments',
    )


def failing_strategy(db, payload):
    raise RuntimeError('row level security rejected insert')


def test_default_policy_stores_notification(db) -> None:
    notification = NotificationDeliveryPolicy().deliver(db, make_payload())

    assert notification is not None
    assert notification.id is not None
    stored = db.query(Notification).one()
    assert stored.user_id == 7
    assert stored.type == APPOINTMENT_REQUEST
    assert stored.read is False


def test_policy_falls_through_to_next_strategy(db, caplog) -> None:
    policy = NotificationDeliveryPolicy([failing_strategy, insert_only])

    with caplog.at_level(logging.WARNING, logger='telecare.scheduling.notifications'):
        notification = policy.deliver(db, make_payload())

    assert notification is not None
    assert notification.title == 'New appointment request'
    assert db.query(Notification).count() == 1
    assert 'failing_strategy' in caplog.text


def test_policy_returns_none_when_every_strategy_fails(db, caplog) -> None:
    policy = NotificationDeliveryPolicy([failing_strategy, failing_strategy])

    with caplog.at_level(logging.ERROR, logger='telecare.scheduling.notifications'):
        notification = policy.deliver(db, make_payload())

    assert notification is None
    assert db.query(Notification).count() == 0
    assert 'Failed to deliver notification to user 7' in caplog.text


def test_stored_procedure_failure_is_swallowed(db) -> None:
    notification = NotificationDeliveryPolicy([call_stored_procedure]).deliver(db, make_payload())

    assert notification is None


def test_deliver_all_keeps_order(db) -> None:
    results = NotificationDeliveryPolicy().deliver_all(db, [make_payload(1), make_payload(2)])

    assert [result.user_id for result in results] == [1, 2]


def test_payload_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        NotificationPayload(user_id=1, title='Hi', message='Hello', type='marketing')
