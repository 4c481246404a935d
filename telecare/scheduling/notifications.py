"""Best-effort in-app notification delivery.

Delivery is an ordered list of strategies. Each strategy gets the database
session and the payload and either returns the stored notification (or a
placeholder when it cannot read it back) or raises. The first strategy that
does not raise wins. Failures are logged and rolled back and never reach
the caller, so a notification can not undo the write that triggered it.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Sequence

from sqlalchemy import insert, text
from sqlalchemy.orm import Session

from telecare.core import config
from telecare.models.notification import Notification

logger = logging.getLogger(__name__)

APPOINTMENT_REQUEST = 'appointment_request'
APPOINTMENT_CONFIRMED = 'appointment_confirmed'
APPOINTMENT_REJECTED = 'appointment_rejected'
SYSTEM = 'system'
NOTIFICATION_TYPES = (APPOINTMENT_REQUEST, APPOINTMENT_CONFIRMED, APPOINTMENT_REJECTED, SYSTEM)


@dataclass
class NotificationPayload:
    user_id: int
    title: str
    message: str
    type: str = SYSTEM
    link: str | None = None
    read: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.type not in NOTIFICATION_TYPES:
            raise ValueError(f'Unknown notification type: {self.type!r}')


DeliveryStrategy = Callable[[Session, NotificationPayload], Notification]


def insert_and_return(db: Session, payload: NotificationPayload) -> Notification:
    notification = Notification(**asdict(payload))
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def insert_only(db: Session, payload: NotificationPayload) -> Notification:
    db.execute(insert(Notification).values(**asdict(payload)))
    db.commit()
    return Notification(**asdict(payload))


def call_stored_procedure(db: Session, payload: NotificationPayload) -> Notification:
    db.execute(
        text(f'SELECT {config.NOTIFICATION_RPC_NAME}(:user_id, :title, :message, :type, :link)'),
        {
            'user_id': payload.user_id,
            'title': payload.title,
            'message': payload.message,
            'type': payload.type,
            'link': payload.link,
        },
    )
    db.commit()
    return Notification(**asdict(payload))


DEFAULT_STRATEGIES: tuple[DeliveryStrategy, ...] = (insert_and_return, insert_only, call_stored_procedure)


class NotificationDeliveryPolicy:
    def __init__(self, strategies: Sequence[DeliveryStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    def deliver(self, db: Session, payload: NotificationPayload) -> Notification | None:
        for strategy in self.strategies:
            try:
                notification = strategy(db, payload)
            except Exception as exc:
                db.rollback()
                logger.warning(
                    'Notification strategy %s failed for user %s: %s',
                    getattr(strategy, '__name__', repr(strategy)),
                    payload.user_id,
                    exc,
                )
                continue
            logger.debug('Notification delivered to user %s', payload.user_id)
            return notification

        logger.error('Failed to deliver notification to user %s after %d strategies', payload.user_id, len(self.strategies))
        return None

    def deliver_all(self, db: Session, payloads: Sequence[NotificationPayload]) -> list[Notification | None]:
        return [self.deliver(db, payload) for payload in payloads]
