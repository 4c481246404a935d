from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_user
from telecare.models.notification import Notification
from telecare.models.user import User
from telecare.routes.common import database_unavailable, get_db

router = APIRouter(tags=['notifications'])


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    type: str
    link: str | None = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    unread_count: int
    notifications: list[NotificationResponse]


def to_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        title=notification.title,
        message=notification.message,
        type=notification.type or 'system',
        link=notification.link,
        is_read=bool(notification.read),
        created_at=notification.created_at,
    )


def get_own_notification(notification_id: int, user: User, db: Session) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user.id,
    ).first()
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Notification not found.')
    return notification


@router.get('/', response_model=NotificationListResponse)
def list_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        notifications = db.query(Notification).filter(
            Notification.user_id == user.id,
        ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return NotificationListResponse(
        unread_count=sum(1 for notification in notifications if not notification.read),
        notifications=[to_notification_response(notification) for notification in notifications],
    )


@router.post('/{notification_id}/read', response_model=NotificationResponse)
def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        notification = get_own_notification(notification_id, user, db)
        notification.read = True
        db.commit()
        db.refresh(notification)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return to_notification_response(notification)


@router.post('/read-all', response_model=NotificationListResponse)
def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        db.query(Notification).filter(
            Notification.user_id == user.id,
            Notification.read.is_(False),
        ).update({Notification.read: True}, synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return list_notifications(user=user, db=db)


@router.delete('/{notification_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        notification = get_own_notification(notification_id, user, db)
        db.delete(notification)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
