from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_user
from telecare.models.chat_message import ChatMessage
from telecare.models.profile import Profile
from telecare.models.user import User
from telecare.routes.common import database_unavailable, get_db

router = APIRouter(tags=['chat'])

MAX_MESSAGE_LENGTH = 4000


class SendMessageRequest(BaseModel):
    content: str

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Message cannot be empty')
        if len(normalized) > MAX_MESSAGE_LENGTH:
            raise ValueError(f'Messages must be {MAX_MESSAGE_LENGTH} characters or fewer.')
        return normalized


class MessageResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime


class ConversationResponse(BaseModel):
    partner_id: int
    partner_name: str | None = None
    partner_role: str | None = None
    last_message: str
    last_message_sender_id: int
    last_message_at: datetime
    unread_count: int


def to_message_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        content=message.content,
        is_read=bool(message.read),
        created_at=message.created_at,
    )


def between(user_id: int, partner_id: int):
    return or_(
        and_(ChatMessage.sender_id == user_id, ChatMessage.receiver_id == partner_id),
        and_(ChatMessage.sender_id == partner_id, ChatMessage.receiver_id == user_id),
    )


def ensure_partner_exists(partner_id: int, user: User, db: Session) -> None:
    if partner_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='You cannot message yourself.')
    if db.query(User.id).filter(User.id == partner_id).first() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found.')


@router.get('/conversations', response_model=list[ConversationResponse])
def list_conversations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        messages = db.query(ChatMessage).filter(
            or_(ChatMessage.sender_id == user.id, ChatMessage.receiver_id == user.id),
        ).order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).all()

        latest: dict[int, ChatMessage] = {}
        unread: dict[int, int] = {}
        for message in messages:
            partner_id = message.receiver_id if message.sender_id == user.id else message.sender_id
            latest.setdefault(partner_id, message)
            if message.receiver_id == user.id and not message.read:
                unread[partner_id] = unread.get(partner_id, 0) + 1

        partners = {
            profile.user_id: profile
            for profile in db.query(Profile).filter(Profile.user_id.in_(latest)).all()
        } if latest else {}
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [
        ConversationResponse(
            partner_id=partner_id,
            partner_name=partners[partner_id].full_name if partner_id in partners else None,
            partner_role=partners[partner_id].role if partner_id in partners else None,
            last_message=message.content,
            last_message_sender_id=message.sender_id,
            last_message_at=message.created_at,
            unread_count=unread.get(partner_id, 0),
        )
        for partner_id, message in latest.items()
    ]


@router.get('/{partner_id}', response_model=list[MessageResponse])
def list_messages(
    partner_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        messages = db.query(ChatMessage).filter(
            between(user.id, partner_id),
        ).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [to_message_response(message) for message in messages]


@router.post('/{partner_id}', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    partner_id: int,
    data: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        ensure_partner_exists(partner_id, user, db)
        message = ChatMessage(sender_id=user.id, receiver_id=partner_id, content=data.content)
        db.add(message)
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return to_message_response(message)


@router.post('/{partner_id}/read', status_code=status.HTTP_204_NO_CONTENT)
def mark_conversation_read(
    partner_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        db.query(ChatMessage).filter(
            ChatMessage.sender_id == partner_id,
            ChatMessage.receiver_id == user.id,
            ChatMessage.read.is_(False),
        ).update({ChatMessage.read: True}, synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
