import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import utcnow
from ..core.config import settings
from ..core.errors import BackendError, NotFriends, RoomNotFound, ValidationError
from ..models import DirectChat, DirectMessage, Friendship, MessageType, Room, RoomMessage
from .live import hub, direct_messages_topic, room_messages_topic

logger = logging.getLogger(__name__)


def direct_chat_id(username1: str, username2: str) -> str:
    # order-independent, so both sides address the same chat
    return "_".join(sorted([username1, username2]))


def require_friend(db: Session, username: str, friend: str) -> None:
    if db.get(Friendship, (username, friend)) is None:
        raise NotFriends()


def clean_text(text: str | None) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty.")
    return text


def append_room_message(db: Session, room_id: str, sender: str, text: str | None = None, image_url: str | None = None) -> RoomMessage:
    msg = RoomMessage(
        room_id=room_id,
        sender_username=sender,
        type=MessageType.image if image_url else MessageType.text,
        text=text,
        image_url=image_url,
        timestamp=utcnow(),
    )
    db.add(msg)
    return msg


def append_direct_message(db: Session, sender: str, recipient: str, text: str) -> DirectMessage:
    chat_id = direct_chat_id(sender, recipient)
    now = utcnow()
    user_a, user_b = sorted([sender, recipient])
    db.merge(DirectChat(id=chat_id, user_a=user_a, user_b=user_b, last_message=text, last_timestamp=now))
    msg = DirectMessage(chat_id=chat_id, sender_username=sender, recipient_username=recipient, text=text, timestamp=now)
    db.add(msg)
    return msg


def _commit_send(db: Session, msg, topic: str):
    """Commit a plain send according to the configured failure policy.

    ``silent`` mirrors fire-and-forget clients: the failure is logged at
    debug level and ``None`` is returned. ``surface`` raises BackendError.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if settings.delivery_failure_policy == "surface":
            logger.warning("messages.send_failed topic=%s error=%s", topic, exc)
            raise BackendError(str(exc)) from exc
        logger.debug("messages.send_swallowed topic=%s error=%s", topic, exc)
        return None
    hub.publish(topic)
    return msg


def send_room_message(db: Session, room_id: str, sender: str, text: str) -> RoomMessage | None:
    text = clean_text(text)
    if db.get(Room, room_id) is None:
        raise RoomNotFound()
    msg = append_room_message(db, room_id, sender, text=text)
    return _commit_send(db, msg, room_messages_topic(room_id))


def send_room_image(db: Session, room_id: str, sender: str, image_url: str) -> RoomMessage | None:
    if not image_url:
        raise ValidationError("Image URL is required")
    if db.get(Room, room_id) is None:
        raise RoomNotFound()
    msg = append_room_message(db, room_id, sender, image_url=image_url)
    return _commit_send(db, msg, room_messages_topic(room_id))


def send_direct_message(db: Session, sender: str, friend: str, text: str) -> DirectMessage | None:
    text = clean_text(text)
    require_friend(db, sender, friend)
    msg = append_direct_message(db, sender, friend, text)
    return _commit_send(db, msg, direct_messages_topic(direct_chat_id(sender, friend)))


def list_room_messages(db: Session, room_id: str) -> list[RoomMessage]:
    return (
        db.query(RoomMessage)
        .filter(RoomMessage.room_id == room_id)
        .order_by(RoomMessage.timestamp.asc(), RoomMessage.id.asc())
        .all()
    )


def list_direct_messages(db: Session, username: str, friend: str) -> list[DirectMessage]:
    return (
        db.query(DirectMessage)
        .filter(DirectMessage.chat_id == direct_chat_id(username, friend))
        .order_by(DirectMessage.timestamp.asc(), DirectMessage.id.asc())
        .all()
    )
