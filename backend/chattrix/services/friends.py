import logging

from sqlalchemy.orm import Session

from ..core.clock import utcnow
from ..core.errors import AlreadyFriends, FriendRequestNotFound, UserNotFound, ValidationError
from ..models import FriendRequest, Friendship, User
from .live import hub, friend_requests_topic, friends_topic

logger = logging.getLogger(__name__)


def send_friend_request(db: Session, me: str, other: str) -> None:
    other = (other or "").strip()
    if not other:
        raise ValidationError("Enter a username")
    if other == me:
        raise ValidationError("You cannot add yourself as a friend.")
    if db.query(User).filter(User.username == other).first() is None:
        raise UserNotFound()
    if db.get(Friendship, (me, other)) is not None:
        raise AlreadyFriends()

    db.merge(FriendRequest(to_username=other, from_username=me, sent_at=utcnow()))
    db.commit()
    logger.info("friends.request_sent from=%s to=%s", me, other)
    hub.publish(friend_requests_topic(other))


def accept_friend_request(db: Session, me: str, other: str) -> None:
    request = db.get(FriendRequest, (me, other))
    if request is None:
        raise FriendRequestNotFound()

    now = utcnow()
    db.merge(Friendship(username=me, friend_username=other, added_at=now))
    db.merge(Friendship(username=other, friend_username=me, added_at=now))
    db.delete(request)
    db.commit()
    logger.info("friends.accepted username=%s friend=%s", me, other)
    hub.publish(friend_requests_topic(me))
    hub.publish(friends_topic(me))
    hub.publish(friends_topic(other))


def reject_friend_request(db: Session, me: str, other: str) -> bool:
    deleted = (
        db.query(FriendRequest)
        .filter(FriendRequest.to_username == me, FriendRequest.from_username == other)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("friends.rejected username=%s from=%s", me, other)
        hub.publish(friend_requests_topic(me))
    return bool(deleted)


def list_friend_requests(db: Session, me: str) -> list[FriendRequest]:
    return db.query(FriendRequest).filter(FriendRequest.to_username == me).order_by(FriendRequest.sent_at.asc()).all()


def list_friends(db: Session, me: str) -> list[str]:
    rows = db.query(Friendship).filter(Friendship.username == me).order_by(Friendship.friend_username.asc()).all()
    return [f.friend_username for f in rows]
