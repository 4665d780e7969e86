from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime
from ..core.clock import utcnow
from ..db.session import Base


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    to_username: Mapped[str] = mapped_column(String(64), primary_key=True)
    from_username: Mapped[str] = mapped_column(String(64), primary_key=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Friendship(Base):
    """One direction of a friendship; accepting a request writes both."""

    __tablename__ = "friendships"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    friend_username: Mapped[str] = mapped_column(String(64), primary_key=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
