import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, String, DateTime, ForeignKey, Integer, Enum
from ..core.clock import utcnow
from ..db.session import Base


class MessageType(str, enum.Enum):
    text = "text"
    image = "image"


class RoomMessage(Base):
    __tablename__ = "room_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(String(6), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_username: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[MessageType] = mapped_column(Enum(MessageType), default=MessageType.text, nullable=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # assigned by the server at write time, never by the client
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class DirectChat(Base):
    __tablename__ = "direct_chats"

    id: Mapped[str] = mapped_column(String(129), primary_key=True)
    user_a: Mapped[str] = mapped_column(String(64), nullable=False)
    user_b: Mapped[str] = mapped_column(String(64), nullable=False)
    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DirectMessage(Base):
    __tablename__ = "direct_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(String(129), ForeignKey("direct_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_username: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_username: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
