from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime, ForeignKey
from ..core.clock import utcnow
from ..db.session import Base


class Room(Base):
    __tablename__ = "rooms"

    # 6-digit numeric string
    id: Mapped[str] = mapped_column(String(6), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # stored and compared as plaintext, see DESIGN.md
    password: Mapped[str] = mapped_column(String(128), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class RoomName(Base):
    """Exclusive claim on a normalized room name; never deleted."""

    __tablename__ = "room_names"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    room_id: Mapped[str | None] = mapped_column(String(6), ForeignKey("rooms.id"), nullable=True)
