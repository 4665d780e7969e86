import enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, BigInteger, Enum, Index
from ..db.session import Base


class ScheduleScope(str, enum.Enum):
    room = "room"
    direct = "direct"


class ScheduledMessage(Base):
    __tablename__ = "scheduled_messages"
    __table_args__ = (
        Index("ix_scheduled_owner_scope", "owner", "kind", "target"),
    )

    # generated by the client side of the scheduler, not by the database
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[ScheduleScope] = mapped_column(Enum(ScheduleScope), nullable=False)
    # room id or friend username, depending on kind
    target: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
