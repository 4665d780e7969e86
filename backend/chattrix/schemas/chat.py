from datetime import datetime
from pydantic import BaseModel, Field
from ..core.clock import MAX_EPOCH_MS
from ..models.message import MessageType


class MessageIn(BaseModel):
    text: str = Field(max_length=4000)


class ImageIn(BaseModel):
    image_url: str = Field(max_length=1024)


class SendResult(BaseModel):
    id: int | None
    stored: bool


class RoomMessageOut(BaseModel):
    id: int
    sender_username: str
    type: MessageType
    text: str | None = None
    image_url: str | None = None
    timestamp: datetime

    class Config:
        from_attributes = True


class DirectMessageOut(BaseModel):
    id: int
    sender_username: str
    recipient_username: str
    text: str
    timestamp: datetime

    class Config:
        from_attributes = True


class ScheduleIn(BaseModel):
    text: str = Field(max_length=4000)
    scheduled_at_ms: int = Field(gt=0, le=MAX_EPOCH_MS)


class ScheduledOut(BaseModel):
    id: str
    kind: str
    target: str
    text: str
    scheduled_at_ms: int
