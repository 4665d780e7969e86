from datetime import datetime
from pydantic import BaseModel


class RoomCreate(BaseModel):
    name: str
    password: str


class RoomJoin(BaseModel):
    room: str
    password: str


class RoomRef(BaseModel):
    room_id: str


class RoomOut(BaseModel):
    id: str
    name: str
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class JoinedRoomOut(BaseModel):
    room_id: str
    name: str
    joined_at: datetime

    class Config:
        from_attributes = True


class CreatedRoomOut(BaseModel):
    room_id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
