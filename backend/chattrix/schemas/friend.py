from datetime import datetime
from pydantic import BaseModel


class FriendRequestIn(BaseModel):
    username: str


class FriendRequestOut(BaseModel):
    from_username: str
    sent_at: datetime

    class Config:
        from_attributes = True
