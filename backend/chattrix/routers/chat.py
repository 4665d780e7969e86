from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..schemas.chat import DirectMessageOut, ImageIn, MessageIn, RoomMessageOut, SendResult
from ..services import messaging, rooms
from .auth import current_username

router = APIRouter()


def _result(msg) -> SendResult:
    return SendResult(id=msg.id if msg is not None else None, stored=msg is not None)


@router.get("/rooms/{room_id}", response_model=list[RoomMessageOut])
def get_room_messages(room_id: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    rooms.get_room(db, room_id)
    return messaging.list_room_messages(db, room_id)


@router.post("/rooms/{room_id}", response_model=SendResult)
def post_room_message(room_id: str, payload: MessageIn, username: str = Depends(current_username), db: Session = Depends(get_db)):
    return _result(messaging.send_room_message(db, room_id, username, payload.text))


@router.post("/rooms/{room_id}/images", response_model=SendResult)
def post_room_image(room_id: str, payload: ImageIn, username: str = Depends(current_username), db: Session = Depends(get_db)):
    return _result(messaging.send_room_image(db, room_id, username, payload.image_url))


@router.get("/direct/{friend}", response_model=list[DirectMessageOut])
def get_direct_messages(friend: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    messaging.require_friend(db, username, friend)
    return messaging.list_direct_messages(db, username, friend)


@router.post("/direct/{friend}", response_model=SendResult)
def post_direct_message(friend: str, payload: MessageIn, username: str = Depends(current_username), db: Session = Depends(get_db)):
    return _result(messaging.send_direct_message(db, username, friend, payload.text))
