from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..schemas.friend import FriendRequestIn, FriendRequestOut
from ..services import friends
from .auth import current_username

router = APIRouter()


@router.get("/")
def list_friends(username: str = Depends(current_username), db: Session = Depends(get_db)):
    return {"items": friends.list_friends(db, username)}


@router.get("/requests", response_model=list[FriendRequestOut])
def list_requests(username: str = Depends(current_username), db: Session = Depends(get_db)):
    return friends.list_friend_requests(db, username)


@router.post("/requests")
def send_request(payload: FriendRequestIn, username: str = Depends(current_username), db: Session = Depends(get_db)):
    friends.send_friend_request(db, username, payload.username)
    return {"status": "ok"}


@router.post("/requests/{from_username}/accept")
def accept_request(from_username: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    friends.accept_friend_request(db, username, from_username)
    return {"status": "ok"}


@router.post("/requests/{from_username}/reject")
def reject_request(from_username: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    friends.reject_friend_request(db, username, from_username)
    return {"status": "ok"}
