from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..models import User
from ..schemas.auth import ProfileUpdate, UserOut
from ..schemas.room import CreatedRoomOut, JoinedRoomOut
from ..services import identity, rooms
from ..services.screens import screen_for
from .auth import current_user, current_username

router = APIRouter()


def _user_out(u: User) -> UserOut:
    return UserOut(
        id=str(u.id),
        email=u.email,
        username=u.username,
        display_name=u.display_name,
        screen=screen_for(u.username).value,
    )


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return _user_out(user)


@router.put("/me", response_model=UserOut)
def update_me(payload: ProfileUpdate, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return _user_out(identity.update_display_name(db, user, payload.display_name))


@router.get("/me/rooms", response_model=list[CreatedRoomOut])
def my_rooms(username: str = Depends(current_username), db: Session = Depends(get_db)):
    return rooms.list_created_rooms(db, username)


@router.get("/me/rooms/joined", response_model=list[JoinedRoomOut])
def my_joined_rooms(username: str = Depends(current_username), db: Session = Depends(get_db)):
    return rooms.list_joined_rooms(db, username)
