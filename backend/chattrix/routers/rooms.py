from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..schemas.room import RoomCreate, RoomJoin, RoomOut, RoomRef
from ..services import rooms
from ..services.rooms import RoomAllocator, get_allocator
from .auth import current_username

router = APIRouter()


@router.post("/", response_model=RoomRef)
def create_room(payload: RoomCreate, username: str = Depends(current_username), allocator: RoomAllocator = Depends(get_allocator)):
    room_id = allocator.create_room(payload.name, payload.password, username)
    return RoomRef(room_id=room_id)


@router.post("/join", response_model=RoomRef)
def join_room(payload: RoomJoin, username: str = Depends(current_username), allocator: RoomAllocator = Depends(get_allocator)):
    room_id = allocator.join_room(payload.room, payload.password, username)
    return RoomRef(room_id=room_id)


@router.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    return rooms.get_room(db, room_id)


@router.get("/{room_id}/members")
def list_members(room_id: str, username: str = Depends(current_username), db: Session = Depends(get_db)):
    rooms.get_room(db, room_id)
    return {"items": rooms.list_members(db, room_id)}
