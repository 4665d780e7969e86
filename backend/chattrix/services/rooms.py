"""Room/name allocation and membership.

Room creation claims the normalized name inside the transaction before the
room id is known, then draws a 6-digit id from a bounded retry loop. The id
lookups run in their own sessions, outside the creating transaction, and the
primary key on ``rooms.id`` catches the rare id picked concurrently by
another creator.
"""

import logging
import random
import re
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import utcnow
from ..core.config import settings
from ..core.errors import AllocationExhausted, NameTaken, RoomNotFound, ValidationError, WrongPassword
from ..db.session import SessionLocal, session_scope
from ..models import Room, RoomCreated, RoomJoined, RoomMember, RoomName
from .live import LiveHub, hub as default_hub, joined_rooms_topic, room_members_topic

logger = logging.getLogger(__name__)

ROOM_ID_PATTERN = re.compile(r"^\d{6}$")


def normalize_room_name(name: str) -> str:
    return name.strip().lower()


def generate_room_id(rng: random.Random | None = None) -> str:
    return str((rng or random).randint(100000, 999999))


def validate_new_room(name: str, password: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Room name is required")
    if not password or not password.strip():
        raise ValidationError("Room password is required")
    if name.strip()[0].isdigit():
        raise ValidationError("Room name must not start with a number")


class RoomAllocator:
    def __init__(
        self,
        session_factory=SessionLocal,
        id_generator: Callable[[], str] = generate_room_id,
        max_attempts: int | None = None,
        hub: LiveHub = default_hub,
    ):
        self.session_factory = session_factory
        self.id_generator = id_generator
        self._max_attempts = max_attempts
        self.hub = hub

    @property
    def max_attempts(self) -> int:
        return self._max_attempts or settings.room_id_attempts

    def _room_exists(self, room_id: str) -> bool:
        with self.session_factory() as lookup:
            return lookup.get(Room, room_id) is not None

    def unique_room_id(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.id_generator()
            if not self._room_exists(candidate):
                return candidate
            logger.debug("rooms.id_collision candidate=%s attempt=%s", candidate, attempt)
        logger.warning("rooms.id_exhausted attempts=%s", self.max_attempts)
        raise AllocationExhausted()

    def create_room(self, name: str, password: str, owner: str) -> str:
        validate_new_room(name, password)
        display_name = name.strip()
        key = normalize_room_name(name)

        with session_scope(self.session_factory) as db:
            if db.get(RoomName, key) is not None:
                raise NameTaken()
            reservation = RoomName(name=key, room_id=None)
            db.add(reservation)
            try:
                db.flush()
            except IntegrityError as exc:
                # reserved by a concurrent transaction
                raise NameTaken() from exc

            room_id = self.unique_room_id()
            now = utcnow()
            db.add(Room(id=room_id, name=display_name, password=password, created_by=owner, created_at=now))
            try:
                db.flush()
            except IntegrityError as exc:
                raise AllocationExhausted() from exc

            reservation.room_id = room_id
            db.add(RoomCreated(username=owner, room_id=room_id, name=display_name, created_at=now))
            db.add(RoomJoined(username=owner, room_id=room_id, name=display_name, joined_at=now))
            db.add(RoomMember(room_id=room_id, username=owner, joined_at=now))

        logger.info("rooms.created room_id=%s name=%s owner=%s", room_id, key, owner)
        self.hub.publish(joined_rooms_topic(owner))
        self.hub.publish(room_members_topic(room_id))
        return room_id

    def join_room(self, identifier: str, password: str, username: str) -> str:
        ident = (identifier or "").strip()
        if not ident:
            raise ValidationError("Enter a room name or 6-digit ID")

        with session_scope(self.session_factory) as db:
            if ROOM_ID_PATTERN.match(ident):
                room = db.get(Room, ident)
            else:
                room = db.query(Room).filter(Room.name == ident).order_by(Room.created_at.asc()).first()
            if room is None:
                raise RoomNotFound()
            if room.password != password:
                raise WrongPassword()

            now = utcnow()
            db.merge(RoomJoined(username=username, room_id=room.id, name=room.name, joined_at=now))
            db.merge(RoomMember(room_id=room.id, username=username, joined_at=now))
            room_id = room.id

        logger.info("rooms.joined room_id=%s username=%s", room_id, username)
        self.hub.publish(joined_rooms_topic(username))
        self.hub.publish(room_members_topic(room_id))
        return room_id


def get_room(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise RoomNotFound()
    return room


def list_members(db: Session, room_id: str) -> list[str]:
    rows = db.query(RoomMember).filter(RoomMember.room_id == room_id).order_by(RoomMember.joined_at.asc()).all()
    return [m.username for m in rows]


def list_joined_rooms(db: Session, username: str) -> list[RoomJoined]:
    return db.query(RoomJoined).filter(RoomJoined.username == username).order_by(RoomJoined.joined_at.desc()).all()


def list_created_rooms(db: Session, username: str) -> list[RoomCreated]:
    return db.query(RoomCreated).filter(RoomCreated.username == username).order_by(RoomCreated.created_at.desc()).all()


allocator = RoomAllocator()


def get_allocator() -> RoomAllocator:
    return allocator
