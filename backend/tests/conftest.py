"""
Test configuration and fixtures.

The database URL and bcrypt cost are set before ``chattrix`` is imported, so
the engine points at a throwaway SQLite file. Tables are recreated for every
test.

Provides:
- db: a session on the test database
- clock: virtual time plus a timer wheel, used as both the scheduler's clock
  and its timers, so tests can "advance" time
- scheduler / allocator: service instances wired to the test database
- client: a TestClient whose app uses the virtual-time scheduler
- helpers to seed rooms, users and friendships
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="chattrix-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-key-long-enough-for-hs256-signing"

import pytest
from fastapi.testclient import TestClient

from chattrix.db.session import Base, SessionLocal, engine
from chattrix.models import Friendship, Room, RoomCreated, RoomJoined, RoomMember, RoomName, User
from chattrix.services import scheduler as scheduler_module
from chattrix.services.live import LiveHub
from chattrix.services.rooms import RoomAllocator
from chattrix.services.scheduler import ScheduledDelivery


class VirtualTimer:
    def __init__(self, due: int, seq: int, callback):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class VirtualClock:
    """Epoch-millisecond clock whose timers only fire on ``advance``."""

    def __init__(self, start_ms: int = 1_760_000_000_000):
        self.now = start_ms
        self._timers: list[VirtualTimer] = []
        self._seq = 0

    def __call__(self) -> int:
        return self.now

    def call_later(self, delay_ms: int, callback) -> VirtualTimer:
        timer = VirtualTimer(self.now + max(delay_ms, 0), self._seq, callback)
        self._seq += 1
        self._timers.append(timer)
        return timer

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._timers.remove(timer)
            self.now = max(self.now, timer.due)
            timer.callback()
        self.now = target

    @property
    def armed(self) -> list[VirtualTimer]:
        return [t for t in self._timers if not t.cancelled]


MINUTE_MS = 60 * 1000


@pytest.fixture(autouse=True)
def reset_database():
    """Recreate all tables so every test starts from an empty store."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def live_hub():
    return LiveHub()


@pytest.fixture
def scheduler(clock, live_hub):
    return ScheduledDelivery(timers=clock, clock=clock, hub=live_hub, failure_policy="silent", catch_up=False)


@pytest.fixture
def allocator(live_hub):
    return RoomAllocator(hub=live_hub)


@pytest.fixture
def client(monkeypatch, clock):
    """API client; scheduled sends run on the virtual clock."""
    test_scheduler = ScheduledDelivery(timers=clock, clock=clock, failure_policy="silent", catch_up=False)
    monkeypatch.setattr(scheduler_module, "scheduler", test_scheduler)
    from chattrix.main import app

    with TestClient(app) as c:
        c.scheduler = test_scheduler
        yield c


def seed_room(db, room_id: str, name: str, password: str = "secret", owner: str = "owner") -> Room:
    room = Room(id=room_id, name=name, password=password, created_by=owner)
    db.add(room)
    db.add(RoomName(name=name.strip().lower(), room_id=room_id))
    db.add(RoomCreated(username=owner, room_id=room_id, name=name))
    db.add(RoomJoined(username=owner, room_id=room_id, name=name))
    db.add(RoomMember(room_id=room_id, username=owner))
    db.commit()
    return room


def seed_user(db, username: str, email: str | None = None) -> User:
    user = User(email=email or f"{username}@example.com", password_hash="x", username=username, display_name=username)
    db.add(user)
    db.commit()
    return user


def seed_friends(db, a: str, b: str) -> None:
    db.add(Friendship(username=a, friend_username=b))
    db.add(Friendship(username=b, friend_username=a))
    db.commit()


def signup(client: TestClient, username: str, password: str = "pw-123456") -> dict:
    """Register, answer the username prompt, and return auth headers."""
    r = client.post("/auth/register", json={"email": f"{username}@example.com", "password": password})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]
    r = client.post("/auth/username", json={"username": username}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
