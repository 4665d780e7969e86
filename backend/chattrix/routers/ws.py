import asyncio
import logging
from typing import Any, Callable

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, Query
from sqlalchemy.orm import Session
from starlette.websockets import WebSocketState

from ..core.errors import ChatError
from ..db.session import SessionLocal
from ..models import ScheduleScope
from ..schemas.chat import DirectMessageOut, RoomMessageOut, ScheduledOut
from ..schemas.friend import FriendRequestOut
from ..schemas.room import JoinedRoomOut
from ..services import friends, messaging, rooms
from ..services.live import (
    hub,
    direct_messages_topic,
    friend_requests_topic,
    friends_topic,
    joined_rooms_topic,
    room_members_topic,
    room_messages_topic,
    scheduled_topic,
)
from ..services.scheduler import PendingMessage, get_scheduler
from .auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)

Loader = Callable[[Session], list[Any]]


def _username_for(token: str) -> str | None:
    db = SessionLocal()
    try:
        user = get_current_user(token, db)
    except HTTPException:
        return None
    finally:
        db.close()
    return user.username


def _load(loader: Loader) -> list[Any]:
    db = SessionLocal()
    try:
        return loader(db)
    finally:
        db.close()


async def _pump(websocket: WebSocket, sub, loader: Loader):
    while True:
        event = await sub.next_event()
        if event.get("type") == "changed":
            await websocket.send_json({"type": "snapshot", "items": _load(loader)})
        else:
            await websocket.send_json(event)


def _failure(task: asyncio.Task) -> BaseException | None:
    return None if task.cancelled() else task.exception()


async def _receive(websocket: WebSocket):
    # clients only ever ping; this is where a disconnect surfaces
    while True:
        await websocket.receive_text()


async def stream(websocket: WebSocket, token: str, topic_for: Callable[[str], str], loader_for: Callable[[str], Loader], check: Callable[[Session, str], None] | None = None):
    """Serve one live query: a snapshot on connect, then one per change.

    The stream ends when the client disconnects or when a snapshot can no
    longer be produced; in the latter case the socket is closed with 1011.
    """
    username = _username_for(token)
    if not username:
        await websocket.close(code=4401)
        return
    if check is not None:
        db = SessionLocal()
        try:
            check(db, username)
        except ChatError:
            await websocket.close(code=4403)
            return
        finally:
            db.close()

    await websocket.accept()
    topic = topic_for(username)
    loader = loader_for(username)
    with hub.subscribe(topic) as sub:
        await websocket.send_json({"type": "snapshot", "items": _load(loader)})
        pump = asyncio.create_task(_pump(websocket, sub, loader))
        receiver = asyncio.create_task(_receive(websocket))
        try:
            await asyncio.wait({pump, receiver}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (pump, receiver):
                task.cancel()
            await asyncio.gather(pump, receiver, return_exceptions=True)

        lost = _failure(receiver)
        if lost is not None and not isinstance(lost, WebSocketDisconnect):
            raise lost
        failure = _failure(pump)
        if failure is None:
            logger.debug("ws.closed topic=%s username=%s", topic, username)
            return
        logger.error("ws.stream_failed topic=%s username=%s", topic, username, exc_info=failure)
        if websocket.client_state is WebSocketState.CONNECTED and websocket.application_state is WebSocketState.CONNECTED:
            await websocket.close(code=1011)


def _dump(schema, rows) -> list[dict]:
    return [schema.model_validate(r).model_dump(mode="json") for r in rows]


@router.websocket("/rooms/{room_id}/messages")
async def room_messages(websocket: WebSocket, room_id: str, token: str = Query(...)):
    await stream(
        websocket,
        token,
        lambda u: room_messages_topic(room_id),
        lambda u: lambda db: _dump(RoomMessageOut, messaging.list_room_messages(db, room_id)),
        check=lambda db, u: rooms.get_room(db, room_id),
    )


@router.websocket("/rooms/{room_id}/members")
async def room_members(websocket: WebSocket, room_id: str, token: str = Query(...)):
    await stream(
        websocket,
        token,
        lambda u: room_members_topic(room_id),
        lambda u: lambda db: rooms.list_members(db, room_id),
        check=lambda db, u: rooms.get_room(db, room_id),
    )


@router.websocket("/direct/{friend}")
async def direct_messages(websocket: WebSocket, friend: str, token: str = Query(...)):
    await stream(
        websocket,
        token,
        lambda u: direct_messages_topic(messaging.direct_chat_id(u, friend)),
        lambda u: lambda db: _dump(DirectMessageOut, messaging.list_direct_messages(db, u, friend)),
        check=lambda db, u: messaging.require_friend(db, u, friend),
    )


@router.websocket("/friends")
async def friends_list(websocket: WebSocket, token: str = Query(...)):
    await stream(websocket, token, friends_topic, lambda u: lambda db: friends.list_friends(db, u))


@router.websocket("/friends/requests")
async def friend_requests(websocket: WebSocket, token: str = Query(...)):
    await stream(
        websocket,
        token,
        friend_requests_topic,
        lambda u: lambda db: _dump(FriendRequestOut, friends.list_friend_requests(db, u)),
    )


@router.websocket("/me/rooms")
async def joined_rooms(websocket: WebSocket, token: str = Query(...)):
    await stream(
        websocket,
        token,
        joined_rooms_topic,
        lambda u: lambda db: _dump(JoinedRoomOut, rooms.list_joined_rooms(db, u)),
    )


@router.websocket("/scheduled/{kind}/{target}")
async def scheduled(websocket: WebSocket, kind: ScheduleScope, target: str, token: str = Query(...)):
    scheduler = get_scheduler()

    def load(username: str) -> Loader:
        def _items(db: Session) -> list[dict]:
            pending: list[PendingMessage] = scheduler.pending_for(username, kind, target)
            return [
                ScheduledOut(id=p.id, kind=p.kind.value, target=p.target, text=p.text, scheduled_at_ms=p.scheduled_at_ms).model_dump()
                for p in pending
            ]
        return _items

    await stream(websocket, token, lambda u: scheduled_topic(u, kind.value, target), load)
