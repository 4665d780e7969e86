import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)

CHANGED = {"type": "changed"}


def room_messages_topic(room_id: str) -> str:
    return f"room:{room_id}:messages"


def room_members_topic(room_id: str) -> str:
    return f"room:{room_id}:members"


def direct_messages_topic(chat_id: str) -> str:
    return f"direct:{chat_id}:messages"


def joined_rooms_topic(username: str) -> str:
    return f"user:{username}:rooms"


def friends_topic(username: str) -> str:
    return f"user:{username}:friends"


def friend_requests_topic(username: str) -> str:
    return f"user:{username}:requests"


def scheduled_topic(username: str, kind: str, target: str) -> str:
    return f"user:{username}:scheduled:{kind}:{target}"


class Subscription:
    def __init__(self, topic: str, loop: asyncio.AbstractEventLoop):
        self.topic = topic
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()

    async def next_event(self) -> dict:
        return await self.queue.get()


class LiveHub:
    """Topic based change feed behind the websocket streams.

    Writers call ``publish`` after their transaction commits; every stream
    subscribed to the topic wakes up and re-sends its full result set.
    ``publish`` may be called from any thread: events are handed to the
    subscriber's own event loop.
    """

    def __init__(self):
        self.topics: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    @contextmanager
    def subscribe(self, topic: str) -> Iterator[Subscription]:
        sub = Subscription(topic, asyncio.get_running_loop())
        with self._lock:
            self.topics.setdefault(topic, []).append(sub)
        try:
            yield sub
        finally:
            self._unsubscribe(sub)

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self.topics.get(sub.topic, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self.topics.pop(sub.topic, None)

    def publish(self, topic: str, event: dict | None = None) -> None:
        with self._lock:
            subs = list(self.topics.get(topic, []))
        for sub in subs:
            try:
                sub.loop.call_soon_threadsafe(sub.queue.put_nowait, event or CHANGED)
            except RuntimeError:
                # subscriber's loop already closed
                logger.debug("live.drop_closed topic=%s", topic)
                self._unsubscribe(sub)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self.topics.get(topic, []))


hub = LiveHub()
