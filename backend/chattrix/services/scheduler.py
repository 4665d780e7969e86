"""Scheduled message delivery.

A scheduled message is persisted under its owner's namespace and armed as an
in-process timer. When the timer fires the record is deleted and the message
appended to its conversation in one transaction; the delete only counts if it
removed a row, so a record that was cancelled, or delivered by another
process, is never sent twice.

Timers do not survive a restart. ``recover`` (per conversation, when a client
opens it) and ``recover_all`` (at process start) re-arm every record whose
time is still in the future. Records that fell due while nothing was running
stay in the store untouched unless ``scheduler_catch_up`` is enabled, in
which case they are delivered once on recovery.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Dict, List, Protocol

from sqlalchemy.orm import Session

from ..core.clock import MAX_EPOCH_MS, now_ms
from ..core.config import settings
from ..core.errors import ChatError, RoomNotFound, ValidationError
from ..db.session import SessionLocal, session_scope
from ..models import Room, ScheduledMessage, ScheduleScope
from .live import LiveHub, hub as default_hub, direct_messages_topic, room_messages_topic, scheduled_topic
from .messaging import append_direct_message, append_room_message, direct_chat_id, require_friend

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioTimers:
    """Arms timers on the running event loop."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0) / 1000, callback)


def new_message_id(clock: Callable[[], int] = now_ms) -> str:
    return f"{secrets.token_hex(5)}{clock()}"


@dataclass(frozen=True)
class PendingMessage:
    id: str
    owner: str
    kind: ScheduleScope
    target: str
    text: str
    scheduled_at_ms: int

    @classmethod
    def from_record(cls, rec: ScheduledMessage) -> "PendingMessage":
        return cls(
            id=rec.id,
            owner=rec.owner,
            kind=ScheduleScope(rec.kind),
            target=rec.target,
            text=rec.text,
            scheduled_at_ms=rec.scheduled_at_ms,
        )


@dataclass(frozen=True)
class DeliveryFailure:
    message_id: str
    owner: str
    error: str


@dataclass
class _Armed:
    pending: PendingMessage
    handle: TimerHandle


class ScheduledDelivery:
    def __init__(
        self,
        session_factory=SessionLocal,
        timers: Timers | None = None,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] | None = None,
        hub: LiveHub = default_hub,
        failure_policy: str | None = None,
        catch_up: bool | None = None,
    ):
        self.session_factory = session_factory
        self.timers = timers or AsyncioTimers()
        self.clock = clock
        self.id_factory = id_factory or (lambda: new_message_id(self.clock))
        self.hub = hub
        self._failure_policy = failure_policy
        self._catch_up = catch_up
        self._armed: Dict[str, _Armed] = {}
        self.failures: List[DeliveryFailure] = []

    @property
    def failure_policy(self) -> str:
        return self._failure_policy or settings.delivery_failure_policy

    @property
    def catch_up(self) -> bool:
        return settings.scheduler_catch_up if self._catch_up is None else self._catch_up

    def is_armed(self, message_id: str) -> bool:
        return message_id in self._armed

    # -- schedule -------------------------------------------------------

    def schedule(self, owner: str, kind: ScheduleScope | str, target: str, text: str, scheduled_at_ms: int) -> str:
        if not text or not text.strip():
            raise ValidationError("Message cannot be empty.")
        now = self.clock()
        if scheduled_at_ms <= now or scheduled_at_ms > MAX_EPOCH_MS:
            raise ValidationError("Please select a valid future date and time.")
        kind = ScheduleScope(kind)

        pending = PendingMessage(
            id=self.id_factory(),
            owner=owner,
            kind=kind,
            target=target,
            text=text,
            scheduled_at_ms=scheduled_at_ms,
        )
        with session_scope(self.session_factory) as db:
            self._check_target(db, pending)
            db.add(ScheduledMessage(
                id=pending.id,
                owner=owner,
                kind=kind,
                target=target,
                text=text,
                scheduled_at_ms=scheduled_at_ms,
            ))

        self._arm(pending, now)
        logger.info("scheduled.created id=%s owner=%s kind=%s target=%s due_ms=%s", pending.id, owner, kind.value, target, scheduled_at_ms)
        self.hub.publish(scheduled_topic(owner, kind.value, target))
        return pending.id

    def _check_target(self, db: Session, pending: PendingMessage) -> None:
        if pending.kind is ScheduleScope.room:
            if db.get(Room, pending.target) is None:
                raise RoomNotFound()
        else:
            require_friend(db, pending.owner, pending.target)

    def _arm(self, pending: PendingMessage, now: int) -> None:
        # one live timer per message id
        if pending.id in self._armed:
            return
        handle = self.timers.call_later(pending.scheduled_at_ms - now, lambda: self._fire(pending.id))
        self._armed[pending.id] = _Armed(pending, handle)

    def _fire(self, message_id: str) -> None:
        armed = self._armed.pop(message_id, None)
        if armed is not None:
            self.deliver(armed.pending)

    # -- deliver --------------------------------------------------------

    def deliver(self, pending: PendingMessage) -> bool:
        """Append the message and drop its record; False if nothing was sent."""
        try:
            with session_scope(self.session_factory) as db:
                deleted = (
                    db.query(ScheduledMessage)
                    .filter(ScheduledMessage.id == pending.id)
                    .delete(synchronize_session=False)
                )
                if not deleted:
                    logger.debug("scheduled.already_gone id=%s", pending.id)
                    return False
                text = pending.text.strip()
                if pending.kind is ScheduleScope.room:
                    append_room_message(db, pending.target, pending.owner, text=text)
                else:
                    append_direct_message(db, pending.owner, pending.target, text)
        except ChatError as exc:
            self._delivery_failed(pending, exc)
            return False

        logger.info("scheduled.delivered id=%s owner=%s kind=%s target=%s", pending.id, pending.owner, pending.kind.value, pending.target)
        if pending.kind is ScheduleScope.room:
            self.hub.publish(room_messages_topic(pending.target))
        else:
            self.hub.publish(direct_messages_topic(direct_chat_id(pending.owner, pending.target)))
        self.hub.publish(scheduled_topic(pending.owner, pending.kind.value, pending.target))
        return True

    def _delivery_failed(self, pending: PendingMessage, exc: ChatError) -> None:
        # the record stays in the store either way
        if self.failure_policy == "surface":
            logger.warning("scheduled.delivery_failed id=%s owner=%s error=%s", pending.id, pending.owner, exc)
            self.failures.append(DeliveryFailure(pending.id, pending.owner, str(exc)))
            self.hub.publish(
                scheduled_topic(pending.owner, pending.kind.value, pending.target),
                {"type": "delivery_failed", "id": pending.id, "error": str(exc)},
            )
        else:
            logger.debug("scheduled.delivery_swallowed id=%s error=%s", pending.id, exc)

    # -- cancel ---------------------------------------------------------

    def cancel(self, owner: str, message_id: str) -> bool:
        armed = self._armed.get(message_id)
        if armed is not None and armed.pending.owner != owner:
            return False
        # clear the timer before the record goes, so it cannot fire in between
        if armed is not None:
            self._armed.pop(message_id, None)
            armed.handle.cancel()

        with session_scope(self.session_factory) as db:
            rec = db.get(ScheduledMessage, message_id)
            if rec is None or rec.owner != owner:
                return False
            kind, target = ScheduleScope(rec.kind).value, rec.target
            db.delete(rec)

        logger.info("scheduled.cancelled id=%s owner=%s", message_id, owner)
        self.hub.publish(scheduled_topic(owner, kind, target))
        return True

    # -- recovery -------------------------------------------------------

    def pending_for(self, owner: str, kind: ScheduleScope | str, target: str) -> List[PendingMessage]:
        kind = ScheduleScope(kind)
        with session_scope(self.session_factory) as db:
            rows = (
                db.query(ScheduledMessage)
                .filter(ScheduledMessage.owner == owner, ScheduledMessage.kind == kind, ScheduledMessage.target == target)
                .order_by(ScheduledMessage.scheduled_at_ms.asc())
                .all()
            )
            return [PendingMessage.from_record(r) for r in rows]

    def recover(self, owner: str, kind: ScheduleScope | str, target: str) -> List[PendingMessage]:
        return self._rearm(self.pending_for(owner, kind, target))

    def recover_all(self) -> int:
        with session_scope(self.session_factory) as db:
            rows = db.query(ScheduledMessage).order_by(ScheduledMessage.scheduled_at_ms.asc()).all()
            pending = [PendingMessage.from_record(r) for r in rows]
        upcoming = self._rearm(pending)
        logger.info("scheduled.recovered armed=%s total=%s", len(upcoming), len(pending))
        return len(upcoming)

    def _rearm(self, pending: List[PendingMessage]) -> List[PendingMessage]:
        now = self.clock()
        upcoming = []
        for p in pending:
            if p.scheduled_at_ms > now:
                self._arm(p, now)
                upcoming.append(p)
            elif self.catch_up and p.id not in self._armed:
                self.deliver(p)
            else:
                logger.debug("scheduled.overdue_left id=%s due_ms=%s", p.id, p.scheduled_at_ms)
        return upcoming

    def shutdown(self) -> None:
        for armed in self._armed.values():
            armed.handle.cancel()
        self._armed.clear()


scheduler = ScheduledDelivery()


def get_scheduler() -> ScheduledDelivery:
    return scheduler
