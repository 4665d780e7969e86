from fastapi import APIRouter, Depends
from ..models import ScheduleScope
from ..schemas.chat import ScheduledOut, ScheduleIn
from ..services.scheduler import PendingMessage, ScheduledDelivery, get_scheduler
from .auth import current_username

router = APIRouter()


def _out(p: PendingMessage) -> ScheduledOut:
    return ScheduledOut(id=p.id, kind=p.kind.value, target=p.target, text=p.text, scheduled_at_ms=p.scheduled_at_ms)


@router.post("/{kind}/{target}", response_model=ScheduledOut)
async def schedule_message(
    kind: ScheduleScope,
    target: str,
    payload: ScheduleIn,
    username: str = Depends(current_username),
    scheduler: ScheduledDelivery = Depends(get_scheduler),
):
    message_id = scheduler.schedule(username, kind, target, payload.text, payload.scheduled_at_ms)
    return ScheduledOut(id=message_id, kind=kind.value, target=target, text=payload.text, scheduled_at_ms=payload.scheduled_at_ms)


@router.get("/{kind}/{target}", response_model=list[ScheduledOut])
async def open_scheduled(
    kind: ScheduleScope,
    target: str,
    username: str = Depends(current_username),
    scheduler: ScheduledDelivery = Depends(get_scheduler),
):
    # opening a conversation re-arms whatever is still pending for it
    return [_out(p) for p in scheduler.recover(username, kind, target)]


@router.delete("/{message_id}")
async def cancel_scheduled(
    message_id: str,
    username: str = Depends(current_username),
    scheduler: ScheduledDelivery = Depends(get_scheduler),
):
    cancelled = scheduler.cancel(username, message_id)
    return {"status": "ok", "cancelled": cancelled}
