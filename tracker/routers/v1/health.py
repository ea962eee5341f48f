from fastapi import APIRouter
from tracker.core.deps import EventsDep
from tracker.services.event_service import NullEventPublisher

router = APIRouter()

@router.get("/health")
async def health_check(events: EventsDep):
    if isinstance(events, NullEventPublisher):
        broker = "disabled"
    else:
        broker = "connected" if events.is_ready() else "disconnected"
    return {"status": "ok", "events": broker}
