from typing import Annotated
from fastapi import Depends, Request
from tracker.database.repository import TrackerRepository
from tracker.services.event_service import EventPublisher
from tracker.storage.object_store import ObjectStore

def _state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{label} non inizializzato")
    return value

def get_repository(request: Request) -> TrackerRepository:
    return _state(request, "repo", "Repository")

def get_object_store(request: Request) -> ObjectStore:
    return _state(request, "object_store", "Object store")

def get_publisher(request: Request) -> EventPublisher:
    return _state(request, "publisher", "Event publisher")

RepoDep = Annotated[TrackerRepository, Depends(get_repository)]
StoreDep = Annotated[ObjectStore, Depends(get_object_store)]
EventsDep = Annotated[EventPublisher, Depends(get_publisher)]
