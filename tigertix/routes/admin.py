from fastapi import APIRouter, Depends, HTTPException

from tigertix.schemas.events import EventCreate, EventCreated, EventDeleted, EventOut
from tigertix.services.inventory import InventoryStore, get_store

router = APIRouter(prefix="/api/admin/events", tags=["admin"])


@router.post("", response_model=EventCreated, status_code=201)
def create_event(payload: EventCreate, store: InventoryStore = Depends(get_store)):
    event_id = store.create(payload.name, payload.date, payload.ticket_count)
    return EventCreated(message="Event created successfully", event_id=event_id)


@router.get("", response_model=list[EventOut])
def list_events(store: InventoryStore = Depends(get_store)):
    return store.list()


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, store: InventoryStore = Depends(get_store)):
    event = store.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.delete("/{event_id}", response_model=EventDeleted)
def delete_event(event_id: int, store: InventoryStore = Depends(get_store)):
    # deleting twice is not an error, the second call reports deleted=false
    return EventDeleted(deleted=store.remove(event_id))
