from fastapi import APIRouter, Depends

from tigertix.schemas.events import EventOut
from tigertix.schemas.purchases import PurchaseOut, PurchaseRequest
from tigertix.services.inventory import InventoryStore, get_store

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=list[EventOut])
def list_events(store: InventoryStore = Depends(get_store)):
    return store.list()


@router.post("/{event_id}/purchase", response_model=PurchaseOut)
def purchase_ticket(event_id: int, payload: PurchaseRequest, store: InventoryStore = Depends(get_store)):
    event = store.purchase(event_id, payload.quantity, user_id=payload.user_id)
    return PurchaseOut(
        message="Ticket purchased successfully",
        event=EventOut.model_validate(event),
        tickets_available=event.ticket_count,
        purchased_by=payload.user_id,
    )
