from fastapi import APIRouter, Depends, HTTPException

from tigertix.schemas.events import EventOut
from tigertix.schemas.purchases import BookingOut, BookingRequest
from tigertix.services.inventory import InventoryStore, get_store
from tigertix.services.snapshots import BookingResult

router = APIRouter(prefix="/api/booking", tags=["booking"])


@router.get("/available", response_model=list[EventOut])
def available_events(store: InventoryStore = Depends(get_store)):
    """Events that still have tickets, soonest first."""
    return store.list_available()


@router.post("/confirm", response_model=BookingOut)
def confirm_booking(payload: BookingRequest, store: InventoryStore = Depends(get_store)):
    if payload.event_id is not None:
        event = store.purchase(payload.event_id, payload.ticket_count, user_id=payload.user_id)
        result = BookingResult(
            event_id=event.id,
            event_name=event.name,
            tickets_booked=payload.ticket_count,
            remaining_tickets=event.ticket_count,
        )
    elif payload.event_name:
        result = store.book_by_name(payload.event_name, payload.ticket_count, user_id=payload.user_id)
    else:
        raise HTTPException(status_code=400, detail="Event ID or name is required")

    return BookingOut(
        success=True,
        message=f"Successfully booked {result.tickets_booked} ticket(s) for {result.event_name}",
        event_id=result.event_id,
        event_name=result.event_name,
        tickets_booked=result.tickets_booked,
        remaining_tickets=result.remaining_tickets,
    )
