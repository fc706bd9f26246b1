from pydantic import BaseModel, Field

from tigertix.database.db import MAX_ROW_ID
from tigertix.schemas.events import EventOut


class PurchaseRequest(BaseModel):
    user_id: int = Field(ge=1, le=MAX_ROW_ID)
    quantity: int = Field(default=1, ge=1)


class PurchaseOut(BaseModel):
    message: str
    event: EventOut
    tickets_available: int
    purchased_by: int


# ---------- Booking by name ----------
class BookingRequest(BaseModel):
    event_id: int | None = Field(default=None, ge=1)
    event_name: str | None = Field(default=None, min_length=1, max_length=200)
    ticket_count: int = Field(default=1, ge=1)
    user_id: int | None = Field(default=None, ge=1, le=MAX_ROW_ID)


class BookingOut(BaseModel):
    success: bool
    message: str
    event_id: int
    event_name: str
    tickets_booked: int
    remaining_tickets: int

    class Config:
        from_attributes = True
