"""Read models handed out by the store.

Callers never see live ORM objects, only these frozen copies taken inside a
committed transaction.
"""

from dataclasses import dataclass
from datetime import datetime

from tigertix.models.events import Event
from tigertix.models.purchases import Purchase


@dataclass(frozen=True)
class EventSnapshot:
    id: int
    name: str
    date: str
    ticket_count: int
    created_at: datetime | None

    @classmethod
    def from_model(cls, event: Event) -> "EventSnapshot":
        return cls(
            id=event.id,
            name=event.name,
            date=event.date,
            ticket_count=event.ticket_count,
            created_at=event.created_at,
        )


@dataclass(frozen=True)
class PurchaseRecord:
    id: int
    event_id: int
    user_id: int | None
    quantity: int
    purchased_at: datetime | None

    @classmethod
    def from_model(cls, purchase: Purchase) -> "PurchaseRecord":
        return cls(
            id=purchase.id,
            event_id=purchase.event_id,
            user_id=purchase.user_id,
            quantity=purchase.quantity,
            purchased_at=purchase.purchased_at,
        )


@dataclass(frozen=True)
class BookingResult:
    event_id: int
    event_name: str
    tickets_booked: int
    remaining_tickets: int
