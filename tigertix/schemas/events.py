from datetime import datetime

from pydantic import BaseModel, Field

from tigertix.database.db import MAX_ROW_ID


# ---------- Event ----------
class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    date: str = Field(min_length=1, max_length=64)
    ticket_count: int = Field(ge=0, le=MAX_ROW_ID)


class EventCreated(BaseModel):
    message: str
    event_id: int


class EventOut(BaseModel):
    id: int
    name: str
    date: str
    ticket_count: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class EventDeleted(BaseModel):
    deleted: bool
