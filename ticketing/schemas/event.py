# ticketing/schemas/event.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ticketing.core.time_utils import to_naive_utc


class EventStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class EventSummary(BaseModel):
    id: str
    name: str
    status: EventStatus
    organizer_id: str
    start_date: datetime
    end_date: datetime
    capacity: int
    price: int

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    """Event as handed over by the event catalogue; used to seed the ticketing store."""
    name: str = Field(..., min_length=1)
    organizer_id: str
    organization_id: Optional[str] = None
    description: Optional[str] = None
    status: EventStatus = EventStatus.DRAFT
    start_date: datetime
    end_date: datetime
    capacity: int = Field(default=0, ge=0)
    price: int = Field(default=0, ge=0)

    model_config = {"use_enum_values": True}

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        start = info.data.get("start_date")
        if start and v < start:
            raise ValueError("end_date must not be before start_date")
        return v


class TicketTypeAvailability(BaseModel):
    """Inventory position of one ticket type."""
    ticket_type_id: str
    name: str
    status: str
    quantity: int
    quantity_sold: int
    available: int
    current_price: int
    is_early_bird: bool
    is_sold_out: bool


class InventorySummary(BaseModel):
    event_id: str
    ticketing_mode: str  # "ticket_types" | "legacy"
    total_capacity: int
    total_sold: int
    total_available: int
    fill_rate: float  # sold / capacity as a percentage
    ticket_types: List[TicketTypeAvailability] = []
    legacy_price: Optional[int] = None
