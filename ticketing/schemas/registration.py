# ticketing/schemas/registration.py
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from enum import Enum
from datetime import datetime

from ticketing.schemas.event import EventSummary
from ticketing.schemas.ticket_management import CartItem


class RegistrationStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class AttendeeDetails(BaseModel):
    first_name: Optional[str] = Field(None, json_schema_extra={"example": "Abebe"})
    last_name: Optional[str] = Field(None, json_schema_extra={"example": "Bikila"})
    email: Optional[str] = Field(None, json_schema_extra={"example": "guest@example.com"})
    phone: Optional[str] = None
    organization: Optional[str] = None
    dietary_requirements: Optional[str] = None
    special_requirements: Optional[str] = None
    marketing_emails: Optional[bool] = None
    terms_accepted: Optional[bool] = None


class RegisterRequest(BaseModel):
    """A buyer's cart: ticket-type lines, or a flat quantity for legacy events."""
    items: List[CartItem] = []
    quantity: Optional[int] = Field(default=None, ge=1, description="Legacy events only")
    promo_code: Optional[str] = Field(default=None, max_length=50)
    attendee: AttendeeDetails = AttendeeDetails()

    @model_validator(mode="after")
    def check_cart_shape(self):
        # Provide either ticket-type lines or a legacy quantity, not both.
        if self.items and self.quantity is not None:
            raise ValueError("Provide either ticket items or a legacy quantity, not both")
        if self.promo_code is not None:
            self.promo_code = self.promo_code.strip() or None
        return self


class TicketPurchaseResponse(BaseModel):
    id: str
    ticket_type_id: str
    ticket_type_name: Optional[str] = None
    promo_code_id: Optional[str] = None
    quantity: int
    unit_price: int
    subtotal: int
    discount: int
    ticket_numbers: List[str] = []

    model_config = {"from_attributes": True}


class Registration(BaseModel):
    id: str
    event_id: str
    user_id: str
    status: RegistrationStatus
    quantity: int
    total_amount: int
    final_amount: int
    payment_status: PaymentStatus
    promo_code_used: Optional[str] = None
    ticket_number: str
    qr_code: Optional[str] = None
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    created_at: datetime
    ticket_purchases: List[TicketPurchaseResponse] = []

    model_config = {"from_attributes": True}


class RegistrationWithEvent(Registration):
    event: EventSummary


class RegistrationSummary(BaseModel):
    subtotal: int
    discount: int
    total: int
    ticket_count: int


class RegisterResponse(BaseModel):
    registration: Registration
    summary: RegistrationSummary
    message: str
    credential_error: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
