# ticketing/schemas/ticket_management.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from ticketing.core.time_utils import to_naive_utc


# ============================================
# Enums
# ============================================

class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    EARLY_BIRD = "EARLY_BIRD"


class TicketTypeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SOLD_OUT = "SOLD_OUT"
    INACTIVE = "INACTIVE"


# ============================================
# Cart
# ============================================

class CartItem(BaseModel):
    """One ticket-type selection in a purchase request."""
    ticket_type_id: str
    quantity: int = Field(..., ge=1)


# ============================================
# Ticket Type Schemas
# ============================================

class TicketTypeCreate(BaseModel):
    """Schema for creating a new ticket type."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: int = Field(default=0, ge=0, description="Price in cents (0 for free)")
    quantity: int = Field(..., ge=1)
    early_bird_price: Optional[int] = Field(default=None, ge=0)
    early_bird_end_date: Optional[datetime] = None
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int = Field(default=10, ge=1)
    status: TicketTypeStatus = TicketTypeStatus.ACTIVE
    sort_order: int = 0

    @field_validator('max_quantity')
    @classmethod
    def max_must_be_gte_min(cls, v, info):
        if 'min_quantity' in info.data and v < info.data['min_quantity']:
            raise ValueError('max_quantity must be >= min_quantity')
        return v

    @field_validator('early_bird_end_date')
    @classmethod
    def normalize_early_bird_end(cls, v):
        return to_naive_utc(v)


class TicketTypeResponse(BaseModel):
    """Ticket type with its live availability."""
    id: str
    event_id: str
    name: str
    description: Optional[str] = None
    price: int
    early_bird_price: Optional[int] = None
    early_bird_end_date: Optional[datetime] = None
    quantity: int
    quantity_sold: int
    available: int
    min_quantity: int
    max_quantity: int
    status: TicketTypeStatus
    sort_order: int
    current_price: int
    is_early_bird: bool
    is_sold_out: bool


# ============================================
# Promo Code Schemas
# ============================================

class PromoCodeCreate(BaseModel):
    """Schema for creating a promo code."""
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int = Field(..., ge=0, description="Percentage (0-100) or amount in cents")
    max_uses: Optional[int] = Field(default=None, ge=1, description="None = unlimited")
    max_uses_per_user: int = Field(default=1, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    min_purchase_amount: Optional[int] = Field(default=None, ge=0)
    applicable_ticket_types: List[str] = []
    is_active: bool = True
    # Scope the code to the event in the URL; False creates a global code (admins only).
    event_scoped: bool = True

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError('code must not be blank')
        return v

    @field_validator('discount_value')
    @classmethod
    def percentage_within_bounds(cls, v, info):
        if info.data.get('discount_type') == DiscountType.PERCENTAGE and v > 100:
            raise ValueError('percentage discount cannot exceed 100')
        return v

    @field_validator('valid_from', 'valid_until')
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @field_validator('valid_until')
    @classmethod
    def until_after_from(cls, v, info):
        start = info.data.get('valid_from')
        if v and start and v <= start:
            raise ValueError('valid_until must be after valid_from')
        return v


class PromoCodeResponse(BaseModel):
    id: str
    code: str
    event_id: Optional[str] = None
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int
    discount_formatted: str
    max_uses: Optional[int] = None
    max_uses_per_user: int
    used_count: int
    remaining_uses: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    min_purchase_amount: Optional[int] = None
    applicable_ticket_types: List[str] = []
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PromoCodeListItem(PromoCodeResponse):
    purchase_count: int = 0


class PromoValidationRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    items: List[CartItem] = []
    quantity: Optional[int] = Field(default=None, ge=1, description="Legacy events only")


class PromoValidationResponse(BaseModel):
    is_valid: bool
    code: str
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = None
    subtotal: int
    discount: int
    total: int
    error_code: Optional[str] = None
    error_message: Optional[str] = None
