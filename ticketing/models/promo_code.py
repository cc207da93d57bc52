# ticketing/models/promo_code.py
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Text, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow
import uuid


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint(
            "discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT', 'EARLY_BIRD')",
            name="check_discount_type",
        ),
        CheckConstraint("discount_value >= 0", name="check_discount_value"),
        CheckConstraint("used_count >= 0", name="check_used_count"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"promo_{uuid.uuid4().hex[:12]}"
    )
    # Codes are globally unique; NULL event_id means the code works for any event.
    code = Column(String(50), nullable=False, unique=True, index=True)
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Integer, nullable=False)  # percentage (0-100) or fixed amount in cents

    # Usage limits
    max_uses = Column(Integer, nullable=True)  # NULL = unlimited
    max_uses_per_user = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)

    # Validity period; either bound may be open
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)

    min_purchase_amount = Column(Integer, nullable=True)  # cents
    # Ticket type ids the code applies to; empty = all
    applicable_ticket_types = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String, nullable=True)  # User ID who created
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    event = relationship("Event", foreign_keys=[event_id])
    ticket_purchases = relationship("TicketPurchase", back_populates="promo_code")

    @property
    def remaining_uses(self):
        """Calculate remaining uses, or None if unlimited."""
        if self.max_uses is None:
            return None
        return max(0, self.max_uses - self.used_count)

    @property
    def is_percentage(self) -> bool:
        return self.discount_type == "PERCENTAGE"

    @property
    def discount_formatted(self) -> str:
        """Get formatted discount string (e.g., '20%' or '$10.00')."""
        if self.is_percentage:
            return f"{self.discount_value}%"
        return f"${self.discount_value / 100:.2f}"
