# ticketing/models/ticket_type.py
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow
import uuid


class TicketType(Base):
    __tablename__ = "ticket_types"
    __table_args__ = (
        CheckConstraint("quantity_sold >= 0", name="check_quantity_sold_non_negative"),
        CheckConstraint("quantity_sold <= quantity", name="check_quantity_sold_within_cap"),
        CheckConstraint("min_quantity <= max_quantity", name="check_quantity_bounds"),
        CheckConstraint(
            "status IN ('ACTIVE', 'SOLD_OUT', 'INACTIVE')", name="check_ticket_type_status"
        ),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"tt_{uuid.uuid4().hex[:12]}"
    )
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False, default=0)  # Price in cents
    early_bird_price = Column(Integer, nullable=True)
    early_bird_end_date = Column(DateTime, nullable=True)
    quantity = Column(Integer, nullable=False)
    quantity_sold = Column(Integer, nullable=False, default=0)  # Denormalized running total
    min_quantity = Column(Integer, nullable=False, default=1)
    max_quantity = Column(Integer, nullable=False, default=10)
    status = Column(String(20), nullable=False, default="ACTIVE")
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    event = relationship("Event", back_populates="ticket_types")
    purchases = relationship("TicketPurchase", back_populates="ticket_type")

    @property
    def quantity_available(self) -> int:
        """Remaining units according to the running total."""
        return max(0, self.quantity - self.quantity_sold)

    @property
    def is_sold_out(self) -> bool:
        return self.status == "SOLD_OUT" or self.quantity_sold >= self.quantity

    def is_early_bird(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return (
            self.early_bird_price is not None
            and self.early_bird_end_date is not None
            and self.early_bird_end_date > now
        )

    def current_price(self, now: Optional[datetime] = None) -> int:
        """Price charged right now, honouring the early-bird window."""
        if self.is_early_bird(now):
            return self.early_bird_price
        return self.price
