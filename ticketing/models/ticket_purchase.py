# ticketing/models/ticket_purchase.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow
import uuid


class TicketPurchase(Base):
    """One cart line of a registration: N admissions of a single ticket type."""
    __tablename__ = "ticket_purchases"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_purchase_quantity_positive"),
        CheckConstraint("discount >= 0 AND discount <= subtotal", name="check_purchase_discount"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"tp_{uuid.uuid4().hex[:12]}"
    )
    registration_id = Column(
        String,
        ForeignKey("registrations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ticket_type_id = Column(String, ForeignKey("ticket_types.id"), nullable=False, index=True)
    promo_code_id = Column(String, ForeignKey("promo_codes.id"), nullable=True, index=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)  # Price actually charged, cents
    subtotal = Column(Integer, nullable=False)
    discount = Column(Integer, nullable=False, default=0)  # This line's share of the promo
    ticket_numbers = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    registration = relationship("Registration", back_populates="ticket_purchases")
    ticket_type = relationship("TicketType", back_populates="purchases")
    promo_code = relationship("PromoCode", back_populates="ticket_purchases")

    @property
    def total(self) -> int:
        return self.subtotal - self.discount

    @property
    def ticket_type_name(self):
        return self.ticket_type.name if self.ticket_type is not None else None
