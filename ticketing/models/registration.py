# ticketing/models/registration.py
import uuid
import secrets

from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    DateTime,
    Integer,
    Boolean,
    Text,
    JSON,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow


def generate_ticket_number() -> str:
    """Generate a human-readable ticket number in format TKT-XXXXXX-XX."""
    random_hex = secrets.token_hex(4).upper()  # 8 characters
    return f"TKT-{random_hex[:6]}-{random_hex[6:8]}"


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        # At most one registration per (user, event).
        UniqueConstraint("user_id", "event_id", name="unique_user_event_registration"),
        CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="check_registration_status"),
        CheckConstraint(
            "payment_status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
            name="check_payment_status",
        ),
        CheckConstraint("final_amount >= 0", name="check_final_amount_non_negative"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"reg_{uuid.uuid4().hex[:12]}"
    )
    event_id = Column(String, ForeignKey("events.id"), nullable=False, index=True)
    # Users live in the identity service; no FK.
    user_id = Column(String, nullable=False, index=True)

    status = Column(String(20), nullable=False, default="CONFIRMED")
    quantity = Column(Integer, nullable=False, default=1)
    total_amount = Column(Integer, nullable=False, default=0)  # Before discount, cents
    final_amount = Column(Integer, nullable=False, default=0)  # After discount, cents
    payment_status = Column(String(20), nullable=False, default="PENDING")
    promo_code_used = Column(String(50), nullable=True)

    ticket_number = Column(
        String(20), nullable=False, unique=True, default=generate_ticket_number
    )
    # Signed credential token; minted after the registration commits.
    qr_code = Column(Text, nullable=True)

    checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime, nullable=True)
    checked_in_by = Column(String, nullable=True)

    # Attendee form details; legacy registrations also keep "quantity" here.
    attendee_info = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    event = relationship("Event", back_populates="registrations")
    ticket_purchases = relationship(
        "TicketPurchase",
        back_populates="registration",
        cascade="all, delete-orphan",
    )
    audit_entries = relationship(
        "CheckInAuditEntry",
        back_populates="registration",
        cascade="all, delete-orphan",
        order_by="CheckInAuditEntry.sequence",
    )

    @property
    def ticket_count(self) -> int:
        if self.ticket_purchases:
            return sum(p.quantity for p in self.ticket_purchases)
        return (self.attendee_info or {}).get("quantity", self.quantity or 1)

    @property
    def discount_amount(self) -> int:
        return self.total_amount - self.final_amount
