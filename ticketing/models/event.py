# ticketing/models/event.py
from sqlalchemy import Column, Integer, String, DateTime, Text, CheckConstraint
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow
import uuid


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'PUBLISHED', 'CANCELLED', 'COMPLETED')",
            name="check_event_status",
        ),
        CheckConstraint("capacity >= 0", name="check_event_capacity"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}"
    )
    organization_id = Column(String, nullable=True, index=True)
    organizer_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="DRAFT")
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    # Flat capacity and price are used only by events that have no ticket types.
    capacity = Column(Integer, nullable=False, default=0)
    price = Column(Integer, nullable=False, default=0)  # Price in cents

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    ticket_types = relationship(
        "TicketType",
        back_populates="event",
        order_by="TicketType.sort_order",
        cascade="all, delete-orphan",
    )
    registrations = relationship("Registration", back_populates="event")

    @property
    def is_published(self) -> bool:
        return self.status == "PUBLISHED"
