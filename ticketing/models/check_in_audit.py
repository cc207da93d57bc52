# ticketing/models/check_in_audit.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from ticketing.db.base_class import Base
from ticketing.core.time_utils import utcnow


class CheckInAuditEntry(Base):
    """Append-only history of check-in state changes for a registration.

    Rows are only ever inserted. The sequence column orders entries even
    when two share a timestamp.
    """
    __tablename__ = "check_in_audit_entries"
    __table_args__ = (
        CheckConstraint(
            "action IN ('CHECK_IN', 'CHECK_IN_UNDO', 'BULK_CHECK_IN')",
            name="check_audit_action",
        ),
    )

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    registration_id = Column(
        String,
        ForeignKey("registrations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id = Column(String, nullable=False, index=True)
    action = Column(String(20), nullable=False)
    actor_id = Column(String, nullable=False)
    actor_name = Column(String(255), nullable=True)
    note = Column(Text, nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    registration = relationship("Registration", back_populates="audit_entries")
