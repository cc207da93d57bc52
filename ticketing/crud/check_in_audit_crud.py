# ticketing/crud/check_in_audit_crud.py
from typing import List, Optional

from sqlalchemy.orm import Session

from ticketing.core.time_utils import utcnow
from ticketing.models.check_in_audit import CheckInAuditEntry


class CRUDCheckInAudit:
    """Append-only access to the check-in audit trail. There is no update or delete."""

    def append(
        self,
        db: Session,
        *,
        registration_id: str,
        event_id: str,
        action: str,
        actor_id: str,
        actor_name: Optional[str] = None,
        note: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> CheckInAuditEntry:
        entry = CheckInAuditEntry(
            registration_id=registration_id,
            event_id=event_id,
            action=action,
            actor_id=actor_id,
            actor_name=actor_name,
            note=note,
            reason=reason,
            created_at=utcnow(),
        )
        db.add(entry)
        db.flush()
        return entry

    def list_for_registration(self, db: Session, registration_id: str) -> List[CheckInAuditEntry]:
        return (
            db.query(CheckInAuditEntry)
            .filter(CheckInAuditEntry.registration_id == registration_id)
            .order_by(CheckInAuditEntry.sequence)
            .all()
        )


check_in_audit_crud = CRUDCheckInAudit()
