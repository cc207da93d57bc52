# ticketing/services/ticket_management/check_in_service.py
"""
Check-In State Machine

NOT_CHECKED_IN <-> CHECKED_IN, driven by organizers and admins. Every state
change appends to the check-in audit trail. Scanning an already checked-in
ticket is an idempotent success so repeated scans never fail at the door.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ticketing.core.exceptions import (
    EventNotFound,
    Forbidden,
    NotCheckedIn,
    RegistrationNotFound,
    TicketingError,
    WrongEvent,
)
from ticketing.core.time_utils import utcnow
from ticketing.crud.check_in_audit_crud import check_in_audit_crud
from ticketing.crud.crud_event import event as event_crud
from ticketing.crud.registration_crud import registration_crud
from ticketing.db.unit_of_work import transaction
from ticketing.models.check_in_audit import CheckInAuditEntry
from ticketing.models.event import Event
from ticketing.models.registration import Registration
from ticketing.schemas.check_in import (
    BulkCheckInItemResult,
    BulkCheckInSummary,
    BulkItemStatus,
    CheckInStatistics,
    CheckInStats,
    RecentCheckIn,
    TimelineBucket,
)
from ticketing.schemas.token import TokenPayload
from ticketing.services.ticket_management.qr_signing import credential_codec

logger = logging.getLogger(__name__)


@dataclass
class CheckInResult:
    registration: Registration
    already_checked_in: bool


@dataclass
class BulkCheckInResult:
    summary: BulkCheckInSummary
    results: List[BulkCheckInItemResult] = field(default_factory=list)


class CheckInService:
    """Check-in, undo, bulk check-in and the reporting built on the audit trail."""

    def __init__(
        self,
        registrations=registration_crud,
        events=event_crud,
        audit=check_in_audit_crud,
        codec=credential_codec,
    ):
        self.registrations = registrations
        self.events = events
        self.audit = audit
        self.codec = codec

    # ========================================
    # Authorization
    # ========================================

    def _authorized_event(self, db: Session, event_id: str, actor: TokenPayload) -> Event:
        event = self.events.get(db, event_id)
        if event is None:
            raise EventNotFound(event_id)
        if event.organizer_id != actor.sub and not actor.is_admin:
            logger.warning(f"User {actor.sub} denied check-in access to event {event_id}")
            raise Forbidden("Only the event organizer can check in attendees")
        return event

    def _registration_for_event(self, db: Session, event_id: str, registration_id: str) -> Registration:
        registration = self.registrations.get(db, registration_id)
        if registration is None:
            raise RegistrationNotFound(registration_id)
        if registration.event_id != event_id:
            raise WrongEvent(registration_id, event_id)
        return registration

    # ========================================
    # Check-in
    # ========================================

    def check_in(
        self,
        db: Session,
        event_id: str,
        registration_id: str,
        actor: TokenPayload,
        note: Optional[str] = None,
        force: bool = False,
    ) -> CheckInResult:
        self._authorized_event(db, event_id, actor)
        registration = self._registration_for_event(db, event_id, registration_id)
        already = self._apply_check_in(db, registration, actor, "CHECK_IN", note, force)
        db.refresh(registration)
        if already:
            logger.info(f"Registration {registration_id} already checked in; scan by {actor.sub} ignored")
        else:
            logger.info(f"Registration {registration_id} checked in by {actor.sub}")
        return CheckInResult(registration=registration, already_checked_in=already)

    def check_in_by_token(
        self,
        db: Session,
        event_id: Optional[str],
        token: str,
        actor: TokenPayload,
        note: Optional[str] = None,
        force: bool = False,
    ) -> CheckInResult:
        """Resolve a scanned credential, then check in. Without an event id the token's event is used."""
        claims = self.codec.verify(token)
        target_event = event_id or claims.event_id
        return self.check_in(db, target_event, claims.registration_id, actor, note, force)

    def _apply_check_in(
        self,
        db: Session,
        registration: Registration,
        actor: TokenPayload,
        action: str,
        note: Optional[str],
        force: bool,
    ) -> bool:
        """Flip the state and record it in one transaction. Returns True if it was already checked in."""
        with transaction(db):
            changed = self.registrations.mark_checked_in(
                db,
                registration_id=registration.id,
                actor_id=actor.sub,
                at=utcnow(),
                force=force,
            )
            if not changed:
                return True
            self.audit.append(
                db,
                registration_id=registration.id,
                event_id=registration.event_id,
                action=action,
                actor_id=actor.sub,
                actor_name=actor.name,
                note=note,
            )
        return False

    def undo(
        self,
        db: Session,
        event_id: str,
        registration_id: str,
        actor: TokenPayload,
        reason: Optional[str] = None,
    ) -> Registration:
        self._authorized_event(db, event_id, actor)
        registration = self._registration_for_event(db, event_id, registration_id)

        with transaction(db):
            if not self.registrations.clear_check_in(db, registration_id=registration_id, at=utcnow()):
                raise NotCheckedIn(registration_id)
            self.audit.append(
                db,
                registration_id=registration_id,
                event_id=event_id,
                action="CHECK_IN_UNDO",
                actor_id=actor.sub,
                actor_name=actor.name,
                reason=reason,
            )

        db.refresh(registration)
        logger.info(f"Check-in undone for registration {registration_id} by {actor.sub}")
        return registration

    # ========================================
    # Bulk
    # ========================================

    def bulk_check_in(
        self,
        db: Session,
        event_id: str,
        registration_ids: List[str],
        actor: TokenPayload,
        note: Optional[str] = None,
    ) -> BulkCheckInResult:
        """
        Check in many registrations, each in its own transaction.

        Authorization is checked once for the whole call. After that the call
        itself never fails: every id gets its own outcome.
        """
        self._authorized_event(db, event_id, actor)

        results = []
        for registration_id in registration_ids:
            results.append(self._bulk_item(db, event_id, registration_id, actor, note))

        successful = sum(1 for r in results if r.status == BulkItemStatus.CHECKED_IN)
        already = sum(1 for r in results if r.status == BulkItemStatus.ALREADY_CHECKED_IN)
        summary = BulkCheckInSummary(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            already_checked_in=already,
        )
        logger.info(
            f"Bulk check-in on event {event_id} by {actor.sub}: "
            f"{summary.successful}/{summary.total} checked in, {summary.already_checked_in} already"
        )
        return BulkCheckInResult(summary=summary, results=results)

    def _bulk_item(
        self, db: Session, event_id: str, registration_id: str, actor: TokenPayload, note: Optional[str]
    ) -> BulkCheckInItemResult:
        user_id = None
        try:
            registration = self.registrations.get(db, registration_id)
            if registration is None or registration.event_id != event_id:
                return BulkCheckInItemResult(
                    registration_id=registration_id,
                    success=False,
                    status=BulkItemStatus.NOT_FOUND,
                    error="Registration not found for this event",
                )
            user_id = registration.user_id
            already = self._apply_check_in(db, registration, actor, "BULK_CHECK_IN", note, force=False)
        except (SQLAlchemyError, TicketingError) as e:
            db.rollback()
            logger.error(f"Bulk check-in failed for registration {registration_id}: {e}")
            return BulkCheckInItemResult(
                registration_id=registration_id,
                success=False,
                status=BulkItemStatus.ERROR,
                user_id=user_id,
                error="Failed to check in",
            )
        if already:
            return BulkCheckInItemResult(
                registration_id=registration_id,
                success=False,
                status=BulkItemStatus.ALREADY_CHECKED_IN,
                already_checked_in=True,
                user_id=user_id,
                error="Already checked in",
            )
        return BulkCheckInItemResult(
            registration_id=registration_id,
            success=True,
            status=BulkItemStatus.CHECKED_IN,
            user_id=user_id,
        )

    # ========================================
    # Reporting
    # ========================================

    def history(
        self, db: Session, event_id: str, registration_id: str, actor: TokenPayload
    ) -> List[CheckInAuditEntry]:
        self._authorized_event(db, event_id, actor)
        self._registration_for_event(db, event_id, registration_id)
        return self.audit.list_for_registration(db, registration_id)

    def stats(self, db: Session, event_id: str, actor: TokenPayload) -> CheckInStats:
        self._authorized_event(db, event_id, actor)

        registrations = self.registrations.get_multi_by_event(db, event_id=event_id)
        total = len(registrations)
        total_tickets = sum(r.ticket_count for r in registrations)
        checked = [r for r in registrations if r.checked_in]
        checked_tickets = sum(r.ticket_count for r in checked)

        statistics = CheckInStatistics(
            total_registrations=total,
            total_tickets=total_tickets,
            checked_in_count=len(checked),
            checked_in_tickets=checked_tickets,
            not_checked_in_count=total - len(checked),
            not_checked_in_tickets=total_tickets - checked_tickets,
            check_in_rate=round(len(checked) * 100 / total) if total else 0,
            ticket_check_in_rate=round(checked_tickets * 100 / total_tickets) if total_tickets else 0,
        )

        # Hourly buckets, oldest first.
        buckets = Counter(
            at.replace(minute=0, second=0, microsecond=0)
            for at in self.registrations.checked_in_times(db, event_id=event_id)
        )
        timeline = [
            TimelineBucket(time=hour.isoformat(), count=count)
            for hour, count in sorted(buckets.items())
        ]

        recent = [
            RecentCheckIn(
                registration_id=r.id,
                user_id=r.user_id,
                checked_in_at=r.checked_in_at,
                checked_in_by=r.checked_in_by,
                quantity=r.ticket_count,
            )
            for r in self.registrations.recent_check_ins(db, event_id=event_id, limit=10)
        ]

        return CheckInStats(
            event_id=event_id,
            statistics=statistics,
            timeline=timeline,
            recent_check_ins=recent,
        )


check_in_service = CheckInService()
