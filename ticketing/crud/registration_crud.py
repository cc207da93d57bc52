# ticketing/crud/registration_crud.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, update as sql_update
from sqlalchemy.orm import Session, joinedload, selectinload

from ticketing.models.registration import Registration, generate_ticket_number
from ticketing.models.ticket_purchase import TicketPurchase


class CRUDRegistration:
    """Persistence for registrations and their check-in state."""

    def get(self, db: Session, registration_id: str) -> Optional[Registration]:
        return db.query(Registration).filter(Registration.id == registration_id).first()

    def get_by_user_and_event(
        self, db: Session, *, user_id: str, event_id: str
    ) -> Optional[Registration]:
        return (
            db.query(Registration)
            .filter(
                and_(Registration.user_id == user_id, Registration.event_id == event_id)
            )
            .first()
        )

    def get_multi_by_user(self, db: Session, *, user_id: str) -> List[Registration]:
        """A user's registrations with event and line items, newest first."""
        return (
            db.query(Registration)
            .options(
                joinedload(Registration.event),
                selectinload(Registration.ticket_purchases).joinedload(TicketPurchase.ticket_type),
            )
            .filter(Registration.user_id == user_id)
            .order_by(Registration.created_at.desc())
            .all()
        )

    def get_multi_by_event(
        self, db: Session, *, event_id: str, status: Optional[str] = "CONFIRMED"
    ) -> List[Registration]:
        query = (
            db.query(Registration)
            .options(selectinload(Registration.ticket_purchases))
            .filter(Registration.event_id == event_id)
        )
        if status:
            query = query.filter(Registration.status == status)
        return query.order_by(Registration.created_at).all()

    def create(
        self,
        db: Session,
        *,
        event_id: str,
        user_id: str,
        quantity: int,
        total_amount: int,
        final_amount: int,
        payment_status: str,
        promo_code_used: Optional[str] = None,
        attendee_info: Optional[dict] = None,
    ) -> Registration:
        """Stage a CONFIRMED registration; the caller flushes and commits."""
        # Ticket numbers come from 32 random bits; retry on the rare clash.
        while True:
            ticket_number = generate_ticket_number()
            if not db.query(Registration.id).filter(Registration.ticket_number == ticket_number).first():
                break

        db_obj = Registration(
            event_id=event_id,
            user_id=user_id,
            status="CONFIRMED",
            quantity=quantity,
            total_amount=total_amount,
            final_amount=final_amount,
            payment_status=payment_status,
            promo_code_used=promo_code_used,
            ticket_number=ticket_number,
            attendee_info=attendee_info or {},
        )
        db.add(db_obj)
        return db_obj

    def delete(self, db: Session, db_obj: Registration) -> None:
        """Delete a registration; its purchase lines and audit entries go with it."""
        db.delete(db_obj)
        db.flush()

    def mark_checked_in(
        self, db: Session, *, registration_id: str, actor_id: str, at: datetime, force: bool = False
    ) -> bool:
        """
        Flip the registration to checked in.

        Unless forced, only a registration that is not yet checked in is
        updated, so two scanners racing on the same ticket record one
        check-in between them. Returns whether a row changed.
        """
        conditions = [Registration.id == registration_id]
        if not force:
            conditions.append(Registration.checked_in == False)  # noqa: E712
        stmt = (
            sql_update(Registration)
            .where(and_(*conditions))
            .values(checked_in=True, checked_in_at=at, checked_in_by=actor_id, updated_at=at)
            .execution_options(synchronize_session="fetch")
        )
        return db.execute(stmt).rowcount == 1

    def clear_check_in(self, db: Session, *, registration_id: str, at: datetime) -> bool:
        stmt = (
            sql_update(Registration)
            .where(and_(Registration.id == registration_id, Registration.checked_in == True))  # noqa: E712
            .values(checked_in=False, checked_in_at=None, checked_in_by=None, updated_at=at)
            .execution_options(synchronize_session="fetch")
        )
        return db.execute(stmt).rowcount == 1

    def checked_in_times(self, db: Session, *, event_id: str) -> List[datetime]:
        rows = (
            db.query(Registration.checked_in_at)
            .filter(
                Registration.event_id == event_id,
                Registration.checked_in == True,  # noqa: E712
                Registration.checked_in_at.isnot(None),
            )
            .all()
        )
        return [row[0] for row in rows]

    def recent_check_ins(self, db: Session, *, event_id: str, limit: int = 10) -> List[Registration]:
        return (
            db.query(Registration)
            .options(selectinload(Registration.ticket_purchases))
            .filter(Registration.event_id == event_id, Registration.checked_in == True)  # noqa: E712
            .order_by(Registration.checked_in_at.desc())
            .limit(limit)
            .all()
        )


registration_crud = CRUDRegistration()
