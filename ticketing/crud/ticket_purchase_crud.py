# ticketing/crud/ticket_purchase_crud.py
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ticketing.models.registration import Registration
from ticketing.models.ticket_purchase import TicketPurchase


class CRUDTicketPurchase:
    """Queries over registration line items."""

    def create(
        self,
        db: Session,
        *,
        registration_id: str,
        ticket_type_id: str,
        quantity: int,
        unit_price: int,
        discount: int = 0,
        promo_code_id: Optional[str] = None,
        ticket_numbers: Optional[List[str]] = None,
    ) -> TicketPurchase:
        db_obj = TicketPurchase(
            registration_id=registration_id,
            ticket_type_id=ticket_type_id,
            promo_code_id=promo_code_id,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
            discount=discount,
            ticket_numbers=ticket_numbers or [],
        )
        db.add(db_obj)
        return db_obj

    def sold_count(self, db: Session, ticket_type_id: str) -> int:
        """Units sold for a ticket type, summed from the purchase rows."""
        total = (
            db.query(func.coalesce(func.sum(TicketPurchase.quantity), 0))
            .filter(TicketPurchase.ticket_type_id == ticket_type_id)
            .scalar()
        )
        return int(total or 0)

    def sold_counts_for_event(self, db: Session, event_id: str) -> Dict[str, int]:
        """Units sold per ticket type across one event's registrations."""
        rows = (
            db.query(TicketPurchase.ticket_type_id, func.sum(TicketPurchase.quantity))
            .join(Registration, Registration.id == TicketPurchase.registration_id)
            .filter(Registration.event_id == event_id)
            .group_by(TicketPurchase.ticket_type_id)
            .all()
        )
        return {ticket_type_id: int(total or 0) for ticket_type_id, total in rows}

    def count_by_promo_code(self, db: Session, promo_code_id: str) -> int:
        return (
            db.query(func.count(TicketPurchase.id))
            .filter(TicketPurchase.promo_code_id == promo_code_id)
            .scalar()
            or 0
        )


ticket_purchase_crud = CRUDTicketPurchase()
