# ticketing/crud/ticket_type_crud.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, case, func, update as sql_update
from typing import List, Optional

from ticketing.core.time_utils import utcnow
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.ticket_management import TicketTypeCreate


class CRUDTicketType:
    """CRUD operations for ticket types."""

    def get(self, db: Session, ticket_type_id: str) -> Optional[TicketType]:
        """Get a ticket type by ID."""
        return db.query(TicketType).filter(TicketType.id == ticket_type_id).first()

    def get_by_event(
        self,
        db: Session,
        event_id: str,
        include_inactive: bool = True
    ) -> List[TicketType]:
        """Get all ticket types for an event, in display order."""
        query = db.query(TicketType).filter(TicketType.event_id == event_id)

        if not include_inactive:
            query = query.filter(TicketType.status != "INACTIVE")

        return query.order_by(TicketType.sort_order, TicketType.created_at).all()

    def count_by_event(self, db: Session, event_id: str) -> int:
        return (
            db.query(func.count(TicketType.id))
            .filter(TicketType.event_id == event_id)
            .scalar()
            or 0
        )

    def create(
        self,
        db: Session,
        obj_in: TicketTypeCreate,
        event_id: str,
    ) -> TicketType:
        """Create a new ticket type."""
        db_obj = TicketType(
            event_id=event_id,
            name=obj_in.name,
            description=obj_in.description,
            price=obj_in.price,
            early_bird_price=obj_in.early_bird_price,
            early_bird_end_date=obj_in.early_bird_end_date,
            quantity=obj_in.quantity,
            min_quantity=obj_in.min_quantity,
            max_quantity=obj_in.max_quantity,
            status=obj_in.status.value,
            sort_order=obj_in.sort_order,
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def reserve(
        self,
        db: Session,
        ticket_type_id: str,
        quantity: int
    ) -> bool:
        """
        Atomically add ``quantity`` to the running total.

        The availability check and the increment are one UPDATE statement, so
        two concurrent buyers can never both take the last units. Returns
        False when the type is not ACTIVE or does not have enough room left.
        The status flips to SOLD_OUT when the type fills.
        """
        new_sold = TicketType.quantity_sold + quantity
        stmt = (
            sql_update(TicketType)
            .where(
                and_(
                    TicketType.id == ticket_type_id,
                    TicketType.status == "ACTIVE",
                    new_sold <= TicketType.quantity,
                )
            )
            .values(
                quantity_sold=new_sold,
                status=case((new_sold >= TicketType.quantity, "SOLD_OUT"), else_=TicketType.status),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        result = db.execute(stmt)
        return result.rowcount == 1

    def release(
        self,
        db: Session,
        ticket_type_id: str,
        quantity: int
    ) -> bool:
        """Return ``quantity`` units to the pool; a SOLD_OUT type becomes ACTIVE again."""
        stmt = (
            sql_update(TicketType)
            .where(
                and_(
                    TicketType.id == ticket_type_id,
                    TicketType.quantity_sold >= quantity,
                )
            )
            .values(
                quantity_sold=TicketType.quantity_sold - quantity,
                status=case((TicketType.status == "SOLD_OUT", "ACTIVE"), else_=TicketType.status),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        result = db.execute(stmt)
        return result.rowcount == 1


ticket_type_crud = CRUDTicketType()
