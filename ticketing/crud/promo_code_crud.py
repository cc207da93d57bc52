# ticketing/crud/promo_code_crud.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func, select, update as sql_update
from typing import List, Optional

from ticketing.core.time_utils import utcnow
from ticketing.models.promo_code import PromoCode
from ticketing.models.registration import Registration
from ticketing.models.ticket_purchase import TicketPurchase
from ticketing.schemas.ticket_management import PromoCodeCreate


class CRUDPromoCode:
    """CRUD operations for promo codes."""

    def get(self, db: Session, promo_code_id: str) -> Optional[PromoCode]:
        """Get a promo code by ID."""
        return db.query(PromoCode).filter(PromoCode.id == promo_code_id).first()

    def get_by_code(self, db: Session, code: str) -> Optional[PromoCode]:
        """Get a promo code by its code string, ignoring case."""
        return (
            db.query(PromoCode)
            .filter(func.upper(PromoCode.code) == code.strip().upper())
            .first()
        )

    def get_by_event(
        self,
        db: Session,
        event_id: str,
        include_global: bool = False
    ) -> List[PromoCode]:
        """Get all promo codes for an event, optionally with the global ones."""
        if include_global:
            condition = or_(PromoCode.event_id == event_id, PromoCode.event_id.is_(None))
        else:
            condition = PromoCode.event_id == event_id
        return (
            db.query(PromoCode)
            .filter(condition)
            .order_by(PromoCode.created_at.desc())
            .all()
        )

    def create(
        self,
        db: Session,
        obj_in: PromoCodeCreate,
        event_id: Optional[str],
        created_by: Optional[str] = None
    ) -> PromoCode:
        """Create a new promo code."""
        db_obj = PromoCode(
            event_id=event_id,
            code=obj_in.code.upper(),
            description=obj_in.description,
            discount_type=obj_in.discount_type.value,
            discount_value=obj_in.discount_value,
            max_uses=obj_in.max_uses,
            max_uses_per_user=obj_in.max_uses_per_user,
            valid_from=obj_in.valid_from,
            valid_until=obj_in.valid_until,
            min_purchase_amount=obj_in.min_purchase_amount,
            applicable_ticket_types=list(obj_in.applicable_ticket_types),
            is_active=obj_in.is_active,
            created_by=created_by,
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def delete(self, db: Session, db_obj: PromoCode) -> None:
        """Delete a promo code; purchase lines keep their amounts and lose the link."""
        db.query(TicketPurchase).filter(
            TicketPurchase.promo_code_id == db_obj.id
        ).update({"promo_code_id": None}, synchronize_session="fetch")
        db.delete(db_obj)
        db.flush()

    def increment_usage(
        self,
        db: Session,
        promo_code_id: str,
        count: int = 1
    ) -> bool:
        """
        Increment the usage count of a promo code.

        The max_uses ceiling is re-checked inside the UPDATE so concurrent
        redemptions cannot push the count past it.
        """
        stmt = (
            sql_update(PromoCode)
            .where(
                and_(
                    PromoCode.id == promo_code_id,
                    or_(
                        PromoCode.max_uses.is_(None),
                        PromoCode.used_count + count <= PromoCode.max_uses,
                    ),
                )
            )
            .values(used_count=PromoCode.used_count + count, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return db.execute(stmt).rowcount == 1

    def get_user_usage_count(
        self,
        db: Session,
        promo_code_id: str,
        user_id: str
    ) -> int:
        """
        How many of the user's registrations applied this promo code.

        Counted from the registration rows, so legacy registrations without
        purchase lines are included.
        """
        code = select(PromoCode.code).where(PromoCode.id == promo_code_id).scalar_subquery()
        return (
            db.query(func.count(Registration.id))
            .filter(
                Registration.user_id == user_id,
                Registration.promo_code_used == code,
            )
            .scalar()
            or 0
        )


promo_code_crud = CRUDPromoCode()
