from typing import Optional

from sqlalchemy.orm import Session

from ticketing.models.registration import Registration
from ticketing.schemas.registration import RegisterRequest
from ticketing.schemas.ticket_management import CartItem
from ticketing.services.ticket_management.registration_service import registration_service


def register_user(
    db: Session,
    event_id: str,
    user_id: str,
    ticket_type_id: Optional[str] = None,
    quantity: int = 1,
    promo_code: Optional[str] = None,
) -> Registration:
    """
    Registers a user through the real orchestrator and returns the registration.
    """
    if ticket_type_id:
        request = RegisterRequest(
            items=[CartItem(ticket_type_id=ticket_type_id, quantity=quantity)],
            promo_code=promo_code,
        )
    else:
        request = RegisterRequest(quantity=quantity, promo_code=promo_code)
    return registration_service.register(db, user_id, event_id, request).registration
