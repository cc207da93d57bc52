# ticketing/api/v1/endpoints/promo_codes.py
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.schemas.registration import MessageResponse
from ticketing.schemas.ticket_management import (
    PromoCodeCreate,
    PromoCodeListItem,
    PromoCodeResponse,
    PromoValidationRequest,
    PromoValidationResponse,
)
from ticketing.schemas.token import TokenPayload
from ticketing.services.ticket_management.promo_evaluator import promo_evaluator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Promo Codes"])


@router.get("/events/{event_id}/promo-codes", response_model=List[PromoCodeListItem])
def list_promo_codes(
    event_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """**[ORGANIZER]** Promo codes of an event with how often each was used."""
    return promo_evaluator.list_promo_codes(db, event_id, current_user)


@router.post(
    "/events/{event_id}/promo-codes",
    response_model=PromoCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_promo_code(
    event_id: str,
    promo_in: PromoCodeCreate,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """**[ORGANIZER]** Create a promo code. Codes are unique across all events."""
    return promo_evaluator.create_promo_code(db, event_id, promo_in, current_user)


@router.delete("/promo-codes/{promo_code_id}", response_model=MessageResponse)
def delete_promo_code(
    promo_code_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    promo_evaluator.delete_promo_code(db, promo_code_id, current_user)
    return MessageResponse(message="Promo code deleted successfully")


@router.post("/events/{event_id}/validate-promo", response_model=PromoValidationResponse)
def validate_promo_code(
    event_id: str,
    validation_in: PromoValidationRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Preview the discount a code gives on a cart without redeeming it."""
    return promo_evaluator.preview(
        db,
        event_id,
        current_user.sub,
        validation_in.code,
        items=validation_in.items,
        quantity=validation_in.quantity,
    )
