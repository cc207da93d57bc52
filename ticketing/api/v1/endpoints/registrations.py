# ticketing/api/v1/endpoints/registrations.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.config import settings
from ticketing.core.limiter import limiter
from ticketing.schemas.registration import (
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    Registration,
    RegistrationWithEvent,
)
from ticketing.schemas.token import TokenPayload
from ticketing.services.ticket_management.registration_service import registration_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Registrations"])


@router.post(
    "/events/{event_id}/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.REGISTRATION_RATE_LIMIT)
def register_for_event(
    event_id: str,
    request: Request,
    registration_in: Optional[RegisterRequest] = None,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Register the current user for an event.

    Events with ticket types take a cart of `items`; events without them take
    a flat `quantity`. An optional `promo_code` is applied to the whole cart.
    """
    result = registration_service.register(
        db, current_user.sub, event_id, registration_in or RegisterRequest()
    )
    return RegisterResponse(
        registration=Registration.model_validate(result.registration),
        summary=result.summary,
        message="Successfully registered for the event",
        credential_error=result.credential_error,
    )


@router.delete("/events/{event_id}/register", response_model=MessageResponse)
def cancel_registration(
    event_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Cancel the current user's registration and return its tickets to inventory."""
    registration_service.cancel(db, current_user.sub, event_id)
    return MessageResponse(message="Registration cancelled successfully")


@router.get("/registrations/me", response_model=List[RegistrationWithEvent])
def list_my_registrations(
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return registration_service.list_for_user(db, current_user.sub)


@router.post("/registrations/{registration_id}/credential", response_model=Registration)
def reissue_credential(
    registration_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Mint a new ticket credential, e.g. when issuance failed at registration time."""
    return registration_service.reissue_credential(
        db, registration_id, current_user.sub, is_admin=current_user.is_admin
    )
