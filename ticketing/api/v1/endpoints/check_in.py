# ticketing/api/v1/endpoints/check_in.py
"""
Check-in endpoints for organizers and scanner apps.

Provides:
- Check-in by registration id or scanned credential
- Undo of a mistaken check-in
- Bulk check-in with per-item outcomes
- Live statistics and per-registration audit history
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.config import settings
from ticketing.core.limiter import limiter
from ticketing.schemas.check_in import (
    AuditEntry,
    BulkCheckInRequest,
    BulkCheckInResponse,
    CheckInRequest,
    CheckInResponse,
    CheckInStats,
    UndoCheckInRequest,
    UndoCheckInResponse,
    VerifyRequest,
)
from ticketing.schemas.registration import Registration
from ticketing.schemas.token import TokenPayload
from ticketing.services.ticket_management.check_in_service import (
    CheckInResult,
    check_in_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Check-in"])


def _check_in_response(result: CheckInResult) -> CheckInResponse:
    return CheckInResponse(
        already_checked_in=result.already_checked_in,
        registration=Registration.model_validate(result.registration),
        message="Attendee already checked in" if result.already_checked_in else "Check-in successful",
    )


@router.post("/events/{event_id}/check-in", response_model=CheckInResponse)
def check_in_attendee(
    event_id: str,
    check_in_in: CheckInRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Check in by `registration_id` or by the `qr_data` read from a ticket."""
    if check_in_in.qr_data:
        result = check_in_service.check_in_by_token(
            db,
            event_id,
            check_in_in.qr_data,
            current_user,
            note=check_in_in.notes,
            force=check_in_in.force_check_in,
        )
    else:
        result = check_in_service.check_in(
            db,
            event_id,
            check_in_in.registration_id,
            current_user,
            note=check_in_in.notes,
            force=check_in_in.force_check_in,
        )
    return _check_in_response(result)


@router.put("/events/{event_id}/check-in", response_model=UndoCheckInResponse)
def undo_check_in(
    event_id: str,
    undo_in: UndoCheckInRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    registration = check_in_service.undo(
        db, event_id, undo_in.registration_id, current_user, reason=undo_in.reason
    )
    return UndoCheckInResponse(
        registration=Registration.model_validate(registration),
        message="Check-in undone successfully",
    )


@router.post("/events/{event_id}/check-in/bulk", response_model=BulkCheckInResponse)
def bulk_check_in(
    event_id: str,
    bulk_in: BulkCheckInRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    result = check_in_service.bulk_check_in(
        db, event_id, bulk_in.registration_ids, current_user, note=bulk_in.notes
    )
    summary = result.summary
    return BulkCheckInResponse(
        summary=summary,
        results=result.results,
        message=f"Checked in {summary.successful} of {summary.total} attendees",
    )


@router.get("/events/{event_id}/check-in", response_model=CheckInStats)
def get_check_in_stats(
    event_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return check_in_service.stats(db, event_id, current_user)


@router.get(
    "/events/{event_id}/registrations/{registration_id}/check-in-history",
    response_model=List[AuditEntry],
)
def get_check_in_history(
    event_id: str,
    registration_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return check_in_service.history(db, event_id, registration_id, current_user)


@router.post("/check-in/verify", response_model=CheckInResponse)
@limiter.limit(settings.CHECK_IN_RATE_LIMIT)
def verify_and_check_in(
    request: Request,
    verify_in: VerifyRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Verify a scanned credential and check it in for the event it names."""
    result = check_in_service.check_in_by_token(
        db, None, verify_in.qr_data, current_user, note=verify_in.notes
    )
    return _check_in_response(result)
