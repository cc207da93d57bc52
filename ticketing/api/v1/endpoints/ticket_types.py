# ticketing/api/v1/endpoints/ticket_types.py
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.exceptions import EventNotFound, Forbidden
from ticketing.core.time_utils import utcnow
from ticketing.crud.crud_event import event as event_crud
from ticketing.crud.ticket_type_crud import ticket_type_crud
from ticketing.db.unit_of_work import transaction
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.event import InventorySummary
from ticketing.schemas.ticket_management import TicketTypeCreate, TicketTypeResponse
from ticketing.schemas.token import TokenPayload
from ticketing.services.ticket_management import inventory_ledger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ticket Types"])


def _to_response(db: Session, tt: TicketType, now) -> TicketTypeResponse:
    sold = inventory_ledger.sold_count(db, tt.id)
    return TicketTypeResponse(
        id=tt.id,
        event_id=tt.event_id,
        name=tt.name,
        description=tt.description,
        price=tt.price,
        early_bird_price=tt.early_bird_price,
        early_bird_end_date=tt.early_bird_end_date,
        quantity=tt.quantity,
        quantity_sold=sold,
        available=max(0, tt.quantity - sold),
        min_quantity=tt.min_quantity,
        max_quantity=tt.max_quantity,
        status=tt.status,
        sort_order=tt.sort_order,
        current_price=inventory_ledger.effective_price(tt, now),
        is_early_bird=tt.is_early_bird(now),
        is_sold_out=tt.is_sold_out,
    )


def _get_event_or_404(db: Session, event_id: str):
    event = event_crud.get(db, event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event


@router.get("/events/{event_id}/ticket-types", response_model=List[TicketTypeResponse])
def list_ticket_types(event_id: str, db: Session = Depends(deps.get_db)):
    """Ticket types of an event with live availability and current prices."""
    _get_event_or_404(db, event_id)
    now = utcnow()
    return [_to_response(db, tt, now) for tt in ticket_type_crud.get_by_event(db, event_id)]


@router.post(
    "/events/{event_id}/ticket-types",
    response_model=TicketTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_ticket_type(
    event_id: str,
    ticket_type_in: TicketTypeCreate,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    event = _get_event_or_404(db, event_id)
    if event.organizer_id != current_user.sub and not current_user.is_admin:
        raise Forbidden("Only the event organizer can manage ticket types")

    with transaction(db):
        tt = ticket_type_crud.create(db, ticket_type_in, event_id)
    logger.info(f"Ticket type {tt.id} ({tt.name}) created for event {event_id}")
    return _to_response(db, tt, utcnow())


@router.get("/events/{event_id}/inventory", response_model=InventorySummary)
def get_inventory(event_id: str, db: Session = Depends(deps.get_db)):
    """Sold and available counts per ticket type plus the event fill rate."""
    event = _get_event_or_404(db, event_id)
    return inventory_ledger.inventory_summary(db, event)
