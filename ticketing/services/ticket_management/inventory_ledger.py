# ticketing/services/ticket_management/inventory_ledger.py
"""
Inventory Ledger

Answers "how many units of X are sold / available right now" and takes or
returns units inside the caller's transaction. Two inventory sources share
one interface:

- TicketTypeSource: per-type capacity with a denormalized running total,
  updated with a conditional UPDATE.
- FlatCapacitySource: legacy events without ticket types; the event's flat
  capacity is checked against a count derived from its registrations.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ticketing.core.exceptions import InsufficientInventory, InvalidQuantityRange
from ticketing.core.time_utils import utcnow
from ticketing.crud.crud_event import event as event_crud
from ticketing.crud.ticket_purchase_crud import ticket_purchase_crud
from ticketing.crud.ticket_type_crud import ticket_type_crud
from ticketing.models.event import Event
from ticketing.models.registration import Registration
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.event import InventorySummary, TicketTypeAvailability

logger = logging.getLogger(__name__)


# ========================================
# Counting
# ========================================

def sold_count(db: Session, ticket_type_id: str) -> int:
    """Units sold for a ticket type, summed from purchase lines."""
    return ticket_purchase_crud.sold_count(db, ticket_type_id)


def available(db: Session, ticket_type: TicketType) -> int:
    return max(0, ticket_type.quantity - sold_count(db, ticket_type.id))


def effective_price(ticket_type: TicketType, now: Optional[datetime] = None) -> int:
    """Early-bird price while its window is open, otherwise the regular price."""
    return ticket_type.current_price(now or utcnow())


def legacy_sold_count(db: Session, event_id: str) -> int:
    """Admissions held by confirmed registrations that have no purchase lines."""
    registrations = (
        db.query(Registration)
        .filter(
            Registration.event_id == event_id,
            Registration.status == "CONFIRMED",
            ~Registration.ticket_purchases.any(),
        )
        .all()
    )
    return sum(int((r.attendee_info or {}).get("quantity", 1)) for r in registrations)


def validate_quantity(ticket_type: TicketType, quantity: int, available_units: int) -> None:
    """Check a requested quantity against the type's per-order bounds and stock."""
    if quantity < ticket_type.min_quantity:
        raise InvalidQuantityRange(
            f"Minimum {ticket_type.min_quantity} tickets required for {ticket_type.name}",
            ticket_type.min_quantity,
            ticket_type.max_quantity,
            quantity,
        )
    if quantity > ticket_type.max_quantity:
        raise InvalidQuantityRange(
            f"Maximum {ticket_type.max_quantity} tickets allowed for {ticket_type.name}",
            ticket_type.min_quantity,
            ticket_type.max_quantity,
            quantity,
        )
    if quantity > available_units:
        raise InsufficientInventory(
            f"Only {available_units} tickets remaining for {ticket_type.name}",
            available=available_units,
            requested=quantity,
            ticket_type_id=ticket_type.id,
        )


# ========================================
# Inventory sources
# ========================================

class InventorySource:
    """Where a registration draws its admissions from."""

    label: str = ""

    def available(self, db: Session) -> int:
        raise NotImplementedError

    def reserve(self, db: Session, quantity: int) -> None:
        """Take ``quantity`` units; raises InsufficientInventory if they are not there."""
        raise NotImplementedError

    def release(self, db: Session, quantity: int) -> None:
        """Give back units previously taken by ``reserve``."""
        raise NotImplementedError


class TicketTypeSource(InventorySource):
    def __init__(self, ticket_type: TicketType):
        self.ticket_type = ticket_type
        self.label = ticket_type.name

    def available(self, db: Session) -> int:
        return available(db, self.ticket_type)

    def reserve(self, db: Session, quantity: int) -> None:
        if not ticket_type_crud.reserve(db, self.ticket_type.id, quantity):
            db.refresh(self.ticket_type)
            remaining = self.ticket_type.quantity_available
            logger.info(
                f"Reservation of {quantity} x {self.ticket_type.id} rejected; {remaining} left"
            )
            raise InsufficientInventory(
                f"Only {remaining} tickets remaining for {self.ticket_type.name}",
                available=remaining,
                requested=quantity,
                ticket_type_id=self.ticket_type.id,
            )

    def release(self, db: Session, quantity: int) -> None:
        if not ticket_type_crud.release(db, self.ticket_type.id, quantity):
            # Running total already below the amount; nothing left to give back.
            logger.warning(
                f"Release of {quantity} x {self.ticket_type.id} matched no row; sold count was lower"
            )


class FlatCapacitySource(InventorySource):
    """
    Capacity for an event without ticket types.

    The sold count is derived from the registration rows, so ``reserve`` must
    run after the new registration has been added to the session: it flushes,
    re-counts under the event row lock and fails if the event is now over
    capacity. ``release`` has nothing to do, deleting the registration frees
    the units.
    """

    def __init__(self, event: Event):
        self.event = event
        self.label = event.name

    def available(self, db: Session) -> int:
        return max(0, self.event.capacity - legacy_sold_count(db, self.event.id))

    def reserve(self, db: Session, quantity: int) -> None:
        event_crud.get_for_update(db, self.event.id)
        db.flush()
        sold = legacy_sold_count(db, self.event.id)
        if sold > self.event.capacity:
            remaining = max(0, self.event.capacity - (sold - quantity))
            raise InsufficientInventory(
                f"Only {remaining} spots remaining",
                available=remaining,
                requested=quantity,
            )

    def release(self, db: Session, quantity: int) -> None:
        return None


def inventory_sources_for(db: Session, event: Event) -> List[InventorySource]:
    """Ticket-type sources when the event has any ticket types, else one flat source."""
    ticket_types = ticket_type_crud.get_by_event(db, event.id)
    if ticket_types:
        return [TicketTypeSource(tt) for tt in ticket_types]
    return [FlatCapacitySource(event)]


# ========================================
# Reporting
# ========================================

def inventory_summary(db: Session, event: Event, now: Optional[datetime] = None) -> InventorySummary:
    """Per-type availability and the event's overall fill rate."""
    now = now or utcnow()
    ticket_types = ticket_type_crud.get_by_event(db, event.id)

    if not ticket_types:
        sold = legacy_sold_count(db, event.id)
        capacity = event.capacity
        return InventorySummary(
            event_id=event.id,
            ticketing_mode="legacy",
            total_capacity=capacity,
            total_sold=sold,
            total_available=max(0, capacity - sold),
            fill_rate=_fill_rate(sold, capacity),
            legacy_price=event.price,
        )

    sold_by_type = ticket_purchase_crud.sold_counts_for_event(db, event.id)
    rows = []
    for tt in ticket_types:
        sold = sold_by_type.get(tt.id, 0)
        rows.append(
            TicketTypeAvailability(
                ticket_type_id=tt.id,
                name=tt.name,
                status=tt.status,
                quantity=tt.quantity,
                quantity_sold=sold,
                available=max(0, tt.quantity - sold),
                current_price=effective_price(tt, now),
                is_early_bird=tt.is_early_bird(now),
                is_sold_out=tt.is_sold_out,
            )
        )

    total_capacity = sum(r.quantity for r in rows)
    total_sold = sum(r.quantity_sold for r in rows)
    return InventorySummary(
        event_id=event.id,
        ticketing_mode="ticket_types",
        total_capacity=total_capacity,
        total_sold=total_sold,
        total_available=sum(r.available for r in rows),
        fill_rate=_fill_rate(total_sold, total_capacity),
        ticket_types=rows,
    )


def _fill_rate(sold: int, capacity: int) -> float:
    if capacity <= 0:
        return 0.0
    return round(sold * 100 / capacity, 1)
