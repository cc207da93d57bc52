"""
Tests for the inventory ledger.

Covers:
- Sold counts derived from purchase lines
- Early-bird pricing windows
- Per-order quantity bounds and stock checks
- Conditional reserve/release on the running total
- Source selection for ticket-type and legacy events
- Inventory summary and fill rate
"""

from datetime import timedelta

import pytest

from ticketing.core.exceptions import InsufficientInventory, InvalidQuantityRange
from ticketing.core.time_utils import utcnow
from ticketing.crud.ticket_type_crud import ticket_type_crud
from ticketing.services.ticket_management import inventory_ledger
from ticketing.services.ticket_management.inventory_ledger import (
    FlatCapacitySource,
    TicketTypeSource,
    inventory_sources_for,
)
from tests.utils.event import create_random_event, create_ticket_type
from tests.utils.registration import register_user


class TestCounting:

    def test_sold_count_sums_purchase_lines(self, db):
        event = create_random_event(db)
        vip = create_ticket_type(db, event.id, name="VIP", quantity=10)
        register_user(db, event.id, "user_a", vip.id, quantity=3)
        register_user(db, event.id, "user_b", vip.id, quantity=2)

        assert inventory_ledger.sold_count(db, vip.id) == 5
        assert inventory_ledger.available(db, vip) == 5

    def test_legacy_sold_count_reads_registration_quantity(self, db):
        event = create_random_event(db, capacity=10, price=1000)
        register_user(db, event.id, "user_a", quantity=3)
        register_user(db, event.id, "user_b")

        assert inventory_ledger.legacy_sold_count(db, event.id) == 4

    def test_effective_price_honours_early_bird_window(self, db):
        event = create_random_event(db)
        now = utcnow()
        tt = create_ticket_type(
            db,
            event.id,
            price=5000,
            early_bird_price=3500,
            early_bird_end_date=now + timedelta(days=1),
        )

        assert inventory_ledger.effective_price(tt, now) == 3500
        assert inventory_ledger.effective_price(tt, now + timedelta(days=2)) == 5000


class TestValidateQuantity:

    def test_below_minimum(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, name="Team", min_quantity=2, max_quantity=5)

        with pytest.raises(InvalidQuantityRange) as exc:
            inventory_ledger.validate_quantity(tt, 1, 100)
        assert "Minimum 2" in exc.value.message

    def test_above_maximum(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, name="Team", min_quantity=2, max_quantity=5)

        with pytest.raises(InvalidQuantityRange):
            inventory_ledger.validate_quantity(tt, 6, 100)

    def test_message_names_limiting_type(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, name="VIP", quantity=3)

        with pytest.raises(InsufficientInventory) as exc:
            inventory_ledger.validate_quantity(tt, 4, 3)
        assert exc.value.message == "Only 3 tickets remaining for VIP"
        assert exc.value.details["available"] == 3


class TestTicketTypeSource:

    def test_reserve_to_capacity_flips_sold_out(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, quantity=2)
        source = TicketTypeSource(tt)

        source.reserve(db, 2)
        db.commit()
        db.refresh(tt)

        assert tt.quantity_sold == 2
        assert tt.status == "SOLD_OUT"

    def test_reserve_beyond_capacity_is_rejected(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, quantity=2)
        source = TicketTypeSource(tt)
        source.reserve(db, 1)
        db.commit()

        with pytest.raises(InsufficientInventory) as exc:
            source.reserve(db, 2)
        assert exc.value.details["available"] == 1
        db.rollback()

        db.refresh(tt)
        assert tt.quantity_sold == 1

    def test_release_restores_active(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, quantity=1)
        source = TicketTypeSource(tt)
        source.reserve(db, 1)
        db.commit()

        source.release(db, 1)
        db.commit()
        db.refresh(tt)

        assert tt.quantity_sold == 0
        assert tt.status == "ACTIVE"

    def test_inactive_type_cannot_be_reserved(self, db):
        event = create_random_event(db)
        tt = create_ticket_type(db, event.id, quantity=5, status="INACTIVE")

        assert ticket_type_crud.reserve(db, tt.id, 1) is False


class TestSources:

    def test_ticket_type_mode_when_event_has_types(self, db):
        event = create_random_event(db)
        create_ticket_type(db, event.id, name="GA")
        create_ticket_type(db, event.id, name="VIP", status="INACTIVE")

        sources = inventory_sources_for(db, event)

        assert len(sources) == 2
        assert all(isinstance(s, TicketTypeSource) for s in sources)

    def test_flat_mode_without_types(self, db):
        event = create_random_event(db, capacity=3)

        sources = inventory_sources_for(db, event)

        assert len(sources) == 1
        assert isinstance(sources[0], FlatCapacitySource)
        assert sources[0].available(db) == 3


class TestInventorySummary:

    def test_fill_rate_for_ticket_types(self, db):
        event = create_random_event(db)
        ga = create_ticket_type(db, event.id, name="GA", quantity=6)
        create_ticket_type(db, event.id, name="VIP", quantity=2, sort_order=1)
        register_user(db, event.id, "user_a", ga.id, quantity=2)

        summary = inventory_ledger.inventory_summary(db, event)

        assert summary.ticketing_mode == "ticket_types"
        assert summary.total_capacity == 8
        assert summary.total_sold == 2
        assert summary.total_available == 6
        assert summary.fill_rate == 25.0
        assert [row.name for row in summary.ticket_types] == ["GA", "VIP"]

    def test_legacy_summary(self, db):
        event = create_random_event(db, capacity=3, price=1500)
        register_user(db, event.id, "user_a")

        summary = inventory_ledger.inventory_summary(db, event)

        assert summary.ticketing_mode == "legacy"
        assert summary.total_sold == 1
        assert summary.fill_rate == 33.3
        assert summary.legacy_price == 1500
