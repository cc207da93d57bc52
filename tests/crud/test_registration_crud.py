import re

from ticketing.core.time_utils import utcnow
from ticketing.crud.check_in_audit_crud import check_in_audit_crud
from ticketing.crud.registration_crud import registration_crud
from ticketing.models.check_in_audit import CheckInAuditEntry
from ticketing.models.ticket_purchase import TicketPurchase
from tests.utils.event import create_random_event, create_ticket_type
from tests.utils.registration import register_user


def test_ticket_number_format(db):
    event = create_random_event(db)
    registration = register_user(db, event.id, "user_a")

    assert re.fullmatch(r"TKT-[0-9A-F]{6}-[0-9A-F]{2}", registration.ticket_number)


def test_mark_checked_in_only_once(db):
    event = create_random_event(db)
    registration = register_user(db, event.id, "user_a")
    now = utcnow()

    assert registration_crud.mark_checked_in(db, registration_id=registration.id, actor_id="org", at=now) is True
    assert registration_crud.mark_checked_in(db, registration_id=registration.id, actor_id="org", at=now) is False
    assert registration_crud.mark_checked_in(
        db, registration_id=registration.id, actor_id="org", at=now, force=True
    ) is True


def test_clear_check_in_requires_checked_in(db):
    event = create_random_event(db)
    registration = register_user(db, event.id, "user_a")

    assert registration_crud.clear_check_in(db, registration_id=registration.id, at=utcnow()) is False


def test_delete_cascades_to_purchases_and_audit(db):
    event = create_random_event(db)
    tt = create_ticket_type(db, event.id)
    registration = register_user(db, event.id, "user_a", tt.id, quantity=2)
    check_in_audit_crud.append(
        db, registration_id=registration.id, event_id=event.id, action="CHECK_IN", actor_id="org"
    )
    db.commit()

    registration_crud.delete(db, registration)
    db.commit()

    assert db.query(TicketPurchase).count() == 0
    assert db.query(CheckInAuditEntry).count() == 0


def test_audit_repository_has_no_mutation_path():
    assert not hasattr(check_in_audit_crud, "update")
    assert not hasattr(check_in_audit_crud, "delete")
    assert not hasattr(check_in_audit_crud, "remove")
