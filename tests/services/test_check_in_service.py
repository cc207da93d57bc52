"""
Tests for the check-in state machine and its audit trail.
"""

import pytest
from sqlalchemy.exc import OperationalError

from ticketing.core.exceptions import (
    Forbidden,
    InvalidToken,
    NotCheckedIn,
    RegistrationNotFound,
    WrongEvent,
)
from ticketing.crud.check_in_audit_crud import check_in_audit_crud
from ticketing.crud.registration_crud import CRUDRegistration
from ticketing.models.check_in_audit import CheckInAuditEntry
from ticketing.schemas.check_in import BulkItemStatus
from ticketing.schemas.token import UserRole
from ticketing.services.ticket_management.check_in_service import CheckInService, check_in_service
from tests.utils.auth import make_actor
from tests.utils.event import ORGANIZER_ID, create_random_event, create_ticket_type
from tests.utils.registration import register_user

organizer = make_actor(ORGANIZER_ID, UserRole.ORGANIZER, name="Olu Organizer")


@pytest.fixture
def event_with_registrations(db):
    event = create_random_event(db)
    tt = create_ticket_type(db, event.id, quantity=50)
    registrations = [register_user(db, event.id, f"user_{i}", tt.id) for i in range(5)]
    return event, registrations


def _actions(db, registration_id):
    return [e.action for e in check_in_audit_crud.list_for_registration(db, registration_id)]


class TestCheckIn:

    def test_check_in_stamps_and_audits(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        target = registrations[0]

        result = check_in_service.check_in(db, event.id, target.id, organizer, note="Front door")

        assert result.already_checked_in is False
        assert result.registration.checked_in is True
        assert result.registration.checked_in_by == ORGANIZER_ID
        assert result.registration.checked_in_at is not None
        entries = check_in_audit_crud.list_for_registration(db, target.id)
        assert len(entries) == 1
        assert entries[0].action == "CHECK_IN"
        assert entries[0].note == "Front door"
        assert entries[0].actor_name == "Olu Organizer"

    def test_repeat_scan_is_idempotent(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        target = registrations[0]
        first = check_in_service.check_in(db, event.id, target.id, organizer)
        stamped_at = first.registration.checked_in_at

        again = check_in_service.check_in(db, event.id, target.id, organizer)

        assert again.already_checked_in is True
        assert again.registration.checked_in_at == stamped_at
        assert _actions(db, target.id) == ["CHECK_IN"]

    def test_forced_check_in_records_again(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        target = registrations[0]
        check_in_service.check_in(db, event.id, target.id, organizer)

        forced = check_in_service.check_in(db, event.id, target.id, organizer, force=True)

        assert forced.already_checked_in is False
        assert _actions(db, target.id) == ["CHECK_IN", "CHECK_IN"]

    def test_audit_sequence_check_in_undo_check_in(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        target = registrations[0]

        check_in_service.check_in(db, event.id, target.id, organizer)
        undone = check_in_service.undo(db, event.id, target.id, organizer, reason="Wrong person")
        assert undone.checked_in is False
        assert undone.checked_in_at is None
        assert undone.checked_in_by is None

        check_in_service.check_in(db, event.id, target.id, organizer)

        entries = check_in_audit_crud.list_for_registration(db, target.id)
        assert [e.action for e in entries] == ["CHECK_IN", "CHECK_IN_UNDO", "CHECK_IN"]
        assert entries[1].reason == "Wrong person"
        sequences = [e.sequence for e in entries]
        assert sequences == sorted(sequences)

    def test_undo_requires_checked_in(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        with pytest.raises(NotCheckedIn):
            check_in_service.undo(db, event.id, registrations[0].id, organizer)
        assert db.query(CheckInAuditEntry).count() == 0

    def test_distinct_errors(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        other = create_random_event(db)

        with pytest.raises(Forbidden):
            check_in_service.check_in(db, event.id, registrations[0].id, make_actor("user_0"))
        with pytest.raises(RegistrationNotFound):
            check_in_service.check_in(db, event.id, "reg_missing", organizer)
        with pytest.raises(WrongEvent):
            check_in_service.check_in(db, other.id, registrations[0].id, organizer)

    def test_admin_may_check_in(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        admin = make_actor("admin_1", UserRole.ADMIN)

        result = check_in_service.check_in(db, event.id, registrations[0].id, admin)

        assert result.registration.checked_in_by == "admin_1"


class TestCheckInByToken:

    def test_scanned_credential(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        target = registrations[2]

        result = check_in_service.check_in_by_token(db, event.id, target.qr_code, organizer)

        assert result.registration.id == target.id
        assert result.registration.checked_in is True

    def test_event_taken_from_token(self, db, event_with_registrations):
        _, registrations = event_with_registrations
        result = check_in_service.check_in_by_token(db, None, registrations[1].qr_code, organizer)
        assert result.registration.id == registrations[1].id

    def test_credential_for_other_event(self, db, event_with_registrations):
        _, registrations = event_with_registrations
        other = create_random_event(db)
        with pytest.raises(WrongEvent):
            check_in_service.check_in_by_token(db, other.id, registrations[0].qr_code, organizer)

    def test_garbage_token(self, db, event_with_registrations):
        event, _ = event_with_registrations
        with pytest.raises(InvalidToken):
            check_in_service.check_in_by_token(db, event.id, "not-a-token", organizer)


class TestBulkCheckIn:

    def test_mixed_outcomes(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        other = create_random_event(db)
        stranger = register_user(db, other.id, "user_x")
        check_in_service.check_in(db, event.id, registrations[0].id, organizer)

        ids = [registrations[0].id, registrations[1].id, registrations[2].id, registrations[3].id, stranger.id]
        result = check_in_service.bulk_check_in(db, event.id, ids, organizer, note="Group arrival")

        summary = result.summary
        assert (summary.total, summary.successful, summary.failed, summary.already_checked_in) == (5, 3, 2, 1)
        statuses = [r.status for r in result.results]
        assert statuses == [
            BulkItemStatus.ALREADY_CHECKED_IN,
            BulkItemStatus.CHECKED_IN,
            BulkItemStatus.CHECKED_IN,
            BulkItemStatus.CHECKED_IN,
            BulkItemStatus.NOT_FOUND,
        ]
        assert _actions(db, registrations[1].id) == ["BULK_CHECK_IN"]
        db.refresh(stranger)
        assert stranger.checked_in is False

    def test_unknown_ids_do_not_block_others(self, db, event_with_registrations):
        event, registrations = event_with_registrations

        result = check_in_service.bulk_check_in(db, event.id, ["reg_missing", registrations[4].id], organizer)

        assert result.summary.successful == 1
        assert result.results[0].status == BulkItemStatus.NOT_FOUND
        db.refresh(registrations[4])
        assert registrations[4].checked_in is True

    def test_lookup_failure_is_isolated_to_its_item(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        broken_id = registrations[0].id

        class FlakyRegistrations(CRUDRegistration):
            def get(self, db, registration_id):
                if registration_id == broken_id:
                    raise OperationalError("SELECT", {}, Exception("database is locked"))
                return super().get(db, registration_id)

        service = CheckInService(registrations=FlakyRegistrations())
        result = service.bulk_check_in(db, event.id, [broken_id, registrations[1].id], organizer)

        assert result.summary.total == 2
        assert result.summary.successful == 1
        assert result.results[0].status == BulkItemStatus.ERROR
        assert result.results[1].status == BulkItemStatus.CHECKED_IN
        assert _actions(db, registrations[1].id) == ["BULK_CHECK_IN"]

    def test_forbidden_for_whole_call(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        with pytest.raises(Forbidden):
            check_in_service.bulk_check_in(db, event.id, [registrations[0].id], make_actor("user_1"))
        assert db.query(CheckInAuditEntry).count() == 0


class TestReporting:

    def test_history(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        check_in_service.check_in(db, event.id, registrations[0].id, organizer)
        check_in_service.undo(db, event.id, registrations[0].id, organizer, reason="oops")

        history = check_in_service.history(db, event.id, registrations[0].id, organizer)

        assert [e.action for e in history] == ["CHECK_IN", "CHECK_IN_UNDO"]

    def test_stats(self, db, event_with_registrations):
        event, registrations = event_with_registrations
        for registration in registrations[:2]:
            check_in_service.check_in(db, event.id, registration.id, organizer)

        stats = check_in_service.stats(db, event.id, organizer)

        assert stats.statistics.total_registrations == 5
        assert stats.statistics.checked_in_count == 2
        assert stats.statistics.not_checked_in_count == 3
        assert stats.statistics.check_in_rate == 40
        assert sum(bucket.count for bucket in stats.timeline) == 2
        assert len(stats.recent_check_ins) == 2
