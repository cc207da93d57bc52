from datetime import timedelta

from ticketing.models.ticket_type import TicketType
from ticketing.schemas.token import UserRole
from tests.utils.auth import get_user_authentication_headers
from tests.utils.event import create_promo_code, create_random_event, create_ticket_type
from tests.utils.registration import register_user


def test_register_requires_authentication(client, db):
    event = create_random_event(db)

    response = client.post(f"/api/v1/events/{event.id}/register", json={})

    assert response.status_code == 401


def test_register_for_legacy_event(client, db):
    event = create_random_event(db, price=1500)
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.post(
        f"/api/v1/events/{event.id}/register", headers=headers, json={"quantity": 2}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["registration"]["user_id"] == "user_abc"
    assert body["registration"]["qr_code"]
    assert body["summary"] == {"subtotal": 3000, "discount": 0, "total": 3000, "ticket_count": 2}
    assert body["credential_error"] is None


def test_register_without_body_defaults_to_one_ticket(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.post(f"/api/v1/events/{event.id}/register", headers=headers)

    assert response.status_code == 201
    assert response.json()["summary"]["ticket_count"] == 1


def test_register_cart_with_promo(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id, name="GA", price=10000)
    create_promo_code(db, "SAVE10", event_id=event.id)
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.post(
        f"/api/v1/events/{event.id}/register",
        headers=headers,
        json={"items": [{"ticket_type_id": ga.id, "quantity": 2}], "promo_code": "save10"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["summary"]["subtotal"] == 20000
    assert body["summary"]["discount"] == 2000
    assert body["registration"]["promo_code_used"] == "SAVE10"
    purchase = body["registration"]["ticket_purchases"][0]
    assert purchase["ticket_type_name"] == "GA"
    assert len(purchase["ticket_numbers"]) == 2


def test_duplicate_registration_is_a_conflict(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_abc")
    client.post(f"/api/v1/events/{event.id}/register", headers=headers, json={})

    response = client.post(f"/api/v1/events/{event.id}/register", headers=headers, json={})

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "ALREADY_REGISTERED"
    assert error["category"] == "conflict_error"
    assert error["path"] == f"/api/v1/events/{event.id}/register"


def test_unknown_event_is_404(client):
    headers = get_user_authentication_headers()

    response = client.post("/api/v1/events/evt_missing/register", headers=headers, json={})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"


def test_sold_out_reports_capacity(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id, quantity=1)
    register_user(db, event.id, "user_first", ga.id)
    headers = get_user_authentication_headers(user_id="user_second")

    response = client.post(
        f"/api/v1/events/{event.id}/register",
        headers=headers,
        json={"items": [{"ticket_type_id": ga.id, "quantity": 1}]},
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_INVENTORY"
    assert error["category"] == "capacity_exceeded"


def test_invalid_promo_names_the_rule(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id)
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.post(
        f"/api/v1/events/{event.id}/register",
        headers=headers,
        json={"items": [{"ticket_type_id": ga.id, "quantity": 1}], "promo_code": "NOPE"},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "PROMO_NOT_FOUND"
    assert error["category"] == "invalid_promo"
    assert db.query(TicketType).filter_by(id=ga.id).one().quantity_sold == 0


def test_malformed_cart_is_a_validation_error(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.post(
        f"/api/v1/events/{event.id}/register",
        headers=headers,
        json={"items": [{"ticket_type_id": "tt_x", "quantity": 0}]},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["validation_errors"]


def test_cancel_and_list(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_abc")
    client.post(f"/api/v1/events/{event.id}/register", headers=headers, json={})

    listed = client.get("/api/v1/registrations/me", headers=headers)
    assert listed.status_code == 200
    assert [r["event"]["id"] for r in listed.json()] == [event.id]

    response = client.delete(f"/api/v1/events/{event.id}/register", headers=headers)
    assert response.status_code == 200

    assert client.get("/api/v1/registrations/me", headers=headers).json() == []
    again = client.delete(f"/api/v1/events/{event.id}/register", headers=headers)
    assert again.status_code == 404
    assert again.json()["error"]["code"] == "NOT_REGISTERED"


def test_cancel_inside_lockout(client, db):
    event = create_random_event(db, starts_in=timedelta(hours=3))
    register_user(db, event.id, "user_abc")
    headers = get_user_authentication_headers(user_id="user_abc")

    response = client.delete(f"/api/v1/events/{event.id}/register", headers=headers)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "WITHIN_CANCELLATION_LOCKOUT"


def test_reissue_credential_for_owner_only(client, db):
    event = create_random_event(db)
    registration = register_user(db, event.id, "user_abc")
    url = f"/api/v1/registrations/{registration.id}/credential"

    owner = client.post(url, headers=get_user_authentication_headers(user_id="user_abc"))
    stranger = client.post(url, headers=get_user_authentication_headers(user_id="user_other"))
    admin = client.post(url, headers=get_user_authentication_headers(user_id="root", role=UserRole.ADMIN))

    assert owner.status_code == 200
    assert owner.json()["qr_code"]
    assert stranger.status_code == 404
    assert admin.status_code == 200
