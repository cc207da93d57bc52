from ticketing.schemas.token import UserRole
from tests.utils.auth import get_user_authentication_headers
from tests.utils.event import ORGANIZER_ID, create_random_event, create_ticket_type
from tests.utils.registration import register_user


def _organizer():
    return get_user_authentication_headers(user_id=ORGANIZER_ID, role=UserRole.ORGANIZER)


def test_create_and_list_promo_codes(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id)

    response = client.post(
        f"/api/v1/events/{event.id}/promo-codes",
        headers=_organizer(),
        json={"code": " early20 ", "discount_type": "PERCENTAGE", "discount_value": 20},
    )
    assert response.status_code == 201
    created = response.json()
    assert created["code"] == "EARLY20"
    assert created["event_id"] == event.id
    assert created["discount_formatted"] == "20%"

    register_user(db, event.id, "user_a", ga.id, promo_code="EARLY20")

    listed = client.get(f"/api/v1/events/{event.id}/promo-codes", headers=_organizer())
    assert listed.status_code == 200
    [item] = listed.json()
    assert item["used_count"] == 1
    assert item["purchase_count"] == 1


def test_duplicate_code_conflicts(client, db):
    event = create_random_event(db)
    payload = {"code": "ONCE", "discount_type": "FIXED_AMOUNT", "discount_value": 500}
    client.post(f"/api/v1/events/{event.id}/promo-codes", headers=_organizer(), json=payload)

    response = client.post(f"/api/v1/events/{event.id}/promo-codes", headers=_organizer(), json=payload)

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "DUPLICATE_CODE"
    assert error["promo_code"] == "ONCE"
    assert error["category"] == "conflict_error"


def test_percentage_over_100_is_rejected(client, db):
    event = create_random_event(db)

    response = client.post(
        f"/api/v1/events/{event.id}/promo-codes",
        headers=_organizer(),
        json={"code": "TOOMUCH", "discount_type": "PERCENTAGE", "discount_value": 150},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_attendee_cannot_manage_codes(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_a")

    response = client.post(
        f"/api/v1/events/{event.id}/promo-codes",
        headers=headers,
        json={"code": "MINE", "discount_type": "PERCENTAGE", "discount_value": 5},
    )

    assert response.status_code == 403


def test_delete_promo_code(client, db):
    event = create_random_event(db)
    created = client.post(
        f"/api/v1/events/{event.id}/promo-codes",
        headers=_organizer(),
        json={"code": "GONE", "discount_type": "PERCENTAGE", "discount_value": 5},
    ).json()

    response = client.delete(f"/api/v1/promo-codes/{created['id']}", headers=_organizer())
    missing = client.delete(f"/api/v1/promo-codes/{created['id']}", headers=_organizer())

    assert response.status_code == 200
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "PROMO_CODE_NOT_FOUND"


def test_validate_promo_preview(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id, price=4000)
    client.post(
        f"/api/v1/events/{event.id}/promo-codes",
        headers=_organizer(),
        json={"code": "HALF", "discount_type": "PERCENTAGE", "discount_value": 50},
    )
    headers = get_user_authentication_headers(user_id="user_a")
    cart = [{"ticket_type_id": ga.id, "quantity": 2}]

    valid = client.post(
        f"/api/v1/events/{event.id}/validate-promo", headers=headers, json={"code": "half", "items": cart}
    )
    invalid = client.post(
        f"/api/v1/events/{event.id}/validate-promo", headers=headers, json={"code": "NOPE", "items": cart}
    )

    assert valid.status_code == 200
    assert valid.json()["is_valid"] is True
    assert valid.json()["subtotal"] == 8000
    assert valid.json()["discount"] == 4000
    assert valid.json()["total"] == 4000
    assert invalid.status_code == 200
    assert invalid.json()["is_valid"] is False
    assert invalid.json()["error_code"] == "PROMO_NOT_FOUND"
