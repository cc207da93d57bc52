from ticketing.schemas.token import UserRole
from tests.utils.auth import get_user_authentication_headers
from tests.utils.event import ORGANIZER_ID, create_random_event, create_ticket_type
from tests.utils.registration import register_user


def test_organizer_creates_ticket_type(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id=ORGANIZER_ID, role=UserRole.ORGANIZER)

    response = client.post(
        f"/api/v1/events/{event.id}/ticket-types",
        headers=headers,
        json={"name": "VIP", "price": 25000, "quantity": 50, "max_quantity": 4},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "VIP"
    assert body["available"] == 50
    assert body["current_price"] == 25000
    assert body["status"] == "ACTIVE"


def test_other_user_cannot_create_ticket_type(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id="user_a", role=UserRole.ORGANIZER)

    response = client.post(
        f"/api/v1/events/{event.id}/ticket-types",
        headers=headers,
        json={"name": "VIP", "quantity": 50},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_max_below_min_is_rejected(client, db):
    event = create_random_event(db)
    headers = get_user_authentication_headers(user_id=ORGANIZER_ID, role=UserRole.ORGANIZER)

    response = client.post(
        f"/api/v1/events/{event.id}/ticket-types",
        headers=headers,
        json={"name": "Group", "quantity": 50, "min_quantity": 5, "max_quantity": 2},
    )

    assert response.status_code == 400


def test_list_ticket_types_is_public(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id, name="GA", quantity=10)
    register_user(db, event.id, "user_a", ga.id, quantity=4)

    response = client.get(f"/api/v1/events/{event.id}/ticket-types")

    assert response.status_code == 200
    [item] = response.json()
    assert item["quantity_sold"] == 4
    assert item["available"] == 6


def test_inventory_summary(client, db):
    event = create_random_event(db)
    ga = create_ticket_type(db, event.id, name="GA", quantity=10)
    create_ticket_type(db, event.id, name="VIP", quantity=10)
    register_user(db, event.id, "user_a", ga.id, quantity=5)

    response = client.get(f"/api/v1/events/{event.id}/inventory")

    assert response.status_code == 200
    body = response.json()
    assert body["ticketing_mode"] == "ticket_types"
    assert body["total_capacity"] == 20
    assert body["total_sold"] == 5
    assert body["total_available"] == 15
    assert body["fill_rate"] == 25.0


def test_inventory_for_unknown_event(client):
    response = client.get("/api/v1/events/evt_missing/inventory")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"
