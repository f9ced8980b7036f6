import pytest

from snooker_api import crud
from snooker_api.db.models import OneTimePasscode

API = "/api/v1"
PASSWORD = "cue-ball-42"


def _signup(client, email: str = "hari@example.com") -> dict:
    response = client.post(
        f"{API}/auth/signup",
        json={"first_name": "Hari", "last_name": "Thapa", "email": email, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _otp_code(session_factory, email: str) -> str:
    db = session_factory()
    try:
        return db.query(OneTimePasscode).filter(OneTimePasscode.email == email).one().code
    finally:
        db.close()


def _register(client, session_factory, email: str = "hari@example.com") -> dict:
    _signup(client, email)
    response = client.post(
        f"{API}/auth/verify-otp",
        json={"email": email, "otp": _otp_code(session_factory, email), "purpose": "signup"},
    )
    assert response.status_code == 200, response.text
    token = response.json()["token"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(client, session_factory) -> dict:
    return _register(client, session_factory)


@pytest.fixture
def setup_house(client, headers) -> dict:
    house = client.post(f"{API}/snooker-houses/create", json={"name": "Cue Club", "address": "Thamel"}, headers=headers)
    assert house.status_code == 201, house.text
    table = client.post(f"{API}/tables/create", json={"name": "Table A", "hourly_rate": 120}, headers=headers)
    assert table.status_code == 201, table.text
    product = client.post(
        f"{API}/inventory/products",
        json={"name": "Cola", "cost_price": 50, "selling_price": 80, "current_stock": 10, "category": "drinks"},
        headers=headers,
    )
    assert product.status_code == 201, product.text
    return {"house": house.json(), "table": table.json(), "product": product.json()}


def _stock(client, headers, product_id) -> int:
    response = client.get(f"{API}/inventory/products/{product_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["current_stock"]


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_without_token_are_rejected(client) -> None:
    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/sessions/my-sessions").status_code == 401


def test_signup_verify_and_login(client, session_factory, headers) -> None:
    me = client.get(f"{API}/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["user"]["is_email_verified"] is True
    assert me.json()["session"]["is_current"] is True

    login = client.post(f"{API}/auth/login", json={"email": "hari@example.com", "password": PASSWORD})
    assert login.status_code == 200
    assert login.json()["token"]["access_token"]

    wrong = client.post(f"{API}/auth/login", json={"email": "hari@example.com", "password": "nope-nope"})
    assert wrong.status_code == 400


def test_duplicate_signup_is_refused(client) -> None:
    _signup(client, "gita@example.com")
    response = client.post(
        f"{API}/auth/signup",
        json={"first_name": "Gita", "last_name": "Rai", "email": "gita@example.com", "password": PASSWORD},
    )
    assert response.status_code == 400


def test_unverified_login_asks_for_verification(client) -> None:
    _signup(client, "gita@example.com")
    response = client.post(f"{API}/auth/login", json={"email": "gita@example.com", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["requires_verification"] is True
    assert response.json()["token"] is None


def test_unverified_user_cannot_use_business_endpoints(client, session_factory) -> None:
    user_id = _signup(client, "gita@example.com")["user_id"]
    db = session_factory()
    try:
        user = crud.user.get_by_email(db, email="gita@example.com")
        assert str(user.id) == user_id
        _, token = crud.user_session.create(db, user_id=user.id, device_info={})
    finally:
        db.close()

    response = client.post(
        f"{API}/snooker-houses/create",
        json={"name": "Side Pocket", "address": "Patan"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


def test_logout_invalidates_token(client, headers) -> None:
    assert client.post(f"{API}/auth/logout", headers=headers).status_code == 200
    assert client.get(f"{API}/auth/me", headers=headers).status_code == 401


def test_session_lifecycle(client, headers, setup_house) -> None:
    table_id = setup_house["table"]["id"]
    product_id = setup_house["product"]["id"]
    assert setup_house["table"]["table_number"] == 1

    started = client.post(f"{API}/sessions/start", json={"table_id": table_id, "customer_name": "Ram"}, headers=headers)
    assert started.status_code == 201, started.text
    session_id = started.json()["id"]

    busy = client.post(f"{API}/sessions/start", json={"table_id": table_id}, headers=headers)
    assert busy.status_code == 400

    added = client.post(
        f"{API}/sessions/{session_id}/items", json={"product_id": product_id, "quantity": 2}, headers=headers
    )
    assert added.status_code == 200, added.text
    assert added.json()["total_items"] == 2
    assert _stock(client, headers, product_id) == 8

    refused = client.post(f"{API}/sessions/{session_id}/end", headers=headers)
    assert refused.status_code == 400
    assert refused.json()["detail"]["requires_payment_confirmation"] is True

    paid = client.post(
        f"{API}/sessions/{session_id}/confirm-payment",
        json={"payment_status": "paid", "payment_method": "cash"},
        headers=headers,
    )
    assert paid.status_code == 200, paid.text
    assert paid.json()["payment_status"] == "paid"
    assert paid.json()["payment_method_label"] == "Cash"

    ended = client.post(f"{API}/sessions/{session_id}/end", headers=headers)
    assert ended.status_code == 200, ended.text
    assert ended.json()["status"] == "completed"

    table = client.get(f"{API}/tables/{table_id}", headers=headers)
    assert table.json()["is_occupied"] is False

    mine = client.get(f"{API}/sessions/my-sessions", headers=headers)
    assert mine.status_code == 200
    assert len(mine.json()["sessions"]) == 1


def test_cancel_restores_stock(client, headers, setup_house) -> None:
    table_id = setup_house["table"]["id"]
    product_id = setup_house["product"]["id"]

    session_id = client.post(f"{API}/sessions/start", json={"table_id": table_id}, headers=headers).json()["id"]
    client.post(f"{API}/sessions/{session_id}/items", json={"product_id": product_id, "quantity": 3}, headers=headers)
    assert _stock(client, headers, product_id) == 7

    paid = client.post(
        f"{API}/sessions/{session_id}/confirm-payment",
        json={"payment_status": "paid", "payment_method": "cash"},
        headers=headers,
    )
    assert paid.status_code == 200, paid.text
    assert len(paid.json()["payments"]) == 1
    assert float(paid.json()["total_paid_amount"]) >= 240.0

    cancelled = client.delete(f"{API}/sessions/{session_id}", headers=headers)
    assert cancelled.status_code == 200, cancelled.text
    body = cancelled.json()
    assert body["status"] == "cancelled"
    assert body["payment_status"] == "pending"
    assert float(body["total_paid_amount"]) == 0.0
    assert float(body["remaining_amount"]) == 0.0
    assert body["payments"] == []
    assert _stock(client, headers, product_id) == 10

    noted = client.put(
        f"{API}/sessions/{session_id}", json={"action": "add_notes", "notes": "left early"}, headers=headers
    )
    assert noted.status_code == 200, noted.text
    assert float(noted.json()["remaining_amount"]) == 0.0
    assert noted.json()["payment_status"] == "pending"

    again = client.delete(f"{API}/sessions/{session_id}", headers=headers)
    assert again.status_code == 400


def test_item_beyond_stock_is_refused(client, headers, setup_house) -> None:
    table_id = setup_house["table"]["id"]
    product_id = setup_house["product"]["id"]
    session_id = client.post(f"{API}/sessions/start", json={"table_id": table_id}, headers=headers).json()["id"]

    response = client.post(
        f"{API}/sessions/{session_id}/items", json={"product_id": product_id, "quantity": 11}, headers=headers
    )
    assert response.status_code == 400
    assert _stock(client, headers, product_id) == 10


def test_over_the_counter_sale(client, headers, setup_house) -> None:
    product_id = setup_house["product"]["id"]
    response = client.post(
        f"{API}/inventory/sales", json={"items": [{"product_id": product_id, "quantity": 4}]}, headers=headers
    )
    assert response.status_code == 201, response.text
    assert response.json()["sale_number"].startswith("SL")
    assert _stock(client, headers, product_id) == 6

    history = client.get(f"{API}/inventory/sales", headers=headers)
    assert history.json()["statistics"]["total_sales"] == 1


def test_other_owners_cannot_touch_sessions(client, session_factory, headers, setup_house) -> None:
    session_id = client.post(
        f"{API}/sessions/start", json={"table_id": setup_house["table"]["id"]}, headers=headers
    ).json()["id"]
    intruder = _register(client, session_factory, "shyam@example.com")

    assert client.get(f"{API}/sessions/{session_id}", headers=intruder).status_code == 403


def test_analytics_dashboard(client, headers, setup_house) -> None:
    response = client.get(f"{API}/analytics/dashboard", headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["inventory"]["total_products"] == 1
