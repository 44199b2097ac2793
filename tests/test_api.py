# tests/test_api.py
"""HTTP surface: chat turns, confirmations, seat-change sub-flow and session commands"""

import pytest
from fastapi.testclient import TestClient

from skydesk.main import app


@pytest.fixture
def client(session):
    app.state.session = session
    with TestClient(app) as test_client:
        yield test_client
    app.state.session = None


def _open_booking(client, flight_number="DL6230", seat_class="comfortPlus"):
    response = client.post(
        "/api/assistant/select-flight",
        json={"flight_number": flight_number, "seat_class": seat_class},
    )
    assert response.status_code == 200
    return response.json()["messages"][0]["pending"]["transaction_id"]


def test_health(client):
    response = client.get("/api/assistant/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["active_customer"] == "CUST001"
    assert body["snapshot_sink"] is False


def test_chat_rejects_empty_message(client):
    response = client.post("/api/assistant/chat", json={"message": ""})
    assert response.status_code == 422


def test_chat_turn(client):
    response = client.post("/api/assistant/chat", json={"message": "I want to fly from Atlanta to New York tomorrow"})
    assert response.status_code == 200
    body = response.json()
    assert body["handoff"] is None
    assert body["messages"][0]["role"] == "bot"
    assert body["messages"][0]["content"].endswith("How many passengers will be traveling?")


def test_confirm_booking_once(client, session):
    txn = _open_booking(client)

    view = client.get(f"/api/assistant/confirmations/{txn}")
    assert view.status_code == 200
    assert view.json()["kind"] == "BOOK_FLIGHT"

    confirmed = client.post(f"/api/assistant/confirmations/{txn}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["message"]["action_result"]["success"] is True

    again = client.post(f"/api/assistant/confirmations/{txn}/confirm")
    assert again.status_code == 404
    assert client.get(f"/api/assistant/confirmations/{txn}").status_code == 404


def test_decline_booking(client, session):
    before = len(session.store.list_bookings())
    txn = _open_booking(client)

    response = client.post(f"/api/assistant/confirmations/{txn}/decline")
    assert response.status_code == 200
    assert "haven't booked" in response.json()["message"]["content"]
    assert len(session.store.list_bookings()) == before


def test_refund_endpoint_only_for_cancellations(client):
    txn = _open_booking(client)
    response = client.get(f"/api/assistant/confirmations/{txn}/refund")
    assert response.status_code == 400


def test_seat_change_sub_flow(client, session):
    executor, protocol = session.executor, session.protocol
    params = {"bookingReference": "DL00001", "seatPreference": "window"}
    prepared = executor.prepare("CHANGE_SEAT", params)
    message = session.conversation.add_bot(prepared.message, action_result=prepared)
    txn = protocol.open(message, "CHANGE_SEAT", params, prepared).transaction_id

    verified = client.post(f"/api/assistant/confirmations/{txn}/verify-loyalty")
    assert verified.status_code == 200
    assert verified.json()["loyalty_tier"] == "gold"

    seats = client.get(f"/api/assistant/confirmations/{txn}/seats")
    assert seats.status_code == 200
    seat_number = seats.json()[0]["seat_number"]

    selected = client.post(f"/api/assistant/confirmations/{txn}/select-seat", json={"seat_number": seat_number})
    assert selected.status_code == 200
    assert selected.json()["selected_seat"] == seat_number

    upgrades = client.get(f"/api/assistant/confirmations/{txn}/upgrades")
    assert upgrades.status_code == 200

    ready = client.post(f"/api/assistant/confirmations/{txn}/choose-upgrade", json={"cabin_class": None})
    assert ready.json()["stage"] == "ready"

    bad = client.post(f"/api/assistant/confirmations/{txn}/select-seat", json={"seat_number": "99Z"})
    assert bad.status_code == 400

    done = client.post(f"/api/assistant/confirmations/{txn}/confirm")
    assert done.status_code == 200
    assert session.store.get_booking("DL00001").seat.seat_number == seat_number


def test_unknown_transaction(client):
    assert client.post("/api/assistant/confirmations/txn_nope/decline").status_code == 404
    assert client.post("/api/assistant/confirmations/txn_nope/verify-loyalty").status_code == 404


def test_profiles_and_state(client):
    profiles = client.get("/api/assistant/profiles").json()
    assert [p["customer_id"] for p in profiles][:2] == ["CUST001", "CUST002"]

    activated = client.post("/api/assistant/profiles/CUST003/activate")
    assert activated.status_code == 200
    assert activated.json()["name"] == "David Chen"
    assert client.post("/api/assistant/profiles/CUST404/activate").status_code == 404

    state = client.get("/api/assistant/state").json()
    assert state["profile"]["customer_id"] == "CUST003"
    assert state["messages"][0]["content"].startswith("Hello David Chen!")
    assert state["context"]["question_queue"] == []


def test_resets(client):
    client.post("/api/assistant/chat", json={"message": "I want to fly to London"})

    reset = client.post("/api/assistant/reset")
    assert reset.status_code == 200
    assert len(reset.json()["messages"]) == 1

    data = client.post("/api/assistant/reset-data")
    assert data.json()["message"]["content"].startswith("Data has been reset")


def test_seat_steps_out_of_order(client, session):
    params = {"bookingReference": "DL00001", "seatPreference": "aisle"}
    prepared = session.executor.prepare("CHANGE_SEAT", params)
    message = session.conversation.add_bot(prepared.message, action_result=prepared)
    txn = session.protocol.open(message, "CHANGE_SEAT", params, prepared).transaction_id

    early = client.post(f"/api/assistant/confirmations/{txn}/choose-upgrade", json={"cabin_class": "deltaOne"})
    assert early.status_code == 400

    client.post(f"/api/assistant/confirmations/{txn}/verify-loyalty")
    booked = session.store.get_booking("DL00001").cabin_class.value
    other_cabin = "economy" if booked != "economy" else "deltaOne"
    other_seat = client.post(
        f"/api/assistant/confirmations/{txn}/select-seat", json={"seat_number": "1A", "cabin_class": other_cabin}
    )
    assert other_seat.status_code == 400
