import pytest
from fastapi.testclient import TestClient

from stagebook.database import get_db
from stagebook.main import app
from stagebook.models import OutboxEvent
from stagebook.utils.auth import create_access_token


@pytest.fixture
def client(Session):
    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client, email, role, **extra):
    res = client.post(
        "/api/v1/auth/register",
        json={
            "email": email,
            "password": "secret123",
            "first_name": "Test",
            "last_name": role.title(),
            "role": role,
            **extra,
        },
    )
    assert res.status_code == 201, res.text
    return res.json()


def _login(client, email):
    res = client.post("/api/v1/auth/login", data={"username": email, "password": "secret123"})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def parties(client):
    artist = _register(client, "band@test.com", "artist", organization_name="The Echoes")
    venue = _register(client, "club@test.com", "venue", organization_name="The Blue Room")
    return artist, _login(client, "band@test.com"), venue, _login(client, "club@test.com")


def test_register_duplicate_and_bad_login(client):
    _register(client, "dup@test.com", "artist")
    res = client.post(
        "/api/v1/auth/register",
        json={
            "email": "DUP@test.com",
            "password": "x",
            "first_name": "A",
            "last_name": "B",
            "role": "artist",
        },
    )
    assert res.status_code == 409
    res = client.post("/api/v1/auth/login", data={"username": "dup@test.com", "password": "wrong"})
    assert res.status_code == 401


def test_me_requires_token(client, parties):
    assert client.get("/api/v1/auth/me").status_code == 401
    _, artist_headers, _, _ = parties
    res = client.get("/api/v1/auth/me", headers=artist_headers)
    assert res.json()["role"] == "artist"


def test_full_booking_rider_and_contract_flow(client, parties, Session):
    artist, artist_headers, venue, venue_headers = parties

    res = client.post(
        "/api/v1/rider-templates/",
        json={"template_name": "Club show", "pa_system_required": False, "di_boxes_needed": 2},
        headers=artist_headers,
    )
    assert res.status_code == 201, res.text
    template_id = res.json()["id"]

    res = client.post(
        "/api/v1/bookings/",
        json={
            "artist_id": artist["id"],
            "event_date": "2026-02-15",
            "venue_name": "The Blue Room",
            "total_fee": "5000",
            "rider_template_id": template_id,
        },
        headers=venue_headers,
    )
    assert res.status_code == 201, res.text
    booking_id = res.json()["id"]
    assert res.json()["status"] == "pending"

    res = client.patch(
        f"/api/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=venue_headers
    )
    assert res.status_code == 403
    assert res.json()["detail"]["code"] == "forbidden"

    for _ in range(2):
        res = client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=artist_headers
        )
        assert res.status_code == 200
        assert res.json()["status"] == "confirmed"

    res = client.post(f"/api/v1/bookings/{booking_id}/rider/share", headers=artist_headers)
    assert res.status_code == 200, res.text
    ack_id = res.json()["id"]
    assert res.json()["status"] == "pending"

    res = client.post(
        f"/api/v1/rider-acknowledgments/{ack_id}/proposals",
        json={"field_name": "paSystemRequired", "proposed_value": "true", "reason": "Venue has house PA"},
        headers=venue_headers,
    )
    assert res.status_code == 201, res.text
    assert res.json()["field_name"] == "pa_system_required"

    res = client.post(
        f"/api/v1/rider-acknowledgments/{ack_id}/proposals",
        json={"field_name": "diBoxesNeeded", "proposed_value": "4", "reason": "More"},
        headers=venue_headers,
    )
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "conflict"

    res = client.post(
        f"/api/v1/rider-acknowledgments/{ack_id}/respond", json={"decision": "accept"}, headers=artist_headers
    )
    assert res.status_code == 200
    assert res.json()["status"] == "accepted"
    assert [m["status"] for m in res.json()["modifications"]] == ["accepted"]

    res = client.get(f"/api/v1/rider-acknowledgments/{ack_id}/timeline", headers=venue_headers)
    assert len(res.json()) == 1

    res = client.post(f"/api/v1/bookings/{booking_id}/contracts", headers=artist_headers)
    assert res.status_code == 201, res.text
    contract = res.json()
    assert contract["status"] == "draft"
    assert "PA system required: Yes" in contract["content"]

    res = client.get(f"/api/v1/contracts/{contract['id']}/pdf", headers=venue_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"

    res = client.post(f"/api/v1/contracts/{contract['id']}/sign", json={"party": "artist"}, headers=artist_headers)
    assert res.json()["status"] == "pending_signatures"
    res = client.post(f"/api/v1/contracts/{contract['id']}/sign", headers=venue_headers)
    assert res.json()["status"] == "signed"
    assert res.json()["artist_signed_at"] and res.json()["venue_signed_at"]

    res = client.get(f"/api/v1/contracts/{contract['id']}/audit", headers=venue_headers)
    assert res.status_code == 200
    assert [(e["action"], e["party"]) for e in res.json()] == [
        ("generated", "artist"),
        ("signed", "artist"),
        ("signed", "venue"),
    ]
    assert res.json()[-1]["details"] == {"fully_signed": True}

    res = client.post(
        f"/api/v1/contracts/{contract['id']}/reject", json={"reason": "Too late"}, headers=venue_headers
    )
    assert res.status_code == 409

    res = client.get(f"/api/v1/contracts/{contract['id']}/actions", headers=artist_headers)
    assert res.json()["actions"] == []

    res = client.put(
        f"/api/v1/rider-templates/{template_id}", json={"di_boxes_needed": 6}, headers=artist_headers
    )
    assert res.status_code == 409

    res = client.get("/api/v1/notifications/", headers=venue_headers)
    kinds = {n["type"] for n in res.json()}
    assert {"booking_status_updated", "rider_shared", "contract_signed"} <= kinds

    db = Session()
    try:
        assert db.query(OutboxEvent).count() > 0
    finally:
        db.close()


def test_outsider_gets_403_and_unknown_booking_404(client, parties):
    artist, artist_headers, venue, venue_headers = parties
    outsider = _register(client, "else@test.com", "venue")
    res = client.post(
        "/api/v1/bookings/",
        json={"artist_id": artist["id"], "event_date": "2026-02-15", "venue_name": "The Blue Room"},
        headers=venue_headers,
    )
    booking_id = res.json()["id"]
    headers = {"Authorization": f"Bearer {create_access_token({'sub': outsider['email']})}"}
    assert client.get(f"/api/v1/bookings/{booking_id}", headers=headers).status_code == 403
    res = client.get("/api/v1/bookings/999", headers=artist_headers)
    assert res.status_code == 404
    assert res.json()["detail"]["field_errors"] == {"booking_id": "not found"}


def test_request_validation_errors_use_detail_shape(client, parties):
    _, _, _, venue_headers = parties
    res = client.post("/api/v1/bookings/", json={"venue_name": "X"}, headers=venue_headers)
    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["code"] == "validation_error"
    assert "artist_id" in detail["field_errors"]
    assert "event_date" in detail["field_errors"]


def test_proposal_validation_lists_fields(client, parties):
    artist, artist_headers, venue, venue_headers = parties
    template_id = client.post(
        "/api/v1/rider-templates/", json={"template_name": "Solo"}, headers=artist_headers
    ).json()["id"]
    booking_id = client.post(
        "/api/v1/bookings/",
        json={
            "artist_id": artist["id"],
            "event_date": "2026-02-15",
            "venue_name": "The Blue Room",
            "rider_template_id": template_id,
        },
        headers=venue_headers,
    ).json()["id"]
    ack_id = client.post(f"/api/v1/bookings/{booking_id}/rider/share", headers=artist_headers).json()["id"]
    res = client.post(
        f"/api/v1/rider-acknowledgments/{ack_id}/proposals",
        json={"field_name": "", "proposed_value": "", "reason": ""},
        headers=venue_headers,
    )
    assert res.status_code == 422
    assert set(res.json()["detail"]["field_errors"]) == {"field_name", "proposed_value", "reason"}
