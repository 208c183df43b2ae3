from __future__ import annotations

import pytest
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

from rendezvous.api.v1.conversations import stream_events
from rendezvous.core.dependencies import get_broadcaster, get_db_session
from rendezvous.core.enums import SenderRole
from rendezvous.database.init_db import provision_brand, provision_showroom
from rendezvous.main import create_app
from rendezvous.services.event_log_service import Actor, EventLogService
from rendezvous.sync.broadcaster import EventBroadcaster


@pytest.fixture
def accounts(session_factory):
    db = session_factory()
    brand = provision_brand(db, "Maison Lune", credits=1)
    showroom = provision_showroom(db, "Atelier Nord", city="Lyon")
    db.commit()
    ids = {"brand": brand.id, "showroom": showroom.id}
    db.close()
    return ids


@pytest.fixture
def client(session_factory):
    app = create_app()

    def _session():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    broadcaster = EventBroadcaster()
    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    with TestClient(app) as test_client:
        yield test_client


def _headers(role: str, account_id: int) -> dict[str, str]:
    return {"X-Actor-Id": f"{role}-user-{account_id}", "X-Actor-Role": role, "X-Account-Id": str(account_id)}


def test_health_reports_service(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_candidacy_accept_flow_over_http(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    showroom_headers = _headers("showroom", accounts["showroom"])

    submitted = client.post(
        "/api/v1/candidacies",
        json={
            "brand_id": accounts["brand"],
            "showroom_id": accounts["showroom"],
            "terms": {"commission_percent": 30},
            "note": "Hello from Maison Lune",
        },
        headers=brand_headers,
    )
    assert submitted.status_code == 201
    proposal = submitted.json()
    assert proposal["type"] == "CANDIDACY_SUBMITTED"

    credits = client.get(f"/api/v1/brands/{accounts['brand']}/credits", headers=brand_headers).json()
    assert credits == {"brand_id": accounts["brand"], "credits": 1, "reserved": 1, "available": 0}

    accepted = client.post(
        f"/api/v1/candidacies/{proposal['id']}/respond",
        json={"decision": "accept"},
        headers=showroom_headers,
    )
    assert accepted.status_code == 200
    assert accepted.json()["type"] == "CANDIDACY_ACCEPTED"

    state = client.get(
        f"/api/v1/conversations/{proposal['conversation_id']}/candidacy", headers=showroom_headers
    ).json()
    assert state["status"] == "accepted"

    credits = client.get(f"/api/v1/brands/{accounts['brand']}/credits", headers=brand_headers).json()
    assert (credits["credits"], credits["reserved"]) == (0, 0)

    again = client.post(
        f"/api/v1/candidacies/{proposal['id']}/respond",
        json={"decision": "reject"},
        headers=showroom_headers,
    )
    assert again.status_code == 409
    assert again.json()["error_code"] == "already_resolved"

    events = client.get(
        f"/api/v1/conversations/{proposal['conversation_id']}/events",
        params={"after_id": proposal["id"]},
        headers=brand_headers,
    ).json()
    assert [event["type"] for event in events] == ["PLAIN_TEXT", "CANDIDACY_ACCEPTED"]


def test_insufficient_credits_maps_to_402_and_top_up_recovers(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    body = {"brand_id": accounts["brand"], "showroom_id": accounts["showroom"], "listing_id": 1}

    assert client.post("/api/v1/candidacies", json=body, headers=brand_headers).status_code == 201
    refused = client.post(
        "/api/v1/candidacies", json={**body, "listing_id": 2}, headers=brand_headers
    )
    assert refused.status_code == 402
    assert refused.json()["available"] == 0

    top_up = {"credit_count": 3, "purchase_reference": "cs_live_42"}
    first = client.post(f"/api/v1/brands/{accounts['brand']}/credits/top-up", json=top_up)
    replay = client.post(f"/api/v1/brands/{accounts['brand']}/credits/top-up", json=top_up)
    assert first.json()["applied"] is True
    assert replay.json()["applied"] is False
    assert replay.json()["balance"]["credits"] == 4

    assert client.post(
        "/api/v1/candidacies", json={**body, "listing_id": 2}, headers=brand_headers
    ).status_code == 201


def test_missing_actor_headers_are_refused(client, accounts):
    response = client.get(f"/api/v1/brands/{accounts['brand']}/credits")
    assert response.status_code == 403
    assert response.json()["error_code"] == "permission_denied"


def test_unknown_conversation_is_404(client, accounts):
    response = client.get("/api/v1/conversations/999/events", headers=_headers("brand", accounts["brand"]))
    assert response.status_code == 404


def test_messages_inbox_and_read_marking(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    showroom_headers = _headers("showroom", accounts["showroom"])
    conversation = client.post(
        "/api/v1/conversations",
        json={"brand_id": accounts["brand"], "showroom_id": accounts["showroom"]},
        headers=showroom_headers,
    ).json()

    sent = client.post(
        f"/api/v1/conversations/{conversation['id']}/messages",
        json={"text": "Our racks free up in May."},
        headers=showroom_headers,
    )
    assert sent.status_code == 201

    inbox = client.get("/api/v1/conversations", headers=brand_headers).json()
    assert inbox[0]["preview"] == "Our racks free up in May."
    assert inbox[0]["unread_count"] == 1

    receipt = client.post(f"/api/v1/conversations/{conversation['id']}/read", headers=brand_headers).json()
    assert receipt["marked_read"] == 1
    assert client.get("/api/v1/conversations", headers=brand_headers).json()[0]["unread_count"] == 0


def test_payment_request_contest_over_http(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    showroom_headers = _headers("showroom", accounts["showroom"])
    conversation = client.post(
        "/api/v1/conversations",
        json={"brand_id": accounts["brand"], "showroom_id": accounts["showroom"]},
        headers=brand_headers,
    ).json()

    created = client.post(
        f"/api/v1/conversations/{conversation['id']}/payment-requests",
        json={"type": "rent", "amount_cents": 999, "motif": "April rent"},
        headers=showroom_headers,
    )
    assert created.status_code == 201
    request = created.json()
    assert request["fee_cents"] == 20

    no_note = client.post(
        f"/api/v1/payment-requests/{request['id']}/respond",
        json={"decision": "contest"},
        headers=brand_headers,
    )
    assert no_note.status_code == 422

    contested = client.post(
        f"/api/v1/payment-requests/{request['id']}/respond",
        json={"decision": "contest", "note": "We agreed on 8 euros", "proposed_amount_cents": 800},
        headers=brand_headers,
    )
    assert contested.status_code == 200
    assert contested.json()["status"] == "contested"

    listed = client.get("/api/v1/payment-requests", params={"status": "contested"}, headers=brand_headers).json()
    assert [item["id"] for item in listed] == [request["id"]]


def test_agreement_offer_over_http(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    showroom_headers = _headers("showroom", accounts["showroom"])
    conversation = client.post(
        "/api/v1/conversations",
        json={"brand_id": accounts["brand"], "showroom_id": accounts["showroom"]},
        headers=brand_headers,
    ).json()

    offer = client.post(
        f"/api/v1/conversations/{conversation['id']}/agreements",
        json={"terms": {"commission_percent": 20, "validity_days": 5}, "description": "Window display"},
        headers=showroom_headers,
    )
    assert offer.status_code == 201

    own = client.post(
        f"/api/v1/agreements/{offer.json()['id']}/respond", json={"decision": "accept"}, headers=showroom_headers
    )
    assert own.status_code == 403

    declined = client.post(
        f"/api/v1/agreements/{offer.json()['id']}/respond", json={"decision": "decline"}, headers=brand_headers
    )
    assert declined.status_code == 200
    assert declined.json()["type"] == "AGREEMENT_DECLINED"


def test_stream_refuses_outsiders_and_unknown_conversations(client, accounts):
    brand_headers = _headers("brand", accounts["brand"])
    conversation = client.post(
        "/api/v1/conversations",
        json={"brand_id": accounts["brand"], "showroom_id": accounts["showroom"]},
        headers=brand_headers,
    ).json()

    outsider = client.get(f"/api/v1/conversations/{conversation['id']}/stream", headers=_headers("brand", 999))
    missing = client.get("/api/v1/conversations/999/stream", headers=brand_headers)

    assert outsider.status_code == 403
    assert missing.status_code == 404


def test_stream_route_answers_participants_with_an_event_stream(session_factory, accounts):
    db = session_factory()
    broadcaster = EventBroadcaster()
    conversation = EventLogService(db, broadcaster).open_conversation(accounts["brand"], accounts["showroom"])
    actor = Actor(user_id="showroom-user", role=SenderRole.SHOWROOM, account_id=accounts["showroom"])

    response = stream_events(conversation.id, request=None, actor=actor, db=db, broadcaster=broadcaster)
    db.close()

    assert isinstance(response, StreamingResponse)
    assert response.media_type == "text/event-stream; charset=utf-8"
    assert response.headers["cache-control"] == "no-cache"
