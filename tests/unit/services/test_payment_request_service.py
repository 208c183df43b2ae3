from __future__ import annotations

import pytest

from rendezvous.core.enums import PaymentRequestStatus, PaymentRequestType
from rendezvous.core.exceptions import AlreadyResolvedError, PermissionDeniedError, ValidationError
from rendezvous.services.payment_request_service import PaymentRequestService, platform_fee_cents


@pytest.fixture
def service(session, broadcaster):
    return PaymentRequestService(db=session, broadcaster=broadcaster)


@pytest.fixture
def conversation(service, brand, showroom):
    return service.events.open_conversation(brand.id, showroom.id)


@pytest.mark.parametrize(
    ("amount_cents", "expected_fee"),
    [(1000, 20), (999, 20), (1, 1), (5000, 100), (5001, 101)],
)
def test_platform_fee_rounds_up_to_the_cent(amount_cents, expected_fee):
    assert platform_fee_cents(amount_cents, 2) == expected_fee


def test_create_freezes_fee_and_records_an_event(service, conversation, showroom_actor, brand):
    request = service.create(
        conversation.id, PaymentRequestType.RENT, 1000, showroom_actor, motif="March rent"
    )

    assert request.status is PaymentRequestStatus.PENDING
    assert request.fee_cents == 20
    assert request.currency == "eur"
    assert request.counterpart_brand_id == brand.id
    event = service.events.get_event(request.event_id)
    assert event.payload["payment_request_id"] == request.id
    assert event.payload["status"] == "pending"
    assert event.payload["amount_cents"] == 1000


def test_amount_must_be_positive(service, conversation, showroom_actor):
    with pytest.raises(ValidationError):
        service.create(conversation.id, PaymentRequestType.SALES, 0, showroom_actor)


def test_counterpart_accepts_and_event_follows(service, conversation, brand_actor, showroom_actor):
    request = service.create(conversation.id, PaymentRequestType.RENT, 2500, showroom_actor)

    with pytest.raises(PermissionDeniedError):
        service.accept(request.id, showroom_actor)

    accepted = service.accept(request.id, brand_actor)
    assert accepted.status is PaymentRequestStatus.ACCEPTED
    assert service.events.get_event(request.event_id).payload["status"] == "accepted"

    with pytest.raises(AlreadyResolvedError):
        service.contest(request.id, brand_actor, "too late")

    completed = service.settle(request.id, PaymentRequestStatus.COMPLETED)
    assert completed.status is PaymentRequestStatus.COMPLETED
    assert service.events.get_event(request.event_id).payload["status"] == "completed"


def test_contest_requires_a_note(service, conversation, brand_actor, showroom_actor):
    request = service.create(conversation.id, PaymentRequestType.SALES, 4000, brand_actor)

    with pytest.raises(ValidationError):
        service.contest(request.id, showroom_actor, "  ")

    contested = service.contest(request.id, showroom_actor, "Only 30 pieces sold", proposed_amount_cents=3000)
    assert contested.status is PaymentRequestStatus.CONTESTED
    payload = service.events.get_event(request.event_id).payload
    assert payload["status"] == "contested"
    assert payload["contest_note"] == "Only 30 pieces sold"
    assert payload["proposed_amount_cents"] == 3000

    with pytest.raises(AlreadyResolvedError):
        service.settle(request.id, PaymentRequestStatus.COMPLETED)
    assert service.settle(request.id, PaymentRequestStatus.CANCELLED).status is PaymentRequestStatus.CANCELLED


def test_settlement_outcome_must_be_terminal(service, conversation, showroom_actor):
    request = service.create(conversation.id, PaymentRequestType.RENT, 1000, showroom_actor)
    with pytest.raises(ValidationError):
        service.settle(request.id, PaymentRequestStatus.ACCEPTED)


def test_list_returns_requests_for_the_actor_account(service, conversation, brand_actor, showroom_actor):
    first = service.create(conversation.id, PaymentRequestType.RENT, 1000, showroom_actor)
    second = service.create(conversation.id, PaymentRequestType.SALES, 2000, brand_actor)
    service.accept(first.id, brand_actor)

    assert {request.id for request in service.list_for(brand_actor)} == {first.id, second.id}
    pending = service.list_for(showroom_actor, status=PaymentRequestStatus.PENDING)
    assert [request.id for request in pending] == [second.id]
