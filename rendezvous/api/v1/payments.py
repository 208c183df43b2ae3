"""Payment request endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rendezvous.core.dependencies import get_actor, get_broadcaster, get_db_session
from rendezvous.core.enums import PaymentRequestStatus
from rendezvous.schemas.payments import (
    PaymentRequestCreateRequest,
    PaymentRequestRespondRequest,
    PaymentRequestResponse,
)
from rendezvous.services.event_log_service import Actor
from rendezvous.services.payment_request_service import PaymentRequestService
from rendezvous.sync.broadcaster import EventBroadcaster

router = APIRouter(tags=["payments"])


@router.post(
    "/conversations/{conversation_id}/payment-requests",
    response_model=PaymentRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_payment_request(
    conversation_id: int,
    payload: PaymentRequestCreateRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> PaymentRequestResponse:
    request = PaymentRequestService(db, broadcaster).create(
        conversation_id,
        payload.type,
        payload.amount_cents,
        actor,
        motif=payload.motif,
        attachment_path=payload.attachment_path,
        currency=payload.currency,
    )
    return PaymentRequestResponse.model_validate(request)


@router.post("/payment-requests/{request_id}/respond", response_model=PaymentRequestResponse)
def respond_to_payment_request(
    request_id: int,
    payload: PaymentRequestRespondRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> PaymentRequestResponse:
    service = PaymentRequestService(db, broadcaster)
    if payload.decision == "accept":
        request = service.accept(request_id, actor)
    else:
        request = service.contest(request_id, actor, payload.note or "", payload.proposed_amount_cents)
    return PaymentRequestResponse.model_validate(request)


@router.get("/payment-requests", response_model=list[PaymentRequestResponse])
def list_payment_requests(
    conversation_id: int | None = Query(default=None, ge=1),
    request_status: PaymentRequestStatus | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> list[PaymentRequestResponse]:
    requests = PaymentRequestService(db, broadcaster).list_for(
        actor, conversation_id=conversation_id, status=request_status
    )
    return [PaymentRequestResponse.model_validate(request) for request in requests]
