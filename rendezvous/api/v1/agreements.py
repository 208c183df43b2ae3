"""Agreement offer endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rendezvous.core.dependencies import get_actor, get_broadcaster, get_db_session
from rendezvous.schemas.agreements import AgreementResponseRequest, AgreementSendRequest
from rendezvous.schemas.events import EventResponse
from rendezvous.services.agreement_service import AgreementService
from rendezvous.services.event_log_service import Actor
from rendezvous.sync.broadcaster import EventBroadcaster

router = APIRouter(tags=["agreements"])


@router.post(
    "/conversations/{conversation_id}/agreements",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_agreement(
    conversation_id: int,
    payload: AgreementSendRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = AgreementService(db, broadcaster).send(
        conversation_id, actor, payload.terms.as_payload(), payload.description
    )
    return EventResponse.model_validate(event)


@router.post("/agreements/{event_id}/respond", response_model=EventResponse)
def respond_to_agreement(
    event_id: int,
    payload: AgreementResponseRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = AgreementService(db, broadcaster).respond(event_id, payload.decision == "accept", actor)
    return EventResponse.model_validate(event)
