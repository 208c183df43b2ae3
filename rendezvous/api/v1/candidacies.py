"""Candidacy negotiation endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rendezvous.core.dependencies import get_actor, get_broadcaster, get_db_session
from rendezvous.schemas.candidacies import (
    CandidacyResponseRequest,
    CandidacyStateResponse,
    CandidacySubmitRequest,
    CounterOfferRequest,
)
from rendezvous.schemas.events import EventResponse
from rendezvous.services.candidacy_service import CandidacyService
from rendezvous.services.event_log_service import Actor
from rendezvous.sync.broadcaster import EventBroadcaster

router = APIRouter(tags=["candidacies"])


@router.post("/candidacies", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def submit_candidacy(
    payload: CandidacySubmitRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = CandidacyService(db, broadcaster).submit_candidacy(
        payload.brand_id,
        payload.showroom_id,
        actor,
        listing_id=payload.listing_id,
        terms=payload.terms.as_payload(),
        note=payload.note,
    )
    return EventResponse.model_validate(event)


@router.post("/candidacies/{event_id}/respond", response_model=EventResponse)
def respond_to_candidacy(
    event_id: int,
    payload: CandidacyResponseRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = CandidacyService(db, broadcaster).respond(event_id, payload.decision == "accept", actor)
    return EventResponse.model_validate(event)


@router.post("/candidacies/{event_id}/counter", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def counter_candidacy(
    event_id: int,
    payload: CounterOfferRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = CandidacyService(db, broadcaster).counter_offer(
        event_id, actor, terms=payload.terms.as_payload(), note=payload.note
    )
    return EventResponse.model_validate(event)


@router.post("/candidacies/{event_id}/cancel", response_model=EventResponse)
def cancel_candidacy(
    event_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = CandidacyService(db, broadcaster).cancel(event_id, actor)
    return EventResponse.model_validate(event)


@router.get("/conversations/{conversation_id}/candidacy", response_model=CandidacyStateResponse)
def candidacy_state(
    conversation_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> CandidacyStateResponse:
    service = CandidacyService(db, broadcaster)
    service.events.assert_participant(service.events.get_conversation(conversation_id), actor)
    state = service.state(conversation_id)
    return CandidacyStateResponse(
        conversation_id=conversation_id,
        status=state.status,
        open_proposal_event_id=state.open_proposal_event_id,
        last_proposal_event_id=state.last_proposal_event_id,
        root_event_id=state.root_event_id,
    )
