"""Conversation, message and read-state endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from rendezvous.core.config import get_config
from rendezvous.core.dependencies import get_actor, get_broadcaster, get_db_session
from rendezvous.core.enums import SenderRole
from rendezvous.core.exceptions import PermissionDeniedError
from rendezvous.schemas.events import (
    ConversationCreateRequest,
    ConversationResponse,
    DocumentShareRequest,
    EventResponse,
    InboxItem,
    MessageCreateRequest,
    ReadReceipt,
)
from rendezvous.services.event_log_service import Actor, EventLogService
from rendezvous.sync.broadcaster import EventBroadcaster
from rendezvous.sync.stream import SSE_HEADERS, event_stream

router = APIRouter(tags=["conversations"])


def _service(db: Session, broadcaster: EventBroadcaster) -> EventLogService:
    return EventLogService(db, broadcaster)


@router.post("/conversations", response_model=ConversationResponse)
def open_conversation(
    payload: ConversationCreateRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ConversationResponse:
    own_id = payload.brand_id if actor.role is SenderRole.BRAND else payload.showroom_id
    if own_id != actor.account_id:
        raise PermissionDeniedError("A conversation can only be opened by one of its two parties.")
    conversation = _service(db, broadcaster).open_conversation(
        payload.brand_id, payload.showroom_id, payload.listing_id
    )
    return ConversationResponse.model_validate(conversation)


@router.get("/conversations", response_model=list[InboxItem])
def inbox(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> list[InboxItem]:
    scope = {"brand_id": actor.account_id} if actor.role is SenderRole.BRAND else {"showroom_id": actor.account_id}
    entries = _service(db, broadcaster).list_conversations(reader_id=actor.user_id, **scope)
    return [
        InboxItem(
            conversation=ConversationResponse.model_validate(entry.conversation),
            last_event=EventResponse.model_validate(entry.last_event) if entry.last_event else None,
            preview=entry.preview,
            unread_count=entry.unread_count,
        )
        for entry in entries
    ]


@router.get("/conversations/{conversation_id}/events", response_model=list[EventResponse])
def list_events(
    conversation_id: int,
    after_id: int | None = Query(default=None, ge=0),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> list[EventResponse]:
    service = _service(db, broadcaster)
    service.assert_participant(service.get_conversation(conversation_id), actor)
    events = (
        service.list_since(conversation_id, after_id)
        if after_id is not None
        else service.list_by_conversation(conversation_id)
    )
    return [EventResponse.model_validate(event) for event in events]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: int,
    payload: MessageCreateRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = _service(db, broadcaster).send_plain_message(conversation_id, payload.text, actor)
    return EventResponse.model_validate(event)


@router.post(
    "/conversations/{conversation_id}/documents",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
def share_document(
    conversation_id: int,
    payload: DocumentShareRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> EventResponse:
    event = _service(db, broadcaster).share_document(
        conversation_id,
        actor,
        payload.path,
        contract=payload.contract,
        file_name=payload.file_name,
        mime_type=payload.mime_type,
        note=payload.note,
    )
    return EventResponse.model_validate(event)


@router.post("/conversations/{conversation_id}/read", response_model=ReadReceipt)
def mark_read(
    conversation_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ReadReceipt:
    service = _service(db, broadcaster)
    service.assert_participant(service.get_conversation(conversation_id), actor)
    return ReadReceipt(conversation_id=conversation_id, marked_read=service.mark_read(conversation_id, actor.user_id))


@router.get("/conversations/{conversation_id}/stream")
def stream_events(
    conversation_id: int,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """Push channel for a participant; reconcile gaps with ``/events?after_id=``."""
    service = _service(db, broadcaster)
    service.assert_participant(service.get_conversation(conversation_id), actor)
    return StreamingResponse(
        event_stream(request, broadcaster, conversation_id, get_config().STREAM_HEARTBEAT_SECONDS),
        media_type="text/event-stream; charset=utf-8",
        headers=SSE_HEADERS,
    )
