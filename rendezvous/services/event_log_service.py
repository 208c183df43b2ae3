"""Append-only conversation event log."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from rendezvous.core.enums import CANDIDACY_TERMINAL_TYPES, AGREEMENT_TERMINAL_TYPES, EventType, SenderRole
from rendezvous.core.exceptions import (
    AlreadyResolvedError,
    NotFoundError,
    OrderingViolationError,
    PermissionDeniedError,
    ValidationError,
)
from rendezvous.core.logging import LogContext, build_log_event
from rendezvous.domain.payloads import TERMINAL_TIMESTAMP_FIELDS, patchable_fields, validate_payload
from rendezvous.models import Brand, Conversation, Event, Showroom
from rendezvous.models.base import utcnow
from rendezvous.services.base_service import BaseService

logger = logging.getLogger(__name__)

_REFERENCING_TYPES = CANDIDACY_TERMINAL_TYPES | AGREEMENT_TERMINAL_TYPES | {EventType.OFFER_COUNTERED}

_PREVIEW_LABELS = {
    EventType.AGREEMENT_SENT: "Agreement offered",
    EventType.AGREEMENT_ACCEPTED: "Agreement accepted",
    EventType.AGREEMENT_DECLINED: "Agreement declined",
    EventType.AGREEMENT_EXPIRED: "Agreement expired",
    EventType.CANDIDACY_SUBMITTED: "Candidacy submitted",
    EventType.OFFER_COUNTERED: "Proposal updated",
    EventType.CANDIDACY_ACCEPTED: "Candidacy accepted",
    EventType.CANDIDACY_REFUSED: "Candidacy refused",
    EventType.CONTRACT_DOCUMENT: "Contract",
    EventType.PAYMENT_REQUESTED: "Payment request",
    EventType.FILE_ATTACHMENT: "Document shared",
}


@dataclass(frozen=True)
class Actor:
    """Who is acting: a user id plus the side and account they act for."""

    user_id: str
    role: SenderRole
    account_id: int


@dataclass(frozen=True)
class InboxEntry:
    conversation: Conversation
    last_event: Event | None
    preview: str
    unread_count: int


def preview_label(event: Event | None) -> str:
    if event is None:
        return "No messages"
    if event.content and event.content.strip():
        return event.content
    return _PREVIEW_LABELS.get(event.type, "No messages")


class EventLogService(BaseService):
    """Store for conversations and their append-only event logs.

    ``append`` and ``patch_status`` only flush; the calling command decides
    when to commit so ledger updates and log writes land in one transaction.
    """

    # Conversations ---------------------------------------------------------
    def get_conversation(self, conversation_id: int) -> Conversation:
        conversation = self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation not found: {conversation_id}")
        return conversation

    def find_conversation(self, brand_id: int, showroom_id: int, listing_id: int | None = None) -> Conversation | None:
        stmt = select(Conversation).where(
            Conversation.brand_id == brand_id,
            Conversation.showroom_id == showroom_id,
        )
        if listing_id is None:
            stmt = stmt.where(Conversation.listing_id.is_(None))
        else:
            stmt = stmt.where(Conversation.listing_id == listing_id)
        return self.db.scalars(stmt).first()

    def get_or_create_conversation(
        self, brand_id: int, showroom_id: int, listing_id: int | None = None
    ) -> Conversation:
        existing = self.find_conversation(brand_id, showroom_id, listing_id)
        if existing is not None:
            return existing
        if self.db.get(Brand, brand_id) is None:
            raise NotFoundError(f"Brand not found: {brand_id}")
        if self.db.get(Showroom, showroom_id) is None:
            raise NotFoundError(f"Showroom not found: {showroom_id}")

        conversation = Conversation(brand_id=brand_id, showroom_id=showroom_id, listing_id=listing_id)
        self.db.add(conversation)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a creation race against another writer; must run first in its transaction.
            self.rollback()
            existing = self.find_conversation(brand_id, showroom_id, listing_id)
            if existing is None:
                raise
            return existing
        logger.info(
            "conversation.created",
            extra=build_log_event(
                "conversation.created", LogContext(conversation_id=conversation.id, brand_id=brand_id)
            ),
        )
        return conversation

    def open_conversation(self, brand_id: int, showroom_id: int, listing_id: int | None = None) -> Conversation:
        conversation = self.get_or_create_conversation(brand_id, showroom_id, listing_id)
        self.commit()
        return conversation

    def assert_participant(self, conversation: Conversation, actor: Actor) -> None:
        own_id = conversation.brand_id if actor.role is SenderRole.BRAND else conversation.showroom_id
        if own_id != actor.account_id:
            raise PermissionDeniedError(
                f"{actor.role.value} {actor.account_id} is not part of conversation {conversation.id}"
            )

    def list_conversations(
        self, *, brand_id: int | None = None, showroom_id: int | None = None, reader_id: str | None = None
    ) -> list[InboxEntry]:
        """Inbox for one account, most recently active first."""
        if (brand_id is None) == (showroom_id is None):
            raise ValidationError("Pass exactly one of brand_id or showroom_id.")
        stmt = select(Conversation).order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        if brand_id is not None:
            stmt = stmt.where(Conversation.brand_id == brand_id)
        else:
            stmt = stmt.where(Conversation.showroom_id == showroom_id)
        conversations = list(self.db.scalars(stmt))
        unread = self.unread_counts([c.id for c in conversations], reader_id) if reader_id else {}

        entries = []
        for conversation in conversations:
            last_event = self.db.scalars(
                select(Event)
                .where(Event.conversation_id == conversation.id)
                .order_by(Event.created_at.desc(), Event.id.desc())
                .limit(1)
            ).first()
            entries.append(
                InboxEntry(
                    conversation=conversation,
                    last_event=last_event,
                    preview=preview_label(last_event),
                    unread_count=unread.get(conversation.id, 0),
                )
            )
        return entries

    # Events ----------------------------------------------------------------
    def get_event(self, event_id: int) -> Event:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return event

    def list_by_conversation(self, conversation_id: int) -> list[Event]:
        stmt = (
            select(Event)
            .where(Event.conversation_id == conversation_id)
            .order_by(Event.created_at.asc(), Event.id.asc())
        )
        return list(self.db.scalars(stmt))

    def list_since(self, conversation_id: int, after_id: int) -> list[Event]:
        stmt = (
            select(Event)
            .where(Event.conversation_id == conversation_id, Event.id > after_id)
            .order_by(Event.created_at.asc(), Event.id.asc())
        )
        return list(self.db.scalars(stmt))

    def append(
        self,
        conversation_id: int,
        event_type: EventType,
        *,
        sender_id: str | None = None,
        sender_role: SenderRole | None = None,
        content: str | None = None,
        payload: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> Event:
        event_type = EventType(event_type)
        conversation = self.get_conversation(conversation_id)
        normalized = validate_payload(event_type, payload)
        timestamp = created_at or utcnow()

        if event_type in _REFERENCING_TYPES:
            self._check_reference(conversation_id, event_type, normalized["reference_message_id"], timestamp)

        event = Event(
            conversation_id=conversation_id,
            type=event_type,
            sender_id=sender_id,
            sender_role=SenderRole(sender_role) if sender_role else None,
            content=content.strip() if content and content.strip() else None,
            payload=normalized,
            is_read=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.db.add(event)
        conversation.updated_at = max(conversation.updated_at, timestamp)
        self.db.flush()
        self.queue_publication(event)
        logger.info(
            "event.appended",
            extra=build_log_event(
                "event.appended",
                LogContext(
                    conversation_id=conversation_id,
                    actor_id=sender_id,
                    actor_role=sender_role.value if isinstance(sender_role, SenderRole) else sender_role,
                    event_id=event.id,
                ),
                type=event_type.value,
            ),
        )
        return event

    def _check_reference(
        self, conversation_id: int, event_type: EventType, reference_id: int, timestamp: datetime
    ) -> None:
        referenced = self.db.get(Event, reference_id)
        if referenced is None or referenced.conversation_id != conversation_id:
            raise ValidationError(f"Referenced event {reference_id} is not part of conversation {conversation_id}")
        if timestamp < referenced.created_at:
            logger.error(
                "event.ordering_violation",
                extra=build_log_event(
                    "event.ordering_violation",
                    LogContext(conversation_id=conversation_id, event_id=reference_id),
                    type=event_type.value,
                    attempted_at=timestamp.isoformat(),
                    referenced_at=referenced.created_at.isoformat(),
                ),
            )
            raise OrderingViolationError(
                f"{event_type.value} at {timestamp.isoformat()} precedes referenced event "
                f"{reference_id} at {referenced.created_at.isoformat()}"
            )

    def patch_status(self, event_id: int, patch: dict[str, Any]) -> Event:
        """Merge a bounded patch into an event payload.

        Only the fields allowed for the event type may change, and each
        terminal timestamp can be written once.
        """
        event = self.get_event(event_id)
        allowed = patchable_fields(event.type)
        unexpected = set(patch) - allowed
        if unexpected:
            raise ValidationError(
                f"Cannot patch {sorted(unexpected)} on {event.type.value} event {event_id}"
            )
        current = dict(event.payload or {})
        for field in TERMINAL_TIMESTAMP_FIELDS & set(patch):
            if current.get(field) is not None:
                raise AlreadyResolvedError(f"Event {event_id} already has {field} set")

        merged = {**current, **patch}
        event.payload = validate_payload(event.type, merged)
        event.updated_at = utcnow()
        self.db.flush()
        self.queue_publication(event)
        return event

    def send_plain_message(self, conversation_id: int, text: str, actor: Actor) -> Event:
        if not text or not text.strip():
            raise ValidationError("Message text must not be empty.")
        self.assert_participant(self.get_conversation(conversation_id), actor)
        event = self.append(
            conversation_id,
            EventType.PLAIN_TEXT,
            sender_id=actor.user_id,
            sender_role=actor.role,
            content=text,
        )
        self.commit()
        return event

    def share_document(
        self,
        conversation_id: int,
        actor: Actor,
        path: str,
        *,
        contract: bool = False,
        file_name: str | None = None,
        mime_type: str | None = None,
        note: str | None = None,
    ) -> Event:
        self.assert_participant(self.get_conversation(conversation_id), actor)
        event = self.append(
            conversation_id,
            EventType.CONTRACT_DOCUMENT if contract else EventType.FILE_ATTACHMENT,
            sender_id=actor.user_id,
            sender_role=actor.role,
            content=note,
            payload={"path": path, "file_name": file_name, "mime_type": mime_type},
        )
        self.commit()
        return event

    # Read state ------------------------------------------------------------
    def mark_read(self, conversation_id: int, reader_id: str) -> int:
        """Mark every event the reader did not send as read."""
        self.get_conversation(conversation_id)
        unread = self.db.scalars(
            select(Event).where(
                Event.conversation_id == conversation_id,
                Event.is_read.is_(False),
                (Event.sender_id.is_(None)) | (Event.sender_id != reader_id),
            )
        ).all()
        for event in unread:
            event.is_read = True
        self.commit()
        return len(unread)

    def unread_counts(self, conversation_ids: list[int], reader_id: str) -> dict[int, int]:
        if not conversation_ids:
            return {}
        stmt = (
            select(Event.conversation_id, func.count(Event.id))
            .where(
                Event.conversation_id.in_(conversation_ids),
                Event.is_read.is_(False),
                (Event.sender_id.is_(None)) | (Event.sender_id != reader_id),
            )
            .group_by(Event.conversation_id)
        )
        return {conversation_id: count for conversation_id, count in self.db.execute(stmt)}
