"""Agreement offers exchanged once brand and showroom are talking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from rendezvous.core.config import get_config
from rendezvous.core.enums import AgreementStatus, EventType, ProposalStatus
from rendezvous.core.exceptions import AlreadyResolvedError, PermissionDeniedError, ValidationError
from rendezvous.core.logging import LogContext, build_log_event
from rendezvous.models import Event
from rendezvous.models.base import utcnow
from rendezvous.orchestration.agreements import AgreementState, derive_agreement_states, lapsed_agreements
from rendezvous.orchestration.state_machine import StateMachine
from rendezvous.services.base_service import BaseService
from rendezvous.services.event_log_service import Actor, EventLogService
from rendezvous.sync.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)

AGREEMENT_TRANSITIONS = StateMachine(
    {
        AgreementStatus.PENDING: {AgreementStatus.ACCEPTED, AgreementStatus.DECLINED, AgreementStatus.EXPIRED},
        AgreementStatus.ACCEPTED: set(),
        AgreementStatus.DECLINED: set(),
        AgreementStatus.EXPIRED: set(),
    }
)

_OUTCOMES = {
    AgreementStatus.ACCEPTED: (EventType.AGREEMENT_ACCEPTED, ProposalStatus.ACCEPTED, "accepted_at"),
    AgreementStatus.DECLINED: (EventType.AGREEMENT_DECLINED, ProposalStatus.DECLINED, "declined_at"),
    AgreementStatus.EXPIRED: (EventType.AGREEMENT_EXPIRED, ProposalStatus.EXPIRED, "expired_at"),
}


class AgreementService(BaseService):
    def __init__(
        self,
        db: Session | None = None,
        broadcaster: EventBroadcaster | None = None,
        default_validity_days: int | None = None,
    ) -> None:
        super().__init__(db, broadcaster)
        self.events = EventLogService(self.db, self.broadcaster)
        self.default_validity_days = default_validity_days or get_config().DEFAULT_OFFER_VALIDITY_DAYS

    def send(
        self,
        conversation_id: int,
        actor: Actor,
        terms: dict[str, Any],
        description: str | None = None,
    ) -> Event:
        """Offer commission/rent terms to the other side of the conversation."""
        with self.unit_of_work():
            self.events.assert_participant(self.events.get_conversation(conversation_id), actor)
            payload = dict(terms or {})
            payload["status"] = ProposalStatus.PENDING.value
            if description and description.strip():
                payload["option_description"] = description.strip()
            offer = self.events.append(
                conversation_id,
                EventType.AGREEMENT_SENT,
                sender_id=actor.user_id,
                sender_role=actor.role,
                payload=payload,
            )
        logger.info(
            "agreement.sent",
            extra=build_log_event(
                "agreement.sent",
                LogContext(
                    conversation_id=conversation_id,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                    event_id=offer.id,
                ),
            ),
        )
        return offer

    def state(self, event_id: int) -> AgreementState:
        offer = self.events.get_event(event_id)
        if offer.type is not EventType.AGREEMENT_SENT:
            raise ValidationError(f"Event {event_id} is not an agreement offer.")
        states = derive_agreement_states(
            self.events.list_by_conversation(offer.conversation_id), self.default_validity_days
        )
        return states[offer.id]

    def respond(self, event_id: int, accept: bool, actor: Actor, now: datetime | None = None) -> Event:
        """Accept or decline a pending offer; returns the terminal event."""
        now = now or utcnow()
        target = AgreementStatus.ACCEPTED if accept else AgreementStatus.DECLINED
        with self.unit_of_work():
            offer = self.events.get_event(event_id)
            current = self.state(event_id)
            self.events.assert_participant(self.events.get_conversation(offer.conversation_id), actor)
            if offer.sender_role is actor.role:
                raise PermissionDeniedError("The sender of an agreement offer cannot respond to it.")
            AGREEMENT_TRANSITIONS.assert_transition(current.status, target)
            if current.expires_at is not None and current.expires_at <= now:
                raise AlreadyResolvedError(f"Agreement offer {event_id} has lapsed.")
            terminal = self._resolve(offer, target, now, actor)

        logger.info(
            f"agreement.{target.value}",
            extra=build_log_event(
                f"agreement.{target.value}",
                LogContext(
                    conversation_id=offer.conversation_id,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                    event_id=offer.id,
                ),
            ),
        )
        return terminal

    def expire_lapsed(self, now: datetime | None = None) -> list[int]:
        """Expire every pending offer whose validity window has elapsed."""
        now = now or utcnow()
        conversation_ids = self.db.scalars(
            select(Event.conversation_id).where(Event.type == EventType.AGREEMENT_SENT).distinct()
        ).all()
        expired: list[int] = []
        with self.unit_of_work():
            for conversation_id in conversation_ids:
                history = self.events.list_by_conversation(conversation_id)
                for event_id in lapsed_agreements(history, now, self.default_validity_days):
                    offer = self.events.get_event(event_id)
                    self._resolve(offer, AgreementStatus.EXPIRED, max(now, offer.created_at), None)
                    expired.append(event_id)
        if expired:
            logger.info(
                "agreement.expired",
                extra={"event": "agreement.expired", "count": len(expired), "event_ids": expired},
            )
        return expired

    def _resolve(self, offer: Event, target: AgreementStatus, at: datetime, actor: Actor | None) -> Event:
        event_type, status, timestamp_field = _OUTCOMES[target]
        terminal = self.events.append(
            offer.conversation_id,
            event_type,
            sender_id=actor.user_id if actor else None,
            sender_role=actor.role if actor else None,
            payload={"reference_message_id": offer.id},
            created_at=at,
        )
        self.events.patch_status(offer.id, {"status": status.value, timestamp_field: at.isoformat()})
        return terminal
