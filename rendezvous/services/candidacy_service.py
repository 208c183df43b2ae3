"""Candidacy commands: submit, respond, counter and cancel."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from rendezvous.core.enums import PROPOSAL_OPENING_TYPES, EventType, ProposalStatus, SenderRole
from rendezvous.core.exceptions import (
    AlreadyResolvedError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from rendezvous.core.logging import LogContext, build_log_event
from rendezvous.models import Event, Showroom
from rendezvous.models.base import utcnow
from rendezvous.orchestration.candidacy import CandidacyState, derive_candidacy_state, has_accepted_candidacy
from rendezvous.services.base_service import BaseService
from rendezvous.services.event_log_service import Actor, EventLogService
from rendezvous.services.ledger_service import CreditLedgerService, reserve_reference, settle_reference
from rendezvous.sync.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)


def _context(event: Event, actor: Actor, brand_id: int | None = None) -> LogContext:
    return LogContext(
        conversation_id=event.conversation_id,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
        brand_id=brand_id,
        event_id=event.id,
    )


class CandidacyService(BaseService):
    """Negotiation protocol between a brand and a showroom.

    Every command runs as one transaction: the ledger mutation, the status
    patch on the proposal and any new event commit together or not at all.
    """

    def __init__(self, db: Session | None = None, broadcaster: EventBroadcaster | None = None) -> None:
        super().__init__(db, broadcaster)
        self.events = EventLogService(self.db, self.broadcaster)
        self.ledger = CreditLedgerService(self.db, self.broadcaster)

    def state(self, conversation_id: int) -> CandidacyState:
        self.events.get_conversation(conversation_id)
        return derive_candidacy_state(self.events.list_by_conversation(conversation_id))

    def submit_candidacy(
        self,
        brand_id: int,
        showroom_id: int,
        actor: Actor,
        *,
        listing_id: int | None = None,
        terms: dict[str, Any] | None = None,
        note: str | None = None,
    ) -> Event:
        """Open a candidacy and escrow one of the brand's credits."""
        if actor.role is not SenderRole.BRAND or actor.account_id != brand_id:
            raise PermissionDeniedError("Only the brand itself can submit a candidacy.")
        showroom = self.db.get(Showroom, showroom_id)
        if showroom is None:
            raise NotFoundError(f"Showroom not found: {showroom_id}")

        with self.unit_of_work():
            conversation = self.events.get_or_create_conversation(brand_id, showroom_id, listing_id)
            history = self.events.list_by_conversation(conversation.id)
            if derive_candidacy_state(history).is_open:
                raise ConflictError(f"A candidacy is already pending in conversation {conversation.id}.")
            if has_accepted_candidacy(history):
                raise ConflictError(f"Brand {brand_id} is already partnered with showroom {showroom_id}.")

            payload = dict(terms or {})
            payload.update(
                status=ProposalStatus.PENDING.value,
                listing_id=listing_id,
                showroom_name=showroom.name,
                showroom_city=showroom.city,
            )
            submitted = self.events.append(
                conversation.id,
                EventType.CANDIDACY_SUBMITTED,
                sender_id=actor.user_id,
                sender_role=actor.role,
                payload=payload,
            )
            self.ledger.reserve(brand_id, reserve_reference(submitted.id))
            if note and note.strip():
                self.events.append(
                    conversation.id,
                    EventType.PLAIN_TEXT,
                    sender_id=actor.user_id,
                    sender_role=actor.role,
                    content=note,
                )

        logger.info(
            "candidacy.submitted",
            extra=build_log_event("candidacy.submitted", _context(submitted, actor, brand_id)),
        )
        return submitted

    def respond(self, event_id: int, accept: bool, actor: Actor, at: datetime | None = None) -> Event:
        """Accept or refuse the open proposal; returns the terminal event."""
        with self.unit_of_work():
            proposal, state = self._open_proposal(event_id, actor)
            if proposal.sender_role is actor.role:
                raise PermissionDeniedError("The sender of a proposal cannot respond to it.")
            brand_id = self.events.get_conversation(proposal.conversation_id).brand_id
            timestamp = at or utcnow()
            reference = settle_reference(state.root_event_id)

            if accept:
                result = self.ledger.commit_reservation(brand_id, reference)
                patch = {"status": ProposalStatus.ACCEPTED.value, "accepted_at": timestamp.isoformat()}
                terminal_type = EventType.CANDIDACY_ACCEPTED
            else:
                result = self.ledger.release(brand_id, reference)
                patch = {"status": ProposalStatus.REJECTED.value, "declined_at": timestamp.isoformat()}
                terminal_type = EventType.CANDIDACY_REFUSED
            if not result.applied:
                raise AlreadyResolvedError(f"Candidacy {state.root_event_id} was already settled.")

            terminal = self.events.append(
                proposal.conversation_id,
                terminal_type,
                sender_id=actor.user_id,
                sender_role=actor.role,
                payload={"reference_message_id": proposal.id},
                created_at=timestamp,
            )
            self.events.patch_status(proposal.id, patch)

        logger.info(
            "candidacy.accepted" if accept else "candidacy.refused",
            extra=build_log_event(
                "candidacy.accepted" if accept else "candidacy.refused",
                _context(proposal, actor, brand_id),
                root_event_id=state.root_event_id,
            ),
        )
        return terminal

    def counter_offer(
        self,
        event_id: int,
        actor: Actor,
        terms: dict[str, Any] | None = None,
        note: str | None = None,
    ) -> Event:
        """Supersede the open proposal with new terms. No credit moves."""
        with self.unit_of_work():
            proposal, _ = self._open_proposal(event_id, actor)
            if proposal.sender_role is actor.role:
                raise PermissionDeniedError("A proposal cannot be countered by its own sender.")
            payload = dict(terms or {})
            payload["reference_message_id"] = proposal.id
            if note and note.strip():
                payload["negotiation_message"] = note.strip()
            counter = self.events.append(
                proposal.conversation_id,
                EventType.OFFER_COUNTERED,
                sender_id=actor.user_id,
                sender_role=actor.role,
                payload=payload,
            )
            self.events.patch_status(proposal.id, {"status": ProposalStatus.COUNTERED.value})

        logger.info("candidacy.countered", extra=build_log_event("candidacy.countered", _context(counter, actor)))
        return counter

    def cancel(self, event_id: int, actor: Actor) -> Event:
        """Withdraw the open proposal and release the escrowed credit."""
        with self.unit_of_work():
            proposal, state = self._open_proposal(event_id, actor)
            if proposal.sender_role is not actor.role:
                raise PermissionDeniedError("Only the sender of a proposal can cancel it.")
            brand_id = self.events.get_conversation(proposal.conversation_id).brand_id
            result = self.ledger.release(brand_id, settle_reference(state.root_event_id))
            if not result.applied:
                raise AlreadyResolvedError(f"Candidacy {state.root_event_id} was already settled.")
            cancelled = self.events.patch_status(
                proposal.id,
                {"status": ProposalStatus.CANCELLED.value, "cancelled_at": utcnow().isoformat()},
            )

        logger.info(
            "candidacy.cancelled",
            extra=build_log_event("candidacy.cancelled", _context(proposal, actor, brand_id)),
        )
        return cancelled

    def _open_proposal(self, event_id: int, actor: Actor) -> tuple[Event, CandidacyState]:
        proposal = self.events.get_event(event_id)
        if proposal.type not in PROPOSAL_OPENING_TYPES:
            raise ValidationError(f"Event {event_id} is not a candidacy proposal.")
        self.events.assert_participant(self.events.get_conversation(proposal.conversation_id), actor)
        state = derive_candidacy_state(self.events.list_by_conversation(proposal.conversation_id))
        if state.open_proposal_event_id != proposal.id:
            raise AlreadyResolvedError(f"Proposal {event_id} is no longer open.")
        return proposal, state
