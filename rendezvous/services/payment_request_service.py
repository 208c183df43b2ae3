"""Payment request lifecycle between the two sides of a conversation."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from rendezvous.core.config import get_config
from rendezvous.core.enums import EventType, PaymentRequestStatus, PaymentRequestType, SenderRole
from rendezvous.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from rendezvous.core.logging import LogContext, build_log_event
from rendezvous.models import PaymentRequest
from rendezvous.orchestration.state_machine import StateMachine
from rendezvous.services.base_service import BaseService
from rendezvous.services.event_log_service import Actor, EventLogService
from rendezvous.sync.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)

PAYMENT_TRANSITIONS = StateMachine(
    {
        PaymentRequestStatus.PENDING: {
            PaymentRequestStatus.ACCEPTED,
            PaymentRequestStatus.CONTESTED,
            PaymentRequestStatus.CANCELLED,
        },
        PaymentRequestStatus.ACCEPTED: {PaymentRequestStatus.COMPLETED, PaymentRequestStatus.CANCELLED},
        PaymentRequestStatus.CONTESTED: {PaymentRequestStatus.CANCELLED},
        PaymentRequestStatus.COMPLETED: set(),
        PaymentRequestStatus.CANCELLED: set(),
    }
)

SETTLEMENT_STATUSES = frozenset({PaymentRequestStatus.COMPLETED, PaymentRequestStatus.CANCELLED})


def platform_fee_cents(amount_cents: int, fee_percent: int) -> int:
    """Platform fee rounded up to the next cent, in integer arithmetic."""
    return -(-amount_cents * fee_percent // 100)


class PaymentRequestService(BaseService):
    """Create and resolve payment requests.

    The row in ``payment_requests`` is authoritative for the status; every
    change is mirrored onto the PAYMENT_REQUESTED event so readers of the
    conversation log see it without a second lookup.
    """

    def __init__(self, db: Session | None = None, broadcaster: EventBroadcaster | None = None) -> None:
        super().__init__(db, broadcaster)
        self.events = EventLogService(self.db, self.broadcaster)

    def get(self, request_id: int) -> PaymentRequest:
        request = self.db.get(PaymentRequest, request_id)
        if request is None:
            raise NotFoundError(f"Payment request not found: {request_id}")
        return request

    def list_for(
        self,
        actor: Actor,
        conversation_id: int | None = None,
        status: PaymentRequestStatus | None = None,
    ) -> list[PaymentRequest]:
        """Requests where the actor's account is one of the two parties."""
        stmt = select(PaymentRequest).order_by(PaymentRequest.created_at.desc(), PaymentRequest.id.desc())
        if actor.role is SenderRole.BRAND:
            stmt = stmt.where(PaymentRequest.counterpart_brand_id == actor.account_id)
        else:
            stmt = stmt.where(PaymentRequest.counterpart_showroom_id == actor.account_id)
        if conversation_id is not None:
            stmt = stmt.where(PaymentRequest.conversation_id == conversation_id)
        if status is not None:
            stmt = stmt.where(PaymentRequest.status == PaymentRequestStatus(status))
        return list(self.db.scalars(stmt))

    def create(
        self,
        conversation_id: int,
        request_type: PaymentRequestType,
        amount_cents: int,
        actor: Actor,
        *,
        motif: str | None = None,
        attachment_path: str | None = None,
        currency: str | None = None,
    ) -> PaymentRequest:
        config = get_config()
        if amount_cents <= 0:
            raise ValidationError("amount_cents must be greater than zero.")
        currency = (currency or config.DEFAULT_CURRENCY).strip().lower()
        if len(currency) != 3:
            raise ValidationError("currency must be a 3-letter ISO code.")

        with self.unit_of_work():
            conversation = self.events.get_conversation(conversation_id)
            self.events.assert_participant(conversation, actor)
            request = PaymentRequest(
                conversation_id=conversation.id,
                type=PaymentRequestType(request_type),
                initiator_side=actor.role,
                counterpart_brand_id=conversation.brand_id,
                counterpart_showroom_id=conversation.showroom_id,
                amount_cents=amount_cents,
                fee_cents=platform_fee_cents(amount_cents, config.PLATFORM_FEE_PERCENT),
                currency=currency,
                motif=motif.strip() if motif and motif.strip() else None,
                attachment_path=attachment_path,
                status=PaymentRequestStatus.PENDING,
            )
            self.db.add(request)
            self.db.flush()
            event = self.events.append(
                conversation.id,
                EventType.PAYMENT_REQUESTED,
                sender_id=actor.user_id,
                sender_role=actor.role,
                payload={
                    "payment_request_id": request.id,
                    "request_type": request.type.value,
                    "amount_cents": request.amount_cents,
                    "fee_cents": request.fee_cents,
                    "currency": request.currency,
                    "status": request.status.value,
                    "motif": request.motif,
                },
            )
            request.event_id = event.id

        logger.info(
            "payment_request.created",
            extra=build_log_event(
                "payment_request.created",
                LogContext(
                    conversation_id=conversation_id,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                    brand_id=request.counterpart_brand_id,
                    event_id=event.id,
                ),
                payment_request_id=request.id,
                amount_cents=request.amount_cents,
                fee_cents=request.fee_cents,
            ),
        )
        return request

    def accept(self, request_id: int, actor: Actor) -> PaymentRequest:
        with self.unit_of_work():
            request = self._for_counterpart(request_id, actor)
            request.contest_note = None
            request.proposed_amount_cents = None
            self._transition(request, PaymentRequestStatus.ACCEPTED)
        self._log("payment_request.accepted", request, actor)
        return request

    def contest(
        self,
        request_id: int,
        actor: Actor,
        note: str,
        proposed_amount_cents: int | None = None,
    ) -> PaymentRequest:
        """Dispute a pending request; a note explaining why is mandatory."""
        if not note or not note.strip():
            raise ValidationError("A contest note is required.")
        if proposed_amount_cents is not None and proposed_amount_cents <= 0:
            raise ValidationError("proposed_amount_cents must be greater than zero.")
        with self.unit_of_work():
            request = self._for_counterpart(request_id, actor)
            request.contest_note = note.strip()
            request.proposed_amount_cents = proposed_amount_cents
            self._transition(request, PaymentRequestStatus.CONTESTED)
        self._log("payment_request.contested", request, actor)
        return request

    def settle(self, request_id: int, outcome: PaymentRequestStatus) -> PaymentRequest:
        """Close a request once the external payment step completed or was abandoned."""
        outcome = PaymentRequestStatus(outcome)
        if outcome not in SETTLEMENT_STATUSES:
            raise ValidationError(f"Settlement outcome must be completed or cancelled, got {outcome.value}.")
        with self.unit_of_work():
            request = self.get(request_id)
            self._transition(request, outcome)
        self._log(f"payment_request.{outcome.value}", request, None)
        return request

    def _for_counterpart(self, request_id: int, actor: Actor) -> PaymentRequest:
        request = self.get(request_id)
        self.events.assert_participant(self.events.get_conversation(request.conversation_id), actor)
        if actor.role is request.initiator_side:
            raise PermissionDeniedError("Only the counterpart of a payment request can respond to it.")
        return request

    def _transition(self, request: PaymentRequest, target: PaymentRequestStatus) -> None:
        PAYMENT_TRANSITIONS.assert_transition(request.status, target)
        request.status = target
        self.db.flush()
        if request.event_id is not None:
            self.events.patch_status(
                request.event_id,
                {
                    "status": target.value,
                    "contest_note": request.contest_note,
                    "proposed_amount_cents": request.proposed_amount_cents,
                },
            )

    def _log(self, event: str, request: PaymentRequest, actor: Actor | None) -> None:
        logger.info(
            event,
            extra=build_log_event(
                event,
                LogContext(
                    conversation_id=request.conversation_id,
                    actor_id=actor.user_id if actor else None,
                    actor_role=actor.role.value if actor else None,
                    brand_id=request.counterpart_brand_id,
                    event_id=request.event_id,
                ),
                payment_request_id=request.id,
                status=request.status.value,
            ),
        )
