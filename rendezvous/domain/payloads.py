"""Typed payloads for each event type of the conversation log.

The ``events.payload`` column is a JSON object. Every write goes through
:func:`validate_payload`, which picks the model registered for the event
type, so the fields each type requires are checked before anything is
persisted. Models forbid unknown keys; free text lives in dedicated fields
(``negotiation_message``, ``option_description``, ``motif``).
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from rendezvous.core.enums import EventType, PaymentRequestStatus, PaymentRequestType, ProposalStatus, RentPeriod
from rendezvous.core.exceptions import ValidationError

TERMINAL_TIMESTAMP_FIELDS = frozenset({"accepted_at", "declined_at", "cancelled_at", "expired_at"})
PATCHABLE_FIELDS = frozenset({"status"}) | TERMINAL_TIMESTAMP_FIELDS


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)


class _StatusBearing(_Payload):
    status: ProposalStatus = ProposalStatus.PENDING
    accepted_at: str | None = None
    declined_at: str | None = None
    cancelled_at: str | None = None
    expired_at: str | None = None


class ProposalTerms(_Payload):
    rent: float | None = Field(default=None, ge=0)
    rent_period: RentPeriod | None = None
    commission_percent: float | None = Field(default=None, ge=0, le=100)
    validity_days: int | None = Field(default=None, ge=1, le=365)
    partnership_start_at: date | None = None
    partnership_end_at: date | None = None

    @model_validator(mode="after")
    def _check_window(self) -> "ProposalTerms":
        if self.partnership_start_at and self.partnership_end_at:
            if self.partnership_end_at < self.partnership_start_at:
                raise ValueError("partnership_end_at must not precede partnership_start_at")
        return self

    def has_terms(self) -> bool:
        return any(
            value is not None
            for value in (self.rent, self.rent_period, self.commission_percent, self.validity_days)
        )


class PlainTextPayload(_Payload):
    pass


class CandidacySubmittedPayload(ProposalTerms, _StatusBearing):
    listing_id: int | None = None
    showroom_name: str | None = None
    showroom_city: str | None = None


class OfferCounteredPayload(ProposalTerms, _StatusBearing):
    reference_message_id: int
    negotiation_message: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def _require_content(self) -> "OfferCounteredPayload":
        if not self.has_terms() and not (self.negotiation_message or "").strip():
            raise ValueError("a counter-offer needs new terms or a negotiation message")
        return self


class ResolutionPayload(_Payload):
    reference_message_id: int


class AgreementSentPayload(ProposalTerms, _StatusBearing):
    option_description: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def _require_terms(self) -> "AgreementSentPayload":
        if self.commission_percent is None and self.rent is None:
            raise ValueError("an agreement needs a commission or a rent")
        return self


class DocumentPayload(_Payload):
    path: str = Field(min_length=1, max_length=512)
    file_name: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=128)


class PaymentRequestedPayload(_Payload):
    payment_request_id: int
    request_type: PaymentRequestType
    amount_cents: int = Field(gt=0)
    fee_cents: int = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    status: PaymentRequestStatus = PaymentRequestStatus.PENDING
    motif: str | None = Field(default=None, max_length=5000)
    contest_note: str | None = Field(default=None, max_length=5000)
    proposed_amount_cents: int | None = Field(default=None, gt=0)


PAYLOAD_MODELS: dict[EventType, type[_Payload]] = {
    EventType.PLAIN_TEXT: PlainTextPayload,
    EventType.CANDIDACY_SUBMITTED: CandidacySubmittedPayload,
    EventType.OFFER_COUNTERED: OfferCounteredPayload,
    EventType.CANDIDACY_ACCEPTED: ResolutionPayload,
    EventType.CANDIDACY_REFUSED: ResolutionPayload,
    EventType.AGREEMENT_SENT: AgreementSentPayload,
    EventType.AGREEMENT_ACCEPTED: ResolutionPayload,
    EventType.AGREEMENT_DECLINED: ResolutionPayload,
    EventType.AGREEMENT_EXPIRED: ResolutionPayload,
    EventType.CONTRACT_DOCUMENT: DocumentPayload,
    EventType.FILE_ATTACHMENT: DocumentPayload,
    EventType.PAYMENT_REQUESTED: PaymentRequestedPayload,
}

# Payment request events carry a payment status plus the contest details.
PAYMENT_PATCHABLE_FIELDS = frozenset({"status", "contest_note", "proposed_amount_cents"})


def parse_payload(event_type: EventType, data: dict[str, Any] | None) -> _Payload:
    """Return the typed payload for ``event_type``; raise ``ValidationError`` when invalid."""
    model = PAYLOAD_MODELS[EventType(event_type)]
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid payload for {EventType(event_type).value}: {exc.errors()}") from exc


def validate_payload(event_type: EventType, data: dict[str, Any] | None) -> dict[str, Any]:
    """Validate and normalize a payload into its JSON-ready storage form."""
    return parse_payload(event_type, data).model_dump(mode="json", exclude_none=True)


def patchable_fields(event_type: EventType) -> frozenset[str]:
    if EventType(event_type) is EventType.PAYMENT_REQUESTED:
        return PAYMENT_PATCHABLE_FIELDS
    if issubclass(PAYLOAD_MODELS[EventType(event_type)], _StatusBearing):
        return PATCHABLE_FIELDS
    return frozenset()
