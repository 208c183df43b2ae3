"""Pydantic schema package for API contracts."""

from rendezvous.schemas.agreements import AgreementResponseRequest, AgreementSendRequest
from rendezvous.schemas.candidacies import (
    CandidacyResponseRequest,
    CandidacyStateResponse,
    CandidacySubmitRequest,
    CounterOfferRequest,
    ProposalTermsRequest,
)
from rendezvous.schemas.common import APIEnvelope, ErrorEnvelope
from rendezvous.schemas.credits import CreditBalanceResponse, TopUpRequest, TopUpResponse
from rendezvous.schemas.events import (
    ConversationCreateRequest,
    ConversationResponse,
    DocumentShareRequest,
    EventResponse,
    InboxItem,
    MessageCreateRequest,
    ReadReceipt,
)
from rendezvous.schemas.payments import (
    PaymentRequestCreateRequest,
    PaymentRequestRespondRequest,
    PaymentRequestResponse,
)

__all__ = [
    "APIEnvelope",
    "AgreementResponseRequest",
    "AgreementSendRequest",
    "CandidacyResponseRequest",
    "CandidacyStateResponse",
    "CandidacySubmitRequest",
    "ConversationCreateRequest",
    "ConversationResponse",
    "CounterOfferRequest",
    "CreditBalanceResponse",
    "DocumentShareRequest",
    "ErrorEnvelope",
    "EventResponse",
    "InboxItem",
    "MessageCreateRequest",
    "PaymentRequestCreateRequest",
    "PaymentRequestRespondRequest",
    "PaymentRequestResponse",
    "ProposalTermsRequest",
    "ReadReceipt",
    "TopUpRequest",
    "TopUpResponse",
]
