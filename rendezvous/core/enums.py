"""Canonical enum values for conversations, proposals, credits and payments."""

from __future__ import annotations

import enum


class SenderRole(str, enum.Enum):
    BRAND = "brand"
    SHOWROOM = "showroom"

    @property
    def counterpart(self) -> "SenderRole":
        return SenderRole.SHOWROOM if self is SenderRole.BRAND else SenderRole.BRAND


class EventType(str, enum.Enum):
    PLAIN_TEXT = "PLAIN_TEXT"
    CANDIDACY_SUBMITTED = "CANDIDACY_SUBMITTED"
    CANDIDACY_ACCEPTED = "CANDIDACY_ACCEPTED"
    CANDIDACY_REFUSED = "CANDIDACY_REFUSED"
    OFFER_COUNTERED = "OFFER_COUNTERED"
    AGREEMENT_SENT = "AGREEMENT_SENT"
    AGREEMENT_ACCEPTED = "AGREEMENT_ACCEPTED"
    AGREEMENT_DECLINED = "AGREEMENT_DECLINED"
    AGREEMENT_EXPIRED = "AGREEMENT_EXPIRED"
    CONTRACT_DOCUMENT = "CONTRACT_DOCUMENT"
    FILE_ATTACHMENT = "FILE_ATTACHMENT"
    PAYMENT_REQUESTED = "PAYMENT_REQUESTED"


PROPOSAL_OPENING_TYPES = frozenset({EventType.CANDIDACY_SUBMITTED, EventType.OFFER_COUNTERED})
CANDIDACY_TERMINAL_TYPES = frozenset({EventType.CANDIDACY_ACCEPTED, EventType.CANDIDACY_REFUSED})
AGREEMENT_TERMINAL_TYPES = frozenset(
    {EventType.AGREEMENT_ACCEPTED, EventType.AGREEMENT_DECLINED, EventType.AGREEMENT_EXPIRED}
)


class ProposalStatus(str, enum.Enum):
    """Values stored in the ``status`` field of a proposal event payload."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COUNTERED = "countered"
    DECLINED = "declined"
    EXPIRED = "expired"


class CandidacyStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class AgreementStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class RentPeriod(str, enum.Enum):
    WEEK = "week"
    MONTH = "month"
    ONE_OFF = "one_off"


class PaymentRequestType(str, enum.Enum):
    RENT = "rent"
    SALES = "sales"


class PaymentRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CONTESTED = "contested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LedgerEntryKind(str, enum.Enum):
    RESERVE = "reserve"
    COMMIT = "commit"
    RELEASE = "release"
    TOP_UP = "top_up"
