"""Candidacy request/response schemas for API contracts."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from rendezvous.core.enums import CandidacyStatus, RentPeriod


class ProposalTermsRequest(BaseModel):
    rent: float | None = Field(default=None, ge=0)
    rent_period: RentPeriod | None = None
    commission_percent: float | None = Field(default=None, ge=0, le=100)
    validity_days: int | None = Field(default=None, ge=1, le=365)
    partnership_start_at: date | None = None
    partnership_end_at: date | None = None

    def as_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class CandidacySubmitRequest(BaseModel):
    brand_id: int = Field(ge=1)
    showroom_id: int = Field(ge=1)
    listing_id: int | None = Field(default=None, ge=1)
    terms: ProposalTermsRequest = Field(default_factory=ProposalTermsRequest)
    note: str | None = Field(default=None, max_length=5000)


class CandidacyResponseRequest(BaseModel):
    decision: Literal["accept", "reject"]


class CounterOfferRequest(BaseModel):
    terms: ProposalTermsRequest = Field(default_factory=ProposalTermsRequest)
    note: str | None = Field(default=None, max_length=5000)


class CandidacyStateResponse(BaseModel):
    conversation_id: int
    status: CandidacyStatus | None = None
    open_proposal_event_id: int | None = None
    last_proposal_event_id: int | None = None
    root_event_id: int | None = None
