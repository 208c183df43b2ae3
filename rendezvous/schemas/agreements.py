"""Agreement offer schemas for API contracts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from rendezvous.schemas.candidacies import ProposalTermsRequest


class AgreementSendRequest(BaseModel):
    terms: ProposalTermsRequest
    description: str | None = Field(default=None, max_length=5000)


class AgreementResponseRequest(BaseModel):
    decision: Literal["accept", "decline"]
