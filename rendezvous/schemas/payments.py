"""Payment request schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rendezvous.core.enums import PaymentRequestStatus, PaymentRequestType, SenderRole


class PaymentRequestCreateRequest(BaseModel):
    type: PaymentRequestType
    amount_cents: int = Field(gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    motif: str | None = Field(default=None, max_length=5000)
    attachment_path: str | None = Field(default=None, max_length=512)


class PaymentRequestRespondRequest(BaseModel):
    decision: Literal["accept", "contest"]
    note: str | None = Field(default=None, max_length=5000)
    proposed_amount_cents: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _note_for_contest(self) -> "PaymentRequestRespondRequest":
        if self.decision == "contest" and not (self.note or "").strip():
            raise ValueError("a contest requires a note")
        return self


class PaymentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    type: PaymentRequestType
    initiator_side: SenderRole
    counterpart_brand_id: int
    counterpart_showroom_id: int
    amount_cents: int
    fee_cents: int
    currency: str
    motif: str | None = None
    attachment_path: str | None = None
    status: PaymentRequestStatus
    contest_note: str | None = None
    proposed_amount_cents: int | None = None
    event_id: int | None = None
    created_at: datetime
    updated_at: datetime
