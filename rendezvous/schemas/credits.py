"""Credit balance schemas for API contracts."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreditBalanceResponse(BaseModel):
    brand_id: int
    credits: int
    reserved: int
    available: int


class TopUpRequest(BaseModel):
    credit_count: int = Field(ge=1)
    purchase_reference: str = Field(min_length=1, max_length=100)


class TopUpResponse(BaseModel):
    applied: bool
    balance: CreditBalanceResponse
