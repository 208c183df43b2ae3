"""Brand credit endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rendezvous.core.dependencies import get_actor, get_db_session
from rendezvous.core.enums import SenderRole
from rendezvous.core.exceptions import PermissionDeniedError
from rendezvous.schemas.credits import CreditBalanceResponse, TopUpRequest, TopUpResponse
from rendezvous.services.event_log_service import Actor
from rendezvous.services.ledger_service import CreditBalance, CreditLedgerService

router = APIRouter(tags=["credits"])


def _balance_response(balance: CreditBalance) -> CreditBalanceResponse:
    return CreditBalanceResponse(
        brand_id=balance.brand_id,
        credits=balance.credits,
        reserved=balance.reserved,
        available=balance.available,
    )


@router.get("/brands/{brand_id}/credits", response_model=CreditBalanceResponse)
def get_credits(
    brand_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> CreditBalanceResponse:
    if actor.role is not SenderRole.BRAND or actor.account_id != brand_id:
        raise PermissionDeniedError("Only the brand itself can read its credit balance.")
    return _balance_response(CreditLedgerService(db).balance(brand_id))


@router.post("/brands/{brand_id}/credits/top-up", response_model=TopUpResponse)
def top_up_credits(
    brand_id: int,
    payload: TopUpRequest,
    db: Session = Depends(get_db_session),
) -> TopUpResponse:
    # Settlement callback from the payment processor; replays are no-ops.
    result = CreditLedgerService(db).top_up(brand_id, payload.credit_count, payload.purchase_reference)
    return TopUpResponse(applied=result.applied, balance=_balance_response(result.balance))
