"""Agreement offer status derived from the event log."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from rendezvous.core.enums import AGREEMENT_TERMINAL_TYPES, AgreementStatus, EventType
from rendezvous.orchestration.candidacy import LogEvent, log_order

_TERMINAL_TO_STATUS = {
    EventType.AGREEMENT_ACCEPTED: AgreementStatus.ACCEPTED,
    EventType.AGREEMENT_DECLINED: AgreementStatus.DECLINED,
    EventType.AGREEMENT_EXPIRED: AgreementStatus.EXPIRED,
}


@dataclass(frozen=True)
class AgreementState:
    event_id: int
    status: AgreementStatus
    expires_at: datetime | None


def agreement_expiry(event: LogEvent, default_validity_days: int) -> datetime | None:
    """When an agreement offer stops being actionable.

    An explicit ``validity_days`` counts from the offer; otherwise an offer
    tied to a partnership window lapses when the window opens; otherwise the
    default validity applies.
    """
    payload = event.payload or {}
    validity = payload.get("validity_days")
    if validity is not None:
        return event.created_at + timedelta(days=int(validity))
    start = payload.get("partnership_start_at")
    if start:
        return datetime.combine(date.fromisoformat(str(start)), time.min)
    return event.created_at + timedelta(days=default_validity_days)


def derive_agreement_states(
    events: Iterable[LogEvent], default_validity_days: int
) -> dict[int, AgreementState]:
    """Map every AGREEMENT_SENT event id to its current state."""
    ordered = log_order(events)
    states: dict[int, AgreementState] = {}
    for event in ordered:
        if event.type is EventType.AGREEMENT_SENT:
            states[event.id] = AgreementState(
                event_id=event.id,
                status=AgreementStatus.PENDING,
                expires_at=agreement_expiry(event, default_validity_days),
            )
    for event in ordered:
        if event.type not in AGREEMENT_TERMINAL_TYPES:
            continue
        reference = (event.payload or {}).get("reference_message_id")
        current = states.get(int(reference)) if reference is not None else None
        if current is not None and current.status is AgreementStatus.PENDING:
            states[current.event_id] = AgreementState(
                event_id=current.event_id,
                status=_TERMINAL_TO_STATUS[event.type],
                expires_at=current.expires_at,
            )
    return states


def lapsed_agreements(
    events: Iterable[LogEvent], now: datetime, default_validity_days: int
) -> list[int]:
    """Ids of pending agreement offers whose validity window has elapsed."""
    return [
        state.event_id
        for state in derive_agreement_states(events, default_validity_days).values()
        if state.status is AgreementStatus.PENDING and state.expires_at is not None and state.expires_at <= now
    ]
