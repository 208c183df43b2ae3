"""Candidacy status derived from a conversation's event log.

Nothing here touches storage. Every reader calls
:func:`derive_candidacy_state` on the full ordered log after each refresh,
and services call it before deciding whether a ledger commit or release is
still due, so the log is the only authority on whether a candidacy chain
has been resolved.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from rendezvous.core.enums import (
    CANDIDACY_TERMINAL_TYPES,
    PROPOSAL_OPENING_TYPES,
    CandidacyStatus,
    EventType,
    ProposalStatus,
    SenderRole,
)


class LogEvent(Protocol):
    id: int
    type: EventType
    created_at: datetime
    sender_role: SenderRole | None
    payload: dict[str, Any]


@dataclass(frozen=True)
class CandidacyState:
    status: CandidacyStatus | None
    open_proposal_event_id: int | None = None
    last_proposal_event_id: int | None = None
    root_event_id: int | None = None

    @property
    def is_open(self) -> bool:
        return self.open_proposal_event_id is not None


NO_CANDIDACY = CandidacyState(status=None)

_TERMINAL_TO_STATUS = {
    EventType.CANDIDACY_ACCEPTED: CandidacyStatus.ACCEPTED,
    EventType.CANDIDACY_REFUSED: CandidacyStatus.REJECTED,
}

_PATCHED_TO_STATUS = {
    ProposalStatus.ACCEPTED.value: CandidacyStatus.ACCEPTED,
    ProposalStatus.REJECTED.value: CandidacyStatus.REJECTED,
    ProposalStatus.CANCELLED.value: CandidacyStatus.CANCELLED,
}


def log_order(events: Iterable[LogEvent]) -> list[LogEvent]:
    """Sort events by log order: creation time, then insertion id."""
    return sorted(events, key=lambda event: (event.created_at, event.id))


def _reference(event: LogEvent) -> int | None:
    value = (event.payload or {}).get("reference_message_id")
    return int(value) if value is not None else None


def proposal_chain(proposal_id: int, events: Sequence[LogEvent]) -> list[LogEvent]:
    """Return the chain of proposals ending at ``proposal_id``, root first.

    Counter-offers point at the proposal they supersede through
    ``reference_message_id``; the walk stops at a CANDIDACY_SUBMITTED event
    or at a reference that is missing from the log.
    """
    by_id = {event.id: event for event in events if event.type in PROPOSAL_OPENING_TYPES}
    chain: list[LogEvent] = []
    seen: set[int] = set()
    current = by_id.get(proposal_id)
    while current is not None and current.id not in seen:
        chain.append(current)
        seen.add(current.id)
        if current.type is EventType.CANDIDACY_SUBMITTED:
            break
        parent = _reference(current)
        current = by_id.get(parent) if parent is not None else None
    chain.reverse()
    return chain


def derive_candidacy_state(events: Iterable[LogEvent]) -> CandidacyState:
    """Derive the current candidacy status from a conversation's events.

    Only the most recent proposal-opening event matters. It is resolved by a
    later CANDIDACY_ACCEPTED/CANDIDACY_REFUSED event that references it (or
    one of its ancestors, or nothing at all), or by a ``cancelled`` status
    patch on the proposal itself. Without a resolution it is the open
    proposal.
    """
    ordered = log_order(events)
    last_index = None
    for index, event in enumerate(ordered):
        if event.type in PROPOSAL_OPENING_TYPES:
            last_index = index
    if last_index is None:
        return NO_CANDIDACY

    proposal = ordered[last_index]
    chain = proposal_chain(proposal.id, ordered)
    chain_ids = {event.id for event in chain}
    root_id = chain[0].id

    status = _resolve(proposal, ordered[last_index + 1 :], chain_ids)
    return CandidacyState(
        status=status,
        open_proposal_event_id=proposal.id if status is CandidacyStatus.PENDING else None,
        last_proposal_event_id=proposal.id,
        root_event_id=root_id,
    )


def _resolve(proposal: LogEvent, later: Sequence[LogEvent], chain_ids: set[int]) -> CandidacyStatus:
    for event in later:
        if event.type not in CANDIDACY_TERMINAL_TYPES:
            continue
        reference = _reference(event)
        if reference is None or reference in chain_ids:
            return _TERMINAL_TO_STATUS[event.type]

    patched = (proposal.payload or {}).get("status")
    if patched in _PATCHED_TO_STATUS:
        return _PATCHED_TO_STATUS[patched]
    return CandidacyStatus.PENDING


def has_accepted_candidacy(events: Iterable[LogEvent]) -> bool:
    """True when any candidacy chain of the conversation ended accepted."""
    seen_proposal = False
    for event in log_order(events):
        if event.type in PROPOSAL_OPENING_TYPES:
            seen_proposal = True
        elif event.type is EventType.CANDIDACY_ACCEPTED and seen_proposal:
            return True
    return False
