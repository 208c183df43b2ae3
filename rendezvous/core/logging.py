"""Structured logging helpers for conversation commands."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    conversation_id: int | None = None
    actor_id: str | None = None
    actor_role: str | None = None
    brand_id: int | None = None
    event_id: int | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload, suitable for ``extra=``."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "conversation_id": context.conversation_id,
        "actor_id": context.actor_id,
        "actor_role": context.actor_role,
        "brand_id": context.brand_id,
        "event_id": context.event_id,
    }
    payload.update(fields)
    return payload
