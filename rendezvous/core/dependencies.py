"""Dependency providers for API handlers."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Header
from sqlalchemy.orm import Session

from rendezvous.core.config import Config, get_config
from rendezvous.core.enums import SenderRole
from rendezvous.core.exceptions import PermissionDeniedError
from rendezvous.database.db import get_db
from rendezvous.services.event_log_service import Actor
from rendezvous.sync.broadcaster import EventBroadcaster, default_broadcaster


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_broadcaster() -> EventBroadcaster:
    return default_broadcaster


def get_actor(
    actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
    actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
    account_id: str | None = Header(default=None, alias="X-Account-Id"),
) -> Actor:
    """Resolve the acting user from request headers set by the upstream gateway."""
    if not actor_id or not actor_role or not account_id:
        raise PermissionDeniedError("X-Actor-Id, X-Actor-Role and X-Account-Id headers are required.")
    try:
        return Actor(user_id=actor_id.strip(), role=SenderRole(actor_role.strip().lower()), account_id=int(account_id))
    except ValueError as exc:
        raise PermissionDeniedError("Invalid actor headers.") from exc
