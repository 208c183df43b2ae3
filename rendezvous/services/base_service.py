"""Shared service base with robust session lifecycle behavior."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from rendezvous.core.exceptions import StoreUnavailableError
from rendezvous.database import db as db_module
from rendezvous.sync.broadcaster import EventBroadcaster, PublishedEvent, default_broadcaster

logger = logging.getLogger(__name__)

PENDING_PUBLICATIONS_KEY = "pending_publications"


class BaseService:
    """Base class for services that operate on a SQLAlchemy session.

    Services composed for one command share the same session, so events
    queued with :meth:`queue_publication` by any of them are published once
    the shared transaction commits, and dropped if it rolls back.
    """

    def __init__(self, db: Session | None = None, broadcaster: EventBroadcaster | None = None) -> None:
        self.db = db or db_module.SessionLocal()
        self.broadcaster = broadcaster or default_broadcaster

    def queue_publication(self, event) -> None:
        self.db.info.setdefault(PENDING_PUBLICATIONS_KEY, {})[event.id] = event

    def commit(self) -> None:
        """Commit current transaction, rollback on failure, then publish."""
        try:
            self.db.commit()
        except OperationalError as exc:
            self.rollback()
            logger.warning("store.commit_failed", extra={"event": "store.commit_failed", "error": str(exc.orig)})
            raise StoreUnavailableError(f"Store unavailable: {exc.orig}") from exc
        except Exception:
            self.rollback()
            raise
        self._publish_pending()

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        """Run a command body; commit on success, roll back on any error."""
        try:
            yield
        except OperationalError as exc:
            self.rollback()
            raise StoreUnavailableError(f"Store unavailable: {exc.orig}") from exc
        except Exception:
            self.rollback()
            raise
        self.commit()

    def rollback(self) -> None:
        self.db.info.pop(PENDING_PUBLICATIONS_KEY, None)
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    def _publish_pending(self) -> None:
        pending = self.db.info.pop(PENDING_PUBLICATIONS_KEY, {})
        for event in pending.values():
            self.broadcaster.publish(event.conversation_id, PublishedEvent.from_row(event))

    def __enter__(self) -> "BaseService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
