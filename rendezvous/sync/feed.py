"""A reader's local, eventually consistent copy of one conversation log."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from threading import Lock

from rendezvous.orchestration.candidacy import CandidacyState, derive_candidacy_state, log_order
from rendezvous.sync.broadcaster import EventBroadcaster, PublishedEvent, Subscription

logger = logging.getLogger(__name__)

Loader = Callable[[int], Sequence[PublishedEvent]]
ReadMarker = Callable[[int, str], int]


def _version(event: PublishedEvent) -> tuple:
    """Ordering key between two versions of the same event.

    Status patches bump ``updated_at``; at equal timestamps a resolved status
    wins over ``pending``.
    """
    status = (event.payload or {}).get("status")
    resolved = status is not None and status != "pending"
    return (event.updated_at or event.created_at, resolved)


class ConversationFeed:
    """Merge pushed events into a local copy and reconcile by full re-fetch.

    Push delivery is best effort, so the copy is also reconciled with the store
    on focus, on a fixed interval and on demand. A failed re-fetch keeps the
    previous copy and flags the feed as degraded instead of raising.
    """

    def __init__(
        self,
        conversation_id: int,
        loader: Loader,
        reader_id: str | None = None,
        read_marker: ReadMarker | None = None,
        poll_interval_seconds: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.conversation_id = conversation_id
        self.reader_id = reader_id
        self.poll_interval_seconds = poll_interval_seconds
        self.degraded = False
        self._loader = loader
        self._read_marker = read_marker
        self._clock = clock
        self._events: dict[int, PublishedEvent] = {}
        self._last_refresh: float | None = None
        self._subscription: Subscription | None = None
        self._lock = Lock()

    @property
    def events(self) -> list[PublishedEvent]:
        with self._lock:
            return log_order(self._events.values())

    @property
    def candidacy_state(self) -> CandidacyState:
        return derive_candidacy_state(self.events)

    def apply(self, event: PublishedEvent) -> bool:
        """Upsert a pushed insert or update; return whether the copy changed.

        Pushes may arrive out of order, so an older version of an event never
        replaces a newer one.
        """
        if event.conversation_id != self.conversation_id:
            return False
        with self._lock:
            return self._merge(event)

    def refresh(self, now: float | None = None) -> bool:
        """Re-fetch the whole log and merge it into the local copy."""
        try:
            fetched = list(self._loader(self.conversation_id))
        except Exception:
            self.degraded = True
            logger.warning(
                "sync.refresh_failed",
                exc_info=True,
                extra={"event": "sync.refresh_failed", "conversation_id": self.conversation_id},
            )
            return False
        with self._lock:
            for event in fetched:
                self._merge(event)
        self._last_refresh = self._clock() if now is None else now
        self.degraded = False
        return True

    def on_focus(self) -> bool:
        return self.refresh()

    def tick(self, now: float | None = None) -> bool:
        """Refresh when the polling interval has elapsed; return whether it ran."""
        now = self._clock() if now is None else now
        if self._last_refresh is not None and now - self._last_refresh < self.poll_interval_seconds:
            return False
        self.refresh(now)
        return True

    def mark_read(self) -> int:
        if self.reader_id is None:
            return 0
        updated = 0
        if self._read_marker is not None:
            updated = self._read_marker(self.conversation_id, self.reader_id)
        with self._lock:
            for event_id, event in list(self._events.items()):
                if event.sender_id != self.reader_id and not event.is_read:
                    self._events[event_id] = replace(event, is_read=True)
        return updated

    def attach(self, broadcaster: EventBroadcaster) -> Subscription:
        self.detach()
        self._subscription = broadcaster.subscribe(self.conversation_id, self.apply)
        return self._subscription

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _merge(self, event: PublishedEvent) -> bool:
        stored = self._events.get(event.id)
        if stored is not None:
            if _version(event) < _version(stored):
                return False
            if stored.is_read and not event.is_read:
                event = replace(event, is_read=True)
        self._events[event.id] = event
        return stored != event
