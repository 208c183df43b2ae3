"""In-process publish/subscribe hub for conversation events."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any

from rendezvous.core.enums import EventType, SenderRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedEvent:
    """Detached snapshot of an event row, safe to hand to other threads."""

    id: int
    conversation_id: int
    type: EventType
    created_at: datetime
    updated_at: datetime | None = None
    sender_id: str | None = None
    sender_role: SenderRole | None = None
    content: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False

    @classmethod
    def from_row(cls, event: Any) -> "PublishedEvent":
        return cls(
            id=event.id,
            conversation_id=event.conversation_id,
            type=EventType(event.type),
            created_at=event.created_at,
            updated_at=event.updated_at,
            sender_id=event.sender_id,
            sender_role=SenderRole(event.sender_role) if event.sender_role else None,
            content=event.content,
            payload=dict(event.payload or {}),
            is_read=bool(event.is_read),
        )


Subscriber = Callable[[PublishedEvent], None]


@dataclass
class Subscription:
    conversation_id: int
    token: str
    _broadcaster: "EventBroadcaster"

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)


class EventBroadcaster:
    """One logical channel per conversation; delivery never fails the sender.

    With an executor, callbacks run off the publishing thread. Without one
    they run inline, which keeps tests deterministic.
    """

    def __init__(self, executor: Executor | None = None) -> None:
        self._executor = executor
        self._subscribers: dict[int, dict[str, Subscriber]] = defaultdict(dict)
        self._lock = Lock()

    def subscribe(self, conversation_id: int, callback: Subscriber) -> Subscription:
        token = uuid.uuid4().hex
        with self._lock:
            self._subscribers[conversation_id][token] = callback
        return Subscription(conversation_id=conversation_id, token=token, _broadcaster=self)

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            channel = self._subscribers.get(subscription.conversation_id)
            if channel is not None:
                channel.pop(subscription.token, None)
                if not channel:
                    del self._subscribers[subscription.conversation_id]

    def subscriber_count(self, conversation_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(conversation_id, {}))

    def publish(self, conversation_id: int, event: PublishedEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(conversation_id, {}).values())
        for callback in callbacks:
            if self._executor is not None:
                self._executor.submit(self._deliver, callback, event)
            else:
                self._deliver(callback, event)

    @staticmethod
    def _deliver(callback: Subscriber, event: PublishedEvent) -> None:
        try:
            callback(event)
        except Exception:
            logger.warning(
                "sync.delivery_failed",
                exc_info=True,
                extra={
                    "event": "sync.delivery_failed",
                    "conversation_id": event.conversation_id,
                    "event_id": event.id,
                },
            )


default_broadcaster = EventBroadcaster(
    executor=ThreadPoolExecutor(max_workers=4, thread_name_prefix="rendezvous-sync")
)
