"""Server-Sent Events stream of one conversation's published events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from rendezvous.schemas.events import EventResponse
from rendezvous.sync.broadcaster import EventBroadcaster, PublishedEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class DisconnectAware(Protocol):
    async def is_disconnected(self) -> bool: ...


def format_sse(event: PublishedEvent) -> str:
    """One SSE frame; the event id doubles as ``Last-Event-ID`` for reconnects."""
    data = EventResponse.model_validate(event).model_dump_json()
    return f"id: {event.id}\nevent: {event.type.value}\ndata: {data}\n\n"


async def event_stream(
    request: DisconnectAware,
    broadcaster: EventBroadcaster,
    conversation_id: int,
    heartbeat_seconds: float = 15.0,
) -> AsyncIterator[str]:
    """Yield SSE frames for every event published on the conversation.

    Broadcaster callbacks may run on worker threads, so they hand events to
    the loop with ``call_soon_threadsafe``. A comment frame is sent when the
    channel stays quiet for ``heartbeat_seconds``. The subscription is closed
    when the client disconnects or the response is torn down.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[PublishedEvent] = asyncio.Queue()

    def deliver(event: PublishedEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event)

    subscription = broadcaster.subscribe(conversation_id, deliver)
    logger.info(
        "sync.stream.opened",
        extra={"event": "sync.stream.opened", "conversation_id": conversation_id},
    )
    try:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event)
    finally:
        subscription.close()
        logger.info(
            "sync.stream.closed",
            extra={"event": "sync.stream.closed", "conversation_id": conversation_id},
        )
