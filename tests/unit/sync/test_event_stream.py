from __future__ import annotations

import asyncio
import json
from datetime import datetime

from rendezvous.core.enums import EventType, SenderRole
from rendezvous.sync.broadcaster import EventBroadcaster, PublishedEvent
from rendezvous.sync.stream import event_stream, format_sse


class FakeRequest:
    def __init__(self) -> None:
        self.disconnected = False

    async def is_disconnected(self) -> bool:
        return self.disconnected


def _message(content: str = "Racks free in May") -> PublishedEvent:
    return PublishedEvent(
        id=11,
        conversation_id=7,
        type=EventType.PLAIN_TEXT,
        created_at=datetime(2026, 3, 1, 9, 30),
        sender_id="showroom-user",
        sender_role=SenderRole.SHOWROOM,
        content=content,
    )


def test_format_sse_frames_the_event():
    frame = format_sse(_message())

    head, data = frame.split("data: ", 1)
    assert head == "id: 11\nevent: PLAIN_TEXT\n"
    assert frame.endswith("\n\n")
    assert json.loads(data)["content"] == "Racks free in May"


def test_stream_delivers_published_events_and_closes_subscription():
    broadcaster = EventBroadcaster()

    async def scenario():
        stream = event_stream(FakeRequest(), broadcaster, 7, heartbeat_seconds=5)
        opened = await stream.__anext__()
        broadcaster.publish(7, _message())
        broadcaster.publish(8, _message("other conversation"))
        frame = await stream.__anext__()
        subscribers = broadcaster.subscriber_count(7)
        await stream.aclose()
        return opened, frame, subscribers

    opened, frame, subscribers = asyncio.run(scenario())

    assert opened == ": connected\n\n"
    assert json.loads(frame.split("data: ", 1)[1])["content"] == "Racks free in May"
    assert subscribers == 1
    assert broadcaster.subscriber_count(7) == 0


def test_stream_sends_keep_alive_and_stops_on_disconnect():
    broadcaster = EventBroadcaster()
    request = FakeRequest()

    async def scenario():
        stream = event_stream(request, broadcaster, 7, heartbeat_seconds=0.01)
        frames = [await stream.__anext__(), await stream.__anext__()]
        request.disconnected = True
        rest = [frame async for frame in stream]
        return frames, rest

    frames, rest = asyncio.run(scenario())

    assert frames == [": connected\n\n", ": keep-alive\n\n"]
    assert rest == []
    assert broadcaster.subscriber_count(7) == 0
