import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from app.infra.realtime.channels import OUTREACH_CHANNEL, chat_session_channel
from app.infra.realtime.events import OutreachEvent
from app.infra.realtime.hub import InMemoryRealtimeHub
from app.infra.realtime.publisher import RealtimeEventSink, emit_safely


class FakeWebSocket:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.sent: list[dict] = []

    async def send_json(self, data: dict) -> None:
        if self.broken:
            raise WebSocketDisconnect(code=1006)
        self.sent.append(data)


@pytest.mark.asyncio
async def test_sink_publishes_to_queue_and_session_channels() -> None:
    hub = InMemoryRealtimeHub()
    dashboard = FakeWebSocket()
    session_watcher = FakeWebSocket()
    await hub.subscribe(dashboard, OUTREACH_CHANNEL)
    await hub.subscribe(session_watcher, chat_session_channel("session-1"))
    sink = RealtimeEventSink(hub)

    sink(OutreachEvent.CONTACT_INITIATED, {"session_id": "session-1"})
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert [item["event"] for item in dashboard.sent] == ["contact-initiated"]
    assert session_watcher.sent[0]["channel"] == "chat-session:session-1"
    assert session_watcher.sent[0]["payload"] == {"session_id": "session-1"}


@pytest.mark.asyncio
async def test_stale_subscribers_are_dropped() -> None:
    hub = InMemoryRealtimeHub()
    await hub.subscribe(FakeWebSocket(broken=True), OUTREACH_CHANNEL)
    healthy = FakeWebSocket()
    await hub.subscribe(healthy, OUTREACH_CHANNEL)

    await hub.publish([OUTREACH_CHANNEL], OutreachEvent.CONFIG_UPDATED, {"config": {}})

    assert hub.subscriber_count(OUTREACH_CHANNEL) == 1
    assert len(healthy.sent) == 1


def test_emit_safely_swallows_sink_errors() -> None:
    def broken_sink(event, payload) -> None:
        raise RuntimeError("boom")

    emit_safely(broken_sink, OutreachEvent.AUTONOMOUS_MODE_STOPPED, {})


def test_sink_without_running_loop_drops_event() -> None:
    hub = InMemoryRealtimeHub()
    sink = RealtimeEventSink(hub)

    sink(OutreachEvent.AUTONOMOUS_MODE_STOPPED, {})
