import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from app.infra.realtime.channels import OUTREACH_CHANNEL, chat_session_channel
from app.infra.realtime.events import OutreachEvent
from app.infra.realtime.hub import InMemoryRealtimeHub

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def __call__(self, event: OutreachEvent, payload: Mapping[str, Any]) -> None: ...


class NoopEventSink:
    def __call__(self, event: OutreachEvent, payload: Mapping[str, Any]) -> None:
        _ = event
        _ = payload
        return None


class RealtimeEventSink:
    """Fans scheduler events out to websocket subscribers without awaiting delivery."""

    def __init__(self, hub: InMemoryRealtimeHub) -> None:
        self.hub = hub
        self._pending: set[asyncio.Task[None]] = set()

    def __call__(self, event: OutreachEvent, payload: Mapping[str, Any]) -> None:
        channels = [OUTREACH_CHANNEL]
        session_id = payload.get("session_id")
        if session_id:
            channels.append(chat_session_channel(str(session_id)))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Dropping %s event: no running event loop", event.value)
            return None

        task = loop.create_task(self.hub.publish(channels, event, dict(payload)))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return None

    def _on_done(self, task: "asyncio.Task[None]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Realtime publish failed", exc_info=exc)


def emit_safely(sink: EventSink, event: OutreachEvent, payload: Mapping[str, Any]) -> None:
    try:
        sink(event, payload)
    except Exception:
        logger.warning("Event sink failed for %s", event.value, exc_info=True)
