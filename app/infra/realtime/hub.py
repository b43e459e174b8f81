import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketDisconnect

from app.infra.realtime.events import OutreachEvent

logger = logging.getLogger(__name__)


class InMemoryRealtimeHub:
    """In-process channel hub fanning outreach events out to dashboard sockets."""

    def __init__(self) -> None:
        self._channel_subscribers: dict[str, set[WebSocket]] = defaultdict(set)
        self._socket_channels: dict[WebSocket, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()

    def subscriber_count(self, channel: str) -> int:
        return len(self._channel_subscribers.get(channel, ()))

    async def subscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            self._channel_subscribers[channel].add(websocket)
            self._socket_channels[websocket].add(channel)

    async def unsubscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            self._drop_subscriber(channel, websocket)
            channels = self._socket_channels.get(websocket)
            if channels is not None:
                channels.discard(channel)
                if not channels:
                    self._socket_channels.pop(websocket, None)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            for channel in self._socket_channels.pop(websocket, set()):
                self._drop_subscriber(channel, websocket)

    async def publish(
        self,
        channels: Sequence[str],
        event: OutreachEvent,
        payload: Mapping[str, Any],
    ) -> None:
        unique_channels = [channel for channel in dict.fromkeys(channels) if channel]
        if not unique_channels:
            return

        async with self._lock:
            recipients_by_channel = {
                channel: set(self._channel_subscribers.get(channel, set()))
                for channel in unique_channels
            }

        body = jsonable_encoder(payload)
        sent_at = datetime.now(UTC).isoformat()
        for channel, recipients in recipients_by_channel.items():
            if not recipients:
                continue

            envelope = {
                "event": event.value,
                "channel": channel,
                "payload": body,
                "sent_at": sent_at,
            }

            stale: list[WebSocket] = []
            for websocket in recipients:
                try:
                    await websocket.send_json(envelope)
                except (RuntimeError, WebSocketDisconnect):
                    stale.append(websocket)

            if stale:
                logger.info(
                    "Dropping stale realtime subscribers",
                    extra={"channel": channel, "count": len(stale)},
                )
                async with self._lock:
                    for websocket in stale:
                        subscribed = self._socket_channels.get(websocket, set())
                        subscribed.discard(channel)
                        if not subscribed:
                            self._socket_channels.pop(websocket, None)
                        self._drop_subscriber(channel, websocket)

    def _drop_subscriber(self, channel: str, websocket: WebSocket) -> None:
        subscribers = self._channel_subscribers.get(channel)
        if subscribers is None:
            return
        subscribers.discard(websocket)
        if not subscribers:
            self._channel_subscribers.pop(channel, None)
