"""Realtime event transport (WebSocket) adapters."""

from app.infra.realtime.hub import InMemoryRealtimeHub
from app.infra.realtime.publisher import NoopEventSink, RealtimeEventSink

__all__ = ["InMemoryRealtimeHub", "NoopEventSink", "RealtimeEventSink"]
