import json
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from app.infra.realtime.channels import OUTREACH_CHANNEL, chat_session_channel

router = APIRouter()


def _system_event(name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "event": f"system.{name}",
        "payload": payload or {},
        "sent_at": datetime.now(UTC).isoformat(),
    }


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket) -> None:
    """Dashboard feed: queue and session lifecycle events from the scheduler."""
    hub = getattr(websocket.app.state, "realtime_hub", None)
    if hub is None:
        await websocket.close(code=1011, reason="Realtime hub not initialized")
        return

    initial_channels = [OUTREACH_CHANNEL]
    requested_session_id = websocket.query_params.get("session_id", "").strip()
    if requested_session_id:
        initial_channels.append(chat_session_channel(requested_session_id))

    await hub.connect(websocket)
    for channel in initial_channels:
        await hub.subscribe(websocket, channel)
    await websocket.send_json(_system_event("connected", {"channels": initial_channels}))

    try:
        while True:
            raw_message = await websocket.receive_text()
            if raw_message.strip().lower() == "ping":
                await websocket.send_json(_system_event("pong"))
                continue

            try:
                message = json.loads(raw_message)
            except json.JSONDecodeError:
                await websocket.send_json(
                    _system_event("error", {"detail": "Expected JSON payload"})
                )
                continue
            if not isinstance(message, dict):
                await websocket.send_json(
                    _system_event("error", {"detail": "Expected JSON object"})
                )
                continue

            action = message.get("action")
            if action == "ping":
                await websocket.send_json(_system_event("pong"))
                continue

            if action in {"subscribe_session", "unsubscribe_session"}:
                session_id = str(message.get("session_id") or "").strip()
                if not session_id:
                    await websocket.send_json(
                        _system_event("error", {"detail": "Invalid session_id"})
                    )
                    continue

                channel = chat_session_channel(session_id)
                if action == "subscribe_session":
                    await hub.subscribe(websocket, channel)
                    await websocket.send_json(_system_event("subscribed", {"channel": channel}))
                else:
                    await hub.unsubscribe(websocket, channel)
                    await websocket.send_json(
                        _system_event("unsubscribed", {"channel": channel})
                    )
                continue

            await websocket.send_json(_system_event("error", {"detail": "Unsupported action"}))
    except WebSocketDisconnect:
        return
    finally:
        await hub.disconnect(websocket)
