"""Event Stream - Engine notifications over WebSocket.

Clients connected to /ws/events receive every expressions_changed and
model_changed event as JSON, preceded by one ``connected`` greeting.
"""

from __future__ import annotations

import time
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from puppet_expressions.api.auth import authorize_websocket
from puppet_expressions.api.websocket.connections import StreamConnectionManager
from puppet_expressions.engine.events import EngineEvent, EventBroadcaster

router = APIRouter(tags=["events"])

# Global instances (created on first use)
_manager: StreamConnectionManager | None = None
_broadcaster: EventBroadcaster | None = None


def get_event_manager() -> StreamConnectionManager:
    """Get global event connection manager."""
    global _manager
    if _manager is None:
        _manager = StreamConnectionManager("events")
    return _manager


def forward_event(event: EngineEvent) -> None:
    """Push an engine event to every connected client."""
    get_event_manager().broadcast(event.to_dict())


def get_event_broadcaster() -> EventBroadcaster:
    """Get global event broadcaster, wired to the WebSocket stream."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = EventBroadcaster()
        _broadcaster.subscribe(forward_event)
    return _broadcaster


@router.websocket("/ws/events")
async def events_websocket(websocket: WebSocket) -> None:
    """Stream engine events to one client until it disconnects."""
    if not await authorize_websocket(websocket):
        return

    manager = get_event_manager()
    client_id = uuid.uuid4().hex
    handler = await manager.connect(client_id, websocket)
    handler.send_nowait({
        "type": "connected",
        "client_id": client_id,
        "timestamp": int(time.time() * 1000),
    })

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                handler.send_nowait({"type": "pong", "timestamp": int(time.time() * 1000)})
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(client_id)
