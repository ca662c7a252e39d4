"""Parameter Stream - Committed parameter frames over WebSocket.

ParameterStream is the service's rendering runtime: the engine pushes each
committed frame into it, and changed frames go out to /ws/parameters
clients as:

    {"type": "parameters", "seq": 12, "timestamp": <epoch ms>,
     "values": {"ParamMouthOpenY": 1.0, ...}}

A new client receives the latest frame immediately.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from puppet_expressions.api.auth import authorize_websocket
from puppet_expressions.api.websocket.connections import StreamConnectionManager

router = APIRouter(tags=["parameters"])


class ParameterStream:
    """Runtime adapter turning committed frames into stream messages."""

    def __init__(self, manager: StreamConnectionManager) -> None:
        self._manager = manager
        self._pending: dict[str, float] = {}
        self._last_values: dict[str, float] | None = None
        self._last_frame: dict[str, Any] | None = None
        self._seq = 0

    @property
    def last_frame(self) -> dict[str, Any] | None:
        """Most recent frame message, or None before the first commit."""
        return self._last_frame

    @property
    def seq(self) -> int:
        return self._seq

    def set_parameter_value(self, parameter_id: str, value: float) -> None:
        self._pending[parameter_id] = value

    def end_frame(self) -> None:
        """Close the current frame; broadcast it if anything changed."""
        values, self._pending = self._pending, {}
        if values == self._last_values:
            return

        self._seq += 1
        self._last_values = values
        self._last_frame = {
            "type": "parameters",
            "seq": self._seq,
            "timestamp": int(time.time() * 1000),
            "values": values,
        }
        self._manager.broadcast(self._last_frame)


# Global instances (created on first use)
_manager: StreamConnectionManager | None = None
_stream: ParameterStream | None = None


def get_parameter_manager() -> StreamConnectionManager:
    """Get global parameter connection manager."""
    global _manager
    if _manager is None:
        _manager = StreamConnectionManager("parameters")
    return _manager


def get_parameter_stream() -> ParameterStream:
    """Get global parameter stream."""
    global _stream
    if _stream is None:
        _stream = ParameterStream(get_parameter_manager())
    return _stream


@router.websocket("/ws/parameters")
async def parameters_websocket(websocket: WebSocket) -> None:
    """Stream committed parameter frames to one client until it disconnects."""
    if not await authorize_websocket(websocket):
        return

    manager = get_parameter_manager()
    client_id = uuid.uuid4().hex
    handler = await manager.connect(client_id, websocket)

    latest = get_parameter_stream().last_frame
    if latest is not None:
        handler.send_nowait(latest)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(client_id)
