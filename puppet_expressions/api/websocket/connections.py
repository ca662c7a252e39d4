"""WebSocket Connections - Queued JSON push to connected clients.

Each client gets a bounded send queue drained by a background task, so a
slow client drops messages instead of stalling the frame loop.
"""

from __future__ import annotations

import asyncio

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from puppet_expressions.observability.logging import get_logger

logger = get_logger(__name__)


class StreamWebSocket:
    """One client connection with its own send queue.

    Usage:
        handler = StreamWebSocket("client-1", channel="events")
        await handler.connect(websocket)

        handler.send_nowait({"type": "model_changed", ...})

        await handler.disconnect()
    """

    def __init__(self, client_id: str, channel: str, queue_size: int = 30) -> None:
        self._client_id = client_id
        self._channel = channel
        self._websocket: WebSocket | None = None
        self._connected = False
        self._send_queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._send_task: asyncio.Task | None = None
        self._dropped = 0

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def is_connected(self) -> bool:
        """Whether WebSocket is connected."""
        return self._connected

    @property
    def dropped(self) -> int:
        """Messages dropped because the queue was full."""
        return self._dropped

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and store the connection, then start the send loop."""
        await websocket.accept()
        self._websocket = websocket
        self._connected = True
        self._send_task = asyncio.create_task(self._send_loop())

        logger.info(
            "ws_connected",
            channel=self._channel,
            client_id=self._client_id,
        )

    async def disconnect(self) -> None:
        """Stop the send loop and close the socket."""
        self._connected = False

        if self._send_task:
            self._send_task.cancel()
            try:
                await self._send_task
            except asyncio.CancelledError:
                pass

        if self._websocket and self._websocket.client_state == WebSocketState.CONNECTED:
            try:
                await self._websocket.close()
            except Exception:
                pass

        logger.info(
            "ws_disconnected",
            channel=self._channel,
            client_id=self._client_id,
            dropped=self._dropped,
        )

    def send_nowait(self, message: dict) -> bool:
        """Queue a message for sending.

        Returns:
            True if queued; False if disconnected or the queue is full
        """
        if not self._connected:
            return False

        try:
            self._send_queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            self._dropped += 1
            logger.debug(
                "ws_message_dropped",
                channel=self._channel,
                client_id=self._client_id,
            )
            return False

    async def _send_loop(self) -> None:
        """Background loop to send queued messages."""
        while self._connected:
            try:
                message = await asyncio.wait_for(
                    self._send_queue.get(),
                    timeout=0.1,
                )

                if self._websocket and self._connected:
                    await self._websocket.send_json(message)

            except asyncio.TimeoutError:
                continue
            except WebSocketDisconnect:
                self._connected = False
                break
            except Exception as e:
                logger.warning(
                    "ws_send_error",
                    channel=self._channel,
                    client_id=self._client_id,
                    error=str(e),
                )
                continue


class StreamConnectionManager:
    """Manages the connections of one channel.

    Usage:
        manager = StreamConnectionManager("parameters")

        handler = await manager.connect(client_id, websocket)
        manager.broadcast({"type": "parameters", ...})
        await manager.disconnect(client_id)
    """

    def __init__(self, channel: str) -> None:
        self._channel = channel
        self._connections: dict[str, StreamWebSocket] = {}

    @property
    def channel(self) -> str:
        return self._channel

    async def connect(self, client_id: str, websocket: WebSocket) -> StreamWebSocket:
        """Create and connect a handler, replacing any with the same id."""
        await self.disconnect(client_id)

        handler = StreamWebSocket(client_id, channel=self._channel)
        await handler.connect(websocket)
        self._connections[client_id] = handler
        return handler

    async def disconnect(self, client_id: str) -> None:
        handler = self._connections.pop(client_id, None)
        if handler:
            await handler.disconnect()

    async def disconnect_all(self) -> None:
        for client_id in list(self._connections.keys()):
            await self.disconnect(client_id)

    def broadcast(self, message: dict) -> int:
        """Queue a message for every client.

        Returns:
            Number of clients the message was queued for
        """
        return sum(1 for handler in list(self._connections.values()) if handler.send_nowait(message))

    def is_connected(self, client_id: str) -> bool:
        handler = self._connections.get(client_id)
        return handler is not None and handler.is_connected

    @property
    def active_connections(self) -> int:
        """Number of active connections."""
        return len(self._connections)
