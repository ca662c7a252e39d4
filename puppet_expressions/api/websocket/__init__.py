"""WebSocket API package."""

from puppet_expressions.api.websocket.connections import (
    StreamConnectionManager,
    StreamWebSocket,
)
from puppet_expressions.api.websocket.events import (
    get_event_broadcaster,
    get_event_manager,
)
from puppet_expressions.api.websocket.parameters import (
    ParameterStream,
    get_parameter_manager,
    get_parameter_stream,
)

__all__ = [
    "StreamConnectionManager",
    "StreamWebSocket",
    "get_event_broadcaster",
    "get_event_manager",
    "ParameterStream",
    "get_parameter_manager",
    "get_parameter_stream",
]
