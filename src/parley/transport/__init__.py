"""Session transports."""

from parley.transport.base import Transport, TransportClosedError
from parley.transport.memory import InMemoryTransport
from parley.transport.websocket import WebSocketTransport

__all__ = ["InMemoryTransport", "Transport", "TransportClosedError", "WebSocketTransport"]
