"""Transport adapter over a ``websockets`` connection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from parley.errors import TransportClosedError
from parley.protocol.codec import Frame
from parley.transport.base import Transport

logger = logging.getLogger("parley.transport.websocket")


class WebSocketTransport(Transport):
    """Wraps a server or client connection from the ``websockets`` library.

    Sends are serialized by a lock so frames from the pipeline task and the
    session actor never interleave mid-write.
    """

    def __init__(self, connection: Any) -> None:
        self._ws = connection
        self._send_lock = asyncio.Lock()

    @property
    def connection(self) -> Any:
        return self._ws

    @property
    def closed(self) -> bool:
        return self._ws.state in (State.CLOSING, State.CLOSED)

    async def send(self, frame: Frame) -> None:
        async with self._send_lock:
            try:
                await self._ws.send(frame)
            except ConnectionClosed as exc:
                raise TransportClosedError(str(exc)) from exc

    async def recv(self) -> Frame:
        try:
            frame: Frame = await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportClosedError(str(exc)) from exc
        return frame

    async def close(self, code: int = 1000, reason: str = "") -> None:
        try:
            await self._ws.close(code, reason)
        except Exception:
            logger.debug("Error closing WebSocket", exc_info=True)
