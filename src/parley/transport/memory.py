"""In-process transport pair, for embedding and tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from parley.errors import TransportClosedError
from parley.protocol.codec import Frame
from parley.transport.base import Transport

T = TypeVar("T")


class _Link:
    """Close state shared by both ends of a pair."""

    def __init__(self) -> None:
        self.closed = asyncio.Event()
        self.code: int | None = None
        self.reason = ""


class InMemoryTransport(Transport):
    """One end of a bounded, in-order, in-memory frame channel.

    Create connected ends with :meth:`pair`. Closing either end closes
    both; frames already queued are still delivered before ``recv``
    reports the close.
    """

    def __init__(self, link: _Link, inbox: asyncio.Queue[Frame]) -> None:
        self._link = link
        self._inbox = inbox
        self._peer: InMemoryTransport | None = None

    @classmethod
    def pair(cls, maxsize: int = 64) -> tuple[InMemoryTransport, InMemoryTransport]:
        link = _Link()
        a = cls(link, asyncio.Queue(maxsize))
        b = cls(link, asyncio.Queue(maxsize))
        a._peer, b._peer = b, a
        return a, b

    @property
    def closed(self) -> bool:
        return self._link.closed.is_set()

    @property
    def close_code(self) -> int | None:
        return self._link.code

    @property
    def close_reason(self) -> str:
        return self._link.reason

    async def send(self, frame: Frame) -> None:
        if self.closed or self._peer is None:
            raise TransportClosedError("transport closed")
        await self._until_closed(self._peer._inbox.put(frame))

    async def recv(self) -> Frame:
        if not self._inbox.empty():
            return self._inbox.get_nowait()
        if self.closed:
            raise TransportClosedError("transport closed")
        return await self._until_closed(self._inbox.get())

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if not self.closed:
            self._link.code = code
            self._link.reason = reason
            self._link.closed.set()

    async def _until_closed(self, operation: Awaitable[T]) -> T:
        """Await *operation*, raising TransportClosedError if the link closes first."""
        op = asyncio.ensure_future(operation)
        closed = asyncio.ensure_future(self._link.closed.wait())
        try:
            await asyncio.wait({op, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            if not op.done():
                op.cancel()
        if op.done() and not op.cancelled():
            return op.result()
        raise TransportClosedError("transport closed")
