"""Transport ABC for a single session connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from parley.errors import TransportClosedError
from parley.protocol.codec import Frame

__all__ = ["Transport", "TransportClosedError"]


class Transport(ABC):
    """Bidirectional, ordered frame transport for one session.

    Frames are delivered in order and at most once. Text frames carry
    JSON envelopes; binary frames carry raw audio. ``send`` blocks while
    the peer is not keeping up. Both ``send`` and ``recv`` raise
    :class:`TransportClosedError` once the connection is gone.
    """

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    async def send(self, frame: Frame) -> None: ...

    @abstractmethod
    async def recv(self) -> Frame: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def __aiter__(self) -> AsyncIterator[Frame]:
        """Yield received frames until the transport closes."""
        while True:
            try:
                yield await self.recv()
            except TransportClosedError:
                return
