"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
import struct
from collections.abc import AsyncIterator, Callable, Coroutine
from typing import Any

import pytest

from parley.core.config import ServerConfig
from parley.core.handler import SessionHandler
from parley.core.session import Session
from parley.protocol.codec import decode, encode
from parley.protocol.messages import Message, MessageType
from parley.providers.ai.mock import MockAIProvider
from parley.transport.memory import InMemoryTransport
from parley.voice.stt.mock import MockSTTProvider
from parley.voice.tts.mock import MockTTSProvider


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    Replaces ``await asyncio.sleep(0.05)`` patterns with zero-delay
    event loop yields::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


def pcm(amplitude: int = 1000, n_samples: int = 160) -> bytes:
    """Constant-valued 16-bit PCM."""
    return struct.pack(f"<{n_samples}h", *([amplitude] * n_samples))


class FakeClient:
    """The client end of an in-memory session, speaking the wire protocol."""

    def __init__(self, transport: InMemoryTransport) -> None:
        self.transport = transport

    async def send(self, type: MessageType | str, value: Any = None) -> None:
        await self.transport.send(encode(type, value))

    async def control(self, value: str) -> None:
        await self.send(MessageType.CONTROL, value)

    async def audio(self, data: bytes) -> None:
        await self.send(MessageType.AUDIO, data)

    async def recv(self, timeout: float = 2.0) -> Message:
        return decode(await asyncio.wait_for(self.transport.recv(), timeout))

    async def recv_until(self, control: str, timeout: float = 2.0) -> list[Message]:
        """Collect messages up to and including the given control value."""
        received: list[Message] = []
        async with asyncio.timeout(timeout):
            while True:
                msg = await self.recv(timeout)
                received.append(msg)
                if msg.is_control(control):
                    return received

    def drain(self) -> list[Message]:
        """Decode every frame already queued for the client."""
        messages: list[Message] = []
        while not self.transport._inbox.empty():
            messages.append(decode(self.transport._inbox.get_nowait()))
        return messages


def controls(messages: list[Message]) -> list[str]:
    return [m.value for m in messages if m.type is MessageType.CONTROL]


class Harness:
    """A running SessionHandler wired to a FakeClient."""

    def __init__(
        self,
        *,
        stt: MockSTTProvider | None = None,
        ai: MockAIProvider | None = None,
        tts: MockTTSProvider | None = None,
        config: ServerConfig | None = None,
        session: Session | None = None,
        archive: Any = None,
    ) -> None:
        self.stt = stt or MockSTTProvider(["hello there"])
        self.ai = ai or MockAIProvider(["hi, how can I help"])
        self.tts = tts if tts is not None else MockTTSProvider()
        self.session = session or Session(id="test-session")
        server_end, client_end = InMemoryTransport.pair()
        self.client = FakeClient(client_end)
        self.handler = SessionHandler(
            self.session,
            server_end,
            stt=self.stt,
            ai=self.ai,
            tts=self.tts,
            config=config,
            archive=archive,
        )
        self.task: asyncio.Task[None] | None = None

    async def start(self) -> Harness:
        self.task = asyncio.create_task(self.handler.run())
        return self

    async def stop(self) -> None:
        await self.client.transport.close()
        if self.task is not None:
            await asyncio.wait_for(self.task, 2.0)

    async def speak(self, *chunks: bytes) -> None:
        """Send one complete utterance: user_speaking, audio, user_paused."""
        await self.client.control("user_speaking")
        for chunk in chunks:
            await self.client.audio(chunk)
        await self.client.control("user_paused")


@pytest.fixture
async def harness() -> AsyncIterator[Callable[..., Coroutine[Any, Any, Harness]]]:
    """Factory for started harnesses; all are stopped at teardown."""
    started: list[Harness] = []

    async def _make(**kwargs: Any) -> Harness:
        h = await Harness(**kwargs).start()
        started.append(h)
        return h

    yield _make
    for h in started:
        await h.stop()
