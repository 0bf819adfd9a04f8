"""Mock text-to-speech provider for testing."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from parley.voice.base import AudioChunk
from parley.voice.tts.base import TTSProvider


class MockTTSProvider(TTSProvider):
    """Mock text-to-speech for testing.

    Yields one chunk per word of the input text. *delay* sleeps before
    each chunk; *fail_after* raises *error* once that many chunks were
    produced.
    """

    def __init__(
        self,
        voice: str = "mock-voice",
        *,
        delay: float = 0.0,
        error: Exception | None = None,
        fail_after: int = 0,
    ) -> None:
        self._default_voice = voice
        self.calls: list[dict[str, str | None]] = []
        self.delay = delay
        self.error = error
        self.fail_after = fail_after
        self.closed_streams = 0

    @property
    def default_voice(self) -> str:
        return self._default_voice

    async def synthesize_stream(
        self, text: str, *, voice: str | None = None
    ) -> AsyncIterator[AudioChunk]:
        self.calls.append({"text": text, "voice": voice or self._default_voice})
        words = text.split()
        try:
            for i, word in enumerate(words):
                if self.error is not None and i >= self.fail_after:
                    raise self.error
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield AudioChunk(
                    data=f"mock-audio-{word}".encode(),
                    sample_rate=16000,
                    is_final=(i == len(words) - 1),
                )
        finally:
            self.closed_streams += 1
