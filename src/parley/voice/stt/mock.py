"""Mock speech-to-text provider for testing."""

from __future__ import annotations

import asyncio

from parley.voice.base import AudioChunk, TranscriptionResult
from parley.voice.stt.base import AudioInputFormat, STTProvider


class MockSTTProvider(STTProvider):
    """Mock speech-to-text for testing.

    Returns *transcripts* round-robin. A non-zero *delay* makes each call
    sleep first, which keeps a turn in the transcribing stage long enough
    for a barge-in to land.
    """

    def __init__(
        self,
        transcripts: list[str] | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
        input_format: AudioInputFormat = AudioInputFormat.PCM,
    ) -> None:
        self.transcripts = transcripts or ["Hello", "How can I help you?"]
        self.calls: list[AudioChunk] = []
        self.languages: list[str | None] = []
        self.delay = delay
        self.error = error
        self.closed = False
        self._input_format = input_format
        self._index = 0

    @property
    def input_format(self) -> AudioInputFormat:
        return self._input_format

    async def transcribe(
        self, audio: AudioChunk, *, language: str | None = None
    ) -> TranscriptionResult:
        self.calls.append(audio)
        self.languages.append(language)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        text = self.transcripts[self._index % len(self.transcripts)]
        self._index += 1
        return TranscriptionResult(text=text, language=language)

    async def close(self) -> None:
        self.closed = True
