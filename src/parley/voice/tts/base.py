"""Text-to-speech provider ABC."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from parley.voice.base import AudioChunk


class TTSProvider(ABC):
    """Text-to-speech provider."""

    @property
    def name(self) -> str:
        """Provider name (e.g. 'elevenlabs', 'openai')."""
        return self.__class__.__name__

    @property
    def default_voice(self) -> str | None:
        """Default voice ID. Override in subclasses."""
        return None

    @abstractmethod
    def synthesize_stream(
        self, text: str, *, voice: str | None = None
    ) -> AsyncIterator[AudioChunk]:
        """Stream audio chunks as they're generated.

        Implementations are async generators. Consumers may stop iterating
        early (barge-in) and must then ``aclose()`` the generator.

        Args:
            text: Text to synthesize.
            voice: Voice ID (uses default_voice if not specified).
        """
        ...

    async def synthesize(self, text: str, *, voice: str | None = None) -> AudioChunk:
        """Synthesize text to a single chunk by draining :meth:`synthesize_stream`."""
        parts: list[AudioChunk] = []
        async for chunk in self.synthesize_stream(text, voice=voice):
            if chunk.data:
                parts.append(chunk)
        if not parts:
            return AudioChunk(data=b"", is_final=True)
        first = parts[0]
        return AudioChunk(
            data=b"".join(p.data for p in parts),
            sample_rate=first.sample_rate,
            channels=first.channels,
            format=first.format,
            is_final=True,
        )

    async def warmup(self) -> None:  # noqa: B027
        """Pre-load models so the first call is fast. Override in subclasses."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""
