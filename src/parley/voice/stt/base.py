"""Speech-to-text provider ABC."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum, unique

from parley.voice.base import AudioChunk, TranscriptionResult


@unique
class AudioInputFormat(StrEnum):
    """Container an STT provider expects its audio in."""

    PCM = "pcm"
    WAV = "wav"


class STTProvider(ABC):
    """Speech-to-text provider."""

    @property
    def name(self) -> str:
        """Provider name (e.g. 'whisper', 'deepgram')."""
        return self.__class__.__name__

    @property
    def input_format(self) -> AudioInputFormat:
        """Container the provider wants. The turn pipeline frames captures to match."""
        return AudioInputFormat.PCM

    @abstractmethod
    async def transcribe(
        self, audio: AudioChunk, *, language: str | None = None
    ) -> TranscriptionResult:
        """Transcribe complete audio to text.

        Args:
            audio: The captured speech segment.
            language: Optional language hint (e.g. ``"en"``).

        Returns:
            TranscriptionResult with text and metadata.
        """
        ...

    async def warmup(self) -> None:  # noqa: B027
        """Pre-load models so the first call is fast. Override in subclasses."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""
