"""Base models for voice support."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_SAMPLE_WIDTH_BY_FORMAT = {
    "pcm_u8": 1,
    "pcm_s16le": 2,
    "pcm_s24le": 3,
    "pcm_s32le": 4,
}


def pcm_format_for_width(sample_width: int) -> str:
    """Return the PCM format name for a sample width in bytes."""
    for name, width in _SAMPLE_WIDTH_BY_FORMAT.items():
        if width == sample_width:
            return name
    raise ValueError(f"unsupported sample width {sample_width}")


@dataclass
class AudioChunk:
    """A chunk of audio data.

    ``format`` is a PCM format name (``pcm_s16le``, ``pcm_s24le``...) or a
    container such as ``wav`` or ``mp3``.
    """

    data: bytes
    sample_rate: int = 16000
    channels: int = 1
    format: str = "pcm_s16le"
    timestamp_ms: int | None = None
    is_final: bool = False

    @property
    def is_pcm(self) -> bool:
        return self.format in _SAMPLE_WIDTH_BY_FORMAT

    @property
    def sample_width(self) -> int | None:
        """Bytes per sample for PCM formats, None for containers."""
        return _SAMPLE_WIDTH_BY_FORMAT.get(self.format)


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


@dataclass
class TranscriptionResult:
    """Result from speech-to-text transcription."""

    text: str
    is_final: bool = True
    confidence: float | None = None
    language: str | None = None
    words: list[dict[str, Any]] = field(default_factory=list)
