"""Server and pipeline configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from parley.protocol.codec import AudioEncoding


class CaptureFormat(BaseModel):
    """PCM format of the audio the client captures and streams."""

    sample_rate: int = Field(default=16000, gt=0, le=192_000)
    channels: int = Field(default=1, ge=1, le=2)
    sample_width: int = Field(default=2, ge=1, le=4)
    """Bytes per sample (2 = 16-bit, 3 = 24-bit)."""

    @property
    def pcm_format(self) -> str:
        from parley.voice.base import pcm_format_for_width

        return pcm_format_for_width(self.sample_width)


class PipelineConfig(BaseModel):
    """Behaviour of the per-turn STT -> LLM -> TTS pipeline.

    Attributes:
        system_prompt: Seeded as the first history entry of every session.
        language: Language hint passed to the STT provider.
        voice: Voice ID passed to the TTS provider.
        temperature: Sampling temperature for generation.
        max_tokens: Response token limit for generation.
        provider_timeout: Optional dead-man timeout in seconds applied to each
            provider call (and to the wait for each synthesized chunk).
            Expiry fails the turn. None disables it.
        surface_errors: Send a ``server_error`` control when a turn fails.
        echo_transcript: Send the user's transcript back as a text message.
    """

    system_prompt: str | None = None
    language: str | None = None
    voice: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1024
    provider_timeout: float | None = Field(default=None, gt=0)
    surface_errors: bool = True
    echo_transcript: bool = True


class ServerConfig(BaseModel):
    """Configuration for :class:`~parley.core.server.ParleyServer`."""

    host: str = "127.0.0.1"
    port: int = 8765
    max_size: int | None = 2**22
    """Largest accepted WebSocket message in bytes."""
    ping_interval: float | None = 20.0
    ping_timeout: float | None = 20.0
    close_timeout: float = 10.0

    inbox_size: int = Field(default=256, gt=0)
    """Bound on decoded messages waiting for the session actor."""
    voice_enabled: bool = True
    text_enabled: bool = True
    audio_encoding: AudioEncoding = AudioEncoding.INT_ARRAY

    archive_dir: Path | None = None
    """Write each capture segment as .pcm + .wav here when archiving is on."""
    archive_by_default: bool = False

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    capture: CaptureFormat = Field(default_factory=CaptureFormat)
