"""ElevenLabs text-to-speech provider.

Only the raw ``pcm_<rate>`` output formats are supported: replies reach the
client as bare 16-bit PCM, so compressed formats cannot be forwarded.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx

from parley.errors import ProviderError
from parley.voice.base import AudioChunk
from parley.voice.tts.base import TTSProvider

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = (429, 500, 502, 503)
_PCM_RATES = (8000, 16000, 22050, 24000, 44100)


def _pcm_rate(output_format: str) -> int:
    prefix, _, rate = output_format.partition("_")
    if prefix != "pcm" or not rate.isdigit() or int(rate) not in _PCM_RATES:
        supported = ", ".join(f"pcm_{r}" for r in _PCM_RATES)
        raise ValueError(f"unsupported output_format {output_format!r}; expected {supported}")
    return int(rate)


@dataclass
class ElevenLabsConfig:
    """Connection and voice settings for :class:`ElevenLabsTTSProvider`.

    Raises:
        ValueError: If *output_format* is not a raw PCM format.
    """

    api_key: str
    voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True
    output_format: str = "pcm_16000"
    optimize_streaming_latency: int = 3  # 0-4, higher trades quality for latency
    chunk_size: int = 4096
    base_url: str = "https://api.elevenlabs.io/v1"
    timeout: float = 60.0
    sample_rate: int = field(init=False)

    def __post_init__(self) -> None:
        self.sample_rate = _pcm_rate(self.output_format)


class ElevenLabsTTSProvider(TTSProvider):
    """Streams 16-bit PCM replies from the ElevenLabs HTTP streaming endpoint."""

    def __init__(self, config: ElevenLabsConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "ElevenLabsTTS"

    @property
    def default_voice(self) -> str:
        return self._config.voice_id

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers={"xi-api-key": self._config.api_key},
                timeout=self._config.timeout,
            )
        return self._client

    def _request_body(self, text: str) -> dict[str, object]:
        cfg = self._config
        return {
            "text": text,
            "model_id": cfg.model_id,
            "voice_settings": {
                "stability": cfg.stability,
                "similarity_boost": cfg.similarity_boost,
                "style": cfg.style,
                "use_speaker_boost": cfg.use_speaker_boost,
            },
        }

    async def synthesize_stream(
        self, text: str, *, voice: str | None = None
    ) -> AsyncIterator[AudioChunk]:
        """Yield PCM chunks in arrival order.

        Closing the iterator early releases the HTTP response.

        Raises:
            ProviderError: On an HTTP error status or a transport failure.
        """
        cfg = self._config
        voice_id = voice or cfg.voice_id
        logger.debug("Synthesizing %d chars with voice %s", len(text), voice_id)

        try:
            async with self._get_client().stream(
                "POST",
                f"/text-to-speech/{voice_id}/stream",
                json=self._request_body(text),
                params={
                    "output_format": cfg.output_format,
                    "optimize_streaming_latency": cfg.optimize_streaming_latency,
                },
            ) as response:
                if response.is_error:
                    await response.aread()
                    status = response.status_code
                    raise ProviderError(
                        f"ElevenLabs returned HTTP {status}",
                        retryable=status in _RETRYABLE_STATUS,
                        provider="elevenlabs",
                        status_code=status,
                    )
                async for data in response.aiter_bytes(chunk_size=cfg.chunk_size):
                    if data:
                        yield AudioChunk(
                            data=data, sample_rate=cfg.sample_rate, format="pcm_s16le"
                        )
        except httpx.HTTPError as exc:
            raise ProviderError(str(exc), retryable=True, provider="elevenlabs") from exc

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
