"""Deepgram speech-to-text provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from parley.errors import ProviderError
from parley.voice.base import AudioChunk, TranscriptionResult
from parley.voice.stt.base import AudioInputFormat, STTProvider

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = (429, 500, 502, 503)


@dataclass
class DeepgramConfig:
    """Configuration for Deepgram STT provider.

    See https://developers.deepgram.com/reference/speech-to-text/listen-pre-recorded
    for the full parameter reference.
    """

    api_key: str

    # Model & language
    model: str = "nova-3"
    language: str = "en"

    # Formatting
    punctuate: bool = True
    smart_format: bool = True
    filler_words: bool = False
    profanity_filter: bool = False

    # Keyword boosting (keyterm is Nova-3 only)
    keyterm: list[str] = field(default_factory=list)

    # Send captures as WAV so any PCM bit depth is described by the header
    input_format: AudioInputFormat = AudioInputFormat.WAV
    base_url: str = "https://api.deepgram.com/v1"
    timeout: float = 60.0


class DeepgramSTTProvider(STTProvider):
    """Deepgram pre-recorded speech-to-text over HTTP."""

    def __init__(self, config: DeepgramConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "DeepgramSTT"

    @property
    def input_format(self) -> AudioInputFormat:
        return self._config.input_format

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers={"Authorization": f"Token {self._config.api_key}"},
                timeout=self._config.timeout,
            )
        return self._client

    def _build_query_params(self, language: str | None) -> dict[str, Any]:
        """Build query parameters for the listen endpoint."""
        c = self._config
        params: dict[str, Any] = {
            "model": c.model,
            "language": language or c.language,
            "punctuate": c.punctuate,
            "smart_format": c.smart_format,
            "filler_words": c.filler_words,
            "profanity_filter": c.profanity_filter,
        }
        if c.keyterm:
            params["keyterm"] = c.keyterm
        # Stringify bools
        return {k: str(v).lower() if isinstance(v, bool) else v for k, v in params.items()}

    async def transcribe(
        self, audio: AudioChunk, *, language: str | None = None
    ) -> TranscriptionResult:
        """Transcribe a complete capture segment.

        WAV and other containers are posted as-is. 16-bit PCM is posted
        raw with explicit encoding parameters.

        Raises:
            ProviderError: On HTTP or transport failures.
        """
        client = self._get_client()
        params = self._build_query_params(language)

        if audio.format == "pcm_s16le":
            content_type = "audio/raw"
            params["encoding"] = "linear16"
            params["sample_rate"] = audio.sample_rate
            params["channels"] = audio.channels
        elif audio.is_pcm:
            raise ProviderError(
                f"Deepgram cannot take raw {audio.format}; send WAV instead",
                provider="deepgram",
            )
        else:
            content_type = f"audio/{audio.format}"

        try:
            response = await client.post(
                "/listen",
                params=params,
                content=audio.data,
                headers={"Content-Type": content_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderError(
                f"Deepgram returned HTTP {status}",
                retryable=status in _RETRYABLE_STATUS,
                provider="deepgram",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(str(exc), retryable=True, provider="deepgram") from exc

        result = response.json()

        # Extract transcript
        try:
            alt = result["results"]["channels"][0]["alternatives"][0]
            transcript: str = alt.get("transcript", "")
            confidence = alt.get("confidence")
            detected = result["results"]["channels"][0].get("detected_language")
            return TranscriptionResult(
                text=transcript.strip(),
                confidence=confidence,
                language=detected or language or self._config.language,
                words=alt.get("words", []),
            )
        except (KeyError, IndexError):
            logger.warning("No transcript in Deepgram response: %s", result)
            return TranscriptionResult(text="")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
