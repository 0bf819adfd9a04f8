"""Tests for the ElevenLabs TTS provider."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from parley.errors import ProviderError
from parley.voice.tts.elevenlabs import ElevenLabsConfig, ElevenLabsTTSProvider


def _provider(
    handler: Any, **config: Any
) -> tuple[ElevenLabsTTSProvider, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    provider = ElevenLabsTTSProvider(ElevenLabsConfig(api_key="xi-key", **config))
    provider._client = httpx.AsyncClient(
        base_url="https://api.elevenlabs.io/v1", transport=httpx.MockTransport(record)
    )
    return provider, requests


class TestElevenLabsTTS:
    async def test_stream_yields_chunks_in_order(self) -> None:
        audio = bytes(range(10))
        provider, requests = _provider(lambda r: httpx.Response(200, content=audio), chunk_size=4)

        chunks = [c async for c in provider.synthesize_stream("Hello there")]

        assert b"".join(c.data for c in chunks) == audio
        assert all(c.format == "pcm_s16le" and c.sample_rate == 16000 for c in chunks)
        req = requests[0]
        assert req.url.path == "/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM/stream"
        assert req.url.params["output_format"] == "pcm_16000"
        body = json.loads(req.content)
        assert body["text"] == "Hello there"
        assert body["model_id"] == "eleven_multilingual_v2"
        assert body["voice_settings"]["stability"] == 0.5

    async def test_voice_override(self) -> None:
        provider, requests = _provider(lambda r: httpx.Response(200, content=b"ab"))
        [c async for c in provider.synthesize_stream("Hi", voice="custom-voice")]
        assert "/text-to-speech/custom-voice/stream" in requests[0].url.path

    async def test_synthesize_joins_stream(self) -> None:
        provider, _ = _provider(lambda r: httpx.Response(200, content=b"abcdef"), chunk_size=2)
        chunk = await provider.synthesize("Hi")
        assert chunk.data == b"abcdef"
        assert chunk.is_final

    async def test_sample_rate_follows_output_format(self) -> None:
        provider, _ = _provider(
            lambda r: httpx.Response(200, content=b"ab"), output_format="pcm_24000"
        )
        chunks = [c async for c in provider.synthesize_stream("Hi")]
        assert chunks[0].sample_rate == 24000

    @pytest.mark.parametrize("output_format", ["mp3_44100_128", "ulaw_8000", "pcm_12345", "pcm"])
    def test_rejects_non_pcm_formats(self, output_format: str) -> None:
        with pytest.raises(ValueError, match="unsupported output_format"):
            ElevenLabsConfig(api_key="k", output_format=output_format)

    async def test_http_error(self) -> None:
        provider, _ = _provider(lambda r: httpx.Response(503, content=b"busy"))
        with pytest.raises(ProviderError) as exc_info:
            [c async for c in provider.synthesize_stream("Hi")]
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable

    async def test_transport_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        provider, _ = _provider(fail)
        with pytest.raises(ProviderError):
            [c async for c in provider.synthesize_stream("Hi")]

    async def test_early_close_releases_stream(self) -> None:
        provider, _ = _provider(lambda r: httpx.Response(200, content=b"x" * 64), chunk_size=8)
        stream = provider.synthesize_stream("long reply")
        first = await anext(stream)
        await stream.aclose()
        assert first.data == b"x" * 8

    async def test_close(self) -> None:
        provider, _ = _provider(lambda r: httpx.Response(200))
        client = provider._client
        await provider.close()
        assert client is not None and client.is_closed
