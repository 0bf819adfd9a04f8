"""parley -- Voice/text agent server backed by cloud providers.

Hosts one interruptible conversation per WebSocket connection:

  client audio -> Deepgram STT -> OpenAI -> ElevenLabs TTS -> client audio

Connect with ``examples/voice_client_local.py`` or any client speaking the
JSON envelope protocol (``{"type": ..., "value": ...}``).

Requirements:
    pip install parley[openai]

Run with:
    OPENAI_API_KEY=... \\
    DEEPGRAM_API_KEY=... \\
    ELEVENLABS_API_KEY=... \\
    uv run python examples/voice_server_cloud.py

Environment variables:
    OPENAI_API_KEY      (required) OpenAI API key
    DEEPGRAM_API_KEY    (required) Deepgram API key
    ELEVENLABS_API_KEY  (required) ElevenLabs API key
    ELEVENLABS_VOICE_ID Voice ID (default: Rachel)
    OPENAI_MODEL        Chat model (default: gpt-4o-mini)
    LANGUAGE            Language code for STT (default: en)
    SYSTEM_PROMPT       Custom system prompt
    HOST / PORT         Listen address (default: 127.0.0.1:8765)
    RECORDING_DIR       Archive every capture as .pcm + .wav (disabled if unset)

Press Ctrl+C to stop.
"""

from __future__ import annotations

import asyncio
import logging
import os

from parley import ParleyServer, PipelineConfig, ServerConfig
from parley.providers.openai import OpenAIAIProvider, OpenAIConfig
from parley.voice.stt.deepgram import DeepgramConfig, DeepgramSTTProvider
from parley.voice.tts.elevenlabs import ElevenLabsConfig, ElevenLabsTTSProvider

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("voice_server_cloud")


def check_env() -> dict[str, str]:
    keys = {}
    missing = []
    for name in ("OPENAI_API_KEY", "DEEPGRAM_API_KEY", "ELEVENLABS_API_KEY"):
        value = os.environ.get(name)
        if value:
            keys[name] = value
        else:
            missing.append(name)
    if missing:
        raise SystemExit(f"Missing environment variables: {', '.join(missing)}")
    return keys


async def main() -> None:
    keys = check_env()
    language = os.environ.get("LANGUAGE", "en")

    # --- Providers ---
    stt = DeepgramSTTProvider(DeepgramConfig(api_key=keys["DEEPGRAM_API_KEY"], language=language))
    ai = OpenAIAIProvider(
        OpenAIConfig(
            api_key=keys["OPENAI_API_KEY"],
            model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
        )
    )
    tts_config = ElevenLabsConfig(api_key=keys["ELEVENLABS_API_KEY"])
    if voice_id := os.environ.get("ELEVENLABS_VOICE_ID"):
        tts_config.voice_id = voice_id
    tts = ElevenLabsTTSProvider(tts_config)

    # --- Server ---
    recording_dir = os.environ.get("RECORDING_DIR")
    config = ServerConfig(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8765")),
        archive_dir=recording_dir,
        archive_by_default=recording_dir is not None,
        pipeline=PipelineConfig(
            system_prompt=os.environ.get(
                "SYSTEM_PROMPT",
                "You are a friendly voice assistant. Keep answers short and conversational.",
            ),
            language=language,
            provider_timeout=30.0,
        ),
    )
    server = ParleyServer(stt=stt, ai=ai, tts=tts, config=config)

    try:
        await server.serve_forever()
    finally:
        await server.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped")
