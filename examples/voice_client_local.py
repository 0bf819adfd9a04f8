"""parley -- Talk to a parley server with your microphone and speakers.

The client runs an energy VAD over the mic stream. Detected speech is
streamed to the server between ``user_speaking`` and ``user_paused``
controls; the reply is buffered and played as it arrives. Speaking over
the agent pauses playback locally and the server interrupts the turn.

Requirements:
    pip install parley[local-audio]

Run with:
    uv run python examples/voice_server_cloud.py      # or voice_server_mock.py
    uv run python examples/voice_client_local.py

Environment variables:
    SERVER_URL          Server base URL (default: ws://127.0.0.1:8765)
    CONVERSATION_ID     Conversation name used in the session URL (default: demo)
    VAD_THRESHOLD       RMS energy threshold on the int16 scale (default: 300)
    RECORD              Ask the server to archive captures: 1 | 0 (default: 0)

Type a line and press Enter to send it as text. Press Ctrl+C to stop.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from parley import ClientControl, ParleyClient, PlaybackBuffer
from parley.client.connection import session_url
from parley.client.local import MicrophoneCapture, SoundDevicePlaybackEngine
from parley.voice.vad.energy import EnergyVADProvider

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("voice_client_local")

SAMPLE_RATE = 16000


async def read_typed_lines(client: ParleyClient) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            return
        if line.strip():
            await client.send_text(line.strip())


async def main() -> None:
    url = session_url(
        os.environ.get("SERVER_URL", "ws://127.0.0.1:8765"),
        os.environ.get("CONVERSATION_ID", "demo"),
    )
    engine = SoundDevicePlaybackEngine(sample_rate=SAMPLE_RATE)
    vad = EnergyVADProvider(energy_threshold=float(os.environ.get("VAD_THRESHOLD", "300")))
    client = ParleyClient(url, playback=PlaybackBuffer(engine), vad=vad)

    client.on_text(lambda text: print(f"  > {text}"))
    client.on_error(lambda: logger.warning("The server could not complete that turn"))

    async with client, MicrophoneCapture(sample_rate=SAMPLE_RATE) as mic:
        if os.environ.get("RECORD", "0") == "1":
            await client.send_control(ClientControl.RECORD_START)
        logger.info("Connected to %s -- start talking", url)

        typing = asyncio.create_task(read_typed_lines(client))
        try:
            async for frame in mic.frames():
                await client.segmenter.process(frame)
                if not client.connected:
                    break
        finally:
            typing.cancel()
            engine.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped")
