"""parley -- Run a server with mock providers, no API keys needed.

The mock STT always hears the same phrase, the mock AI answers from a
fixed list and the mock TTS returns one labelled chunk per word. Useful to
exercise a client against the real protocol, including barge-in: the slow
mock TTS leaves plenty of time to interrupt a reply.

Run with:
    uv run python examples/voice_server_mock.py

Press Ctrl+C to stop.
"""

from __future__ import annotations

import asyncio
import logging

from parley import (
    MockAIProvider,
    MockSTTProvider,
    MockTTSProvider,
    ParleyServer,
    PipelineConfig,
    ServerConfig,
)

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("voice_server_mock")


async def main() -> None:
    server = ParleyServer(
        stt=MockSTTProvider(["What is the weather like?", "Tell me a joke."]),
        ai=MockAIProvider(
            [
                "It is sunny with a light breeze.",
                "Why did the scarecrow win an award? He was outstanding in his field.",
            ]
        ),
        tts=MockTTSProvider(delay=0.25),
        config=ServerConfig(pipeline=PipelineConfig(system_prompt="You are a demo agent.")),
    )

    def report(session, turn) -> None:
        logger.info(
            "Session %s turn %s ended %s after %d chunks",
            session.id,
            turn.id,
            turn.state,
            turn.chunks_sent,
        )

    server.on_turn_finished(report)

    async with server:
        logger.info("Mock server on ws://%s:%d", server.config.host, server.port)
        await server.wait_closed()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped")
