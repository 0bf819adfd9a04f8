"""Tests for mock providers."""

from __future__ import annotations

import pytest

from parley.providers.ai.base import AIContext, AIMessage
from parley.providers.ai.mock import MockAIProvider
from parley.voice.audio_frame import AudioFrame
from parley.voice.base import AudioChunk
from parley.voice.stt.mock import MockSTTProvider
from parley.voice.tts.mock import MockTTSProvider
from parley.voice.vad.base import VADEvent, VADEventType
from parley.voice.vad.mock import MockVADProvider


class TestMockAIProvider:
    async def test_generate_returns_response(self) -> None:
        provider = MockAIProvider(responses=["Hi!", "Bye!"])
        ctx = AIContext(messages=[AIMessage(role="user", content="hello")])
        r1 = await provider.generate(ctx)
        assert r1.content == "Hi!"
        r2 = await provider.generate(ctx)
        assert r2.content == "Bye!"
        assert len(provider.calls) == 2

    async def test_round_robin(self) -> None:
        provider = MockAIProvider(responses=["A", "B"])
        ctx = AIContext(messages=[AIMessage(role="user", content="x")])
        results = [await provider.generate(ctx) for _ in range(4)]
        assert [r.content for r in results] == ["A", "B", "A", "B"]

    async def test_generate_reply_copies_history(self) -> None:
        provider = MockAIProvider(responses=["ok"])
        history = [AIMessage(role="user", content="x")]
        await provider.generate_reply(history, system_prompt="sys", temperature=0.1)
        history.append(AIMessage(role="assistant", content="late"))

        ctx = provider.calls[0]
        assert len(ctx.messages) == 1
        assert ctx.system_prompt == "sys"
        assert ctx.temperature == 0.1

    async def test_error(self) -> None:
        provider = MockAIProvider(error=RuntimeError("down"))
        with pytest.raises(RuntimeError):
            await provider.generate(AIContext())


class TestMockSTTProvider:
    async def test_round_robin_transcripts(self) -> None:
        stt = MockSTTProvider(["one", "two"])
        chunk = AudioChunk(data=b"\x00\x00")
        texts = [(await stt.transcribe(chunk, language="en")).text for _ in range(3)]
        assert texts == ["one", "two", "one"]
        assert stt.languages == ["en", "en", "en"]

    async def test_close(self) -> None:
        stt = MockSTTProvider()
        await stt.close()
        assert stt.closed


class TestMockTTSProvider:
    async def test_one_chunk_per_word(self) -> None:
        tts = MockTTSProvider()
        chunks = [c async for c in tts.synthesize_stream("a b c", voice="v2")]
        assert [c.data for c in chunks] == [b"mock-audio-a", b"mock-audio-b", b"mock-audio-c"]
        assert [c.is_final for c in chunks] == [False, False, True]
        assert tts.calls == [{"text": "a b c", "voice": "v2"}]
        assert tts.closed_streams == 1

    async def test_fail_after(self) -> None:
        tts = MockTTSProvider(error=RuntimeError("cut"), fail_after=2)
        received = []
        with pytest.raises(RuntimeError):
            async for chunk in tts.synthesize_stream("a b c d"):
                received.append(chunk)
        assert len(received) == 2

    async def test_synthesize(self) -> None:
        chunk = await MockTTSProvider().synthesize("hi there")
        assert chunk.data == b"mock-audio-himock-audio-there"
        assert chunk.is_final


class TestMockVADProvider:
    def test_scripted_events(self) -> None:
        end = VADEvent(type=VADEventType.SPEECH_END, duration_ms=300)
        vad = MockVADProvider([VADEventType.SPEECH_START, None, end])
        frame = AudioFrame(data=b"\x00\x00")

        events = [vad.process(frame) for _ in range(4)]

        assert events[0] == VADEvent(type=VADEventType.SPEECH_START)
        assert events[1] is None
        assert events[2] is end
        assert events[3] is None
        assert len(vad.frames) == 4

    def test_reset_replays_script(self) -> None:
        vad = MockVADProvider([VADEventType.MISFIRE])
        frame = AudioFrame(data=b"\x00\x00")
        vad.process(frame)
        vad.reset()
        event = vad.process(frame)
        assert event is not None and event.type is VADEventType.MISFIRE
        assert vad.reset_count == 1
