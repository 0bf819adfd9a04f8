"""End-to-end tests for SessionHandler over an in-memory transport."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from parley.core.config import PipelineConfig, ServerConfig
from parley.core.session import Session
from parley.core.turn import Turn, TurnState
from parley.protocol.codec import AudioEncoding
from parley.protocol.messages import Message, MessageType
from parley.providers.ai.mock import MockAIProvider
from parley.voice.stt.mock import MockSTTProvider
from parley.voice.tts.mock import MockTTSProvider
from parley.voice.wav import CaptureArchive
from tests.conftest import controls, pcm


async def wait_until(predicate: Callable[[], object], timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


def texts(messages: list[Message]) -> list[str]:
    return [m.value for m in messages if m.type is MessageType.TEXT]


def audio(messages: list[Message]) -> list[bytes]:
    return [m.value for m in messages if m.type is MessageType.AUDIO]


class TestVoiceTurn:
    async def test_single_utterance(self, harness) -> None:
        h = await harness()
        await h.speak(pcm(500), pcm(700))

        received = await h.client.recv_until("server_done")

        assert controls(received) == ["server_processing", "server_ready", "server_done"]
        assert texts(received) == ["hello there", "hi, how can I help"]
        assert audio(received) == [
            b"mock-audio-hi,",
            b"mock-audio-how",
            b"mock-audio-can",
            b"mock-audio-I",
            b"mock-audio-help",
        ]
        # Ordering: server_ready precedes the first audio, server_done follows the last.
        kinds = [m.value if m.type is MessageType.CONTROL else m.type for m in received]
        assert kinds.index("server_ready") < kinds.index(MessageType.AUDIO)
        assert kinds[-1] == "server_done"
        assert h.stt.calls[0].data == pcm(500) + pcm(700)
        assert [m.role for m in h.session.history] == ["user", "assistant"]

    async def test_audio_outside_capture_is_dropped(self, harness) -> None:
        h = await harness()
        await h.client.audio(pcm(1))
        await h.speak(pcm(2))
        await h.client.audio(pcm(3))

        await h.client.recv_until("server_done")

        assert h.stt.calls[0].data == pcm(2)

    async def test_user_speaking_restarts_capture(self, harness) -> None:
        h = await harness()
        await h.client.control("user_speaking")
        await h.client.audio(pcm(1))
        await h.speak(pcm(2))

        await h.client.recv_until("server_done")

        assert len(h.stt.calls) == 1
        assert h.stt.calls[0].data == pcm(2)

    async def test_empty_capture_starts_no_turn(self, harness) -> None:
        h = await harness()
        await h.client.control("user_speaking")
        await h.client.control("user_paused")
        await h.client.send("text", "ping")

        first = await h.client.recv()

        assert first.is_control("server_processing")
        assert h.stt.calls == []

    async def test_binary_audio_frames(self, harness) -> None:
        h = await harness(config=ServerConfig(audio_encoding=AudioEncoding.BINARY))
        await h.speak(pcm())

        await h.client.recv_until("server_ready")
        frame = await asyncio.wait_for(h.client.transport.recv(), 2.0)

        assert frame == b"mock-audio-hi,"


class TestTextTurn:
    async def test_text_turn(self, harness) -> None:
        h = await harness(ai=MockAIProvider(["sure"]))
        await h.client.send("text", "can you help")

        received = await h.client.recv_until("server_done")

        assert h.stt.calls == []
        assert texts(received) == ["sure"]
        assert audio(received) == [b"mock-audio-sure"]
        assert [(m.role, m.content) for m in h.session.history] == [
            ("user", "can you help"),
            ("assistant", "sure"),
        ]

    async def test_empty_text_ignored(self, harness) -> None:
        h = await harness()
        await h.client.send("text", "   ")
        await h.client.send("text", {"not": "a string"})
        await h.client.send("text", "real")

        await h.client.recv_until("server_done")

        assert len(h.ai.calls) == 1


class TestBargeIn:
    async def test_speaking_during_streaming_interrupts(self, harness) -> None:
        h = await harness(tts=MockTTSProvider(delay=0.05))
        await h.speak(pcm())
        first = await h.client.recv_until("server_ready")
        first.append(await h.client.recv())
        assert first[-1].type is MessageType.AUDIO

        await h.client.control("user_speaking")
        rest = await h.client.recv_until("server_interrupted")

        assert "server_done" not in controls(rest)
        turn_audio = audio(first) + audio(rest)
        assert 1 <= len(turn_audio) < 5
        assert h.session.history == []

        # Nothing from the cancelled turn arrives after server_interrupted.
        await asyncio.sleep(0.2)
        assert h.client.drain() == []
        assert h.session.capturing

        await h.client.audio(pcm(9))
        await h.client.control("user_paused")
        second = await h.client.recv_until("server_done")
        assert controls(second)[0] == "server_processing"
        assert [m.role for m in h.session.history] == ["user", "assistant"]

    async def test_speaking_during_transcription_interrupts(self, harness) -> None:
        h = await harness(stt=MockSTTProvider(["slow"], delay=10))
        await h.speak(pcm())
        await wait_until(lambda: h.stt.calls)

        await h.client.control("user_speaking")
        received = await h.client.recv_until("server_interrupted")

        assert controls(received) == ["server_processing", "server_interrupted"]
        assert h.ai.calls == []
        assert h.session.history == []

    async def test_text_interrupts_voice_turn(self, harness) -> None:
        h = await harness(stt=MockSTTProvider(["slow"], delay=10))
        await h.speak(pcm())
        await wait_until(lambda: h.stt.calls)

        await h.client.send("text", "never mind")
        received = await h.client.recv_until("server_done")

        assert controls(received) == [
            "server_processing",
            "server_interrupted",
            "server_processing",
            "server_ready",
            "server_done",
        ]
        assert [(m.role, m.content) for m in h.session.history] == [
            ("user", "never mind"),
            ("assistant", "hi, how can I help"),
        ]

    async def test_no_interrupt_when_idle(self, harness) -> None:
        h = await harness()
        await h.client.control("user_speaking")
        await h.client.control("user_paused")
        await h.client.send("text", "hi")

        received = await h.client.recv_until("server_done")

        assert "server_interrupted" not in controls(received)

    async def test_interrupted_turn_reported_to_callbacks(self, harness) -> None:
        h = await harness(ai=MockAIProvider(delay=10))
        finished: list[Turn] = []
        h.handler.on_turn_finished(lambda session, turn: finished.append(turn))

        await h.speak(pcm())
        await wait_until(lambda: h.ai.calls)
        assert h.handler.session.busy
        assert await h.handler.interrupt("test") is True

        assert [t.state for t in finished] == [TurnState.CANCELLED]
        assert h.session.active_turn is None
        assert await h.handler.interrupt() is False

    async def test_finished_turn_waits_for_teardown_without_interrupting(
        self, harness
    ) -> None:
        h = await harness()
        release = asyncio.Event()
        turn = Turn.from_text("hi")
        turn.transition(TurnState.FAILED)
        h.session.active_turn = turn
        h.handler._turn_task = asyncio.create_task(release.wait())
        assert not h.session.busy

        pending = asyncio.create_task(h.handler.interrupt())
        await asyncio.sleep(0.01)
        assert not pending.done()

        release.set()
        assert await pending is False
        assert turn.state is TurnState.FAILED
        assert "server_interrupted" not in controls(h.client.drain())
    async def test_malformed_frames_are_dropped(self, harness) -> None:
        h = await harness()
        await h.client.transport.send("not json")
        await h.client.transport.send('{"type": "audio", "value": [999]}')
        nested = "[" * 200_000 + "]" * 200_000
        await h.client.transport.send('{"type": "text", "value": ' + nested + "}")
        await h.client.transport.send('{"type": "text", "value": ' + "1" * 5000 + "}")
        await h.client.control("no_such_control")

        await h.speak(pcm())
        received = await h.client.recv_until("server_done")

        assert controls(received)[0] == "server_processing"
        assert not h.session.closed

    async def test_failed_turn_reports_error_and_session_continues(self, harness) -> None:
        stt = MockSTTProvider(error=RuntimeError("stt down"))
        h = await harness(stt=stt)
        await h.speak(pcm())

        received = await h.client.recv_until("server_error")
        assert controls(received) == ["server_processing", "server_error"]
        assert h.session.history == []

        stt.error = None
        await h.speak(pcm())
        await h.client.recv_until("server_done")

    async def test_errors_not_surfaced_when_disabled(self, harness) -> None:
        config = ServerConfig(pipeline=PipelineConfig(surface_errors=False))
        h = await harness(ai=MockAIProvider(error=RuntimeError("llm down")), config=config)
        await h.client.send("text", "hi")
        await wait_until(lambda: h.ai.calls and h.session.active_turn is None)

        received = h.client.drain()

        assert controls(received) == ["server_processing"]


class TestModes:
    async def test_voice_off_ignores_audio_and_skips_tts(self, harness) -> None:
        h = await harness()
        await h.client.send("flag", {"voice": "0"})
        await h.speak(pcm())
        await h.client.send("text", "hello")

        received = await h.client.recv_until("server_done")

        assert h.stt.calls == []
        assert controls(received) == ["server_processing", "server_done"]
        assert audio(received) == []

    async def test_voice_off_discards_capture(self, harness) -> None:
        h = await harness()
        await h.client.control("user_speaking")
        await h.client.audio(pcm())
        await h.client.send("flag", {"voice": "0"})
        await h.client.send("flag", {"voice": "1"})
        await h.client.control("user_paused")
        await h.client.send("text", "hello")

        await h.client.recv_until("server_done")

        assert h.stt.calls == []

    async def test_text_off_ignores_text(self, harness) -> None:
        h = await harness()
        await h.client.send("flag", {"text": "0"})
        await h.client.send("text", "ignored")
        await h.speak(pcm())

        await h.client.recv_until("server_done")

        assert len(h.ai.calls) == 1
        assert h.session.history[0].content == "hello there"

    async def test_flags_in_control_envelope(self, harness) -> None:
        h = await harness()
        await h.client.send("control", {"voice": "0", "text": "1"})
        await h.client.send("text", "hello")

        await h.client.recv_until("server_done")

        assert not h.session.voice_enabled
        assert h.session.text_enabled

    async def test_bad_flags_ignored(self, harness) -> None:
        h = await harness()
        await h.client.send("flag", {"voice": "perhaps"})
        await h.client.send("text", "hello")

        await h.client.recv_until("server_done")

        assert h.session.voice_enabled


class TestArchiving:
    async def test_record_start_archives_captures(self, harness, tmp_path: Path) -> None:
        h = await harness(archive=CaptureArchive(tmp_path), session=Session(id="room/42"))
        await h.client.control("record_start")
        await h.speak(pcm(100), pcm(200))
        await h.client.recv_until("server_done")

        raw = list(tmp_path.glob("*.pcm"))
        assert len(raw) == 1
        assert raw[0].read_bytes() == pcm(100) + pcm(200)
        assert raw[0].name.startswith("room_42_")
        assert raw[0].with_suffix(".wav").exists()

        await h.client.control("record_end")
        await h.speak(pcm(300))
        await h.client.recv_until("server_done")

        assert len(list(tmp_path.glob("*.pcm"))) == 1

    async def test_record_start_without_archive_is_ignored(self, harness) -> None:
        h = await harness()
        await h.client.control("record_start")
        await h.speak(pcm())

        await h.client.recv_until("server_done")

        assert not h.session.archiving


class TestTeardown:
    async def test_close_clears_session(self, harness) -> None:
        h = await harness()
        await h.speak(pcm())
        await h.client.recv_until("server_done")
        assert h.session.history

        await h.stop()

        assert h.session.closed
        assert h.session.history == []
        assert h.session.active_turn is None

    async def test_close_mid_turn_cancels_it(self, harness) -> None:
        h = await harness(ai=MockAIProvider(delay=10))
        finished: list[Turn] = []
        h.handler.on_turn_finished(lambda session, turn: finished.append(turn))
        await h.speak(pcm())
        await wait_until(lambda: h.ai.calls)

        await h.stop()

        assert [t.state for t in finished] == [TurnState.CANCELLED]
        assert h.session.history == []

    async def test_server_side_close(self, harness) -> None:
        h = await harness()
        await h.handler.close(1001, "going away")
        await asyncio.wait_for(h.task, 2.0)

        assert h.client.transport.closed
        assert h.client.transport.close_code == 1001
        assert h.session.closed
