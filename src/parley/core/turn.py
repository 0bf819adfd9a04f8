"""Turn state machine and the STT -> LLM -> TTS pipeline that drives it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import StrEnum, unique
from typing import TypeVar
from uuid import uuid4

from parley.core.cancellation import CancellationToken, CancelScope
from parley.core.config import CaptureFormat, PipelineConfig
from parley.core.session import Session
from parley.errors import InvalidTransitionError, TransportClosedError, TurnCancelledError
from parley.protocol.messages import Message, ServerControl
from parley.providers.ai.base import AIProvider, Role
from parley.voice.base import AudioChunk
from parley.voice.stt.base import AudioInputFormat, STTProvider
from parley.voice.tts.base import TTSProvider
from parley.voice.wav import pcm_to_wav

logger = logging.getLogger("parley.turn")

T = TypeVar("T")

SendFn = Callable[[Message], Awaitable[None]]


@unique
class TurnState(StrEnum):
    """Lifecycle of one request/response cycle."""

    IDLE = "idle"
    CAPTURING = "capturing"
    TRANSCRIBING = "transcribing"
    GENERATING = "generating"
    SYNTHESIZING = "synthesizing"
    STREAMING = "streaming"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TurnState.DONE, TurnState.CANCELLED, TurnState.FAILED})

_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.CAPTURING, TurnState.GENERATING}),
    TurnState.CAPTURING: frozenset({TurnState.TRANSCRIBING}),
    TurnState.TRANSCRIBING: frozenset({TurnState.GENERATING, TurnState.DONE}),
    TurnState.GENERATING: frozenset({TurnState.SYNTHESIZING, TurnState.DONE}),
    TurnState.SYNTHESIZING: frozenset({TurnState.STREAMING, TurnState.DONE}),
    TurnState.STREAMING: frozenset({TurnState.DONE}),
}


@dataclass
class Turn:
    """One request/response cycle.

    A voice turn starts in ``CAPTURING`` holding the finished capture
    snapshot; a text turn starts in ``IDLE`` holding the typed text.
    """

    audio: bytes = b""
    text: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex[:12])
    state: TurnState = TurnState.IDLE
    transcript: str | None = None
    reply: str | None = None
    chunks_sent: int = 0
    error: BaseException | None = None
    token: CancellationToken = field(default_factory=CancellationToken)
    states: list[TurnState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.states.append(self.state)

    @classmethod
    def from_capture(cls, audio: bytes) -> Turn:
        return cls(audio=audio, state=TurnState.CAPTURING)

    @classmethod
    def from_text(cls, text: str) -> Turn:
        return cls(text=text)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, state: TurnState) -> None:
        """Move to *state*.

        Raises:
            InvalidTransitionError: If the move is not allowed from the
                current state.
        """
        if self.finished:
            raise InvalidTransitionError(f"turn {self.id} already {self.state}")
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if state not in allowed and state not in (TurnState.CANCELLED, TurnState.FAILED):
            raise InvalidTransitionError(f"turn {self.id}: {self.state} -> {state} not allowed")
        self.state = state
        self.states.append(state)

    def cancel(self, reason: str = "cancelled") -> bool:
        return self.token.cancel(reason)


class TurnPipeline:
    """Executes turns for one session.

    Every provider call runs inside the turn's cancel scope, and the token is
    checked before every side effect (a send or a history append), so a
    cancelled turn emits nothing further. History entries added by a turn
    that ends cancelled or failed are rolled back.
    """

    def __init__(
        self,
        session: Session,
        *,
        stt: STTProvider | None,
        ai: AIProvider,
        tts: TTSProvider | None,
        send: SendFn,
        config: PipelineConfig | None = None,
        capture: CaptureFormat | None = None,
    ) -> None:
        self._session = session
        self._stt = stt
        self._ai = ai
        self._tts = tts
        self._send = send
        self._config = config or PipelineConfig()
        self._capture = capture or CaptureFormat()

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def run(self, turn: Turn) -> Turn:
        """Run *turn* to a terminal state. Never raises for provider failures."""
        mark = len(self._session.history)
        try:
            async with CancelScope(turn.token):
                await self._execute(turn)
        except TurnCancelledError as exc:
            self._abort(turn, mark, TurnState.CANCELLED)
            logger.debug("Turn %s cancelled (%s)", turn.id, exc.reason)
        except asyncio.CancelledError:
            self._abort(turn, mark, TurnState.CANCELLED)
            raise
        except Exception as exc:
            if turn.token.cancelled:
                self._abort(turn, mark, TurnState.CANCELLED)
                logger.debug("Turn %s cancelled while failing: %s", turn.id, exc)
                return turn
            turn.error = exc
            self._abort(turn, mark, TurnState.FAILED)
            if isinstance(exc, TransportClosedError):
                logger.debug("Turn %s stopped: transport closed", turn.id)
                return turn
            logger.exception("Turn %s failed in session %s", turn.id, self._session.id)
            await self._report_failure(turn)
        return turn

    def _abort(self, turn: Turn, mark: int, state: TurnState) -> None:
        dropped = self._session.rollback_history(mark)
        if dropped:
            logger.debug("Rolled back %d history entries of turn %s", dropped, turn.id)
        if not turn.finished:
            turn.transition(state)

    async def _report_failure(self, turn: Turn) -> None:
        if not self._config.surface_errors:
            return
        try:
            await self._send(Message.control(ServerControl.SERVER_ERROR))
        except TransportClosedError:
            logger.debug("Could not report failure of turn %s: transport closed", turn.id)

    # -- stages -----------------------------------------------------------------

    async def _execute(self, turn: Turn) -> None:
        if turn.state is TurnState.CAPTURING:
            await self._emit(turn, Message.control(ServerControl.SERVER_PROCESSING))
            user_text = await self._transcribe(turn)
            if not user_text:
                logger.debug("Empty transcript for turn %s", turn.id)
                turn.transition(TurnState.DONE)
                return
            turn.transition(TurnState.GENERATING)
            self._commit(turn, "user", user_text)
            if self._config.echo_transcript:
                await self._emit(turn, Message.text(user_text))
        else:
            await self._emit(turn, Message.control(ServerControl.SERVER_PROCESSING))
            user_text = (turn.text or "").strip()
            turn.transition(TurnState.GENERATING)
            self._commit(turn, "user", user_text)

        turn.reply = await self._guard(
            self._ai.generate_reply(
                list(self._session.history),
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )
        )
        self._commit(turn, "assistant", turn.reply)
        await self._emit(turn, Message.text(turn.reply))

        if self._tts is not None and self._session.voice_enabled and turn.reply.strip():
            turn.transition(TurnState.SYNTHESIZING)
            await self._stream_speech(turn, turn.reply)
        await self._emit(turn, Message.control(ServerControl.SERVER_DONE))
        turn.transition(TurnState.DONE)

    async def _transcribe(self, turn: Turn) -> str:
        if self._stt is None:
            raise RuntimeError("voice turn started without an STT provider")
        turn.transition(TurnState.TRANSCRIBING)
        result = await self._guard(
            self._stt.transcribe(self._frame_capture(turn.audio), language=self._config.language)
        )
        turn.transcript = result.text.strip()
        return turn.transcript

    def _frame_capture(self, audio: bytes) -> AudioChunk:
        fmt = self._capture
        assert self._stt is not None
        if self._stt.input_format is AudioInputFormat.WAV:
            data = pcm_to_wav(
                audio,
                sample_rate=fmt.sample_rate,
                channels=fmt.channels,
                sample_width=fmt.sample_width,
            )
            return AudioChunk(
                data=data, sample_rate=fmt.sample_rate, channels=fmt.channels, format="wav"
            )
        return AudioChunk(
            data=audio,
            sample_rate=fmt.sample_rate,
            channels=fmt.channels,
            format=fmt.pcm_format,
            is_final=True,
        )

    async def _stream_speech(self, turn: Turn, text: str) -> None:
        assert self._tts is not None
        await self._emit(turn, Message.control(ServerControl.SERVER_READY))
        stream = self._tts.synthesize_stream(text, voice=self._config.voice)
        try:
            while True:
                chunk = await self._next_chunk(stream)
                if chunk is None:
                    break
                if not chunk.data:
                    continue
                await self._emit(turn, Message.audio(chunk.data))
                if turn.state is TurnState.SYNTHESIZING:
                    turn.transition(TurnState.STREAMING)
                turn.chunks_sent += 1
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _next_chunk(self, stream: AsyncIterator[AudioChunk]) -> AudioChunk | None:
        try:
            return await self._guard(anext(stream))
        except StopAsyncIteration:
            return None

    # -- helpers ----------------------------------------------------------------

    async def _guard(self, awaitable: Awaitable[T]) -> T:
        """Await a provider call under the configured dead-man timeout."""
        timeout = self._config.provider_timeout
        async with asyncio.timeout(timeout) if timeout else nullcontext():
            return await awaitable

    def _commit(self, turn: Turn, role: Role, content: str) -> None:
        turn.token.raise_if_cancelled()
        self._session.add_message(role, content)

    async def _emit(self, turn: Turn, message: Message) -> None:
        turn.token.raise_if_cancelled()
        await self._send(message)
