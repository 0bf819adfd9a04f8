"""Session actor: one per connection, owns all of that session's state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from parley.core.config import ServerConfig
from parley.core.session import Session
from parley.core.turn import Turn, TurnPipeline
from parley.errors import DecodeError, TransportClosedError
from parley.protocol.codec import decode, encode_message, parse_flags
from parley.protocol.messages import ClientControl, Message, MessageType, ServerControl
from parley.providers.ai.base import AIProvider
from parley.transport.base import Transport
from parley.voice.stt.base import STTProvider
from parley.voice.tts.base import TTSProvider
from parley.voice.wav import CaptureArchive

logger = logging.getLogger("parley.session")

_CLOSED = object()

TurnCallback = Callable[[Session, Turn], Any]


class SessionHandler:
    """Drives one session over one transport.

    A receive task decodes frames and posts them to the inbox; :meth:`run`
    processes inbox messages one at a time. Turns execute as separate tasks
    so a ``user_speaking`` arriving mid-turn is observed immediately and
    interrupts the turn (barge-in).
    """

    def __init__(
        self,
        session: Session,
        transport: Transport,
        *,
        stt: STTProvider | None,
        ai: AIProvider,
        tts: TTSProvider | None = None,
        config: ServerConfig | None = None,
        archive: CaptureArchive | None = None,
    ) -> None:
        self._session = session
        self._transport = transport
        self._config = config or ServerConfig()
        self._archive = archive
        self._inbox: asyncio.Queue[Message | object] = asyncio.Queue(self._config.inbox_size)
        self._pipeline = TurnPipeline(
            session,
            stt=stt,
            ai=ai,
            tts=tts,
            send=self.send,
            config=self._config.pipeline,
            capture=self._config.capture,
        )
        self._turn_task: asyncio.Task[Turn] | None = None
        self._turn_callbacks: list[TurnCallback] = []
        self._stopping = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def transport(self) -> Transport:
        return self._transport

    def on_turn_finished(self, callback: TurnCallback) -> None:
        """Register a callback fired with ``(session, turn)`` when a turn ends."""
        self._turn_callbacks.append(callback)

    # -- lifecycle --------------------------------------------------------------

    async def run(self) -> None:
        """Process messages until the transport closes, then tear down."""
        receiver = asyncio.create_task(
            self._receive_loop(), name=f"parley-recv-{self._session.id}"
        )
        try:
            while True:
                item = await self._inbox.get()
                if item is _CLOSED:
                    break
                assert isinstance(item, Message)
                try:
                    await self._dispatch(item)
                except TransportClosedError:
                    logger.debug("Transport closed while handling %s", item.type)
                    break
        finally:
            self._stopping = True
            receiver.cancel()
            await asyncio.gather(receiver, return_exceptions=True)
            await self._teardown()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the transport; :meth:`run` then tears the session down."""
        await self._transport.close(code, reason)

    async def _receive_loop(self) -> None:
        try:
            async for frame in self._transport:
                try:
                    message = decode(frame)
                except DecodeError as exc:
                    logger.warning(
                        "Dropping malformed frame from session %s: %s", self._session.id, exc
                    )
                    continue
                await self._inbox.put(message)
        except Exception:
            logger.exception("Receive loop failed for session %s", self._session.id)
        finally:
            if not self._stopping:
                await self._inbox.put(_CLOSED)

    async def _teardown(self) -> None:
        turn = self._session.active_turn
        task = self._turn_task
        if task is not None and not task.done():
            if turn is not None:
                turn.cancel("session closed")
            await asyncio.gather(task, return_exceptions=True)
        self._session.clear()
        self._session.closed = True
        if not self._transport.closed:
            await self._transport.close()
        logger.info("Session %s closed", self._session.id)

    # -- outbound ---------------------------------------------------------------

    async def send(self, message: Message) -> None:
        await self._transport.send(
            encode_message(message, audio_encoding=self._config.audio_encoding)
        )

    # -- dispatch ---------------------------------------------------------------

    async def _dispatch(self, message: Message) -> None:
        if message.type is MessageType.CONTROL:
            if isinstance(message.value, dict):
                # Some clients send mode flags as a control object.
                self._apply_flags(message.value)
            else:
                await self._handle_control(message.value)
        elif message.type is MessageType.AUDIO:
            self._handle_audio(message.value)
        elif message.type is MessageType.TEXT:
            await self._handle_text(message.value)
        elif message.type is MessageType.FLAG:
            self._apply_flags(message.value)

    async def _handle_control(self, value: Any) -> None:
        try:
            control = ClientControl(value)
        except ValueError:
            logger.warning("Unknown control %r from session %s", value, self._session.id)
            return

        if control is ClientControl.USER_SPEAKING:
            await self._on_user_speaking()
        elif control is ClientControl.USER_PAUSED:
            await self._on_user_paused()
        elif control is ClientControl.RECORD_START:
            if self._archive is None:
                logger.warning(
                    "record_start from session %s ignored: no archive directory", self._session.id
                )
                return
            self._session.archiving = True
        elif control is ClientControl.RECORD_END:
            self._session.archiving = False

    async def _on_user_speaking(self) -> None:
        if not self._session.voice_enabled:
            logger.debug("user_speaking ignored: voice mode off in %s", self._session.id)
            return
        await self.interrupt()
        if self._session.capturing:
            logger.debug("Restarting capture in session %s", self._session.id)
        self._session.start_capture()

    async def _on_user_paused(self) -> None:
        if not self._session.capturing:
            logger.debug("user_paused without capture in session %s", self._session.id)
            return
        audio = self._session.take_capture()
        if not audio:
            logger.debug("Empty capture in session %s, nothing to do", self._session.id)
            return
        if self._session.archiving and self._archive is not None:
            try:
                await self._archive.save_async(self._session.id, audio)
            except OSError:
                logger.exception("Failed to archive capture for session %s", self._session.id)
        await self.interrupt()
        self._start_turn(Turn.from_capture(audio))

    def _handle_audio(self, data: bytes) -> None:
        if not self._session.voice_enabled or not self._session.append_audio(data):
            logger.debug(
                "Dropping %d audio bytes outside capture in %s", len(data), self._session.id
            )

    async def _handle_text(self, value: Any) -> None:
        if not self._session.text_enabled:
            logger.debug("Text ignored: text mode off in %s", self._session.id)
            return
        if not isinstance(value, str) or not value.strip():
            logger.warning("Ignoring empty or non-string text from %s", self._session.id)
            return
        await self.interrupt()
        self._start_turn(Turn.from_text(value))

    def _apply_flags(self, value: Any) -> None:
        try:
            flags = parse_flags(value)
        except DecodeError as exc:
            logger.warning("Bad mode flags from session %s: %s", self._session.id, exc)
            return
        mode = self._session.set_mode(**flags)
        if not self._session.voice_enabled and self._session.capturing:
            self._session.take_capture()
        logger.debug("Session %s mode is now %s", self._session.id, mode)

    # -- turns ------------------------------------------------------------------

    def _start_turn(self, turn: Turn) -> None:
        self._session.active_turn = turn
        task = asyncio.create_task(
            self._pipeline.run(turn), name=f"parley-turn-{self._session.id}-{turn.id}"
        )
        self._turn_task = task
        task.add_done_callback(lambda t: self._on_turn_done(t, turn))

    def _on_turn_done(self, task: asyncio.Task[Turn], turn: Turn) -> None:
        if self._turn_task is task:
            self._turn_task = None
        if self._session.active_turn is turn:
            self._session.active_turn = None
        logger.debug("Turn %s ended %s", turn.id, turn.state)
        for cb in self._turn_callbacks:
            try:
                cb(self._session, turn)
            except Exception:
                logger.exception("Error in turn callback for session %s", self._session.id)

    async def interrupt(self, reason: str = "barge-in") -> bool:
        """Cancel the in-flight turn, wait for its teardown, tell the client.

        Returns False when no turn was running.
        """
        task = self._turn_task
        turn = self._session.active_turn
        if task is None or task.done() or turn is None:
            return False
        if not self._session.busy:
            # Already finished; only the task teardown is left
            await asyncio.gather(task, return_exceptions=True)
            return False
        turn.cancel(reason)
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Turn %s interrupted (%s) in session %s", turn.id, reason, self._session.id)
        await self.send(Message.control(ServerControl.SERVER_INTERRUPTED))
        return True
