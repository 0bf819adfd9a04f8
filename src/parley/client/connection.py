"""WebSocket client for a parley server."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any
from urllib.parse import quote
from uuid import uuid4

from websockets.asyncio.client import connect

from parley.client.playback import PlaybackBuffer
from parley.client.segmenter import CaptureSegmenter
from parley.errors import DecodeError, TransportClosedError
from parley.protocol.codec import AudioEncoding, decode, encode_message
from parley.protocol.messages import ClientControl, Message, MessageType, ServerControl
from parley.transport.websocket import WebSocketTransport
from parley.voice.vad.base import VADEventType, VADProvider

logger = logging.getLogger("parley.client")

TextCallback = Callable[[str], Any]
ControlCallback = Callable[[str], Any]


def session_url(base_url: str, conversation_id: str) -> str:
    """Build a per-connection session URL: ``<base>/<conversation>-<random>``."""
    suffix = uuid4().hex[:8]
    return f"{base_url.rstrip('/')}/{quote(conversation_id, safe='')}-{suffix}"


class ParleyClient:
    """Connects to a parley server and wires capture and playback to it.

    Server ``audio`` messages feed the playback buffer. ``server_ready``
    and ``server_interrupted`` reset it, and ``server_done`` marks the
    stream complete. When *pause_on_speech* is set, local speech pauses
    playback and a VAD misfire resumes it.
    """

    def __init__(
        self,
        url: str,
        *,
        playback: PlaybackBuffer | None = None,
        vad: VADProvider | None = None,
        audio_encoding: AudioEncoding = AudioEncoding.INT_ARRAY,
        pause_on_speech: bool = True,
        open_timeout: float = 10.0,
        max_size: int | None = 2**22,
    ) -> None:
        self._url = url
        self._playback = playback
        self._audio_encoding = audio_encoding
        self._open_timeout = open_timeout
        self._max_size = max_size
        self._transport: WebSocketTransport | None = None
        self._reader: asyncio.Task[None] | None = None
        self._text_callbacks: list[TextCallback] = []
        self._control_callbacks: list[ControlCallback] = []
        self._error_callbacks: list[Callable[[], Any]] = []
        self._segmenter = CaptureSegmenter(self.send, vad=vad)
        if pause_on_speech and playback is not None:
            self._segmenter.add_listener(self._on_segment_event)

    @property
    def url(self) -> str:
        return self._url

    @property
    def segmenter(self) -> CaptureSegmenter:
        return self._segmenter

    @property
    def playback(self) -> PlaybackBuffer | None:
        return self._playback

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.closed

    def on_text(self, callback: TextCallback) -> None:
        self._text_callbacks.append(callback)

    def on_control(self, callback: ControlCallback) -> None:
        self._control_callbacks.append(callback)

    def on_error(self, callback: Callable[[], Any]) -> None:
        """Called when the server reports a failed turn."""
        self._error_callbacks.append(callback)

    # -- connection -------------------------------------------------------------

    async def connect(self) -> None:
        if self._transport is not None:
            return
        ws = await connect(self._url, open_timeout=self._open_timeout, max_size=self._max_size)
        self._transport = WebSocketTransport(ws)
        self._reader = asyncio.create_task(self._read_loop(), name="parley-client-reader")
        logger.info("Connected to %s", self._url)

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()
        if self._reader is not None:
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None
        self._transport = None

    async def wait_closed(self) -> None:
        if self._reader is not None:
            await asyncio.gather(self._reader, return_exceptions=True)

    async def __aenter__(self) -> ParleyClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- outbound ---------------------------------------------------------------

    async def send(self, message: Message) -> None:
        if self._transport is None:
            raise TransportClosedError("client is not connected")
        await self._transport.send(encode_message(message, audio_encoding=self._audio_encoding))

    async def send_control(self, control: ClientControl) -> None:
        await self.send(Message.control(control))

    async def send_audio(self, data: bytes) -> None:
        await self.send(Message.audio(data))

    async def send_text(self, text: str) -> None:
        await self.send(Message.text(text))

    async def send_flags(self, *, voice: bool | None = None, text: bool | None = None) -> None:
        flags = {k: v for k, v in (("voice", voice), ("text", text)) if v is not None}
        if voice is not None:
            self._segmenter.enabled = voice
        await self.send(Message.flag(**flags))

    # -- inbound ----------------------------------------------------------------

    async def _read_loop(self) -> None:
        assert self._transport is not None
        async for frame in self._transport:
            try:
                message = decode(frame)
            except DecodeError as exc:
                logger.warning("Dropping malformed frame from server: %s", exc)
                continue
            try:
                await self._route(message)
            except Exception:
                logger.exception("Error handling %s message", message.type)
        logger.info("Disconnected from %s", self._url)

    async def _route(self, message: Message) -> None:
        if message.type is MessageType.AUDIO:
            if self._playback is not None:
                self._playback.append(message.value)
        elif message.type is MessageType.TEXT:
            await _fire(self._text_callbacks, message.value)
        elif message.type is MessageType.CONTROL:
            control = message.control_name
            if control is None:
                logger.warning("Ignoring non-string control %r", message.value)
                return
            self._apply_control(control)
            if control == ServerControl.SERVER_ERROR:
                await _fire(self._error_callbacks)
            await _fire(self._control_callbacks, control)

    def _apply_control(self, control: str) -> None:
        if self._playback is None:
            return
        if control in (ServerControl.SERVER_READY, ServerControl.SERVER_INTERRUPTED):
            self._playback.reset()
        elif control == ServerControl.SERVER_DONE:
            self._playback.mark_stream_complete()

    def _on_segment_event(self, event: VADEventType) -> None:
        assert self._playback is not None
        if event is VADEventType.SPEECH_START:
            self._playback.pause()
        elif event is VADEventType.MISFIRE:
            self._playback.resume()


async def _fire(callbacks: list[Callable[..., Any]], *args: Any) -> None:
    for cb in callbacks:
        try:
            result = cb(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Error in client callback")
