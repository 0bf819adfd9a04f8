"""WebSocket server hosting one session actor per connection."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any
from urllib.parse import unquote, urlsplit
from uuid import uuid4

from websockets.asyncio.server import Server, ServerConnection, serve

from parley.core.config import ServerConfig
from parley.core.handler import SessionHandler, TurnCallback
from parley.core.session import Session, SessionMode
from parley.errors import SessionExistsError
from parley.providers.ai.base import AIProvider
from parley.transport.base import Transport
from parley.transport.websocket import WebSocketTransport
from parley.voice.stt.base import STTProvider
from parley.voice.tts.base import TTSProvider
from parley.voice.wav import CaptureArchive

logger = logging.getLogger("parley.server")

# RFC 6455 "policy violation"
CLOSE_POLICY_VIOLATION = 1008


def session_id_from_path(path: str) -> str:
    """Extract the session id from a request path like ``/conv-42-ab12cd``.

    A random id is generated when the path is empty.
    """
    raw = unquote(urlsplit(path).path).strip("/")
    return raw or uuid4().hex


class ParleyServer:
    """Serves interruptible voice/text conversations over WebSocket.

    Each connection gets its own :class:`Session` and
    :class:`SessionHandler`; sessions share nothing but the providers.

    Example:
        server = ParleyServer(stt=stt, ai=ai, tts=tts, config=ServerConfig(port=8765))
        async with server:
            await server.wait_closed()
    """

    def __init__(
        self,
        *,
        ai: AIProvider,
        stt: STTProvider | None = None,
        tts: TTSProvider | None = None,
        config: ServerConfig | None = None,
    ) -> None:
        self._ai = ai
        self._stt = stt
        self._tts = tts
        self._config = config or ServerConfig()
        self._handlers: dict[str, SessionHandler] = {}
        self._turn_callbacks: list[TurnCallback] = []
        self._server: Server | None = None
        self._archive: CaptureArchive | None = None
        if self._config.archive_dir is not None:
            capture = self._config.capture
            self._archive = CaptureArchive(
                self._config.archive_dir,
                sample_rate=capture.sample_rate,
                channels=capture.channels,
                sample_width=capture.sample_width,
            )

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def port(self) -> int:
        """The bound port (useful when configured with port 0)."""
        if self._server is None:
            raise RuntimeError("server is not started")
        for sock in self._server.sockets:
            return int(sock.getsockname()[1])
        raise RuntimeError("server has no listening sockets")

    def on_turn_finished(self, callback: TurnCallback) -> None:
        """Register a callback fired with ``(session, turn)`` whenever any turn ends."""
        self._turn_callbacks.append(callback)

    # -- sessions ---------------------------------------------------------------

    def create_session(self, session_id: str) -> Session:
        mode = SessionMode.NONE
        if self._config.voice_enabled:
            mode |= SessionMode.VOICE
        if self._config.text_enabled:
            mode |= SessionMode.TEXT
        session = Session(
            id=session_id,
            mode=mode,
            archiving=self._archive is not None and self._config.archive_by_default,
        )
        if self._config.pipeline.system_prompt:
            session.add_message("system", self._config.pipeline.system_prompt)
        return session

    def get_session(self, session_id: str) -> Session | None:
        handler = self._handlers.get(session_id)
        return handler.session if handler is not None else None

    def list_sessions(self) -> list[Session]:
        return [h.session for h in self._handlers.values()]

    async def handle_transport(self, session_id: str, transport: Transport) -> Session:
        """Run a session over *transport* until it closes.

        Raises:
            SessionExistsError: If *session_id* is already live.
        """
        if session_id in self._handlers:
            raise SessionExistsError(f"session {session_id!r} is already active")
        session = self.create_session(session_id)
        handler = SessionHandler(
            session,
            transport,
            stt=self._stt,
            ai=self._ai,
            tts=self._tts,
            config=self._config,
            archive=self._archive,
        )
        for cb in self._turn_callbacks:
            handler.on_turn_finished(cb)
        self._handlers[session_id] = handler
        logger.info("Session %s opened", session_id)
        try:
            await handler.run()
        finally:
            self._handlers.pop(session_id, None)
        return session

    async def _handle_connection(self, connection: ServerConnection) -> None:
        path = connection.request.path if connection.request is not None else "/"
        session_id = session_id_from_path(path)
        try:
            await self.handle_transport(session_id, WebSocketTransport(connection))
        except SessionExistsError:
            logger.warning("Refusing duplicate connection for session %s", session_id)
            await connection.close(CLOSE_POLICY_VIOLATION, "session already active")

    # -- lifecycle --------------------------------------------------------------

    async def start(self) -> None:
        if self._server is not None:
            return
        c = self._config
        self._server = await serve(
            self._handle_connection,
            c.host,
            c.port,
            max_size=c.max_size,
            ping_interval=c.ping_interval,
            ping_timeout=c.ping_timeout,
            close_timeout=c.close_timeout,
        )
        logger.info("Listening on ws://%s:%d", c.host, self.port)

    async def stop(self) -> None:
        """Close every session and stop listening."""
        handlers = list(self._handlers.values())
        await asyncio.gather(*(h.close(1001, "server shutdown") for h in handlers))
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def wait_closed(self) -> None:
        if self._server is not None:
            await self._server.wait_closed()

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Future()
        finally:
            await self.stop()

    async def __aenter__(self) -> ParleyServer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def close(self) -> None:
        """Stop the server and release provider resources."""
        await self.stop()
        closers: list[Any] = [self._ai.close()]
        if self._stt is not None:
            closers.append(self._stt.close())
        if self._tts is not None:
            closers.append(self._tts.close())
        await asyncio.gather(*closers)
