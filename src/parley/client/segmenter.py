"""Client-side capture segmentation driven by voice activity events."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from parley.protocol.messages import ClientControl, Message
from parley.voice.audio_frame import AudioFrame
from parley.voice.vad.base import VADEvent, VADEventType, VADProvider

logger = logging.getLogger("parley.client.segmenter")

SendFn = Callable[[Message], Awaitable[None]]
SegmentListener = Callable[[VADEventType], Any]


class CaptureSegmenter:
    """Turns a microphone frame stream plus VAD events into protocol messages.

    On speech start it sends ``user_speaking`` and then forwards each frame
    as an ``audio`` message; on speech end it sends ``user_paused``. Frames
    produced while not speaking are dropped, never buffered. A misfire is
    reported to listeners but changes nothing.
    """

    def __init__(
        self,
        send: SendFn,
        *,
        vad: VADProvider | None = None,
        enabled: bool = True,
    ) -> None:
        self._send = send
        self._vad = vad
        self._enabled = enabled
        self._speaking = False
        self._listeners: list[SegmentListener] = []
        self.frames_sent = 0
        self.frames_dropped = 0

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def enabled(self) -> bool:
        """Whether voice mode is on. Disabling stops forwarding at once."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        if not value:
            self._speaking = False

    def add_listener(self, listener: SegmentListener) -> None:
        """Call *listener* with the event type on speech start, end and misfire."""
        self._listeners.append(listener)

    async def _notify(self, event: VADEventType) -> None:
        for listener in self._listeners:
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in segmenter listener for %s", event)

    # -- VAD events -------------------------------------------------------------

    async def on_speech_start(self) -> None:
        if not self._enabled or self._speaking:
            return
        self._speaking = True
        await self._notify(VADEventType.SPEECH_START)
        await self._send(Message.control(ClientControl.USER_SPEAKING))

    async def on_speech_end(self) -> None:
        if not self._speaking:
            return
        self._speaking = False
        await self._send(Message.control(ClientControl.USER_PAUSED))
        await self._notify(VADEventType.SPEECH_END)

    async def on_misfire(self) -> None:
        await self._notify(VADEventType.MISFIRE)

    async def handle_event(self, event: VADEvent) -> None:
        if event.type is VADEventType.SPEECH_START:
            await self.on_speech_start()
        elif event.type is VADEventType.SPEECH_END:
            await self.on_speech_end()
        elif event.type is VADEventType.MISFIRE:
            await self.on_misfire()

    # -- frames -----------------------------------------------------------------

    async def on_frame(self, data: bytes) -> bool:
        """Forward a frame if speech is in progress. Returns whether it was sent."""
        if not self._speaking:
            self.frames_dropped += 1
            return False
        await self._send(Message.audio(data))
        self.frames_sent += 1
        return True

    async def process(self, frame: AudioFrame) -> VADEvent | None:
        """Run *frame* through the attached VAD, then forward and react.

        The frame is forwarded according to the state before the event it
        triggers: the frame that starts speech is dropped, the frame that
        ends it is still sent.
        """
        if self._vad is None:
            raise RuntimeError("CaptureSegmenter.process() needs a VAD provider")
        event = self._vad.process(frame)
        await self.on_frame(frame.data)
        if event is not None:
            await self.handle_event(event)
        return event
