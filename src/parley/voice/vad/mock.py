"""Scripted VAD provider for tests and demos."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from parley.voice.vad.base import VADEvent, VADEventType, VADProvider

if TYPE_CHECKING:
    from parley.voice.audio_frame import AudioFrame


class MockVADProvider(VADProvider):
    """Returns one scripted result per processed frame.

    Script entries may be full :class:`VADEvent` objects, bare event types
    or ``None`` (no event for that frame). Once the script is exhausted
    every further frame yields ``None``.

    Example:
        vad = MockVADProvider([VADEventType.SPEECH_START, None, VADEventType.SPEECH_END])
    """

    def __init__(self, script: Sequence[VADEvent | VADEventType | None] = ()) -> None:
        self._script = [
            VADEvent(type=entry) if isinstance(entry, VADEventType) else entry
            for entry in script
        ]
        self._position = 0
        self.frames: list[AudioFrame] = []
        self.reset_count = 0
        self.closed = False

    @property
    def name(self) -> str:
        return "MockVADProvider"

    def process(self, frame: AudioFrame) -> VADEvent | None:
        self.frames.append(frame)
        if self._position >= len(self._script):
            return None
        event = self._script[self._position]
        self._position += 1
        return event

    def reset(self) -> None:
        self._position = 0
        self.reset_count += 1

    def close(self) -> None:
        self.closed = True
