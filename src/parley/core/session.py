"""Per-connection session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Flag, auto
from typing import TYPE_CHECKING

from parley.providers.ai.base import AIMessage, Role
from parley.voice.base import _utcnow

if TYPE_CHECKING:
    from parley.core.turn import Turn


class SessionMode(Flag):
    """Which conversation modes a session currently accepts."""

    NONE = 0
    VOICE = auto()
    """Audio capture is processed and replies are synthesized."""
    TEXT = auto()
    """Typed text turns are accepted."""
    BOTH = VOICE | TEXT


@dataclass
class Session:
    """State owned by one connection's session actor.

    ``history`` and ``capture_buffer`` are only ever mutated by the actor,
    or by the turn task while that turn is active.
    """

    id: str
    mode: SessionMode = SessionMode.BOTH
    history: list[AIMessage] = field(default_factory=list)
    capturing: bool = False
    capture_buffer: list[bytes] = field(default_factory=list)
    active_turn: Turn | None = None
    archiving: bool = False
    closed: bool = False
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def voice_enabled(self) -> bool:
        return SessionMode.VOICE in self.mode

    @property
    def text_enabled(self) -> bool:
        return SessionMode.TEXT in self.mode

    @property
    def busy(self) -> bool:
        """True while a turn is past capture and still running."""
        return self.active_turn is not None and not self.active_turn.finished

    def set_mode(self, *, voice: bool | None = None, text: bool | None = None) -> SessionMode:
        for flag, enabled in ((SessionMode.VOICE, voice), (SessionMode.TEXT, text)):
            if enabled is True:
                self.mode |= flag
            elif enabled is False:
                self.mode &= ~flag
        return self.mode

    # -- capture --------------------------------------------------------------

    def start_capture(self) -> None:
        self.capturing = True
        self.capture_buffer.clear()

    def append_audio(self, data: bytes) -> bool:
        """Append a chunk to the capture buffer. Returns False when not capturing."""
        if not self.capturing:
            return False
        self.capture_buffer.append(data)
        return True

    def take_capture(self) -> bytes:
        """End capture and return the buffered chunks concatenated in arrival order."""
        data = b"".join(self.capture_buffer)
        self.capture_buffer.clear()
        self.capturing = False
        return data

    # -- history --------------------------------------------------------------

    def add_message(self, role: Role, content: str) -> AIMessage:
        message = AIMessage(role=role, content=content)
        self.history.append(message)
        return message

    def rollback_history(self, mark: int) -> int:
        """Drop history entries appended after *mark*. Returns how many were dropped."""
        dropped = len(self.history) - mark
        if dropped > 0:
            del self.history[mark:]
            return dropped
        return 0

    def clear(self) -> None:
        self.history.clear()
        self.capture_buffer.clear()
        self.capturing = False
        self.active_turn = None
