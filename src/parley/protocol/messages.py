"""Wire message models for the session protocol."""

from __future__ import annotations

from enum import StrEnum, unique
from typing import Any

from pydantic import BaseModel


@unique
class MessageType(StrEnum):
    """Envelope types carried over the session transport."""

    CONTROL = "control"
    AUDIO = "audio"
    TEXT = "text"
    FLAG = "flag"


@unique
class ClientControl(StrEnum):
    """Control values sent by the client."""

    USER_SPEAKING = "user_speaking"
    USER_PAUSED = "user_paused"
    RECORD_START = "record_start"
    RECORD_END = "record_end"


@unique
class ServerControl(StrEnum):
    """Control values sent by the server."""

    SERVER_PROCESSING = "server_processing"
    SERVER_READY = "server_ready"
    SERVER_INTERRUPTED = "server_interrupted"
    SERVER_DONE = "server_done"
    SERVER_ERROR = "server_error"


class Message(BaseModel):
    """A single decoded protocol message.

    ``value`` holds raw ``bytes`` for audio messages, the control name for
    control messages, and any JSON value for text and flag messages.
    """

    type: MessageType
    value: Any = None

    @classmethod
    def control(cls, value: ClientControl | ServerControl | str) -> Message:
        return cls(type=MessageType.CONTROL, value=str(value))

    @classmethod
    def audio(cls, data: bytes) -> Message:
        return cls(type=MessageType.AUDIO, value=bytes(data))

    @classmethod
    def text(cls, text: str) -> Message:
        return cls(type=MessageType.TEXT, value=text)

    @classmethod
    def flag(cls, **flags: bool) -> Message:
        return cls(type=MessageType.FLAG, value={k: "1" if v else "0" for k, v in flags.items()})

    @property
    def control_name(self) -> str | None:
        """The control value as a string, or None for non-control messages."""
        if self.type is MessageType.CONTROL and isinstance(self.value, str):
            return self.value
        return None

    def is_control(self, value: ClientControl | ServerControl | str) -> bool:
        return self.control_name == str(value)
