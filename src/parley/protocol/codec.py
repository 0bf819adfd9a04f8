"""JSON envelope codec for session messages.

Every message travels as ``{"type": ..., "value": ...}`` in a text frame.
Audio values are raw PCM bytes, encoded as an array of byte values by
default. Decoding is lenient about audio: an int array, a JSON string
holding an int array, or base64 text are all accepted, and binary
transport frames are treated as audio messages.
"""

from __future__ import annotations

import base64
import binascii
import json
from enum import StrEnum, unique
from typing import Any

from parley.errors import DecodeError
from parley.protocol.messages import Message, MessageType

__all__ = [
    "AudioEncoding",
    "DecodeError",
    "Frame",
    "decode",
    "decode_audio_value",
    "encode",
    "encode_message",
    "parse_flags",
]

Frame = str | bytes
"""A transport frame: text frames carry JSON envelopes, binary frames carry audio."""

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@unique
class AudioEncoding(StrEnum):
    """How outbound audio payloads are framed."""

    INT_ARRAY = "int_array"
    BASE64 = "base64"
    BINARY = "binary"


def encode(
    type: MessageType | str,
    value: Any = None,
    *,
    audio_encoding: AudioEncoding = AudioEncoding.INT_ARRAY,
) -> Frame:
    """Encode a message into a transport frame.

    Raises:
        ValueError: If *type* is not a known message type.
        TypeError: If an audio value is not bytes-like.
    """
    msg_type = MessageType(type)
    if msg_type is MessageType.AUDIO:
        if not isinstance(value, bytes | bytearray | memoryview):
            raise TypeError(f"audio value must be bytes, got {type_name(value)}")
        data = bytes(value)
        if audio_encoding is AudioEncoding.BINARY:
            return data
        if audio_encoding is AudioEncoding.BASE64:
            payload: Any = base64.b64encode(data).decode("ascii")
        else:
            payload = list(data)
    else:
        payload = value
    return json.dumps({"type": msg_type.value, "value": payload}, separators=(",", ":"))


def encode_message(
    message: Message, *, audio_encoding: AudioEncoding = AudioEncoding.INT_ARRAY
) -> Frame:
    return encode(message.type, message.value, audio_encoding=audio_encoding)


def decode(frame: Frame | bytearray | memoryview) -> Message:
    """Decode a transport frame into a :class:`Message`.

    Raises:
        DecodeError: If the frame is not a valid envelope.
    """
    if isinstance(frame, bytes | bytearray | memoryview):
        # Only audio is ever sent as a binary frame.
        return Message(type=MessageType.AUDIO, value=bytes(frame))
    if not isinstance(frame, str):
        raise DecodeError(f"unsupported frame type {type_name(frame)}")

    try:
        envelope = json.loads(frame)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        # Oversized integer literals and pathologically deep nesting
        raise DecodeError(f"unparseable JSON: {exc}") from exc
    if not isinstance(envelope, dict):
        raise DecodeError("envelope must be a JSON object")
    if "type" not in envelope:
        raise DecodeError("envelope is missing 'type'")

    try:
        msg_type = MessageType(envelope["type"])
    except ValueError as exc:
        raise DecodeError(f"unknown message type {envelope['type']!r}") from exc

    value = envelope.get("value")
    if msg_type is MessageType.AUDIO:
        value = decode_audio_value(value)
    return Message(type=msg_type, value=value)


def decode_audio_value(value: Any) -> bytes:
    """Convert an audio envelope value into raw bytes.

    Raises:
        DecodeError: If the value is not a byte array, a JSON-encoded byte
            array, or base64 text.
    """
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except (ValueError, RecursionError) as exc:
                raise DecodeError("audio value is not a valid JSON array") from exc
        else:
            try:
                return base64.b64decode(stripped, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise DecodeError("audio value is not valid base64") from exc

    if not isinstance(value, list):
        raise DecodeError(f"audio value must be a byte array, got {type_name(value)}")
    if any(isinstance(b, bool) or not isinstance(b, int) for b in value):
        raise DecodeError("audio array must contain only integers")
    try:
        return bytes(value)
    except ValueError as exc:
        raise DecodeError("audio array values must be in range 0..255") from exc


def parse_flags(value: Any) -> dict[str, bool]:
    """Parse a mode flag payload such as ``{"voice": "1", "text": "0"}``.

    Only the ``voice`` and ``text`` keys are recognized; other keys are
    ignored. Values may be ``"1"``/``"0"``, integers, booleans or
    ``"true"``/``"false"``.

    Raises:
        DecodeError: If the payload is not an object or a value is not a
            recognizable boolean.
    """
    if not isinstance(value, dict):
        raise DecodeError(f"flag value must be an object, got {type_name(value)}")
    flags: dict[str, bool] = {}
    for key in ("voice", "text"):
        if key in value:
            flags[key] = _parse_bool(key, value[key])
    return flags


def _parse_bool(key: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise DecodeError(f"invalid value for flag {key!r}: {raw!r}")


def type_name(value: Any) -> str:
    return type(value).__name__
