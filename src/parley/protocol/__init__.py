"""Session wire protocol: message models and the JSON envelope codec."""

from parley.protocol.codec import (
    AudioEncoding,
    DecodeError,
    Frame,
    decode,
    decode_audio_value,
    encode,
    encode_message,
    parse_flags,
)
from parley.protocol.messages import ClientControl, Message, MessageType, ServerControl

__all__ = [
    "AudioEncoding",
    "ClientControl",
    "DecodeError",
    "Frame",
    "Message",
    "MessageType",
    "ServerControl",
    "decode",
    "decode_audio_value",
    "encode",
    "encode_message",
    "parse_flags",
]
