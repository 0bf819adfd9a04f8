"""Speech-to-text providers."""

from parley.voice.stt.base import AudioInputFormat, STTProvider
from parley.voice.stt.mock import MockSTTProvider

__all__ = ["AudioInputFormat", "MockSTTProvider", "STTProvider"]
