"""Text-to-speech providers."""

from parley.voice.tts.base import TTSProvider
from parley.voice.tts.mock import MockTTSProvider

__all__ = ["MockTTSProvider", "TTSProvider"]
