"""Voice building blocks: audio models, providers, VAD and WAV archiving."""

from parley.voice.audio_frame import AudioFrame
from parley.voice.base import AudioChunk, TranscriptionResult
from parley.voice.stt import AudioInputFormat, MockSTTProvider, STTProvider
from parley.voice.tts import MockTTSProvider, TTSProvider
from parley.voice.vad import (
    EnergyVADProvider,
    MockVADProvider,
    VADEvent,
    VADEventType,
    VADProvider,
)
from parley.voice.wav import ArchivedCapture, CaptureArchive, pcm_to_wav

__all__ = [
    "ArchivedCapture",
    "AudioChunk",
    "AudioFrame",
    "AudioInputFormat",
    "CaptureArchive",
    "EnergyVADProvider",
    "MockSTTProvider",
    "MockTTSProvider",
    "MockVADProvider",
    "STTProvider",
    "TTSProvider",
    "TranscriptionResult",
    "VADEvent",
    "VADEventType",
    "VADProvider",
    "pcm_to_wav",
]
