"""Energy-based Voice Activity Detection provider.

Uses RMS amplitude thresholding to detect speech, with no external
dependencies. Good enough for local testing and quiet rooms; plug a neural
VAD in through :class:`~parley.voice.vad.base.VADProvider` otherwise.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from parley.voice.utils import rms
from parley.voice.vad.base import VADEvent, VADEventType, VADProvider

if TYPE_CHECKING:
    from parley.voice.audio_frame import AudioFrame

logger = logging.getLogger(__name__)

# Thresholds are expressed on the int16 scale whatever the frame width.
_INT16_SCALE = {1: 256.0, 2: 1.0, 3: 1 / 256.0, 4: 1 / 65536.0}


class EnergyVADProvider(VADProvider):
    """VAD provider that detects speech by RMS energy thresholding.

    Parameters:
        energy_threshold: RMS threshold for speech detection (int16 scale, 0-32768).
        silence_threshold_ms: Milliseconds of consecutive silence to end speech.
        min_speech_duration_ms: Minimum speech duration to emit SPEECH_END.
            Shorter segments end with MISFIRE instead.
    """

    def __init__(
        self,
        *,
        energy_threshold: float = 300.0,
        silence_threshold_ms: float = 500,
        min_speech_duration_ms: float = 200,
    ) -> None:
        self._energy_threshold = energy_threshold
        self._silence_threshold_ms = silence_threshold_ms
        self._min_speech_duration_ms = min_speech_duration_ms

        self._speaking = False
        self._silence_ms: float = 0.0
        self._speech_ms: float = 0.0

    @property
    def name(self) -> str:
        return "EnergyVADProvider"

    @property
    def speaking(self) -> bool:
        return self._speaking

    def process(self, frame: AudioFrame) -> VADEvent | None:
        level = rms(frame.data, frame.sample_width) * _INT16_SCALE[frame.sample_width]
        duration_ms = frame.duration_ms
        is_speech = level >= self._energy_threshold

        if not self._speaking:
            if is_speech:
                self._speaking = True
                self._silence_ms = 0.0
                self._speech_ms = duration_ms
                logger.debug("VAD: speech start (rms=%.0f)", level)
                return VADEvent(type=VADEventType.SPEECH_START, confidence=1.0)
            return None

        self._speech_ms += duration_ms
        if is_speech:
            self._silence_ms = 0.0
            return None

        self._silence_ms += duration_ms
        if self._silence_ms < self._silence_threshold_ms:
            return None

        # Trailing silence is not speech
        speech_ms = self._speech_ms - self._silence_ms
        self._speaking = False
        self._speech_ms = 0.0
        self._silence_ms = 0.0

        if speech_ms >= self._min_speech_duration_ms:
            logger.debug("VAD: speech end after %.0f ms", speech_ms)
            return VADEvent(type=VADEventType.SPEECH_END, duration_ms=speech_ms)
        logger.debug("VAD: misfire after %.0f ms", speech_ms)
        return VADEvent(type=VADEventType.MISFIRE, duration_ms=speech_ms)

    def reset(self) -> None:
        """Reset all internal state."""
        self._speaking = False
        self._silence_ms = 0.0
        self._speech_ms = 0.0
