"""Voice activity detection."""

from parley.voice.vad.base import VADEvent, VADEventType, VADProvider
from parley.voice.vad.energy import EnergyVADProvider
from parley.voice.vad.mock import MockVADProvider

__all__ = ["EnergyVADProvider", "MockVADProvider", "VADEvent", "VADEventType", "VADProvider"]
