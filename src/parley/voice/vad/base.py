"""Voice Activity Detection provider ABC."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum, unique
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from parley.voice.audio_frame import AudioFrame


@unique
class VADEventType(StrEnum):
    """Types of VAD events."""

    SPEECH_START = "speech_start"
    SPEECH_END = "speech_end"
    MISFIRE = "misfire"
    """Speech started but ended before it was long enough to count."""


@dataclass
class VADEvent:
    """Event produced by a VAD provider."""

    type: VADEventType
    """The type of VAD event."""

    confidence: float | None = None
    """Confidence score (0.0 to 1.0)."""

    duration_ms: float | None = None
    """Speech duration in milliseconds (set on SPEECH_END and MISFIRE)."""


class VADProvider(ABC):
    """Abstract base class for Voice Activity Detection providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g. 'silero', 'energy')."""
        ...

    @abstractmethod
    def process(self, frame: AudioFrame) -> VADEvent | None:
        """Process an audio frame and optionally return a VAD event.

        Args:
            frame: The audio frame to analyse.

        Returns:
            A VADEvent if a state transition occurred, else None.
        """
        ...

    def reset(self) -> None:  # noqa: B027
        """Reset internal state (e.g. between utterances)."""

    def close(self) -> None:  # noqa: B027
        """Release resources."""
