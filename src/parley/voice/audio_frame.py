"""One block of microphone PCM on its way through VAD and segmentation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from parley.core.config import CaptureFormat


def _capture_format(sample_rate: int, channels: int, sample_width: int) -> CaptureFormat:
    from parley.core.config import CaptureFormat

    return CaptureFormat(sample_rate=sample_rate, channels=channels, sample_width=sample_width)


@dataclass(frozen=True)
class AudioFrame:
    """A fixed-size block of captured PCM in the session's capture format.

    The client reads frames from the microphone, the VAD classifies each
    one, and the segmenter forwards the frames that fall inside an
    utterance. Reply audio travels as :class:`~parley.voice.base.AudioChunk`
    instead.

    Raises:
        ValueError: If the format is outside what :class:`CaptureFormat`
            allows, or *data* does not hold a whole number of samples.
    """

    data: bytes
    sample_rate: int = 16000
    channels: int = 1
    sample_width: int = 2

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            raise ValueError(f"frame data must be bytes, got {type(self.data).__name__}")
        # Same bounds the server accepts for a capture
        _capture_format(self.sample_rate, self.channels, self.sample_width)
        if len(self.data) % self.block_align:
            raise ValueError(
                f"{len(self.data)} bytes is not a whole number of "
                f"{self.sample_width * 8}-bit x{self.channels} samples"
            )

    @classmethod
    def for_capture(cls, data: bytes, capture: CaptureFormat) -> AudioFrame:
        return cls(
            data=data,
            sample_rate=capture.sample_rate,
            channels=capture.channels,
            sample_width=capture.sample_width,
        )

    @property
    def capture_format(self) -> CaptureFormat:
        return _capture_format(self.sample_rate, self.channels, self.sample_width)

    @property
    def block_align(self) -> int:
        return self.sample_width * self.channels

    @property
    def sample_count(self) -> int:
        """Samples per channel."""
        return len(self.data) // self.block_align

    @property
    def duration_ms(self) -> float:
        return self.sample_count / self.sample_rate * 1000.0
