"""Shared audio utilities for the voice subsystem."""

from __future__ import annotations

import math
import struct
from collections.abc import Iterable

_FULL_SCALE = {1: 128.0, 2: 32768.0, 3: 8388608.0, 4: 2147483648.0}


def pcm_samples(data: bytes, sample_width: int = 2) -> list[int]:
    """Decode little-endian signed PCM bytes into integer samples.

    8-bit PCM is unsigned per the WAV convention and is re-centred on zero.
    """
    if sample_width not in _FULL_SCALE:
        raise ValueError(f"unsupported sample width {sample_width}")
    n = len(data) // sample_width
    if n == 0:
        return []
    data = data[: n * sample_width]
    if sample_width == 1:
        return [b - 128 for b in data]
    if sample_width == 2:
        return list(struct.unpack(f"<{n}h", data))
    if sample_width == 4:
        return list(struct.unpack(f"<{n}i", data))
    return [
        int.from_bytes(data[i : i + 3], "little", signed=True) for i in range(0, len(data), 3)
    ]


def rms(data: bytes, sample_width: int = 2) -> float:
    """RMS amplitude of PCM data, in the sample width's own integer scale."""
    samples = pcm_samples(data, sample_width)
    if not samples:
        return 0.0
    return math.sqrt(sum(s * s for s in samples) / len(samples))


def rms_db(data: bytes, sample_width: int = 2) -> float:
    """Compute RMS level in dB from little-endian PCM bytes.

    Returns a value in the range [-60.0, 0.0] where 0 dB is full scale
    and -60 dB is silence (or empty input).
    """
    level = rms(data, sample_width) / _FULL_SCALE[sample_width]
    if level < 1e-10:
        return -60.0
    return max(-60.0, 20.0 * math.log10(level))


def float_to_pcm(samples: Iterable[float], sample_width: int = 2) -> bytes:
    """Convert float samples in [-1.0, 1.0] to little-endian signed PCM.

    Out-of-range samples are clipped.
    """
    if sample_width not in (2, 3, 4):
        raise ValueError(f"unsupported sample width {sample_width}")
    peak = int(_FULL_SCALE[sample_width]) - 1
    out = bytearray()
    for sample in samples:
        clipped = max(-1.0, min(1.0, sample))
        out += int(round(clipped * peak)).to_bytes(sample_width, "little", signed=True)
    return bytes(out)
