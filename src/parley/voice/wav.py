"""WAV framing and on-disk archiving of captured speech segments."""

from __future__ import annotations

import asyncio
import io
import logging
import re
import uuid
import wave
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Pattern for sanitizing session IDs used in filenames
_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9_\-.]")

WAV_HEADER_SIZE = 44


def _sanitize_filename_component(value: str) -> str:
    """Strip path separators and special characters from a filename component."""
    return _SAFE_FILENAME_RE.sub("_", value) or "session"


def pcm_to_wav(
    data: bytes, *, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2
) -> bytes:
    """Wrap raw little-endian PCM in a canonical 44-byte RIFF/WAVE header."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(sample_width)
        w.setframerate(sample_rate)
        w.writeframes(data)
    return buf.getvalue()


@dataclass(frozen=True)
class ArchivedCapture:
    """Paths of one archived capture segment."""

    pcm_path: Path
    wav_path: Path
    size: int


class CaptureArchive:
    """Writes completed capture segments as paired ``.pcm`` and ``.wav`` files.

    File names are ``<session-id>_<random>`` with the session id sanitized
    so it cannot escape *directory*.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        sample_width: int = 2,
    ) -> None:
        path = Path(directory)
        if ".." in path.parts:
            raise ValueError(f"archive directory {str(directory)!r} must not contain '..'")
        self._directory = path
        self._sample_rate = sample_rate
        self._channels = channels
        self._sample_width = sample_width

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, session_id: str, data: bytes) -> ArchivedCapture:
        """Write *data* to disk and return the created paths."""
        self._directory.mkdir(parents=True, exist_ok=True)
        stem = f"{_sanitize_filename_component(session_id)}_{uuid.uuid4().hex[:8]}"
        pcm_path = self._directory / f"{stem}.pcm"
        wav_path = self._directory / f"{stem}.wav"

        pcm_path.write_bytes(data)
        with wave.open(str(wav_path), "wb") as w:
            w.setnchannels(self._channels)
            w.setsampwidth(self._sample_width)
            w.setframerate(self._sample_rate)
            w.writeframes(data)

        logger.info(
            "Archived capture for session %s to %s (%d bytes)", session_id, wav_path, len(data)
        )
        return ArchivedCapture(pcm_path=pcm_path, wav_path=wav_path, size=len(data))

    async def save_async(self, session_id: str, data: bytes) -> ArchivedCapture:
        """Like :meth:`save` but runs the file I/O in a worker thread."""
        return await asyncio.to_thread(self.save, session_id, data)
