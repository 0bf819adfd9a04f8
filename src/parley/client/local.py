"""Speaker playback and microphone capture through ``sounddevice``."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import AsyncIterator
from typing import Any

from parley.client.playback import PlaybackEngine
from parley.core.config import CaptureFormat
from parley.voice.audio_frame import AudioFrame

logger = logging.getLogger("parley.client.local")

_DTYPES = {2: "int16", 4: "int32"}


def _import_sounddevice() -> Any:
    """Import sounddevice, raising a clear error if missing."""
    try:
        import sounddevice as _sd

        return _sd
    except ImportError as exc:
        raise ImportError(
            "sounddevice is required for local audio. "
            "Install it with: pip install parley[local-audio]"
        ) from exc


class SoundDevicePlaybackEngine(PlaybackEngine):
    """Plays PCM units through a persistent callback-driven output stream.

    PortAudio's thread pulls from the current unit's buffer; when the buffer
    drains the unit-ended callback fires from that thread.
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        sample_width: int = 2,
        device: int | str | None = None,
    ) -> None:
        super().__init__()
        if sample_width not in _DTYPES:
            raise ValueError(f"playback supports 16 or 32-bit PCM, got {sample_width * 8}-bit")
        self._sd = _import_sounddevice()
        self._sample_rate = sample_rate
        self._channels = channels
        self._sample_width = sample_width
        self._device = device
        self._stream: Any = None
        self._buf = bytearray()
        self._buf_lock = threading.Lock()
        self._unit: int | None = None
        self._paused = False

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            return
        self._stream = self._sd.RawOutputStream(
            samplerate=self._sample_rate,
            channels=self._channels,
            dtype=_DTYPES[self._sample_width],
            callback=self._output_callback,
            device=self._device,
            # "low" underruns from Python callback jitter on CoreAudio
            latency="high" if sys.platform == "darwin" else "low",
        )
        self._stream.start()
        logger.info("Speaker output started: rate=%d", self._sample_rate)

    def _output_callback(self, outdata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("Speaker status: %s", status)
        nbytes = frames * self._sample_width * self._channels
        ended: int | None = None
        with self._buf_lock:
            if self._paused or self._unit is None:
                outdata[:] = b"\x00" * nbytes
                return
            n = min(len(self._buf), nbytes)
            outdata[:n] = bytes(self._buf[:n])
            del self._buf[:n]
            if n < nbytes:
                outdata[n:] = b"\x00" * (nbytes - n)
            if not self._buf:
                ended, self._unit = self._unit, None
        if ended is not None:
            self._notify_unit_ended(ended)

    def play(self, unit_id: int, data: bytes) -> None:
        with self._buf_lock:
            self._buf = bytearray(data)
            self._unit = unit_id
            self._paused = False
        self._ensure_stream()

    def stop(self) -> None:
        with self._buf_lock:
            self._buf.clear()
            self._unit = None
            self._paused = False

    def pause(self) -> None:
        with self._buf_lock:
            self._paused = True

    def resume(self) -> None:
        with self._buf_lock:
            self._paused = False

    def close(self) -> None:
        self.stop()
        if self._stream is not None:
            try:
                self._stream.abort()
            finally:
                self._stream.close()
                self._stream = None


class MicrophoneCapture:
    """Reads fixed-size PCM frames from the default (or given) input device.

    Example:
        async with MicrophoneCapture() as mic:
            async for frame in mic.frames():
                await segmenter.process(frame)
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        block_duration_ms: int = 20,
        device: int | str | None = None,
        max_queued_frames: int = 500,
    ) -> None:
        self._sd = _import_sounddevice()
        self._format = CaptureFormat(sample_rate=sample_rate, channels=channels, sample_width=2)
        self._blocksize = int(sample_rate * block_duration_ms / 1000)
        self._device = device
        self._queue: asyncio.Queue[AudioFrame] = asyncio.Queue(max_queued_frames)
        self._stream: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _enqueue(self, frame: AudioFrame) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("Mic frame dropped: consumer is falling behind")

    def _audio_callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("Mic status: %s", status)
        frame = AudioFrame.for_capture(bytes(indata), self._format)
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._enqueue, frame)

    async def start(self) -> None:
        if self._stream is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._stream = self._sd.RawInputStream(
            samplerate=self._format.sample_rate,
            blocksize=self._blocksize,
            channels=self._format.channels,
            dtype="int16",
            device=self._device,
            callback=self._audio_callback,
        )
        self._stream.start()
        logger.info(
            "Mic capture started: rate=%d, block=%d", self._format.sample_rate, self._blocksize
        )

    async def stop(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._stream = None

    async def frames(self) -> AsyncIterator[AudioFrame]:
        """Yield captured frames until the capture is stopped."""
        while self._stream is not None or not self._queue.empty():
            try:
                yield await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except TimeoutError:
                continue

    async def __aenter__(self) -> MicrophoneCapture:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
