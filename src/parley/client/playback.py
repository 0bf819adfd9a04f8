"""Client-side playback buffer.

Audio for a reply arrives as many small chunks. The buffer collects them,
starts playing as soon as a few have arrived, and keeps handing the engine
whatever has accumulated each time the previous unit finishes, so playback
is continuous without waiting for the whole reply.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger("parley.client.playback")

UnitEndedCallback = Callable[[int], None]

MIN_CHUNKS_TO_START = 3


class PlaybackEngine(ABC):
    """Plays one contiguous unit of audio at a time.

    Engines report completion through the callback installed with
    :meth:`set_unit_ended_callback`, passing the id given to :meth:`play`.
    The callback may be invoked from an audio thread.
    """

    def __init__(self) -> None:
        self._unit_ended: UnitEndedCallback | None = None

    def set_unit_ended_callback(self, callback: UnitEndedCallback | None) -> None:
        self._unit_ended = callback

    def _notify_unit_ended(self, unit_id: int) -> None:
        if self._unit_ended is not None:
            self._unit_ended(unit_id)

    @abstractmethod
    def play(self, unit_id: int, data: bytes) -> None:
        """Start playing *data*, replacing nothing (the buffer only calls this when idle)."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the current unit immediately without reporting it as ended."""
        ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def resume(self) -> None: ...

    def close(self) -> None:  # noqa: B027
        """Release audio resources."""


class PlaybackBuffer:
    """Ordered chunk list plus a played-through index.

    Playback of a new unit starts when the engine is idle and either
    *min_chunks* unplayed chunks (or *min_bytes* unplayed bytes, when set)
    have accumulated, or the stream was marked complete. Once a unit ends,
    any chunks that arrived meanwhile are played right away.

    All methods are thread-safe; engines may report unit completion from
    their audio thread.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        *,
        min_chunks: int = MIN_CHUNKS_TO_START,
        min_bytes: int | None = None,
    ) -> None:
        if min_chunks < 1:
            raise ValueError("min_chunks must be at least 1")
        self._engine = engine
        self._min_chunks = min_chunks
        self._min_bytes = min_bytes
        self._lock = threading.RLock()

        self._chunks: list[bytes] = []
        self._played = 0
        self._current_unit: int | None = None
        self._next_unit_id = 0
        self._paused = False
        self._stream_complete = False

        engine.set_unit_ended_callback(self.on_unit_ended)

    # -- inspection -------------------------------------------------------------

    @property
    def engine(self) -> PlaybackEngine:
        return self._engine

    @property
    def chunk_count(self) -> int:
        with self._lock:
            return len(self._chunks)

    @property
    def played_index(self) -> int:
        with self._lock:
            return self._played

    @property
    def unplayed_count(self) -> int:
        with self._lock:
            return len(self._chunks) - self._played

    @property
    def playing(self) -> bool:
        with self._lock:
            return self._current_unit is not None

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def stream_complete(self) -> bool:
        with self._lock:
            return self._stream_complete

    # -- mutation ---------------------------------------------------------------

    def append(self, chunk: bytes) -> None:
        """Queue a received chunk, starting playback once the threshold is met."""
        if not chunk:
            return
        with self._lock:
            self._chunks.append(chunk)
            self._maybe_start(require_threshold=True)

    def mark_stream_complete(self) -> None:
        """No more chunks are coming for this reply; flush whatever remains."""
        with self._lock:
            self._stream_complete = True
            self._maybe_start(require_threshold=True)

    def reset(self) -> None:
        """Discard all chunks and stop the current unit. Safe mid-playback."""
        with self._lock:
            had_unit = self._current_unit is not None
            self._chunks = []
            self._played = 0
            self._current_unit = None
            self._paused = False
            self._stream_complete = False
            if had_unit:
                self._engine.stop()
        logger.debug("Playback buffer reset")

    def pause(self) -> bool:
        """Pause the current unit. Returns False if there was nothing to pause."""
        with self._lock:
            if self._current_unit is None or self._paused:
                return False
            self._paused = True
            self._engine.pause()
            return True

    def resume(self) -> bool:
        """Resume a paused unit. Returns False if nothing was paused."""
        with self._lock:
            if not self._paused:
                return False
            self._paused = False
            if self._current_unit is not None:
                self._engine.resume()
            return True

    def on_unit_ended(self, unit_id: int) -> None:
        """Engine callback: unit *unit_id* finished playing."""
        with self._lock:
            if unit_id != self._current_unit:
                # Finished after a reset; the buffer has moved on.
                logger.debug("Ignoring end of stale unit %d", unit_id)
                return
            self._current_unit = None
            self._maybe_start(require_threshold=False)

    def _maybe_start(self, *, require_threshold: bool) -> None:
        if self._current_unit is not None:
            return
        pending = self._chunks[self._played :]
        if not pending:
            return
        if require_threshold and not self._stream_complete:
            enough_chunks = len(pending) >= self._min_chunks
            enough_bytes = (
                self._min_bytes is not None and sum(map(len, pending)) >= self._min_bytes
            )
            if not (enough_chunks or enough_bytes):
                return
        unit = b"".join(pending)
        self._played = len(self._chunks)
        unit_id = self._next_unit_id
        self._next_unit_id += 1
        self._current_unit = unit_id
        logger.debug("Playing unit %d: %d chunks, %d bytes", unit_id, len(pending), len(unit))
        self._engine.play(unit_id, unit)
