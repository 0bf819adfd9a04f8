"""In-memory playback engine for tests."""

from __future__ import annotations

from parley.client.playback import PlaybackEngine


class MockPlaybackEngine(PlaybackEngine):
    """Records what it was asked to play; units end when :meth:`finish` is called."""

    def __init__(self) -> None:
        super().__init__()
        self.played: list[bytes] = []
        self.unit_ids: list[int] = []
        self.current: int | None = None
        self.paused = False
        self.stop_count = 0
        self.pause_count = 0
        self.resume_count = 0

    def play(self, unit_id: int, data: bytes) -> None:
        self.played.append(data)
        self.unit_ids.append(unit_id)
        self.current = unit_id
        self.paused = False

    def stop(self) -> None:
        self.stop_count += 1
        self.current = None
        self.paused = False

    def pause(self) -> None:
        self.pause_count += 1
        self.paused = True

    def resume(self) -> None:
        self.resume_count += 1
        self.paused = False

    def finish(self) -> None:
        """Simulate the current unit reaching its end."""
        if self.current is None:
            return
        unit_id, self.current = self.current, None
        self._notify_unit_ended(unit_id)

    @property
    def audio(self) -> bytes:
        """Everything handed to the engine so far, in order."""
        return b"".join(self.played)
