"""Client side: capture segmentation, playback buffering and the connection."""

from parley.client.connection import ParleyClient, session_url
from parley.client.mock import MockPlaybackEngine
from parley.client.playback import MIN_CHUNKS_TO_START, PlaybackBuffer, PlaybackEngine
from parley.client.segmenter import CaptureSegmenter

__all__ = [
    "MIN_CHUNKS_TO_START",
    "CaptureSegmenter",
    "MockPlaybackEngine",
    "ParleyClient",
    "PlaybackBuffer",
    "PlaybackEngine",
    "session_url",
]
