"""parley - interruptible real-time voice and text conversations with AI agents."""

from parley._version import __version__
from parley.client import (
    CaptureSegmenter,
    MockPlaybackEngine,
    ParleyClient,
    PlaybackBuffer,
    PlaybackEngine,
)
from parley.core import (
    CancellationToken,
    CancelScope,
    CaptureFormat,
    ParleyServer,
    PipelineConfig,
    ServerConfig,
    Session,
    SessionHandler,
    SessionMode,
    Turn,
    TurnPipeline,
    TurnState,
)
from parley.errors import (
    DecodeError,
    InvalidTransitionError,
    ParleyError,
    ProviderError,
    SessionExistsError,
    TransportClosedError,
    TurnCancelledError,
)
from parley.protocol import (
    AudioEncoding,
    ClientControl,
    Message,
    MessageType,
    ServerControl,
    decode,
    encode,
)
from parley.providers.ai import AIMessage, AIProvider, MockAIProvider
from parley.transport import InMemoryTransport, Transport, WebSocketTransport
from parley.voice import (
    AudioChunk,
    AudioFrame,
    CaptureArchive,
    EnergyVADProvider,
    MockSTTProvider,
    MockTTSProvider,
    STTProvider,
    TTSProvider,
)

__all__ = [
    "AIMessage",
    "AIProvider",
    "AudioChunk",
    "AudioEncoding",
    "AudioFrame",
    "CancelScope",
    "CancellationToken",
    "CaptureArchive",
    "CaptureFormat",
    "CaptureSegmenter",
    "ClientControl",
    "DecodeError",
    "EnergyVADProvider",
    "InMemoryTransport",
    "InvalidTransitionError",
    "Message",
    "MessageType",
    "MockAIProvider",
    "MockPlaybackEngine",
    "MockSTTProvider",
    "MockTTSProvider",
    "ParleyClient",
    "ParleyError",
    "ParleyServer",
    "PipelineConfig",
    "PlaybackBuffer",
    "PlaybackEngine",
    "ProviderError",
    "STTProvider",
    "ServerConfig",
    "ServerControl",
    "Session",
    "SessionExistsError",
    "SessionHandler",
    "SessionMode",
    "TTSProvider",
    "Transport",
    "TransportClosedError",
    "Turn",
    "TurnCancelledError",
    "TurnPipeline",
    "TurnState",
    "WebSocketTransport",
    "__version__",
    "decode",
    "encode",
]
