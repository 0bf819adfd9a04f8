"""Session state, turn pipeline, session actor and server."""

from parley.core.cancellation import CancellationToken, CancelScope
from parley.core.config import CaptureFormat, PipelineConfig, ServerConfig
from parley.core.handler import SessionHandler
from parley.core.server import ParleyServer, session_id_from_path
from parley.core.session import Session, SessionMode
from parley.core.turn import TERMINAL_STATES, Turn, TurnPipeline, TurnState

__all__ = [
    "TERMINAL_STATES",
    "CancelScope",
    "CancellationToken",
    "CaptureFormat",
    "ParleyServer",
    "PipelineConfig",
    "ServerConfig",
    "Session",
    "SessionHandler",
    "SessionMode",
    "Turn",
    "TurnPipeline",
    "TurnState",
    "session_id_from_path",
]
