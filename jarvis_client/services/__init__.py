"""Services layer for the Jarvis client."""

from .recording_service import RecordingService
from .request_dispatcher import RequestDispatcher
from .serial_executor import SerialExecutor
from .session_timers import SessionTimer, TimerPair
from .auth import hex_encode

__all__ = [
    "RecordingService",
    "RequestDispatcher",
    "SerialExecutor",
    "SessionTimer",
    "TimerPair",
    "hex_encode",
]
