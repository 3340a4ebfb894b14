"""Data models for the Jarvis client."""

from .audio import InputFormat
from .settings import AdvancedSettings
from .transcription import ErrorInfo, TranscriptionUpdate
from .session import (
    IDLE_TEXT,
    LISTENING_TEXT,
    PROCESSING_TEXT,
    DispatchResult,
    LoginInfo,
    RecordingSession,
    ServerExchange,
    SessionState,
    StopReason,
)

__all__ = [
    "InputFormat",
    "AdvancedSettings",
    "ErrorInfo",
    "TranscriptionUpdate",
    "IDLE_TEXT",
    "LISTENING_TEXT",
    "PROCESSING_TEXT",
    "DispatchResult",
    "LoginInfo",
    "RecordingSession",
    "ServerExchange",
    "SessionState",
    "StopReason",
]
