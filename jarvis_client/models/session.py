"""Recording session and server exchange models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .settings import AdvancedSettings

IDLE_TEXT = "Tap the mic to speak..."
LISTENING_TEXT = "Listening..."
PROCESSING_TEXT = "Processing..."


class SessionState(Enum):
    """Lifecycle states of the recorder."""
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"


class StopReason(Enum):
    """Why a listening session ended without a final transcription."""
    MANUAL = "manual"
    SILENCE = "silence"
    NO_SPEECH = "no_speech"
    STREAM_ERROR = "stream_error"
    STREAM_ENDED = "stream_ended"
    CAPTURE_ERROR = "capture_error"


@dataclass(frozen=True)
class LoginInfo:
    """Login material supplied at session start."""
    server_url: str
    password: str
    transit_protection: bool = True


@dataclass
class RecordingSession:
    """Observable state of the recorder (one live session at most)."""
    is_recording: bool = False
    recognized_text: str = IDLE_TEXT
    audio_engine_error: Optional[str] = None
    recognition_error: Optional[str] = None
    state: SessionState = SessionState.IDLE
    generation: int = 0


@dataclass(frozen=True)
class DispatchResult:
    """Text to display and how long to display it."""
    display_text: str
    delay_seconds: int


@dataclass
class ServerExchange:
    """One request/response round for a finalized command."""
    command: str
    settings: AdvancedSettings
    generation: int
    response_text: str = ""
    response_delay_seconds: int = 0
