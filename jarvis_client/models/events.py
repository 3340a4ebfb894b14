"""Event models carried over pub/sub topics."""

from dataclasses import dataclass
from typing import Optional

AUDIO_TOPIC = "audio.frame"
DISPLAY_TOPIC = "display.text"


@dataclass(frozen=True)
class AudioEvent:
    """One captured chunk of 16-bit PCM audio."""
    audio_data: bytes


@dataclass(frozen=True)
class DisplayEvent:
    """What the recorder wants shown right now."""
    text: str
    is_recording: bool
    generation: int
    audio_engine_error: Optional[str] = None
    recognition_error: Optional[str] = None
