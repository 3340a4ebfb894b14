"""Transcription-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ErrorInfo:
    """Failure reported by a transcription source."""
    message: str
    source: str = "recognizer"


@dataclass(frozen=True)
class TranscriptionUpdate:
    """One message from a transcription stream."""
    text: str = ""
    is_final: bool = False
    error: Optional[ErrorInfo] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())
