"""Abstract base class for transcription sources."""

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..models.transcription import TranscriptionUpdate


class AbstractTranscriptionSource(ABC):
    """Turns live microphone audio into a stream of transcription updates."""

    def __init__(self, language: str = "en-US"):
        """Initialize source with language preference."""
        self.language = language
    
    @abstractmethod
    def start(self, locale: Optional[str] = None) -> Iterator[TranscriptionUpdate]:
        """Begin recognizing and return the update stream.
        
        The stream yields partial updates in arrival order and ends after the
        first final update, after an update carrying an error, or after
        ``stop`` is called.
        
        Raises:
            RecognitionError: If recognition cannot be started
        """
        pass
    
    @abstractmethod
    def stop(self) -> None:
        """Detach from the audio feed and end the current stream. Idempotent."""
        pass
