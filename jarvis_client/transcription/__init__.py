"""Transcription sources for the Jarvis client."""

from .base import AbstractTranscriptionSource
from .google_backend import GoogleStreamingSource

__all__ = [
    "AbstractTranscriptionSource",
    "GoogleStreamingSource",
]
