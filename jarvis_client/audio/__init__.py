"""Audio capture and playback module."""

from .capture import AudioCapture
from .audio_pub import AudioPublisher
from .playback import AudioPlayback, PyAudioPlayer

__all__ = [
    'AudioCapture',
    'AudioPublisher',
    'AudioPlayback',
    'PyAudioPlayer',
]
