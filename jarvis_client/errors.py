"""Exception types for the Jarvis client."""


class JarvisError(Exception):
    """Base class for all client errors."""


class CaptureError(JarvisError):
    """Microphone or audio-session setup failed (including no microphone at all)."""


class RecognitionError(JarvisError):
    """The transcription stream failed."""


class PlaybackError(JarvisError):
    """An audio reply could not be played."""


class ConfigError(JarvisError, ValueError):
    """Invalid configuration value or server URL."""
