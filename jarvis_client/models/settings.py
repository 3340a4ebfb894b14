"""Advanced settings snapshot consumed by a recording session."""

from dataclasses import dataclass

from ..errors import ConfigError

SPEECH_TIMEOUT_RANGE = range(0, 30)
REQUEST_TIMEOUT_RANGE = range(0, 60)
MIN_THRESHOLD_SECONDS = 1.0


@dataclass(frozen=True)
class AdvancedSettings:
    """Immutable settings captured when recording starts."""
    native_audio: bool = False
    speech_timeout: int = 0  # seconds, forwarded to the server
    request_timeout: int = 5  # seconds to wait for the server
    pause_threshold: float = 1.5  # silence after speech that ends recording
    non_speaking_duration: float = 3.0  # no speech at all after recording starts

    def __post_init__(self):
        if self.speech_timeout not in SPEECH_TIMEOUT_RANGE:
            raise ConfigError(f"speech_timeout must be in [0, 30), got {self.speech_timeout}")
        if self.request_timeout not in REQUEST_TIMEOUT_RANGE:
            raise ConfigError(f"request_timeout must be in [0, 60), got {self.request_timeout}")
        if self.pause_threshold < MIN_THRESHOLD_SECONDS:
            raise ConfigError(f"pause_threshold must be >= 1.0, got {self.pause_threshold}")
        if self.non_speaking_duration < MIN_THRESHOLD_SECONDS:
            raise ConfigError(f"non_speaking_duration must be >= 1.0, got {self.non_speaking_duration}")
        if self.native_audio and self.speech_timeout > 0:
            raise ConfigError("native_audio and speech_timeout are mutually exclusive")
