"""Audio-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class InputFormat:
    """Format of the acquired microphone input."""
    sample_rate: int
    channels: int
    device_name: str = ""

    @property
    def is_valid(self) -> bool:
        return self.sample_rate > 0 and self.channels > 0
