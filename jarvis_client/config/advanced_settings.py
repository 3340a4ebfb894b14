"""Edit-time owner of the advanced settings."""

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from ..errors import ConfigError
from ..models.settings import AdvancedSettings

logger = logging.getLogger(__name__)

SPEECH_TIMEOUT_DISABLED = "⚠️ Disabled speech timeout!"
NATIVE_AUDIO_DISABLED = "⚠️ Disabled native audio!"


class AdvancedSettingsEditor:
    """Applies edits to the advanced settings and keeps them consistent.

    Native audio and a positive speech timeout are mutually exclusive: turning
    one on resets the other, and the returned status message says so. Edits
    are refused while ``is_locked`` reports an active recording.
    """

    def __init__(self,
                 settings: Optional[AdvancedSettings] = None,
                 is_locked: Optional[Callable[[], bool]] = None):
        self._settings = settings or AdvancedSettings()
        self._is_locked = is_locked or (lambda: False)
        self._lock = threading.Lock()

    def snapshot(self) -> AdvancedSettings:
        """Return the committed settings."""
        with self._lock:
            return self._settings

    def lock_while(self, is_locked: Callable[[], bool]) -> None:
        self._is_locked = is_locked

    def set_native_audio(self, enabled: bool) -> Optional[str]:
        """Toggle native audio. Returns a status message when speech timeout was reset."""
        if enabled and self.snapshot().speech_timeout > 0:
            self._commit(native_audio=True, speech_timeout=0)
            return SPEECH_TIMEOUT_DISABLED
        self._commit(native_audio=bool(enabled))
        return None

    def set_speech_timeout(self, seconds: int) -> Optional[str]:
        """Set the speech timeout. Returns a status message when native audio was reset."""
        if seconds > 0 and self.snapshot().native_audio:
            self._commit(native_audio=False, speech_timeout=seconds)
            return NATIVE_AUDIO_DISABLED
        self._commit(speech_timeout=seconds)
        return None

    def set_request_timeout(self, seconds: int) -> None:
        self._commit(request_timeout=seconds)

    def set_pause_threshold(self, seconds: float) -> None:
        self._commit(pause_threshold=seconds)

    def set_non_speaking_duration(self, seconds: float) -> None:
        self._commit(non_speaking_duration=seconds)

    def _commit(self, **changes) -> None:
        if self._is_locked():
            raise ConfigError("Advanced settings cannot be changed while recording")
        with self._lock:
            # AdvancedSettings validates ranges and exclusivity on construction
            self._settings = replace(self._settings, **changes)
        logger.debug(f"Advanced settings updated: {changes}")
