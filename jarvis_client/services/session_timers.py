"""Single-shot restartable countdown timers for a recording session."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


def _thread_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class SessionTimer:
    """One-shot countdown that can be re-armed or cancelled.

    ``arm`` replaces any pending countdown, so calling it repeatedly resets the
    timer. ``cancel`` may be called any number of times, before or after the
    timer fired.
    """

    def __init__(self, name: str, timer_factory: Optional[TimerFactory] = None):
        self.name = name
        self._timer_factory = timer_factory or _thread_timer
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self, duration_seconds: float, on_fire: Callable[[], None]) -> None:
        """Schedule ``on_fire`` after ``duration_seconds``, cancelling any previous schedule."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = None

            def fire():
                with self._lock:
                    if self._timer is not timer:
                        return
                    self._timer = None
                on_fire()

            timer = self._timer_factory(duration_seconds, fire)
            self._timer = timer
            timer.start()
        logger.debug(f"{self.name} timer armed for {duration_seconds}s")

    def cancel(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            logger.debug(f"{self.name} timer cancelled")


class TimerPair:
    """The silence and no-speech timers of one recorder."""

    def __init__(self, timer_factory: Optional[TimerFactory] = None):
        self.silence = SessionTimer("silence", timer_factory)
        self.no_speech = SessionTimer("no_speech", timer_factory)

    def cancel_all(self) -> None:
        self.silence.cancel()
        self.no_speech.cancel()

    @property
    def any_armed(self) -> bool:
        return self.silence.is_armed or self.no_speech.is_armed
