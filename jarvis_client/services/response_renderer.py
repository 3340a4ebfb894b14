"""Shows a server reply for its display window, then hands the screen back."""

import logging
from typing import Callable, Optional

from ..models.session import DispatchResult
from .session_timers import SessionTimer, TimerFactory

logger = logging.getLogger(__name__)


class ResponseRenderer:
    """Displays a dispatch result and schedules the revert to the idle prompt."""

    def __init__(self, timer_factory: Optional[TimerFactory] = None):
        self.revert_timer = SessionTimer("display_revert", timer_factory)

    def render(self,
               result: DispatchResult,
               show: Callable[[str], None],
               revert: Callable[[], None]) -> None:
        show(result.display_text)
        self.revert_timer.arm(result.delay_seconds, revert)
        logger.debug(f"Showing response for {result.delay_seconds}s")

    def cancel(self) -> None:
        self.revert_timer.cancel()
