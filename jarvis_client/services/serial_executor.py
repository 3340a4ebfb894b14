"""Single owner thread that applies all session-state mutations in order."""

import logging
import queue
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SerialExecutor:
    """Runs submitted callables one at a time on a dedicated thread.

    Timers, the transcription reader and the request dispatcher all hand their
    results to this queue instead of touching shared state, so every write to
    the session happens on the same thread in submission order.
    """

    def __init__(self, name: str = "owner"):
        self.name = name
        self.task_queue: "queue.Queue[Optional[tuple]]" = queue.Queue()
        self.thread: Optional[threading.Thread] = None
        self._owner_ident: Optional[int] = None

    def start(self) -> None:
        """Start the owner thread."""
        if self.thread and self.thread.is_alive():
            return
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = f"{self.name}_executor"
        self.thread.start()
        logger.info(f"Started {self.name} executor")

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue ``fn(*args)`` to run on the owner thread."""
        self.task_queue.put((fn, args))

    def in_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner_ident

    def flush(self, timeout: float = 5.0) -> bool:
        """Block until everything submitted before this call has run."""
        if self.in_owner_thread():
            raise RuntimeError("flush() would deadlock on the owner thread")
        done = threading.Event()
        self.submit(done.set)
        return done.wait(timeout)

    def _run(self) -> None:
        self._owner_ident = threading.get_ident()
        logger.debug(f"Executor thread {self.thread.name} starting")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    logger.debug(f"Executor {self.name} received sentinel, exiting.")
                    break
                fn, args = task
                try:
                    fn(*args)
                except Exception as e:
                    logger.error(f"Unhandled exception in {self.name} executor task: {e}", exc_info=True)
            finally:
                self.task_queue.task_done()

    def shutdown(self, timeout: float = 2.0) -> None:
        """Run what is already queued, then stop the owner thread."""
        if not self.thread:
            return
        self.task_queue.put(None)
        if not self.in_owner_thread():
            self.thread.join(timeout)
            if self.thread.is_alive():
                logger.warning(f"Executor thread {self.thread.name} did not terminate cleanly.")
        logger.info(f"{self.name} executor shutdown complete.")
