"""Keyboard input handling for the terminal UI."""

import sys
import threading
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


class KeyboardInputHandler:
    """Reads single keypresses on a background thread and passes them to a callback."""
    
    def __init__(self, callback: Callable[[str], bool]):
        """Initialize keyboard handler.
        
        Args:
            callback: Function that takes a key and returns True to continue, False to quit
        """
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.finished = threading.Event()
    
    def start(self) -> None:
        """Start the keyboard input handler."""
        if self.running:
            return
        
        self.running = True
        self.finished.clear()
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInput"
        self.thread.start()
        logger.info("Keyboard input handler started")
    
    def stop(self) -> None:
        """Stop the keyboard input handler."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")
    
    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the callback asks to quit or input ends."""
        return self.finished.wait(timeout)
    
    def _input_loop(self) -> None:
        try:
            while self.running:
                key = self._get_key()
                if key is None:
                    continue
                if key == "":
                    logger.info("Input closed, leaving input loop")
                    break
                logger.debug(f"Key detected: {key!r}")
                if not self.callback(key):
                    logger.info("Callback returned False, breaking input loop")
                    break
        finally:
            self.running = False
            self.finished.set()
    
    def _get_key(self) -> Optional[str]:
        """Return one key, None when nothing arrived in time, or '' when input closed."""
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()
    
    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        import time
        if msvcrt.kbhit():
            return msvcrt.getwch()
        time.sleep(0.05)
        return None
    
    def _get_key_unix(self) -> Optional[str]:
        import select
        
        if not select.select([sys.stdin], [], [], 0.1)[0]:
            return None
        if not sys.stdin.isatty():
            return sys.stdin.read(1)
        
        import termios
        import tty
        old_settings = termios.tcgetattr(sys.stdin)
        try:
            tty.setraw(sys.stdin.fileno())
            return sys.stdin.read(1)
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)
