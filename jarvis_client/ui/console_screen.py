"""Terminal screen for the voice-command client."""

import logging
import threading
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config.advanced_settings import AdvancedSettingsEditor
from ..errors import ConfigError
from ..models.events import DisplayEvent, DISPLAY_TOPIC
from ..models.session import IDLE_TEXT, LoginInfo
from ..models.settings import REQUEST_TIMEOUT_RANGE, SPEECH_TIMEOUT_RANGE
from ..services.recording_service import RecordingService
from .keyboard_input import KeyboardInputHandler

logger = logging.getLogger(__name__)

STATUS_MESSAGE_SECONDS = 3
HELP_TEXT = ("space/enter=start/stop  n=native audio  t/T=speech timeout  "
             "r/R=request timeout  c=clear error  l=log out  q=quit")


class VoiceCommandScreen:
    """Renders the recorder's display text and maps keys to recorder actions."""
    
    def __init__(self,
                 recorder: RecordingService,
                 editor: AdvancedSettingsEditor,
                 login: LoginInfo,
                 console: Optional[Console] = None):
        self.console = console or Console()
        self.recorder = recorder
        self.editor = editor
        self.login = login
        self.logged_out = False
        self.status_message: Optional[str] = None
        self._status_timer: Optional[threading.Timer] = None
        self._last_event = DisplayEvent(text=IDLE_TEXT, is_recording=False, generation=0)
        self._render_lock = threading.Lock()
        self.input_handler = KeyboardInputHandler(self.handle_key)
        
        editor.lock_while(lambda: self.recorder.is_recording)
        pub.subscribe(self._on_display, DISPLAY_TOPIC)
    
    def run(self) -> bool:
        """Run until the user quits. Returns True if the user logged out."""
        self.render()
        self.input_handler.start()
        try:
            self.input_handler.wait()
        finally:
            self.input_handler.stop()
            pub.unsubscribe(self._on_display, DISPLAY_TOPIC)
            if self._status_timer:
                self._status_timer.cancel()
        return self.logged_out
    
    def handle_key(self, key: str) -> bool:
        """Apply one keypress. Returns False to quit."""
        if key in (" ", "\r", "\n"):
            self.recorder.toggle_recording(self.login, self.editor.snapshot())
        elif key in ("q", "\x03"):
            return False
        elif key == "l":
            logger.info("Logged out!")
            self.logged_out = True
            return False
        elif key == "c":
            self.recorder.clear_errors()
        elif key in ("n", "t", "T", "r", "R"):
            self._edit_settings(key)
        return True
    
    def _edit_settings(self, key: str) -> None:
        settings = self.editor.snapshot()
        try:
            if key == "n":
                message = self.editor.set_native_audio(not settings.native_audio)
            elif key in ("t", "T"):
                step = 1 if key == "t" else -1
                message = self.editor.set_speech_timeout(
                    _cycle(settings.speech_timeout, step, SPEECH_TIMEOUT_RANGE))
            else:
                step = 1 if key == "r" else -1
                self.editor.set_request_timeout(
                    _cycle(settings.request_timeout, step, REQUEST_TIMEOUT_RANGE))
                message = None
        except ConfigError as e:
            message = f"⚠️ {e}"
        if message:
            self.set_status_message(message)
        else:
            self.render()
    
    def set_status_message(self, text: str, clear_delay: int = STATUS_MESSAGE_SECONDS) -> None:
        self.status_message = text
        if self._status_timer:
            self._status_timer.cancel()
        self._status_timer = threading.Timer(clear_delay, self._clear_status)
        self._status_timer.daemon = True
        self._status_timer.start()
        self.render()
    
    def _clear_status(self) -> None:
        self.status_message = None
        self.render()
    
    def _on_display(self, event: DisplayEvent) -> None:
        self._last_event = event
        self.render()
    
    def render(self) -> None:
        event = self._last_event
        settings = self.editor.snapshot()
        
        table = Table.grid(padding=(0, 2))
        table.add_row("Server", self.login.server_url)
        table.add_row("Native audio", "on" if settings.native_audio else "off")
        table.add_row("Speech timeout", f"{settings.speech_timeout}s")
        table.add_row("Request timeout", f"{settings.request_timeout}s")
        
        body = Text(event.text, justify="center", style="bold")
        error = event.audio_engine_error or event.recognition_error
        
        with self._render_lock:
            self.console.clear()
            self.console.print("🎙️  Jarvis", style="bold blue")
            self.console.print("🔴 RECORDING" if event.is_recording else "⏹️  IDLE",
                               style="bold red" if event.is_recording else "bold yellow")
            self.console.print(Panel(body))
            if error:
                self.console.print(f"❌ Error: {error} (press c to dismiss)", style="red")
            if self.status_message:
                self.console.print(self.status_message, style="orange1")
            self.console.print(table)
            self.console.print(HELP_TEXT, style="dim")


def _cycle(value: int, step: int, choices: range) -> int:
    return choices[(choices.index(value) + step) % len(choices)]
