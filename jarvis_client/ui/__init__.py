"""Terminal user interface for the Jarvis client."""

from .console_screen import VoiceCommandScreen
from .keyboard_input import KeyboardInputHandler

__all__ = ["VoiceCommandScreen", "KeyboardInputHandler"]
