"""Jarvis voice-command client."""

__version__ = "0.1.0"
