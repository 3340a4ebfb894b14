"""Unit tests for key handling in the terminal screen."""

import io
import pytest
from unittest.mock import Mock

from pubsub import pub
from rich.console import Console

from jarvis_client.config import AdvancedSettingsEditor
from jarvis_client.config.advanced_settings import SPEECH_TIMEOUT_DISABLED
from jarvis_client.models import AdvancedSettings
from jarvis_client.models.events import DisplayEvent, DISPLAY_TOPIC
from jarvis_client.ui import VoiceCommandScreen


@pytest.fixture
def mock_recorder():
    recorder = Mock()
    recorder.is_recording = False
    return recorder


@pytest.fixture
def screen(mock_recorder, login):
    output = io.StringIO()
    screen = VoiceCommandScreen(
        recorder=mock_recorder,
        editor=AdvancedSettingsEditor(),
        login=login,
        console=Console(file=output, width=100),
    )
    screen.output = output
    yield screen
    pub.unsubscribe(screen._on_display, DISPLAY_TOPIC)
    if screen._status_timer:
        screen._status_timer.cancel()


@pytest.mark.unit
class TestVoiceCommandScreen:
    
    @pytest.mark.parametrize("key", [" ", "\r", "\n"])
    def test_toggle_keys_pass_login_and_settings(self, screen, mock_recorder, login, key):
        assert screen.handle_key(key) is True
        
        mock_recorder.toggle_recording.assert_called_once_with(login, AdvancedSettings())
    
    def test_quit(self, screen):
        assert screen.handle_key("q") is False
        assert screen.logged_out is False
    
    def test_logout(self, screen):
        assert screen.handle_key("l") is False
        assert screen.logged_out is True
    
    def test_clear_errors(self, screen, mock_recorder):
        screen.handle_key("c")
        mock_recorder.clear_errors.assert_called_once()
    
    def test_request_timeout_keys_cycle(self, screen):
        screen.handle_key("r")
        assert screen.editor.snapshot().request_timeout == 6
        screen.handle_key("R")
        screen.handle_key("R")
        assert screen.editor.snapshot().request_timeout == 4
    
    def test_speech_timeout_wraps_around(self, screen):
        screen.handle_key("T")
        assert screen.editor.snapshot().speech_timeout == 29
    
    def test_native_audio_conflict_shows_status(self, screen):
        screen.handle_key("t")
        screen.handle_key("n")
        
        assert screen.status_message == SPEECH_TIMEOUT_DISABLED
        assert screen.editor.snapshot().native_audio is True
        assert screen.editor.snapshot().speech_timeout == 0
    
    def test_settings_locked_while_recording(self, screen, mock_recorder):
        mock_recorder.is_recording = True
        
        screen.handle_key("r")
        
        assert screen.editor.snapshot().request_timeout == 5
        assert "while recording" in screen.status_message
    
    def test_display_event_is_rendered(self, screen):
        pub.sendMessage(DISPLAY_TOPIC, event=DisplayEvent(
            text="turn on the lights",
            is_recording=True,
            generation=1,
            recognition_error="stream broke",
        ))
        
        rendered = screen.output.getvalue()
        assert "turn on the lights" in rendered
        assert "RECORDING" in rendered
        assert "stream broke" in rendered
