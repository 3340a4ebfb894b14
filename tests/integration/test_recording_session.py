"""Integration tests for a recording session with real timers and a live server."""

import pytest
import time
from unittest.mock import Mock

from aiohttp import web

from jarvis_client.models import (
    IDLE_TEXT,
    PROCESSING_TEXT,
    AdvancedSettings,
    LoginInfo,
    SessionState,
    TranscriptionUpdate,
)
from jarvis_client.services import RecordingService, RequestDispatcher, SerialExecutor


@pytest.fixture
def live_recorder(mock_capture, fake_source, stub_dispatcher):
    """RecordingService on real threading.Timer countdowns."""
    service = RecordingService(
        capture=mock_capture,
        source=fake_source,
        dispatcher=stub_dispatcher,
        executor=SerialExecutor("integration"),
    )
    yield service
    service.shutdown()


def begin(recorder, login, settings):
    recorder.toggle_recording(login, settings)
    assert recorder.executor.flush()
    assert recorder.is_recording


@pytest.mark.integration
class TestSessionTiming:
    
    def test_silence_after_speech_stops_recording(self, live_recorder, login, fake_source, wait_for):
        settings = AdvancedSettings(pause_threshold=1.5, non_speaking_duration=3.0)
        begin(live_recorder, login, settings)
        started = time.monotonic()
        
        fake_source.push(TranscriptionUpdate(text="turn"))
        time.sleep(1.0)
        fake_source.push(TranscriptionUpdate(text="turn on"))
        last_partial = time.monotonic()
        
        # Not before the pause threshold has elapsed since the last partial
        assert not wait_for(lambda: not live_recorder.is_recording,
                            timeout=max(0.0, last_partial + 1.3 - time.monotonic()))
        assert wait_for(lambda: not live_recorder.is_recording, timeout=2.5)
        
        assert 2.3 < time.monotonic() - started < 4.5
        assert live_recorder.recognized_text == IDLE_TEXT
    
    def test_no_speech_stops_recording(self, live_recorder, login, mock_capture, wait_for):
        settings = AdvancedSettings(pause_threshold=1.5, non_speaking_duration=1.0)
        begin(live_recorder, login, settings)
        started = time.monotonic()
        
        assert wait_for(lambda: not live_recorder.is_recording, timeout=3.0)
        
        assert time.monotonic() - started >= 0.9
        mock_capture.release.assert_called_once()
    
    def test_speech_disarms_no_speech_timer(self, live_recorder, login, fake_source, wait_for):
        settings = AdvancedSettings(pause_threshold=2.0, non_speaking_duration=1.0)
        begin(live_recorder, login, settings)
        
        fake_source.push(TranscriptionUpdate(text="hello"))
        
        # no_speech would have fired at 1.0s; silence fires at 2.0s
        assert not wait_for(lambda: not live_recorder.is_recording, timeout=1.5)
        assert wait_for(lambda: not live_recorder.is_recording, timeout=2.0)


@pytest.mark.integration
def test_spoken_command_reaches_server_and_reply_is_shown(mock_capture, fake_source, live_server,
                                                         display_events, wait_for, temp_data_dir):
    live_server.reply = lambda request: web.json_response({"detail": "Lights are on"})
    dispatcher = RequestDispatcher(player=Mock(), audio_dir=temp_data_dir)
    recorder = RecordingService(
        capture=mock_capture,
        source=fake_source,
        dispatcher=dispatcher,
        executor=SerialExecutor("end_to_end"),
    )
    login = LoginInfo(server_url=live_server.url, password="ab", transit_protection=True)
    try:
        begin(recorder, login, AdvancedSettings())
        fake_source.push(TranscriptionUpdate(text="lights on"))
        fake_source.push(TranscriptionUpdate(text="lights on", is_final=True))
        
        assert wait_for(lambda: recorder.recognized_text == "Lights are on", timeout=5.0)
        assert recorder.state == SessionState.IDLE
        assert PROCESSING_TEXT in display_events.texts
        assert live_server.requests[0]["headers"]["Authorization"] == "Bearer 0061\\u0062"
    finally:
        recorder.shutdown()
