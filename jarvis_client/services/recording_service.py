"""Recording-session state machine: capture, recognition, timers and hand-off to the server."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterator, Optional

from pubsub import pub

from ..audio.capture import AudioCapture
from ..errors import CaptureError, RecognitionError
from ..models.events import DisplayEvent, DISPLAY_TOPIC
from ..models.session import (
    IDLE_TEXT,
    LISTENING_TEXT,
    PROCESSING_TEXT,
    DispatchResult,
    LoginInfo,
    RecordingSession,
    ServerExchange,
    SessionState,
    StopReason,
)
from ..models.settings import AdvancedSettings
from ..models.transcription import TranscriptionUpdate
from ..transcription.base import AbstractTranscriptionSource
from .request_dispatcher import NETWORK_ERROR_DELAY, RequestDispatcher
from .response_renderer import ResponseRenderer
from .serial_executor import SerialExecutor
from .session_timers import TimerFactory, TimerPair

logger = logging.getLogger(__name__)

CAPTURE_UNAVAILABLE = "Microphone input is not available in this environment"


@dataclass
class _ActiveSession:
    generation: int
    login: LoginInfo
    settings: AdvancedSettings
    heard_speech: bool = False


class RecordingService:
    """Owns the recording lifecycle: Idle -> Listening -> Processing -> Idle.

    Public methods only queue work; every state change runs on the owner
    thread of ``executor``. Each recording attempt gets a new generation
    number, and timer, stream and dispatcher callbacks carry the generation
    they were created for so they are ignored once a newer session exists.
    """
    
    def __init__(self,
                 capture: AudioCapture,
                 source: AbstractTranscriptionSource,
                 dispatcher: RequestDispatcher,
                 executor: Optional[SerialExecutor] = None,
                 timer_factory: Optional[TimerFactory] = None,
                 locale: str = "en-US",
                 display_topic: str = DISPLAY_TOPIC):
        """Initialize recording service.
        
        Args:
            capture: Microphone capture capability
            source: Transcription source fed by the capture
            dispatcher: Sends finalized commands to the server
            executor: Owner thread; a new one is started if None
            timer_factory: Builds the countdown timers (tests inject fakes)
            locale: Recognition locale
            display_topic: Pub/sub topic for display changes
        """
        self.capture = capture
        self.source = source
        self.dispatcher = dispatcher
        self.executor = executor or SerialExecutor("recorder")
        self.executor.start()
        self.timers = TimerPair(timer_factory)
        self.renderer = ResponseRenderer(timer_factory)
        self.locale = locale
        self.display_topic = display_topic
        
        self.session = RecordingSession()
        self._active: Optional[_ActiveSession] = None
        logger.info("RecordingService ready")
    
    # Read-only views, safe from any thread
    
    @property
    def is_recording(self) -> bool:
        return self.session.is_recording
    
    @property
    def recognized_text(self) -> str:
        return self.session.recognized_text
    
    @property
    def state(self) -> SessionState:
        return self.session.state
    
    def snapshot(self) -> RecordingSession:
        return replace(self.session)
    
    # Commands, queued onto the owner thread
    
    def toggle_recording(self, login: LoginInfo, settings: AdvancedSettings) -> None:
        """Start a session when idle, stop the current one when recording."""
        self.executor.submit(self._toggle, login, settings)
    
    def stop_recording(self) -> None:
        self.executor.submit(self._stop, StopReason.MANUAL)
    
    def clear_errors(self) -> None:
        self.executor.submit(self._clear_errors)
    
    def shutdown(self) -> None:
        """Tear down any live session and stop background threads."""
        self.executor.submit(self._shutdown_session)
        self.executor.flush()
        self.executor.shutdown()
        self.dispatcher.shutdown()
        logger.info("RecordingService shut down")
    
    # Owner-thread handlers
    
    def _toggle(self, login: LoginInfo, settings: AdvancedSettings) -> None:
        if self.session.is_recording:
            self._stop(StopReason.MANUAL)
        else:
            result = self._start(login, settings)
            if not result["success"]:
                logger.error(f"Error starting recording: {result['error']}")
    
    def _start(self, login: LoginInfo, settings: AdvancedSettings) -> Dict[str, Any]:
        if self.session.is_recording:
            return {
                "success": False,
                "error": "Already recording",
                "generation": self.session.generation
            }
        
        self.session.generation += 1
        generation = self.session.generation
        self.session.audio_engine_error = None
        self.session.recognition_error = None
        self.renderer.cancel()
        
        if not self.capture.is_available():
            return self._fail_capture(CAPTURE_UNAVAILABLE)
        # Capture goes first so a failed acquire leaves no timer to cancel
        try:
            self.capture.acquire(on_error=partial(self._capture_failed, generation))
        except CaptureError as e:
            return self._fail_capture(str(e))
        
        self._active = _ActiveSession(generation, login, settings)
        self.timers.no_speech.arm(
            settings.non_speaking_duration,
            partial(self._timer_fired, generation, StopReason.NO_SPEECH))
        self.session.is_recording = True
        self.session.state = SessionState.LISTENING
        self._set_display(LISTENING_TEXT)
        
        try:
            stream = self.source.start(self.locale)
        except Exception as e:
            logger.error(f"Recognition error: {e}", exc_info=not isinstance(e, RecognitionError))
            self.session.recognition_error = str(e)
            self._stop(StopReason.STREAM_ERROR)
            return {"success": False, "error": str(e), "generation": generation}
        
        reader = threading.Thread(target=self._read_stream, args=(generation, stream), daemon=True)
        reader.name = f"TranscriptionReader-{generation}"
        reader.start()
        
        logger.info(f"Started recording session {generation}")
        return {
            "success": True,
            "generation": generation,
            "started_at": datetime.now().isoformat()
        }
    
    def _fail_capture(self, error: str) -> Dict[str, Any]:
        logger.error(f"Audio engine error: {error}")
        self.session.audio_engine_error = error
        self.session.state = SessionState.IDLE
        self._set_display(IDLE_TEXT)
        return {"success": False, "error": error, "generation": self.session.generation}
    
    def _stop(self, reason: StopReason, generation: Optional[int] = None) -> Dict[str, Any]:
        if not self.session.is_recording:
            logger.debug(f"Stop ({reason.value}) ignored: not recording")
            return {"success": False, "error": "Not recording"}
        if generation is not None and not self._is_current(generation):
            return {"success": False, "error": "Stale session"}
        
        self._teardown()
        self.session.state = SessionState.IDLE
        self._set_display(IDLE_TEXT)
        logger.info(f"Recording stopped ({reason.value})")
        return {"success": True, "reason": reason.value, "generation": self.session.generation}
    
    def _teardown(self) -> None:
        """Cancel both timers, detach the stream and release capture in one step."""
        self.timers.cancel_all()
        try:
            self.source.stop()
        except Exception as e:
            logger.warning(f"Error stopping transcription source: {e}")
        try:
            self.capture.release()
        except Exception as e:
            logger.warning(f"Error releasing audio capture: {e}")
        self._active = None
        self.session.is_recording = False
    
    def _is_current(self, generation: int) -> bool:
        return self._active is not None and self._active.generation == generation
    
    def _timer_fired(self, generation: int, reason: StopReason) -> None:
        # Runs on the timer thread
        self.executor.submit(self._on_timer, generation, reason)
    
    def _on_timer(self, generation: int, reason: StopReason) -> None:
        if not self._is_current(generation):
            logger.debug(f"Ignoring {reason.value} timer from session {generation}")
            return
        if reason is StopReason.SILENCE:
            logger.info("Silence detected, stopping...")
        else:
            logger.info("No speech detected. Auto-stopping.")
        self._stop(reason, generation)
    
    def _read_stream(self, generation: int, stream: Iterator[TranscriptionUpdate]) -> None:
        """Forward updates in arrival order to the owner thread."""
        try:
            for update in stream:
                self.executor.submit(self._on_update, generation, update)
                if update.is_final or update.error is not None:
                    return
        except Exception as e:
            logger.error(f"Transcription stream failed: {e}", exc_info=True)
            self.executor.submit(self._on_stream_failed, generation, str(e))
            return
        self.executor.submit(self._on_stream_ended, generation)
    
    def _on_update(self, generation: int, update: TranscriptionUpdate) -> None:
        if not self._is_current(generation):
            logger.debug(f"Dropping update from stale session {generation}")
            return
        active = self._active
        
        if update.error is not None:
            self._on_stream_failed(generation, update.error.message)
            return
        
        if update.has_text and not active.heard_speech:
            active.heard_speech = True
            self.timers.no_speech.cancel()
        
        if update.is_final:
            self._finish(active, update.text)
        elif update.has_text:
            self.timers.silence.arm(
                active.settings.pause_threshold,
                partial(self._timer_fired, generation, StopReason.SILENCE))
            self._set_display(update.text)
            logger.debug(f"Partial: {update.text}")
    
    def _on_stream_failed(self, generation: int, message: str) -> None:
        if not self._is_current(generation):
            return
        logger.error(f"Recognition error: {message}")
        self.session.recognition_error = message
        self._stop(StopReason.STREAM_ERROR, generation)
    
    def _capture_failed(self, generation: int, message: str) -> None:
        # Runs on the capture reader thread
        self.executor.submit(self._on_capture_failed, generation, message)
    
    def _on_capture_failed(self, generation: int, message: str) -> None:
        if not self._is_current(generation):
            return
        logger.error(f"Audio engine error: {message}")
        self.session.audio_engine_error = message
        self._stop(StopReason.CAPTURE_ERROR, generation)
    
    def _on_stream_ended(self, generation: int) -> None:
        if self._is_current(generation):
            self._stop(StopReason.STREAM_ENDED, generation)
    
    def _finish(self, active: _ActiveSession, text: str) -> None:
        command = text.strip()
        if not command:
            self._stop(StopReason.STREAM_ENDED, active.generation)
            return
        
        self._teardown()
        self.session.state = SessionState.PROCESSING
        self._set_display(PROCESSING_TEXT)
        
        exchange = ServerExchange(command=command, settings=active.settings, generation=active.generation)
        worker = threading.Thread(target=self._run_exchange, args=(exchange, active.login), daemon=True)
        worker.name = f"Dispatch-{active.generation}"
        worker.start()
    
    def _run_exchange(self, exchange: ServerExchange, login: LoginInfo) -> None:
        """Worker thread: blocks on the server round trip, then reports back."""
        try:
            result = self.dispatcher.dispatch(
                server_url=login.server_url,
                credential=login.password,
                transit_protection=login.transit_protection,
                command=exchange.command,
                settings=exchange.settings,
            )
        except Exception as e:
            logger.error(f"Dispatch failed: {e}", exc_info=True)
            result = DispatchResult(f"❌ Network error: {e}", NETWORK_ERROR_DELAY)
        exchange.response_text = result.display_text
        exchange.response_delay_seconds = result.delay_seconds
        logger.info(f"Server response: {result.display_text}")
        self.executor.submit(self._on_exchange_done, exchange, result)
    
    def _on_exchange_done(self, exchange: ServerExchange, result: DispatchResult) -> None:
        if exchange.generation != self.session.generation:
            logger.info(f"Dropping response for session {exchange.generation}; "
                        f"session {self.session.generation} owns the display")
            return
        self.session.state = SessionState.IDLE
        self.renderer.render(
            result,
            show=self._set_display,
            revert=partial(self.executor.submit, self._revert_display, exchange.generation))
    
    def _revert_display(self, generation: int) -> None:
        if generation == self.session.generation and not self.session.is_recording:
            self._set_display(IDLE_TEXT)
    
    def _clear_errors(self) -> None:
        self.session.audio_engine_error = None
        self.session.recognition_error = None
        self._publish()
    
    def _shutdown_session(self) -> None:
        self.renderer.cancel()
        if self.session.is_recording:
            self._stop(StopReason.MANUAL)
    
    def _set_display(self, text: str) -> None:
        self.session.recognized_text = text
        self._publish()
    
    def _publish(self) -> None:
        pub.sendMessage(self.display_topic, event=DisplayEvent(
            text=self.session.recognized_text,
            is_recording=self.session.is_recording,
            generation=self.session.generation,
            audio_engine_error=self.session.audio_engine_error,
            recognition_error=self.session.recognition_error,
        ))
