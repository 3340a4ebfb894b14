"""Pytest configuration and fixtures for Jarvis client tests."""

import asyncio
import pytest
import queue
import tempfile
import threading
import time
import logging
from typing import Callable, List, Optional
from unittest.mock import Mock, patch

from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpTestServer
from pubsub import pub

from jarvis_client.errors import CaptureError
from jarvis_client.models import (
    AdvancedSettings,
    DispatchResult,
    InputFormat,
    LoginInfo,
)
from jarvis_client.models.events import DisplayEvent, DISPLAY_TOPIC
from jarvis_client.services.recording_service import RecordingService
from jarvis_client.services.serial_executor import SerialExecutor
from jarvis_client.transcription.base import AbstractTranscriptionSource


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""
    
    def __init__(self, interval: float, function: Callable[[], None]):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False
    
    def start(self) -> None:
        self.started = True
    
    def cancel(self) -> None:
        self.cancelled = True
    
    @property
    def pending(self) -> bool:
        return self.started and not self.cancelled and not self.fired
    
    def fire(self) -> None:
        """Expire the timer; a cancelled timer does nothing, like threading.Timer."""
        if self.pending:
            self.fired = True
            self.function()


class FakeTimerFactory:
    """Builds FakeTimers and remembers every one of them."""
    
    def __init__(self):
        self.timers: List[FakeTimer] = []
    
    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer
    
    def with_interval(self, interval: float) -> List[FakeTimer]:
        return [t for t in self.timers if t.interval == interval]
    
    def pending(self, interval: Optional[float] = None) -> List[FakeTimer]:
        return [t for t in self.timers
                if t.pending and (interval is None or t.interval == interval)]


class FakeTranscriptionSource(AbstractTranscriptionSource):
    """Transcription source driven by the test through ``push``."""
    
    def __init__(self):
        super().__init__("en-US")
        self.queue: Optional[queue.Queue] = None
        self.started_locales: List[Optional[str]] = []
        self.stop_count = 0
        self.start_error: Optional[Exception] = None
    
    def start(self, locale=None):
        if self.start_error is not None:
            raise self.start_error
        self.started_locales.append(locale)
        updates = queue.Queue()
        self.queue = updates
        
        def stream():
            while True:
                item = updates.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        
        return stream()
    
    def push(self, item) -> None:
        self.queue.put(item)
    
    def stop(self) -> None:
        self.stop_count += 1
        if self.queue is not None:
            self.queue.put(None)


class StubDispatcher:
    """Records dispatch calls and returns a canned result, optionally after a gate opens."""
    
    def __init__(self, result: DispatchResult = DispatchResult("ok", 7)):
        self.result = result
        self.calls = []
        self.gate = threading.Event()
        self.gate.set()
        self.shutdown_called = False
        self.error: Optional[Exception] = None
    
    def dispatch(self, **kwargs) -> DispatchResult:
        self.calls.append(kwargs)
        self.gate.wait(5.0)
        if self.error is not None:
            raise self.error
        return self.result
    
    def shutdown(self) -> None:
        self.shutdown_called = True


class DisplayRecorder:
    """Collects DisplayEvents published by the recorder."""
    
    def __init__(self):
        self.events: List[DisplayEvent] = []
    
    def on_display(self, event: DisplayEvent) -> None:
        self.events.append(event)
    
    @property
    def texts(self) -> List[str]:
        return [e.text for e in self.events]


class LiveServer:
    """Runs an aiohttp app on its own loop thread and records what it receives."""
    
    def __init__(self):
        self.requests = []
        self.reply = lambda request: web.Response(text="pong", content_type="text/plain")
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self.server = None
    
    async def _handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append({
            "headers": dict(request.headers),
            "body": await request.text(),
        })
        reply = self.reply(request)
        if asyncio.iscoroutine(reply):
            reply = await reply
        return reply
    
    def start(self) -> None:
        self.thread.start()
        app = web.Application()
        app.router.add_post("/offline-communicator", self._handle)
        self.server = AiohttpTestServer(app)
        asyncio.run_coroutine_threadsafe(self.server.start_server(), self.loop).result(5)
    
    @property
    def url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"
    
    def stop(self) -> None:
        asyncio.run_coroutine_threadsafe(self.server.close(), self.loop).result(10)
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(2.0)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()
        
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Mock Microphone',
            'maxInputChannels': 1,
        }
        
        mock_pyaudio_class.return_value = mock_pyaudio_instance
        
        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def fake_source():
    return FakeTranscriptionSource()


@pytest.fixture
def stub_dispatcher():
    return StubDispatcher()


@pytest.fixture
def mock_capture():
    """Mock AudioCapture that acquires successfully."""
    mock = Mock()
    mock.is_available.return_value = True
    mock.acquire.return_value = InputFormat(sample_rate=16000, channels=1, device_name="mock")
    mock.release.return_value = None
    return mock


@pytest.fixture
def failing_capture(mock_capture):
    mock_capture.acquire.side_effect = CaptureError("Invalid microphone input format.")
    return mock_capture


@pytest.fixture
def login():
    return LoginInfo(server_url="http://jarvis.local:8080", password="secret", transit_protection=True)


@pytest.fixture
def settings():
    return AdvancedSettings(
        native_audio=False,
        speech_timeout=0,
        request_timeout=5,
        pause_threshold=1.5,
        non_speaking_duration=3.0,
    )


@pytest.fixture
def executor():
    executor = SerialExecutor("test")
    executor.start()
    yield executor
    executor.shutdown()


@pytest.fixture
def recorder(mock_capture, fake_source, stub_dispatcher, executor, timer_factory):
    """RecordingService wired to fakes; timers only fire when a test fires them."""
    service = RecordingService(
        capture=mock_capture,
        source=fake_source,
        dispatcher=stub_dispatcher,
        executor=executor,
        timer_factory=timer_factory,
    )
    yield service
    executor.submit(service._shutdown_session)
    executor.flush()


@pytest.fixture
def display_events():
    recorder = DisplayRecorder()
    pub.subscribe(recorder.on_display, DISPLAY_TOPIC)
    yield recorder
    pub.unsubscribe(recorder.on_display, DISPLAY_TOPIC)


@pytest.fixture
def live_server():
    """Local HTTP server standing in for the command endpoint."""
    server = LiveServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def wait_for():
    """Poll a predicate until it holds or the timeout passes."""
    def _wait_for(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
        deadline = time.time() + timeout
        while time.time() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    
    return _wait_for
